"""
Find candidate providers for a job.

Filters providers by category, availability and great-circle distance from
the job location; results are sorted nearest first.
"""

import logging
from typing import List, Optional

from common.utils import calculate_distance
from providers.models import ProviderProfile

logger = logging.getLogger(__name__)


def find_candidates(
    latitude: float,
    longitude: float,
    radius_km: Optional[float],
    category_id: int,
    tier: Optional[str] = None,
) -> List[ProviderProfile]:
    """
    Return available providers in ``category_id`` within ``radius_km`` of a point.

    Args:
        latitude: Job latitude
        longitude: Job longitude
        radius_km: Search radius in kilometres, or None for no radius restriction
        category_id: Category the provider must belong to
        tier: Restrict to one provider tier (e.g. 'tier_a'), or None for any

    Returns:
        ProviderProfile instances annotated with ``distance_km``, closest first
    """
    profiles = (
        ProviderProfile.objects.available()
        .in_category(category_id)
        .select_related("user")
        .distinct()
    )
    if tier:
        profiles = profiles.filter(tier=tier)

    candidates: List[ProviderProfile] = []
    for profile in profiles:
        distance = calculate_distance(
            float(latitude),
            float(longitude),
            float(profile.latitude),
            float(profile.longitude),
        )
        # Only keep providers inside the radius
        if radius_km is None or distance <= float(radius_km):
            profile.distance_km = distance
            candidates.append(profile)

    candidates.sort(key=lambda p: p.distance_km)

    logger.debug(
        "Found %d candidates for category %s (radius=%skm, tier=%s)",
        len(candidates), category_id, radius_km, tier or "any"
    )
    return candidates
