"""
Bid submission, ranking and auto-hire.

A bid at or below the job's accept price is accepted on the spot through the
same acceptance transaction an explicit customer pick uses.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import List, Tuple

from django.db import IntegrityError, transaction
from django.utils import timezone

from common.conf import dispatch_setting
from jobs.models import Job, Bid
from providers.models import ProviderProfile
from realtime.notifications import notify_user, bid_payload
from services.job_management.acceptance import accept_bid, lock_job
from services.job_management.exceptions import (
    NotFoundError,
    DuplicateBidError,
    InvalidTransitionError,
    UnauthorizedError,
    DispatchValidationError,
)
from services.job_management.results import JobResult

logger = logging.getLogger(__name__)


def validate_bid_input(price, estimated_eta) -> Tuple[Decimal, int]:
    """Coerce and range-check a bid's price and ETA (minutes)."""
    try:
        price = Decimal(str(price))
    except (InvalidOperation, TypeError, ValueError):
        raise DispatchValidationError("Price must be a number")
    if not price.is_finite() or price <= 0:
        raise DispatchValidationError("Price must be greater than zero")

    try:
        estimated_eta = int(estimated_eta)
    except (TypeError, ValueError):
        raise DispatchValidationError("Estimated ETA must be a whole number of minutes")

    min_eta = dispatch_setting("DISPATCH_MIN_BID_ETA_MINUTES")
    max_eta = dispatch_setting("DISPATCH_MAX_BID_ETA_MINUTES")
    if not min_eta <= estimated_eta <= max_eta:
        raise DispatchValidationError(
            f"Estimated ETA must be between {min_eta} and {max_eta} minutes"
        )
    return price, estimated_eta


@transaction.atomic
def submit_bid(job_id: int, provider, price, estimated_eta, note: str = "") -> JobResult:
    """
    Place a provider's bid on a broadcasted post & quote job.

    Args:
        job_id: ID of the job to bid on
        provider: User model instance (provider)
        price: Quoted price, must be > 0
        estimated_eta: Minutes until the provider can arrive
        note: Optional message to the customer

    Returns:
        JobResult with the bid; ``auto_hired`` is True when the bid met the
        accept price and the job is now booked (``escrow`` is then set)

    Raises:
        DispatchValidationError: price/ETA out of range
        NotFoundError: job does not exist
        DuplicateBidError: provider already bid on this job
        InvalidTransitionError: job is not taking bids
    """
    price, estimated_eta = validate_bid_input(price, estimated_eta)
    job = lock_job(job_id)

    if Bid.objects.filter(job_id=job.id, provider_id=provider.id).exists():
        raise DuplicateBidError("You have already placed a bid on this job")

    if job.status != Job.BROADCASTED:
        raise InvalidTransitionError(f"Bids are closed - job is {job.status}")

    if job.job_type != Job.POST_QUOTE:
        raise InvalidTransitionError("Quick-book jobs are accepted directly, not bid on")

    if job.customer_id == provider.id:
        raise UnauthorizedError("You cannot bid on your own job")

    try:
        with transaction.atomic():
            bid = Bid.objects.create(
                job=job,
                provider=provider,
                price=price,
                estimated_eta=estimated_eta,
                note=note or "",
                status=Bid.PENDING,
            )
    except IntegrityError:
        raise DuplicateBidError("You have already placed a bid on this job")

    logger.info("Bid %s placed on job %s by provider %s at %s", bid.id, job.id, provider.id, price)

    if job.accept_price is not None and price <= job.accept_price:
        result = accept_bid(bid.id, auto_hire=True)
        result.message = "Your bid met the customer's price - you're hired!"
        return result

    transaction.on_commit(lambda: notify_user(
        job.customer_id,
        "bid_received",
        job_id=job.id,
        bid=bid_payload(bid),
    ))
    return JobResult(job=job, bid=bid, message="Bid submitted. The customer has been notified.")


def _provider_rating(bid: Bid) -> float:
    try:
        return bid.provider.provider_profile.average_rating
    except ProviderProfile.DoesNotExist:
        return 0.0


def rank_bids(job_id: int) -> List[Bid]:
    """
    PENDING bids of a job in display order.

    Cheapest first; equal prices go to the better-rated provider, then to the
    earlier bid. Each bid is annotated with ``rank`` (1-based) and
    ``provider_rating``. Read-only.
    """
    if not Job.objects.filter(id=job_id).exists():
        raise NotFoundError("Job not found")

    bids = list(
        Bid.objects.filter(job_id=job_id, status=Bid.PENDING)
        .select_related("provider__provider_profile")
    )
    for bid in bids:
        bid.provider_rating = _provider_rating(bid)

    bids.sort(key=lambda b: (b.price, -b.provider_rating, b.created_at, b.id))
    for position, bid in enumerate(bids, start=1):
        bid.rank = position
    return bids


@transaction.atomic
def withdraw_bid(bid_id: int, provider) -> Bid:
    """Withdraw a provider's own PENDING bid while the job is still open."""
    try:
        job_id = Bid.objects.values_list("job_id", flat=True).get(id=bid_id)
    except Bid.DoesNotExist:
        raise NotFoundError("Bid not found")

    job = lock_job(job_id)
    bid = Bid.objects.select_for_update().get(id=bid_id)

    if bid.provider_id != provider.id:
        raise UnauthorizedError("You can only withdraw your own bid")

    if bid.status != Bid.PENDING or job.status != Job.BROADCASTED:
        raise InvalidTransitionError(f"Bid can no longer be withdrawn (bid is {bid.status}, job is {job.status})")

    Bid.objects.filter(id=bid.id, status=Bid.PENDING).update(
        status=Bid.WITHDRAWN,
        responded_at=timezone.now(),
    )
    bid.refresh_from_db()

    logger.info("Bid %s withdrawn from job %s", bid.id, job.id)
    transaction.on_commit(lambda: notify_user(
        job.customer_id,
        "bid_withdrawn",
        job_id=job.id,
        bid_id=bid.id,
    ))
    return bid
