"""Dispatch tunables, read from Django settings with built-in defaults."""

from django.conf import settings

DEFAULTS = {
    "DISPATCH_NOTIFICATION_GATEWAY": "realtime.gateway.ChannelLayerGateway",
    "DISPATCH_QUICK_BOOK_RADIUS_KM": 5,
    "DISPATCH_BIDDING_WINDOW_MINUTES": 15,
    "DISPATCH_BROADCAST_STAGES": [
        {"radius_km": 3, "tier": "tier_a"},
        {"radius_km": 10, "tier": None},
        {"radius_km": None, "tier": None},
    ],
    "DISPATCH_STAGE_DELAYS_MINUTES": [5, 10],
    "DISPATCH_MIN_BID_ETA_MINUTES": 15,
    "DISPATCH_MAX_BID_ETA_MINUTES": 480,
    "DISPATCH_MIN_ARRIVAL_WINDOW_HOURS": 1,
    "DISPATCH_MAX_ARRIVAL_WINDOW_HOURS": 24,
}


def dispatch_setting(name):
    """Return a dispatch setting, falling back to its default."""
    return getattr(settings, name, DEFAULTS[name])
