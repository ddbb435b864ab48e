"""
Notification helpers for sending dispatch events to connected users.

Every helper is best-effort: a failed or missing connection is logged and
dropped, never raised into the transaction that triggered it.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable

from .gateway import get_notification_gateway

logger = logging.getLogger(__name__)


def notify_user(user_id: int | None, event_type: str, **data: Any) -> bool:
    """
    Push one event to one user.

    Args:
        user_id: Target user's ID
        event_type: Event name the client switches on (new_job, job_taken, bid_received, ...)
        **data: Additional payload data

    Returns:
        True if handed to the gateway, False otherwise
    """
    if not user_id:
        return False

    payload: Dict[str, Any] = {"type": event_type, **data}
    try:
        return bool(get_notification_gateway().push(user_id, payload))
    except Exception:
        logger.exception("Failed to push %s to user_%s", event_type, user_id)
        return False


def notify_users(user_ids: Iterable[int], event_type: str, **data: Any) -> int:
    """Push the same event to several users. Returns how many were handed off."""
    sent = 0
    for user_id in user_ids:
        if notify_user(user_id, event_type, **data):
            sent += 1
    return sent


def job_payload(job) -> Dict[str, Any]:
    """Serialized job for event payloads."""
    from jobs.serializers import JobSerializer
    return dict(JobSerializer(job).data)


def bid_payload(bid) -> Dict[str, Any]:
    """Serialized bid for event payloads."""
    from jobs.serializers import BidSerializer
    return dict(BidSerializer(bid).data)
