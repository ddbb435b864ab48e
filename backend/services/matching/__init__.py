"""
Provider matching and staged broadcast service.

This module handles:
    - Finding candidate providers by category, availability and distance
    - Broadcasting quick-book jobs to every nearby provider at once
    - Escalating post & quote visibility stage by stage over time
"""

from .geo_index import find_candidates
from .broadcast import (
    broadcast_quick_book,
    start_post_quote_broadcast,
    advance_broadcast_stage,
    process_due_escalations,
    schedule_escalation,
)

__all__ = [
    "find_candidates",
    "broadcast_quick_book",
    "start_post_quote_broadcast",
    "advance_broadcast_stage",
    "process_due_escalations",
    "schedule_escalation",
]
