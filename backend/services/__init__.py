"""
Services package - Business logic layer.

This package contains all business logic services that operate on Django models
but are decoupled from the HTTP/WebSocket layer.

Modules:
    - matching: Candidate lookup and staged broadcast
    - pricing: Price guidance from completed jobs
    - job_management: Job lifecycle, acceptance and escrow
    - bidding: Bids, ranking and auto-hire
"""

# Expose commonly used functions at package level
from .matching import (
    find_candidates,
    broadcast_quick_book,
    start_post_quote_broadcast,
    advance_broadcast_stage,
    process_due_escalations,
)
from .pricing import get_price_guidance, percentile
from .job_management import (
    create_quick_book_job,
    create_post_quote_job,
    accept_quick_book_job,
    accept_bid,
    release_escrow,
    refund_escrow,
    get_escrow_for_job,
    start_job,
    complete_job,
    cancel_job,
    expire_overdue_quick_book_jobs,
    get_available_jobs_for_provider,
    get_jobs_for_user,
    get_job_for_user,
    DispatchError,
    NotFoundError,
    AlreadyTakenError,
    DeadlinePassedError,
    UnauthorizedError,
    DuplicateBidError,
    InvalidTransitionError,
    DispatchValidationError,
)
from .bidding import submit_bid, rank_bids, withdraw_bid

__all__ = [
    # Matching
    "find_candidates",
    "broadcast_quick_book",
    "start_post_quote_broadcast",
    "advance_broadcast_stage",
    "process_due_escalations",
    # Pricing
    "get_price_guidance",
    "percentile",
    # Job management
    "create_quick_book_job",
    "create_post_quote_job",
    "accept_quick_book_job",
    "accept_bid",
    "release_escrow",
    "refund_escrow",
    "get_escrow_for_job",
    "start_job",
    "complete_job",
    "cancel_job",
    "expire_overdue_quick_book_jobs",
    "get_available_jobs_for_provider",
    "get_jobs_for_user",
    "get_job_for_user",
    # Bidding
    "submit_bid",
    "rank_bids",
    "withdraw_bid",
    # Exceptions
    "DispatchError",
    "NotFoundError",
    "AlreadyTakenError",
    "DeadlinePassedError",
    "UnauthorizedError",
    "DuplicateBidError",
    "InvalidTransitionError",
    "DispatchValidationError",
]
