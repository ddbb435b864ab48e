"""
Job management service - acceptance, escrow and the job lifecycle.

This module handles:
    - Creating quick-book and post & quote jobs
    - Single-winner acceptance (quick book and bids)
    - Escrow hold / release / refund
    - Starting, completing, cancelling and expiring jobs
    - Querying jobs
"""

from .job_lifecycle import (
    create_quick_book_job,
    create_post_quote_job,
    start_job,
    complete_job,
    cancel_job,
    expire_overdue_quick_book_jobs,
    get_available_jobs_for_provider,
    get_jobs_for_user,
    get_job_for_user,
)
from .acceptance import accept_quick_book_job, accept_bid
from .escrow_ledger import release_escrow, refund_escrow, get_escrow_for_job
from .results import JobResult
from .exceptions import (
    DispatchError,
    NotFoundError,
    AlreadyTakenError,
    DeadlinePassedError,
    UnauthorizedError,
    DuplicateBidError,
    InvalidTransitionError,
    DispatchValidationError,
)

__all__ = [
    # Lifecycle operations
    "create_quick_book_job",
    "create_post_quote_job",
    "start_job",
    "complete_job",
    "cancel_job",
    "expire_overdue_quick_book_jobs",
    "get_available_jobs_for_provider",
    "get_jobs_for_user",
    "get_job_for_user",
    # Acceptance
    "accept_quick_book_job",
    "accept_bid",
    # Escrow
    "release_escrow",
    "refund_escrow",
    "get_escrow_for_job",
    "JobResult",
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
