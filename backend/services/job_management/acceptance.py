"""
Single-winner binding of a provider (or a bid) to a job.

Both entry points hold the job row lock (``SELECT ... FOR UPDATE``) for the whole
check-then-mutate sequence, and the mutation itself is a conditional UPDATE on
``status='broadcasted' AND provider IS NULL``. Whichever caller's UPDATE matches
the row wins; everyone else gets AlreadyTakenError. On backends without row
locks (SQLite) the conditional UPDATE alone still yields one winner.

Escrow is held inside the same transaction. Notifications go out only after
commit.
"""

import logging

from django.db import transaction
from django.utils import timezone

from jobs.models import Job, Bid
from realtime.notifications import notify_user, notify_users, job_payload
from . import escrow_ledger
from .exceptions import (
    NotFoundError,
    AlreadyTakenError,
    DeadlinePassedError,
    UnauthorizedError,
    InvalidTransitionError,
)
from .results import JobResult

logger = logging.getLogger(__name__)

ALREADY_TAKEN_MESSAGE = "This job was already taken or is no longer available"


def lock_job(job_id: int) -> Job:
    """Load a job under its row lock, or raise NotFoundError."""
    try:
        return Job.objects.lock(job_id)
    except Job.DoesNotExist:
        raise NotFoundError("Job not found")


@transaction.atomic
def accept_quick_book_job(job_id: int, provider) -> JobResult:
    """
    First provider to accept a broadcasted quick-book job wins it.

    Args:
        job_id: ID of the job to accept
        provider: User model instance (provider)

    Returns:
        JobResult with the booked job and its HELD escrow

    Raises:
        NotFoundError: job does not exist
        InvalidTransitionError: job is not a quick-book job
        AlreadyTakenError: job is not BROADCASTED any more, or another provider won
        DeadlinePassedError: quick_book_deadline has passed
    """
    job = lock_job(job_id)

    if job.job_type != Job.QUICK_BOOK:
        raise InvalidTransitionError("Only quick-book jobs can be accepted directly; submit a bid instead")

    if job.status != Job.BROADCASTED:
        raise AlreadyTakenError(ALREADY_TAKEN_MESSAGE)

    if job.quick_book_deadline and timezone.now() > job.quick_book_deadline:
        raise DeadlinePassedError("The acceptance deadline for this job has passed")

    if not Job.objects.claim(job.id, provider.id, job.estimated_price):
        raise AlreadyTakenError(ALREADY_TAKEN_MESSAGE)

    job.refresh_from_db()
    escrow = escrow_ledger.hold(job, job.final_price)

    other_provider_ids = list(
        job.broadcasts.exclude(provider_id=provider.id).values_list("provider_id", flat=True)
    )
    logger.info("Quick-book job %s booked by provider %s at %s", job.id, provider.id, job.final_price)

    def _notify():
        payload = job_payload(job)
        notify_user(
            job.customer_id,
            "job_booked",
            job_id=job.id,
            job=payload,
            message="A provider accepted your job and is on the way.",
        )
        notify_users(other_provider_ids, "job_taken", job_id=job.id)

    transaction.on_commit(_notify)

    return JobResult(
        job=job,
        escrow=escrow,
        message="Job accepted! Navigate to the customer's location.",
    )


@transaction.atomic
def accept_bid(bid_id: int, customer=None, auto_hire: bool = False) -> JobResult:
    """
    Accept one bid: book the job at the bid price and reject the other bids.

    Args:
        bid_id: ID of the bid to accept
        customer: User model instance picking the bid (explicit path)
        auto_hire: True when the system accepts on the customer's behalf
            because the bid met the job's accept price; skips the ownership check

    Returns:
        JobResult with the booked job, the accepted bid and its HELD escrow

    Raises:
        NotFoundError: bid or job does not exist
        UnauthorizedError: customer did not post the job (explicit path only)
        AlreadyTakenError: job is not BROADCASTED or bid is not PENDING
    """
    try:
        job_id = Bid.objects.values_list("job_id", flat=True).get(id=bid_id)
    except Bid.DoesNotExist:
        raise NotFoundError("Bid not found")

    # Job row first, then the bid: every mutator locks in this order
    job = lock_job(job_id)

    if not auto_hire and (customer is None or job.customer_id != customer.id):
        raise UnauthorizedError("Only the customer who posted this job can accept bids")

    bid = Bid.objects.select_for_update().get(id=bid_id)

    if job.status != Job.BROADCASTED or bid.status != Bid.PENDING:
        raise AlreadyTakenError(ALREADY_TAKEN_MESSAGE)

    if not Job.objects.claim(job.id, bid.provider_id, bid.price):
        raise AlreadyTakenError(ALREADY_TAKEN_MESSAGE)

    now = timezone.now()
    Bid.objects.filter(id=bid.id, status=Bid.PENDING).update(status=Bid.ACCEPTED, responded_at=now)

    losing_bids = job.bids.filter(status=Bid.PENDING).exclude(id=bid.id)
    rejected_provider_ids = list(losing_bids.values_list("provider_id", flat=True))
    losing_bids.update(status=Bid.REJECTED, responded_at=now)

    job.refresh_from_db()
    bid.refresh_from_db()
    escrow = escrow_ledger.hold(job, bid.price)

    notified = set(rejected_provider_ids) | {bid.provider_id}
    bystander_ids = [
        provider_id
        for provider_id in job.broadcasts.values_list("provider_id", flat=True)
        if provider_id not in notified
    ]
    logger.info(
        "Bid %s accepted for job %s (provider=%s price=%s auto_hire=%s)",
        bid.id, job.id, bid.provider_id, bid.price, auto_hire
    )

    def _notify():
        payload = job_payload(job)
        notify_user(
            bid.provider_id,
            "bid_accepted",
            job_id=job.id,
            bid_id=bid.id,
            job=payload,
            message="Your bid was accepted!",
        )
        notify_user(
            job.customer_id,
            "job_booked",
            job_id=job.id,
            bid_id=bid.id,
            auto_hired=auto_hire,
            job=payload,
        )
        notify_users(rejected_provider_ids, "bid_rejected", job_id=job.id)
        notify_users(bystander_ids, "job_taken", job_id=job.id)

    transaction.on_commit(_notify)

    return JobResult(
        job=job,
        bid=bid,
        escrow=escrow,
        auto_hired=auto_hire,
        message="Bid accepted. The provider has been notified.",
    )
