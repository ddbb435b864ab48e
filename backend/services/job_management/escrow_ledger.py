"""
Escrow bookkeeping: HELD -> RELEASED | REFUNDED.

An escrow is created only by the acceptance transaction that books its job.
RELEASED and REFUNDED are terminal; every transition is a conditional UPDATE
on ``status='held'`` so two concurrent callers cannot both succeed.
"""

import logging

from django.db import transaction
from django.utils import timezone

from jobs.models import Escrow, Job
from .exceptions import NotFoundError, UnauthorizedError, InvalidTransitionError

logger = logging.getLogger(__name__)


def hold(job, amount) -> Escrow:
    """Create the HELD escrow for a job being booked. Caller owns the transaction."""
    escrow = Escrow.objects.create(
        job=job,
        amount=amount,
        status=Escrow.HELD,
        held_at=timezone.now(),
    )
    logger.info("Escrow %s held %s for job %s", escrow.id, amount, job.id)
    return escrow


@transaction.atomic
def release_escrow(escrow_id: int, actor) -> Escrow:
    """
    Release held funds to the provider. Only the job's customer may release.

    Release may happen any time after booking. A job whose escrow was already
    released can still be cancelled; only a HELD escrow is refunded then.

    Raises:
        NotFoundError: escrow does not exist
        UnauthorizedError: actor is not the job's customer
        InvalidTransitionError: escrow is not HELD
    """
    try:
        escrow = Escrow.objects.select_related("job").get(id=escrow_id)
    except Escrow.DoesNotExist:
        raise NotFoundError("Escrow not found")

    if escrow.job.customer_id != actor.id:
        raise UnauthorizedError("Only the customer can release this escrow")

    # Same lock order as cancellation: job row, then escrow
    Job.objects.lock(escrow.job_id)

    now = timezone.now()
    updated = Escrow.objects.filter(id=escrow.id, status=Escrow.HELD).update(
        status=Escrow.RELEASED,
        released_at=now,
    )
    if not updated:
        raise InvalidTransitionError(f"Escrow is already {escrow.status}")

    escrow.refresh_from_db()
    logger.info("Escrow %s released for job %s", escrow.id, escrow.job_id)

    from realtime.notifications import notify_user
    provider_id = escrow.job.provider_id
    amount = str(escrow.amount)
    transaction.on_commit(lambda: notify_user(
        provider_id,
        "escrow_released",
        job_id=escrow.job_id,
        escrow_id=escrow.id,
        amount=amount,
    ))
    return escrow


@transaction.atomic
def refund_escrow(job_id: int) -> Escrow:
    """
    Refund the held escrow of a job. Called by cancellation inside its transaction.

    Raises:
        NotFoundError: the job has no escrow
        InvalidTransitionError: escrow is not HELD
    """
    try:
        escrow = Escrow.objects.get(job_id=job_id)
    except Escrow.DoesNotExist:
        raise NotFoundError("Escrow not found")

    updated = Escrow.objects.filter(id=escrow.id, status=Escrow.HELD).update(
        status=Escrow.REFUNDED,
        refunded_at=timezone.now(),
    )
    if not updated:
        raise InvalidTransitionError(f"Escrow is already {escrow.status}")

    escrow.refresh_from_db()
    logger.info("Escrow %s refunded for job %s", escrow.id, job_id)
    return escrow


def get_escrow_for_job(job_id: int, actor) -> Escrow:
    """Escrow of a job, visible to its customer and bound provider."""
    try:
        escrow = Escrow.objects.select_related("job").get(job_id=job_id)
    except Escrow.DoesNotExist:
        raise NotFoundError("Escrow not found")

    if actor.id not in (escrow.job.customer_id, escrow.job.provider_id):
        raise UnauthorizedError("Not a party to this job")
    return escrow
