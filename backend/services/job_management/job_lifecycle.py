"""
Job lifecycle: creation, start, completion, cancellation and expiry.

Every status write goes through ``Job.objects.transition`` (a conditional
UPDATE), and notifications are deferred to ``transaction.on_commit``.
"""

import logging
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from typing import Optional

from django.db import transaction
from django.db.models import F, Q, QuerySet
from django.utils import timezone

from common.conf import dispatch_setting
from jobs.models import Job, Bid, Escrow, PriceHistory
from providers.models import Category, ProviderProfile
from realtime.notifications import notify_user, notify_users
from .acceptance import lock_job
from .escrow_ledger import refund_escrow
from .exceptions import (
    NotFoundError,
    UnauthorizedError,
    InvalidTransitionError,
    DispatchValidationError,
)
from .results import JobResult

logger = logging.getLogger(__name__)


# ===================== Helpers =====================

def _get_active_category(category_id: int) -> Category:
    try:
        category = Category.objects.get(id=category_id)
    except Category.DoesNotExist:
        raise NotFoundError("Category not found")
    if not category.is_active:
        raise DispatchValidationError("Category is not accepting jobs")
    return category


def _validate_location(latitude, longitude):
    try:
        latitude, longitude = Decimal(str(latitude)), Decimal(str(longitude))
    except (InvalidOperation, TypeError, ValueError):
        raise DispatchValidationError("Latitude and longitude must be numbers")
    if not (-90 <= latitude <= 90 and -180 <= longitude <= 180):
        raise DispatchValidationError("Coordinates out of range")
    return latitude, longitude


def _ledger_provider_ids(job: Job):
    return list(job.broadcasts.values_list("provider_id", flat=True))


# ===================== Creation =====================

@transaction.atomic
def create_quick_book_job(
    customer,
    category_id: int,
    title: str,
    latitude,
    longitude,
    address: str,
    arrival_window: int,
    description: str = "",
) -> JobResult:
    """
    Create a quick-book job priced at the category median and broadcast it.

    Args:
        customer: User model instance (customer)
        category_id: Service category
        title: Short job title
        latitude: Job location latitude
        longitude: Job location longitude
        address: Human-readable address
        arrival_window: Hours within which a provider must accept and arrive
        description: Optional details

    Returns:
        JobResult with the job (BROADCASTED, or PENDING when nobody is nearby);
        ``extra`` carries ``providers_notified`` and the ``price_guidance`` used

    Raises:
        NotFoundError: category does not exist
        DispatchValidationError: bad coordinates or arrival window
    """
    from services.pricing import get_price_guidance
    from services.matching import broadcast_quick_book

    category = _get_active_category(category_id)
    latitude, longitude = _validate_location(latitude, longitude)

    min_window = dispatch_setting("DISPATCH_MIN_ARRIVAL_WINDOW_HOURS")
    max_window = dispatch_setting("DISPATCH_MAX_ARRIVAL_WINDOW_HOURS")
    try:
        arrival_window = int(arrival_window)
    except (TypeError, ValueError):
        raise DispatchValidationError("Arrival window must be a whole number of hours")
    if not min_window <= arrival_window <= max_window:
        raise DispatchValidationError(
            f"Arrival window must be between {min_window} and {max_window} hours"
        )

    guidance = get_price_guidance(category.id)
    deadline = timezone.now() + timedelta(hours=arrival_window)

    job = Job.objects.create(
        customer=customer,
        category=category,
        title=title,
        description=description or "",
        job_type=Job.QUICK_BOOK,
        status=Job.PENDING,
        latitude=latitude,
        longitude=longitude,
        address=address,
        estimated_price=Decimal(str(round(guidance["p50"], 2))),
        arrival_window=arrival_window,
        scheduled_at=deadline,
        quick_book_deadline=deadline,
    )
    logger.info("Quick-book job %s created by customer %s", job.id, customer.id)

    notified = broadcast_quick_book(job)
    job.refresh_from_db()

    if notified:
        message = f"Notifying {notified} nearby providers..."
    else:
        message = "No providers found nearby yet."

    return JobResult(
        job=job,
        message=message,
        extra={"providers_notified": notified, "price_guidance": guidance},
    )


@transaction.atomic
def create_post_quote_job(
    customer,
    category_id: int,
    title: str,
    latitude,
    longitude,
    address: str,
    description: str = "",
    accept_price=None,
    scheduled_at=None,
) -> JobResult:
    """
    Create a post & quote job and run its first broadcast stage.

    The job starts BROADCASTED at stage 1 even when no Tier-A provider is
    nearby; later stages widen the audience.

    Raises:
        NotFoundError: category does not exist
        DispatchValidationError: bad coordinates or accept price
    """
    from services.matching import start_post_quote_broadcast

    category = _get_active_category(category_id)
    latitude, longitude = _validate_location(latitude, longitude)

    if accept_price is not None:
        try:
            accept_price = Decimal(str(accept_price))
        except (InvalidOperation, TypeError, ValueError):
            raise DispatchValidationError("Accept price must be a number")
        if not accept_price.is_finite() or accept_price <= 0:
            raise DispatchValidationError("Accept price must be greater than zero")

    now = timezone.now()
    job = Job.objects.create(
        customer=customer,
        category=category,
        title=title,
        description=description or "",
        job_type=Job.POST_QUOTE,
        status=Job.BROADCASTED,
        latitude=latitude,
        longitude=longitude,
        address=address,
        accept_price=accept_price,
        scheduled_at=scheduled_at,
        bidding_ends_at=now + timedelta(minutes=dispatch_setting("DISPATCH_BIDDING_WINDOW_MINUTES")),
        broadcast_stage=1,
    )
    logger.info("Post-quote job %s created by customer %s", job.id, customer.id)

    notified = start_post_quote_broadcast(job)
    job.refresh_from_db()

    return JobResult(
        job=job,
        message="Your job is live. Bids will appear as providers respond.",
        extra={"providers_notified": notified},
    )


# ===================== Provider Operations =====================

@transaction.atomic
def start_job(job_id: int, provider) -> JobResult:
    """BOOKED -> IN_PROGRESS, by the bound provider."""
    job = lock_job(job_id)

    if job.provider_id != provider.id:
        raise UnauthorizedError("Only the assigned provider can start this job")

    if not Job.objects.transition(job.id, [Job.BOOKED], Job.IN_PROGRESS, started_at=timezone.now()):
        raise InvalidTransitionError(f"Cannot start - job is {job.status}")

    job.refresh_from_db()
    logger.info("Job %s started by provider %s", job.id, provider.id)

    transaction.on_commit(lambda: notify_user(
        job.customer_id,
        "job_started",
        job_id=job.id,
        message="Your provider has started the job.",
    ))
    return JobResult(job=job, message="Job started")


@transaction.atomic
def complete_job(job_id: int, provider) -> JobResult:
    """
    Mark a job COMPLETED, by the bound provider.

    Records the final price for price guidance and bumps the provider's
    completed job count. The escrow stays HELD until the customer releases it.
    """
    job = lock_job(job_id)

    if job.provider_id != provider.id:
        raise UnauthorizedError("Only the assigned provider can complete this job")

    now = timezone.now()
    if not Job.objects.transition(job.id, [Job.BOOKED, Job.IN_PROGRESS], Job.COMPLETED, completed_at=now):
        raise InvalidTransitionError(f"Cannot complete - job is {job.status}")

    job.refresh_from_db()
    PriceHistory.objects.create(
        category_id=job.category_id,
        job=job,
        price=job.final_price,
        completed_at=now,
    )
    ProviderProfile.objects.filter(user_id=provider.id).update(completed_jobs=F("completed_jobs") + 1)

    logger.info("Job %s completed by provider %s at %s", job.id, provider.id, job.final_price)

    transaction.on_commit(lambda: notify_user(
        job.customer_id,
        "job_completed",
        job_id=job.id,
        message="Your job has been completed. Please release the payment.",
    ))
    return JobResult(job=job, message="Job completed successfully")


# ===================== Cancellation =====================

@transaction.atomic
def cancel_job(job_id: int, actor, reason: str = "") -> JobResult:
    """
    Cancel a job by its customer or its bound provider.

    A HELD escrow (BOOKED / IN_PROGRESS) is refunded in the same transaction;
    one the customer already released stays RELEASED. Any PENDING bids are
    rejected.

    Raises:
        NotFoundError: job does not exist
        UnauthorizedError: actor is neither the customer nor the bound provider
        InvalidTransitionError: job already completed, cancelled or expired
    """
    job = lock_job(job_id)

    if actor.id == job.customer_id:
        new_status = Job.CANCELLED_BY_CUSTOMER
    elif job.provider_id is not None and actor.id == job.provider_id:
        new_status = Job.CANCELLED_BY_PROVIDER
    else:
        raise UnauthorizedError("Only the customer or the assigned provider can cancel this job")

    if job.status in Job.TERMINAL_STATUSES:
        raise InvalidTransitionError(f"Cannot cancel - job is already {job.status}")

    prior_status = job.status
    now = timezone.now()
    if not Job.objects.transition(
        job.id,
        [prior_status],
        new_status,
        cancelled_at=now,
        cancellation_reason=reason or "No reason provided",
        next_escalation_at=None,
    ):
        raise InvalidTransitionError("Job changed while cancelling, please retry")

    escrow = None
    if prior_status in (Job.BOOKED, Job.IN_PROGRESS):
        escrow = Escrow.objects.filter(job_id=job.id).first()
        if escrow is not None and escrow.status == Escrow.HELD:
            escrow = refund_escrow(job.id)

    pending_bids = job.bids.filter(status=Bid.PENDING)
    bidder_ids = list(pending_bids.values_list("provider_id", flat=True))
    pending_bids.update(status=Bid.REJECTED, responded_at=now)

    job.refresh_from_db()
    logger.info("Job %s %s (was %s)", job.id, new_status, prior_status)

    recipients = {job.customer_id, job.provider_id}
    recipients.update(_ledger_provider_ids(job))
    recipients.update(bidder_ids)
    recipients.discard(None)
    recipients.discard(actor.id)

    transaction.on_commit(lambda: notify_users(
        sorted(recipients),
        "job_cancelled",
        job_id=job.id,
        status=new_status,
        reason=job.cancellation_reason,
    ))

    return JobResult(
        job=job,
        escrow=escrow,
        message="Job cancelled successfully",
        extra={"was_booked": prior_status in (Job.BOOKED, Job.IN_PROGRESS)},
    )


# ===================== Expiry =====================

def expire_overdue_quick_book_jobs(now=None) -> int:
    """
    Expire quick-book jobs nobody accepted before their deadline.

    Returns:
        Number of jobs moved to EXPIRED
    """
    now = now or timezone.now()
    overdue_ids = list(
        Job.objects.filter(
            job_type=Job.QUICK_BOOK,
            status__in=[Job.PENDING, Job.BROADCASTED],
            quick_book_deadline__lt=now,
        ).values_list("id", flat=True)
    )

    expired = 0
    for job_id in overdue_ids:
        with transaction.atomic():
            if not Job.objects.transition(job_id, [Job.PENDING, Job.BROADCASTED], Job.EXPIRED):
                continue
            job = Job.objects.get(id=job_id)
            provider_ids = _ledger_provider_ids(job)

            def _notify(job=job, provider_ids=provider_ids):
                notify_user(
                    job.customer_id,
                    "job_expired",
                    job_id=job.id,
                    message="No provider accepted your job in time.",
                )
                notify_users(provider_ids, "job_expired", job_id=job.id)

            transaction.on_commit(_notify)
        expired += 1

    if expired:
        logger.info("Expired %d overdue quick-book jobs", expired)
    return expired


# ===================== Queries =====================

def get_available_jobs_for_provider(provider) -> QuerySet:
    """BROADCASTED jobs this provider was notified about and can still take."""
    now = timezone.now()
    return (
        Job.objects.filter(status=Job.BROADCASTED, broadcasts__provider=provider)
        .filter(
            Q(job_type=Job.POST_QUOTE)
            | Q(quick_book_deadline__isnull=True)
            | Q(quick_book_deadline__gt=now)
        )
        .exclude(customer=provider)
        .select_related("category", "customer")
        .distinct()
        .order_by("-created_at")
    )


def get_jobs_for_user(user, status: Optional[str] = None) -> QuerySet:
    """Jobs the user posted or is assigned to, newest first."""
    jobs = Job.objects.filter(Q(customer=user) | Q(provider=user))
    if status:
        jobs = jobs.filter(status=status)
    return jobs.select_related("category", "customer", "provider").order_by("-created_at")


def get_job_for_user(job_id: int, user) -> Job:
    """
    A single job, visible to its customer, its bound provider, and providers
    it is currently broadcast to.
    """
    try:
        job = Job.objects.select_related("category", "customer", "provider").get(id=job_id)
    except Job.DoesNotExist:
        raise NotFoundError("Job not found")

    if user.id in (job.customer_id, job.provider_id):
        return job
    if job.status == Job.BROADCASTED and job.broadcasts.filter(provider_id=user.id).exists():
        return job
    raise UnauthorizedError("You do not have access to this job")
