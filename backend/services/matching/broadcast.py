"""
Staged broadcast of jobs to candidate providers.

Quick book: one stage, every matching provider within the quick-book radius
is notified at once.

Post & quote: visibility widens over time.
1. Stage 1 on creation (Tier-A, 3 km by default)
2. Stage 2 after a delay (any tier, 10 km)
3. Stage 3 after a further delay (no radius restriction)

The due time of the next escalation is persisted on the job
(``next_escalation_at``). A Celery task with that ETA is the fast path; the
periodic ``process_due_escalations`` sweep picks up anything a lost task
missed. Either way ``advance_broadcast_stage`` re-checks, under the job row
lock, that the job is still broadcasted before touching it, so a late or
duplicate escalation is a no-op.
"""

import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from common.conf import dispatch_setting
from jobs.models import Job, JobBroadcast
from realtime.notifications import notify_user, notify_users, job_payload
from .geo_index import find_candidates

logger = logging.getLogger(__name__)


# ---------------------- Stage policy ----------------------

def final_stage() -> int:
    return len(dispatch_setting("DISPATCH_BROADCAST_STAGES"))


def stage_policy(stage: int) -> Dict[str, Any]:
    """Radius/tier filter for a 1-based stage number."""
    return dispatch_setting("DISPATCH_BROADCAST_STAGES")[stage - 1]


def stage_delay(stage: int) -> Optional[timedelta]:
    """How long after the previous stage ``stage`` becomes due. None for stage 1 or past the last stage."""
    delays = dispatch_setting("DISPATCH_STAGE_DELAYS_MINUTES")
    if stage < 2 or stage > final_stage() or stage - 2 >= len(delays):
        return None
    return timedelta(minutes=delays[stage - 2])


# ---------------------- Ledger + notification ----------------------

def _record_and_notify(job: Job, candidates, stage: int) -> List[int]:
    """
    Add providers not yet notified about ``job`` to the broadcast ledger and
    push ``new_job`` to them after commit.

    Returns:
        User IDs of the newly notified providers
    """
    already_notified = set(job.broadcasts.values_list("provider_id", flat=True))
    fresh = [
        profile for profile in candidates
        if profile.user_id not in already_notified and profile.user_id != job.customer_id
    ]
    if not fresh:
        return []

    now = timezone.now()
    JobBroadcast.objects.bulk_create(
        [
            JobBroadcast(
                job=job,
                provider_id=profile.user_id,
                stage=stage,
                distance_km=profile.distance_km,
                sent_at=now,
            )
            for profile in fresh
        ],
        ignore_conflicts=True,
    )

    provider_ids = [profile.user_id for profile in fresh]
    transaction.on_commit(lambda: notify_users(
        provider_ids,
        "new_job",
        job_id=job.id,
        stage=stage,
        job=job_payload(job),
    ))
    return provider_ids


def schedule_escalation(job_id: int, stage: int, eta) -> None:
    """Enqueue the stage escalation task once the current transaction commits."""
    from jobs.tasks import escalate_broadcast_task

    def _enqueue():
        try:
            escalate_broadcast_task.apply_async((job_id, stage), eta=eta)
        except Exception:
            logger.exception(
                "Failed to enqueue stage %s escalation for job %s; the timer sweep will run it",
                stage, job_id
            )

    transaction.on_commit(_enqueue)


# ---------------------- Quick book ----------------------

@transaction.atomic
def broadcast_quick_book(job: Job) -> int:
    """
    Notify every matching provider within the quick-book radius.

    Moves the job PENDING -> BROADCASTED when at least one provider matches;
    otherwise the job stays PENDING and the customer is told nobody is nearby.

    Returns:
        Number of providers notified
    """
    candidates = [
        profile for profile in find_candidates(
            job.latitude,
            job.longitude,
            dispatch_setting("DISPATCH_QUICK_BOOK_RADIUS_KM"),
            job.category_id,
        )
        if profile.user_id != job.customer_id
    ]

    if not candidates:
        logger.info("No providers near quick-book job %s", job.id)
        transaction.on_commit(lambda: notify_user(
            job.customer_id,
            "no_providers_available",
            job_id=job.id,
            message="No providers found nearby. Please try again later.",
        ))
        return 0

    now = timezone.now()
    if not Job.objects.transition(job.id, [Job.PENDING], Job.BROADCASTED,
                                  broadcast_stage=1, last_broadcast_at=now):
        return 0

    job.refresh_from_db()
    notified = _record_and_notify(job, candidates, stage=1)

    logger.info("Quick-book job %s broadcast to %d providers", job.id, len(notified))
    return len(notified)


# ---------------------- Post & quote ----------------------

@transaction.atomic
def start_post_quote_broadcast(job: Job) -> int:
    """
    Run stage 1 for a freshly created post & quote job and schedule stage 2.

    The job is already BROADCASTED at stage 1 when this is called.

    Returns:
        Number of providers notified at stage 1
    """
    policy = stage_policy(1)
    candidates = find_candidates(
        job.latitude, job.longitude, policy["radius_km"], job.category_id, tier=policy["tier"]
    )

    now = timezone.now()
    delay = stage_delay(2)
    next_at = now + delay if delay is not None else None
    Job.objects.filter(id=job.id).update(
        last_broadcast_at=now,
        next_escalation_at=next_at,
        updated_at=now,
    )
    job.refresh_from_db()

    notified = _record_and_notify(job, candidates, stage=1)
    if next_at:
        schedule_escalation(job.id, 2, next_at)

    logger.info("Post-quote job %s stage 1 broadcast to %d providers", job.id, len(notified))
    return len(notified)


def advance_broadcast_stage(job_id: int, target_stage: int) -> bool:
    """
    Escalate a post & quote job to ``target_stage``.

    No-op unless the job still exists, is still BROADCASTED and is below
    ``target_stage``; acceptance or cancellation may have ended it first.

    Returns:
        True if the stage advanced
    """
    with transaction.atomic():
        try:
            job = Job.objects.lock(job_id)
        except Job.DoesNotExist:
            logger.warning("Stage %s escalation for missing job %s", target_stage, job_id)
            return False

        if (
            job.job_type != Job.POST_QUOTE
            or job.status != Job.BROADCASTED
            or job.broadcast_stage >= target_stage
            or target_stage > final_stage()
        ):
            logger.info(
                "Skipping stage %s escalation for job %s (status=%s stage=%s)",
                target_stage, job_id, job.status, job.broadcast_stage
            )
            return False

        now = timezone.now()
        delay = stage_delay(target_stage + 1)
        next_at = now + delay if delay is not None else None

        updated = Job.objects.filter(
            id=job.id,
            status=Job.BROADCASTED,
            broadcast_stage__lt=target_stage,
        ).update(
            broadcast_stage=target_stage,
            last_broadcast_at=now,
            next_escalation_at=next_at,
            version=F("version") + 1,
            updated_at=now,
        )
        if not updated:
            return False

        job.refresh_from_db()
        policy = stage_policy(target_stage)
        candidates = find_candidates(
            job.latitude, job.longitude, policy["radius_km"], job.category_id, tier=policy["tier"]
        )
        notified = _record_and_notify(job, candidates, stage=target_stage)
        if next_at:
            schedule_escalation(job.id, target_stage + 1, next_at)

    logger.info("Job %s escalated to stage %s, %d new providers", job_id, target_stage, len(notified))
    return True


def process_due_escalations(now=None) -> Tuple[int, int]:
    """
    Advance every broadcasted post & quote job whose escalation is due.

    Returns:
        (due_count, advanced_count)
    """
    now = now or timezone.now()
    due = list(
        Job.objects.filter(
            job_type=Job.POST_QUOTE,
            status=Job.BROADCASTED,
            next_escalation_at__isnull=False,
            next_escalation_at__lte=now,
        )
        .order_by("next_escalation_at")
        .values_list("id", "broadcast_stage")
    )

    advanced = 0
    for job_id, stage in due:
        if advance_broadcast_stage(job_id, stage + 1):
            advanced += 1
    return len(due), advanced
