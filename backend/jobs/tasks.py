"""Celery tasks for broadcast escalation and job expiry."""

from celery import shared_task
import logging

logger = logging.getLogger(__name__)


@shared_task
def escalate_broadcast_task(job_id: int, stage: int):
    """
    Widen a post & quote job's broadcast to ``stage``.

    Scheduled with an ETA when the previous stage goes out. If the job was
    booked, cancelled or already escalated in the meantime this is a no-op.
    """
    from services.matching import advance_broadcast_stage

    advanced = advance_broadcast_stage(job_id, stage)
    if not advanced:
        logger.info("Escalation of job %s to stage %s skipped", job_id, stage)
    return advanced


@shared_task
def process_dispatch_timers_task():
    """
    Periodic sweep (Celery beat): run overdue escalations and expire
    quick-book jobs past their deadline.
    """
    from services.matching import process_due_escalations
    from services.job_management import expire_overdue_quick_book_jobs

    due, advanced = process_due_escalations()
    expired = expire_overdue_quick_book_jobs()

    if due or expired:
        logger.info("Dispatch timers: %d due escalations, %d advanced, %d jobs expired", due, advanced, expired)
    return {"due": due, "advanced": advanced, "expired": expired}
