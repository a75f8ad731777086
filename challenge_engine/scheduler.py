"""
Background scheduler.
Handles:
- Flagging pending occurrences as notified shortly before they are due
"""

import logging
import os
from datetime import timedelta
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from challenge_engine.database import SessionLocal
from challenge_engine.constants import DEFAULT_NOTIFY_INTERVAL_SECONDS, NOTIFICATION_LEAD
from challenge_engine.services.scheduling_service import SchedulingService

logger = logging.getLogger("challenge_engine.scheduler")

NOTIFY_INTERVAL_SECONDS = int(
    os.getenv("CHALLENGE_ENGINE_NOTIFY_INTERVAL_SECONDS", DEFAULT_NOTIFY_INTERVAL_SECONDS)
)

# Create scheduler instance
scheduler = AsyncIOScheduler()


def notify_due_occurrences(session_factory=SessionLocal, lead: timedelta = NOTIFICATION_LEAD) -> int:
    """Task: mark occurrences due within the lead time as notified"""
    db = session_factory()
    try:
        notified = SchedulingService(db).mark_notified(lead=lead)
        for occurrence in notified:
            # Delivery is handled by the push collaborator; we only record the hand-off
            logger.info(
                f"Occurrence {occurrence.id} for user {occurrence.user_id} "
                f"due at {occurrence.scheduled_time} marked notified"
            )
        return len(notified)
    except Exception as e:
        db.rollback()
        logger.error(f"Scheduler Error (Notify): {e}")
        return 0
    finally:
        db.close()


async def run_notify_due_occurrences():
    notify_due_occurrences()


def start_scheduler():
    """Start the background scheduler"""
    if scheduler.running:
        return
    scheduler.add_job(
        run_notify_due_occurrences,
        IntervalTrigger(seconds=NOTIFY_INTERVAL_SECONDS),
        id="notify_due_occurrences",
        replace_existing=True,
    )
    scheduler.start()
    logger.info(f"Scheduler started (notify sweep every {NOTIFY_INTERVAL_SECONDS}s)")
    logger.info(f"Scheduled jobs: {[job.id for job in scheduler.get_jobs()]}")


def stop_scheduler():
    """Stop the background scheduler"""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
