"""
Background Scheduler

Periodic reservation sweep (expire lapsed holds, complete finished
stays) on an APScheduler AsyncIOScheduler started with the app.
The POST /api/apartment/expire-pending endpoint stays as a manual trigger.
"""

import logging
from datetime import datetime
from typing import Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..config import settings
from ..database import SessionLocal
from .reservation_status_updater import ReservationStatusUpdater

logger = logging.getLogger(__name__)

# Global scheduler instance
_scheduler: Optional[AsyncIOScheduler] = None
_last_run_time: Optional[datetime] = None
_last_run_result: Optional[Dict] = None

SWEEP_JOB_ID = "reservation_sweep"


def run_reservation_sweep() -> Dict:
    """Open a session, run every auto update, close the session"""
    global _last_run_time, _last_run_result

    db = SessionLocal()
    try:
        result = ReservationStatusUpdater(db).run_all_auto_updates()
        _last_run_time = datetime.utcnow()
        _last_run_result = result
        return result
    finally:
        db.close()


async def run_reservation_sweep_job():
    """Async job function called by the scheduler."""
    try:
        result = run_reservation_sweep()
        if result["expired_count"] or result["completed_count"]:
            logger.info(f"Reservation sweep result: {result}")
    except Exception as e:
        logger.error(f"Reservation sweep job failed: {e}")


def start_scheduler() -> bool:
    """
    Start the sweep scheduler.

    Returns:
        True if scheduler started successfully, False otherwise
    """
    global _scheduler

    if _scheduler is not None and _scheduler.running:
        logger.warning("Scheduler is already running")
        return True

    try:
        _scheduler = AsyncIOScheduler(timezone="UTC")
        _scheduler.add_job(
            run_reservation_sweep_job,
            IntervalTrigger(seconds=settings.expire_sweep_interval_seconds),
            id=SWEEP_JOB_ID,
            name="Expire pending / complete finished reservations",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        _scheduler.start()
        logger.info(f"Scheduler started (sweep every {settings.expire_sweep_interval_seconds}s)")
        return True
    except Exception as e:
        logger.error(f"Failed to start scheduler: {e}")
        _scheduler = None
        return False


def stop_scheduler() -> bool:
    global _scheduler

    if _scheduler is None:
        return True

    try:
        _scheduler.shutdown(wait=False)
        _scheduler = None
        logger.info("Scheduler stopped")
        return True
    except Exception as e:
        logger.error(f"Failed to stop scheduler: {e}")
        return False


def get_scheduler_status() -> Dict:
    status = {
        "running": False,
        "jobs": [],
        "last_run": _last_run_time.isoformat() if _last_run_time else None,
        "last_run_result": _last_run_result,
    }

    if _scheduler is not None and _scheduler.running:
        status["running"] = True
        for job in _scheduler.get_jobs():
            status["jobs"].append({
                "id": job.id,
                "name": job.name,
                "next_run": job.next_run_time.isoformat() if job.next_run_time else None,
            })

    return status
