"""
Scheduler Service
Runs the periodic recurring-transaction and notification sweep using APScheduler
"""
import logging
from typing import Any, Dict, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.core.config import settings
from app.utils.analytics_engine import AnalyticsEngine
from app.utils.connections import ConnectionRegistry
from app.utils.date_ranges import utcnow
from app.utils.notifier import generate_notifications
from app.utils.recurring import process_due

logger = logging.getLogger(__name__)

SWEEP_JOB_ID = "finance_sweep"

# Scheduler instance (exported for use in settings router)
scheduler: Optional[BackgroundScheduler] = None


def run_sweep(store, connections: Optional[ConnectionRegistry] = None) -> Dict[str, Any]:
    """
    Process due recurring transactions and generate notifications for every
    user. A failure for one user is logged and the sweep moves on.
    """
    logger.info("Executing finance sweep...")
    now = utcnow()
    engine = AnalyticsEngine(store)
    summary = {"users": 0, "processed": 0, "notifications": 0, "failed_users": []}

    for user_id in store.list_user_ids():
        summary["users"] += 1
        try:
            result = process_due(store, user_id, now)
            summary["processed"] += len(result["processed"])
            created = generate_notifications(store, user_id, connections, engine, now)
            summary["notifications"] += len(created)
        except Exception as e:
            logger.error(f"Sweep failed for user {user_id}: {str(e)}", exc_info=True)
            summary["failed_users"].append(user_id)

    logger.info(
        f"Finance sweep completed: {summary['users']} users, {summary['processed']} recurring transactions, "
        f"{summary['notifications']} notifications"
    )
    return summary


def start_scheduler(store, connections: Optional[ConnectionRegistry] = None):
    """Start the background scheduler with the interval sweep job"""
    global scheduler

    if scheduler is not None:
        logger.warning("Scheduler is already running")
        return

    scheduler = BackgroundScheduler()
    scheduler.add_job(
        run_sweep,
        args=[store, connections],
        trigger=IntervalTrigger(minutes=settings.SCHEDULER_INTERVAL_MINUTES),
        id=SWEEP_JOB_ID,
        name="Recurring transactions and notifications",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    logger.info(f"Scheduler started; sweep every {settings.SCHEDULER_INTERVAL_MINUTES} minutes.")


def stop_scheduler():
    """Stop the background scheduler"""
    global scheduler

    if scheduler is not None:
        scheduler.shutdown()
        scheduler = None
        logger.info("Scheduler stopped")


def get_scheduler_status():
    """Get current scheduler status"""
    if scheduler is None:
        return {"running": False, "jobs": []}

    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run": job.next_run_time.isoformat() if job.next_run_time else None
        })

    return {
        "running": scheduler.running,
        "interval_minutes": settings.SCHEDULER_INTERVAL_MINUTES,
        "jobs": jobs
    }
