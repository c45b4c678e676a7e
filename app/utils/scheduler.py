"""
Scheduler Service
Runs each user's daily data curation with APScheduler
"""
import logging
from typing import Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from app.db import dynamo
from app.utils.lambda_scheduler import trigger_curation

logger = logging.getLogger(__name__)

JOB_PREFIX = "daily_curation_"

# Scheduler instance (exported for use in settings router)
scheduler: Optional[BackgroundScheduler] = None


def curation_job_for_user(user_id: str) -> dict:
    """Job function: curate a single user's recent transactions"""
    logger.info(f"Executing daily curation job for user {user_id}...")
    result = trigger_curation([user_id])
    if result.get("success"):
        logger.info(f"Daily curation job completed for user {user_id}")
    else:
        logger.error(f"Daily curation job failed for user {user_id}: {result.get('error')}")
    return result


def _schedule_user(user_id: str) -> bool:
    db_settings = dynamo.get_curation_settings(user_id)
    if not db_settings:
        return False

    hour = db_settings["hour"]
    minute = db_settings["minute"]
    scheduler.add_job(
        curation_job_for_user,
        args=[user_id],
        trigger=CronTrigger(hour=hour, minute=minute),
        id=f"{JOB_PREFIX}{user_id}",
        name=f"Daily Data Curation - {user_id}",
        replace_existing=True,
    )
    logger.info(f"Scheduled curation for user {user_id}: hour={hour}, minute={minute}")
    return True


def start_scheduler():
    """Start the background scheduler with one job per enabled user"""
    global scheduler

    if scheduler is not None:
        logger.warning("Scheduler is already running")
        return

    scheduler = BackgroundScheduler()
    enabled_users = dynamo.get_all_users_with_curation_enabled()
    for user_id in enabled_users:
        _schedule_user(user_id)

    scheduler.start()
    logger.info(f"Scheduler started with {len(enabled_users)} user-specific jobs.")


def stop_scheduler():
    """Stop the background scheduler"""
    global scheduler

    if scheduler is not None:
        scheduler.shutdown()
        scheduler = None
        logger.info("Scheduler stopped")


def schedule_user_curation(user_id: str, enabled: bool) -> bool:
    """Add, move or remove one user's job after their settings change."""
    if scheduler is None or not scheduler.running:
        logger.warning("Scheduler is not running, cannot update jobs")
        return False

    if enabled:
        return _schedule_user(user_id)

    try:
        scheduler.remove_job(f"{JOB_PREFIX}{user_id}")
        logger.info(f"Removed curation job for user {user_id}")
    except JobLookupError:
        pass
    return True


def refresh_scheduler_jobs():
    """Re-sync jobs with the database, e.g. after users were enabled/disabled externally"""
    if scheduler is None or not scheduler.running:
        logger.warning("Scheduler is not running, cannot refresh jobs")
        return

    enabled_user_ids = set(dynamo.get_all_users_with_curation_enabled())

    for job in scheduler.get_jobs():
        if job.id.startswith(JOB_PREFIX) and job.id[len(JOB_PREFIX):] not in enabled_user_ids:
            scheduler.remove_job(job.id)
            logger.info(f"Removed curation job for disabled user: {job.id[len(JOB_PREFIX):]}")

    for user_id in enabled_user_ids:
        _schedule_user(user_id)


def get_scheduler_status():
    """Get current scheduler status"""
    if scheduler is None:
        return {"running": False, "jobs": []}

    jobs = [
        {
            "id": job.id,
            "name": job.name,
            "next_run": str(job.next_run_time) if job.next_run_time else None,
        }
        for job in scheduler.get_jobs()
    ]
    return {"running": scheduler.running, "jobs": jobs}
