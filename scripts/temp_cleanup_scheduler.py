#!/usr/bin/env python3
"""
Temp File Cleanup Scheduler

Periodically removes stale MP3 conversion files from TEMP_DIR using APScheduler.
Integrates with FastAPI application lifecycle.

Features:
- Scheduled cleanup every N minutes (configurable via TEMP_CLEANUP_INTERVAL_MINUTES)
- Manual trigger via admin API endpoint
- Status reporting for monitoring

Usage:
    from scripts.temp_cleanup_scheduler import start_scheduler, stop_scheduler, trigger_manual_cleanup

    # Start on app startup
    start_scheduler()

    # Stop on app shutdown
    stop_scheduler()

    # Manual trigger
    result = trigger_manual_cleanup()
"""

import logging
from datetime import datetime
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.config import TEMP_CLEANUP_INTERVAL_MINUTES, TEMP_DIR, TEMP_FILE_MAX_AGE_MINUTES
from app.services.cache_service import cleanup_temp_files

logger = logging.getLogger("app.scheduler")

JOB_ID = 'temp_file_cleanup'

# Global scheduler instance
_scheduler: Optional[BackgroundScheduler] = None
_last_cleanup_time: Optional[datetime] = None
_last_cleanup_result: Optional[dict] = None


def scheduled_cleanup():
    """Scheduled job that deletes temp files older than TEMP_FILE_MAX_AGE_MINUTES."""
    global _last_cleanup_time, _last_cleanup_result

    try:
        _last_cleanup_result = cleanup_temp_files(TEMP_FILE_MAX_AGE_MINUTES)
    except Exception as e:
        logger.exception(f"Temp cleanup failed: {e}")
        _last_cleanup_result = {"error": str(e)}
    _last_cleanup_time = datetime.now()


def trigger_manual_cleanup() -> dict:
    """
    Run a cleanup immediately.
    Returns the cleanup result with a timestamp.
    """
    logger.info("Manual temp cleanup triggered")
    scheduled_cleanup()
    return {**(_last_cleanup_result or {}), "timestamp": _last_cleanup_time.isoformat()}


def start_scheduler():
    """
    Initialize and start the background scheduler.
    Called on FastAPI app startup.
    """
    global _scheduler

    if _scheduler is not None:
        logger.warning("Scheduler already running, skipping start")
        return

    _scheduler = BackgroundScheduler(
        job_defaults={
            'coalesce': True,  # Combine multiple missed runs into one
            'max_instances': 1,
        }
    )
    _scheduler.add_job(
        func=scheduled_cleanup,
        trigger=IntervalTrigger(minutes=TEMP_CLEANUP_INTERVAL_MINUTES),
        id=JOB_ID,
        name='Temp File Cleanup',
        replace_existing=True,
    )
    _scheduler.start()

    next_run = _scheduler.get_job(JOB_ID).next_run_time
    logger.info(f"Temp cleanup scheduler started: every {TEMP_CLEANUP_INTERVAL_MINUTES} min, "
                f"max age {TEMP_FILE_MAX_AGE_MINUTES} min, dir {TEMP_DIR}")
    logger.info(f"Next scheduled cleanup: {next_run.strftime('%Y-%m-%d %H:%M:%S %Z')}")


def stop_scheduler():
    """
    Gracefully stop the scheduler.
    Called on FastAPI app shutdown.
    """
    global _scheduler

    if _scheduler is None:
        logger.warning("Scheduler not running, skipping stop")
        return

    _scheduler.shutdown(wait=True)
    _scheduler = None
    logger.info("Temp cleanup scheduler stopped")


def get_scheduler_status() -> dict:
    """
    Get current scheduler status for monitoring/debugging.
    Returns dict with scheduler state, next run time, last cleanup info.
    """
    last = {
        "last_cleanup_time": _last_cleanup_time.isoformat() if _last_cleanup_time else None,
        "last_cleanup_result": _last_cleanup_result,
    }

    if _scheduler is None:
        return {"running": False, "message": "Scheduler not started", **last}

    job = _scheduler.get_job(JOB_ID)
    return {
        "running": True,
        "interval_minutes": TEMP_CLEANUP_INTERVAL_MINUTES,
        "max_age_minutes": TEMP_FILE_MAX_AGE_MINUTES,
        "temp_dir": TEMP_DIR,
        "next_run_time": job.next_run_time.isoformat() if job and job.next_run_time else None,
        **last,
    }


__all__ = [
    'start_scheduler',
    'stop_scheduler',
    'trigger_manual_cleanup',
    'get_scheduler_status',
]
