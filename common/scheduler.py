"""
Background task scheduler for the daily overdue sweep.
Uses APScheduler to run the sweep in-process when no external cron is available.
"""
import logging
import atexit
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from django.core.management import call_command
from django.utils import timezone

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = None


def sweep_overdue_bills_job():
    """
    Mark overdue bills and send due reminders.
    Runs every day at 00:05.
    """
    try:
        logger.info("Starting scheduled overdue sweep...")
        call_command('sweep_overdue_bills', reminders=True)
        logger.info("Scheduled overdue sweep completed")
    except Exception as e:
        logger.error(f"Error in scheduled overdue sweep: {e}", exc_info=True)


def start_scheduler():
    """
    Initialize and start the background scheduler.
    Call once per process.
    """
    global scheduler

    if scheduler is not None and scheduler.running:
        logger.warning("Scheduler is already running")
        return

    try:
        scheduler = BackgroundScheduler()
        tz = timezone.get_current_timezone()

        scheduler.add_job(
            sweep_overdue_bills_job,
            trigger=CronTrigger(hour=0, minute=5, timezone=tz),
            id='sweep_overdue_bills',
            name='Sweep Overdue Bills',
            replace_existing=True,
            max_instances=1,  # Prevent overlapping runs
            coalesce=True  # Combine missed runs into one
        )

        scheduler.start()
        logger.info(f"Background scheduler started, overdue sweep daily at 00:05 ({tz})")
        atexit.register(stop_scheduler)

    except Exception as e:
        logger.error(f"Failed to start scheduler: {e}", exc_info=True)
        scheduler = None


def stop_scheduler():
    """Stop the background scheduler."""
    global scheduler

    if scheduler is not None and scheduler.running:
        try:
            scheduler.shutdown(wait=True)
            logger.info("Background scheduler stopped")
        except Exception as e:
            logger.error(f"Error stopping scheduler: {e}", exc_info=True)
        finally:
            scheduler = None


def is_running():
    return scheduler is not None and scheduler.running
