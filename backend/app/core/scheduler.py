"""
Background scheduler for periodic tasks.

This module manages background jobs that run on a schedule:
- Inactivity sweep: runs every SWEEP_INTERVAL_HOURS, demotes idle ACTIVE
  accounts to DEACTIVATED and drops expired reactivation codes
"""

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.exc import SQLAlchemyError
from app.core.config import settings
from app.core.database import SessionLocal
from app.services.account_service import account_service
import logging

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()


def deactivate_inactive_accounts_job():
    """
    Background job for the inactivity sweep.

    Failures are logged and rolled back; the next run tries again.
    """
    # The job runs outside any request, so it owns its session
    db = SessionLocal()
    try:
        # Blanket UPDATE; rows a concurrent login touches keep their own write
        deactivated = account_service.deactivate_inactive(db)
        # Expired codes would otherwise sit in memory until overwritten
        purged = account_service.code_store.purge_expired()
        logger.info(
            f"Inactivity sweep completed: {deactivated} account(s) deactivated, "
            f"{purged} expired code(s) dropped"
        )
    except SQLAlchemyError:
        logger.exception("Error in deactivate_inactive_accounts_job")
        db.rollback()
    finally:
        db.close()


def start_scheduler():
    """
    Start the background scheduler.

    This should be called when the FastAPI app starts.
    """
    # Guard against double start (e.g. dev reload)
    if not scheduler.running:
        # Schedule the sweep every SWEEP_INTERVAL_HOURS
        scheduler.add_job(
            deactivate_inactive_accounts_job,
            trigger=IntervalTrigger(hours=settings.SWEEP_INTERVAL_HOURS),
            id="deactivate_inactive_accounts",
            name="Deactivate inactive accounts",
            replace_existing=True
        )

        scheduler.start()
        logger.info(
            f"Background scheduler started. Inactivity sweep scheduled every "
            f"{settings.SWEEP_INTERVAL_HOURS} hours."
        )


def stop_scheduler():
    """
    Stop the background scheduler.

    This should be called when the FastAPI app shuts down.
    """
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Background scheduler stopped.")
