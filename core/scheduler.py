# core/scheduler.py

from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from core.config import settings
from core.logging_config import logger


_scheduler: Optional[BackgroundScheduler] = None


def run_wallet_archive():
    """Daily job: fold old wallet credits into daily_collections."""
    from services.wallet import archive_transactions

    try:
        logger.info("[SCHEDULER] Starting wallet history archive...")
        summary = archive_transactions()
        logger.info(
            f"[SCHEDULER] ✅ Archive done: {summary['archived']} transactions, "
            f"{summary['groups']} daily totals"
        )
    except Exception as e:
        logger.error(f"[SCHEDULER] ❌ Wallet archive failed: {e}")


def start_scheduler() -> BackgroundScheduler:
    """
    Start the APScheduler background process.
    Runs the wallet archive once a day at WALLET_ARCHIVE_HOUR_UTC.
    """
    global _scheduler

    if _scheduler is not None and _scheduler.running:
        return _scheduler

    scheduler = BackgroundScheduler(timezone="UTC")
    scheduler.add_job(
        run_wallet_archive,
        trigger=CronTrigger(hour=settings.WALLET_ARCHIVE_HOUR_UTC, minute=0),
        id="wallet_archive_job",
        replace_existing=True,
    )
    scheduler.start()
    _scheduler = scheduler

    logger.info(f"⏰ Scheduler started. Wallet archive set for {settings.WALLET_ARCHIVE_HOUR_UTC:02d}:00 UTC.")
    return scheduler


def stop_scheduler() -> None:
    global _scheduler

    if _scheduler is not None and _scheduler.running:
        _scheduler.shutdown(wait=False)
        logger.info("⏰ Scheduler stopped")
    _scheduler = None
