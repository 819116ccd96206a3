"""
Scheduler for the periodic sweeps.

- Product expiry warnings and expiry, hourly.
- Subscription expiry warnings, daily at 9:00 AM.
- Closing finished auctions, every 5 minutes.
"""
import logging
from datetime import datetime
from typing import Callable
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from app.database import SessionLocal
from app.services.auctions import close_expired_auctions
from app.services.expiry import product_expiry_notify, subscription_expiry_notify

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = BackgroundScheduler()

# Last run of each job, keyed by job id
last_runs: dict[str, dict] = {}


def _run_job(job_id: str, job: Callable) -> dict:
    """Run a sweep in its own session and record the outcome."""
    logger.info(f"Starting {job_id}...")
    start_time = datetime.now()
    db = SessionLocal()

    try:
        results = job(db)
        record = {
            "timestamp": start_time.isoformat(),
            "duration_seconds": (datetime.now() - start_time).total_seconds(),
            "results": results,
        }
        logger.info(f"{job_id} completed. Results: {results}")
    except Exception as e:
        db.rollback()
        logger.error(f"Error in {job_id}: {e}")
        record = {
            "timestamp": start_time.isoformat(),
            "duration_seconds": (datetime.now() - start_time).total_seconds(),
            "results": {},
            "error": str(e),
        }
    finally:
        db.close()

    last_runs[job_id] = record
    return record


def run_product_expiry():
    return _run_job("product_expiry_notify", product_expiry_notify)


def run_subscription_expiry():
    return _run_job("subscription_expiry_notify", subscription_expiry_notify)


def run_auction_close():
    return _run_job("close_expired_auctions", lambda db: {"closed": close_expired_auctions(db)})


JOBS = {
    "product_expiry_notify": run_product_expiry,
    "subscription_expiry_notify": run_subscription_expiry,
    "close_expired_auctions": run_auction_close,
}


def start_scheduler():
    """Start the background scheduler."""
    if scheduler.running:
        logger.info("Scheduler already running")
        return

    scheduler.add_job(
        run_product_expiry,
        CronTrigger(minute=0),
        id='product_expiry_notify',
        name='Hourly Product Expiry Notify',
        replace_existing=True
    )

    scheduler.add_job(
        run_subscription_expiry,
        CronTrigger(hour=9, minute=0),
        id='subscription_expiry_notify',
        name='Daily Subscription Expiry Notify',
        replace_existing=True
    )

    scheduler.add_job(
        run_auction_close,
        IntervalTrigger(minutes=5),
        id='close_expired_auctions',
        name='Close Expired Auctions',
        replace_existing=True
    )

    scheduler.start()
    logger.info("Scheduler started with jobs:")
    for job in scheduler.get_jobs():
        logger.info(f"  - {job.name}: {job.trigger}")


def stop_scheduler():
    """Stop the scheduler."""
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Scheduler stopped")


def get_scheduler_status():
    """Get current scheduler status."""
    jobs = []
    if scheduler.running:
        for job in scheduler.get_jobs():
            jobs.append({
                "id": job.id,
                "name": job.name,
                "trigger": str(job.trigger),
                "next_run": job.next_run_time.isoformat() if job.next_run_time else None
            })

    return {
        "running": scheduler.running,
        "jobs": jobs,
        "last_runs": last_runs,
    }


def trigger_job(job_id: str) -> dict:
    """Run one job now, outside its schedule."""
    job = JOBS.get(job_id)
    if job is None:
        return {"error": f"Unknown job: {job_id}"}

    logger.info(f"Manual run of {job_id} triggered")
    record = job()
    record["manual"] = True
    return record
