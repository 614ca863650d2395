"""
scheduler.py — Periodic refresh on a cron expression (APScheduler).
"""

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from config import FETCH_INTERVAL
from errors import ConfigurationError
from monitoring import get_logger
from refresh import RefreshOrchestrator

logger = get_logger("scheduler")

JOB_ID = "refresh"


def build_trigger(expression: str = FETCH_INTERVAL) -> CronTrigger:
    """Parse a five-field crontab expression, e.g. '0 */6 * * *'."""
    try:
        return CronTrigger.from_crontab(expression, timezone="UTC")
    except ValueError as e:
        raise ConfigurationError(f"Invalid FETCH_INTERVAL cron expression {expression!r}: {e}") from e


def start_scheduler(orchestrator: RefreshOrchestrator, expression: str = FETCH_INTERVAL) -> BackgroundScheduler:
    trigger = build_trigger(expression)

    sched = BackgroundScheduler(timezone="UTC")
    sched.add_job(
        orchestrator.run_scheduled,
        trigger,
        id=JOB_ID,
        max_instances=1,
        coalesce=True,
    )
    sched.start()

    logger.info(f"Automatic refresh scheduled with cron: {expression}")
    job = sched.get_job(JOB_ID)
    if job is not None and job.next_run_time is not None:
        logger.info(f"Next refresh: {job.next_run_time.isoformat()}")

    return sched
