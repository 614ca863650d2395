"""
main.py — Startup wiring for the Cybersecurity Jobs API.
Performs an initial refresh, schedules periodic ones, then serves HTTP.
"""

import argparse

import uvicorn

from categories import category_names
from config import CATEGORY_PLAN, FETCH_INTERVAL, PORT, APP_ENV, validate_config
from errors import PipelineError
from monitoring import setup_logging, get_logger
from refresh import RefreshOrchestrator
from scheduler import build_trigger, start_scheduler
from scrapers.adzuna_api import AdzunaClient
from server import create_app
from snapshot_store import SnapshotStore


def build_service() -> tuple[SnapshotStore, RefreshOrchestrator]:
    store = SnapshotStore()
    orchestrator = RefreshOrchestrator(store=store, fetcher=AdzunaClient(), plan=CATEGORY_PLAN)
    return store, orchestrator


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Aggregate cybersecurity jobs from Adzuna and serve them over HTTP.")
    p.add_argument("--port", type=int, default=PORT, help="HTTP port.")
    p.add_argument("--host", type=str, default="0.0.0.0", help="HTTP bind address.")
    p.add_argument("--once", action="store_true", help="Run a single refresh, log the summary and exit.")
    p.add_argument("--skip-initial", action="store_true", help="Start serving without the initial refresh.")
    return p.parse_args()


def run():
    args = parse_args()
    setup_logging()
    logger = get_logger("main")

    logger.info("=" * 60)
    logger.info("CYBERSECURITY JOBS API — Starting")
    logger.info(f"Environment: {APP_ENV}")
    logger.info(f"Categories:  {', '.join(category_names(CATEGORY_PLAN))}")
    logger.info("=" * 60)

    for warning in validate_config():
        logger.warning(f"Config: {warning}")

    # Fail before serving if the schedule is unusable
    build_trigger(FETCH_INTERVAL)

    store, orchestrator = build_service()

    if args.once:
        try:
            orchestrator.trigger_refresh()
        except PipelineError as e:
            logger.error(f"One-shot refresh failed: {e}")
        return

    if not args.skip_initial:
        logger.info("Performing initial job fetch...")
        try:
            orchestrator.trigger_refresh()
        except PipelineError as e:
            logger.error(f"Initial refresh failed, serving an empty snapshot: {e}")

    sched = start_scheduler(orchestrator, FETCH_INTERVAL)
    app = create_app(store, orchestrator)

    logger.info(f"Server ready at: http://localhost:{args.port}")
    try:
        uvicorn.run(app, host=args.host, port=args.port, log_config=None)
    finally:
        logger.info("Shutting down scheduler")
        sched.shutdown(wait=False)


if __name__ == "__main__":
    run()
