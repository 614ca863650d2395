"""
monitoring.py — Logging setup and log helpers for the refresh pipeline.
"""

import logging
import sys

from config import LOG_DIR, LOG_FILE


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """
    Set up structured logging to both file and stdout.
    Returns the root logger for the application.
    """
    LOG_DIR.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger("cyber_jobs")
    logger.setLevel(level)

    # Prevent duplicate handlers on re-init
    if logger.handlers:
        return logger

    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    file_handler = logging.FileHandler(str(LOG_FILE), mode="a", encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setLevel(level)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a child logger for a specific module."""
    return logging.getLogger(f"cyber_jobs.{name}")


def log_fetch_success(logger: logging.Logger, category: str, count: int):
    logger.info(f"[{category}] Fetched {count} jobs")


def log_fetch_failure(logger: logging.Logger, category: str, error: Exception):
    logger.error(f"[{category}] Fetch failed: {type(error).__name__}: {str(error)}")


def log_pipeline_step(logger: logging.Logger, step: str, input_count: int, output_count: int):
    """Log a pipeline step with input/output counts."""
    filtered = input_count - output_count
    logger.info(f"[{step}] {input_count} in → {output_count} out ({filtered} removed)")


def log_run_summary(
    logger: logging.Logger,
    fetched: int,
    merged: int,
    published: int,
    new: int,
    remote: int,
    errors: list[str],
    duration: float
):
    """Log a complete refresh summary."""
    logger.info("=" * 60)
    logger.info("REFRESH SUMMARY")
    logger.info(f"  Fetched this run:  {fetched}")
    logger.info(f"  Merged (w/ prev):  {merged}")
    logger.info(f"  Published:         {published}")
    logger.info(f"  New (< threshold): {new}")
    logger.info(f"  Remote:            {remote}")
    logger.info(f"  Category errors:   {len(errors)}")
    logger.info(f"  Duration:          {duration:.1f}s")

    if errors:
        logger.warning("ERRORS:")
        for err in errors:
            logger.warning(f"  - {err}")

    logger.info("=" * 60)
