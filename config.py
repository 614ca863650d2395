"""
config.py — Loads settings.yaml and environment variables.
Provides typed access to all configuration.
"""

import os
from datetime import timedelta
from pathlib import Path

import yaml
from dotenv import load_dotenv

from categories import build_category_plan
from errors import ConfigurationError

# Load .env file
load_dotenv()

# Project root directory
PROJECT_ROOT = Path(__file__).parent

# Load settings.yaml
SETTINGS_PATH = Path(os.getenv("SETTINGS_PATH", PROJECT_ROOT / "settings.yaml"))
try:
    with open(SETTINGS_PATH, "r") as f:
        _settings = yaml.safe_load(f)
except (OSError, yaml.YAMLError) as e:
    raise ConfigurationError(f"Cannot load settings from {SETTINGS_PATH}: {e}") from e

if not isinstance(_settings, dict):
    raise ConfigurationError(f"{SETTINGS_PATH} must contain a mapping")


def _section(name: str) -> dict:
    value = _settings.get(name)
    if not isinstance(value, dict):
        raise ConfigurationError(f"Missing or malformed '{name}' section in {SETTINGS_PATH}")
    return value


# --- Adzuna ---
ADZUNA = _section("adzuna")
ADZUNA_BASE_URL = ADZUNA["base_url"].rstrip("/")
RESULTS_PER_PAGE = int(ADZUNA.get("results_per_page", 50))
MAX_PAGES = int(ADZUNA.get("max_pages", 1))
REQUEST_TIMEOUT = float(ADZUNA.get("timeout_seconds", 30))

# --- Retention ---
RETENTION = _section("retention")
MAX_JOB_AGE_DAYS = int(RETENTION["max_job_age_days"])
MAX_JOB_AGE = timedelta(days=MAX_JOB_AGE_DAYS)
NEW_JOB_THRESHOLD = timedelta(hours=RETENTION["new_job_threshold_hours"])

# --- Rate Limiting ---
RATE_LIMITS = _section("rate_limiting")
CATEGORY_DELAY_SECONDS = float(RATE_LIMITS.get("category_delay_seconds", 1.0))
FETCH_WORKERS = int(RATE_LIMITS.get("fetch_workers", 1))

if CATEGORY_DELAY_SECONDS < 1.0:
    raise ConfigurationError("rate_limiting.category_delay_seconds must be at least 1 second")
if FETCH_WORKERS < 1:
    raise ConfigurationError("rate_limiting.fetch_workers must be at least 1")

# --- Fetch Log ---
FETCH_LOG_MAX_ENTRIES = int(_settings.get("fetch_log", {}).get("max_entries", 100))

# --- Categories ---
CATEGORY_PLAN = build_category_plan(_settings.get("categories"))

# --- API Keys & Server (from .env) ---
ADZUNA_APP_ID = os.getenv("ADZUNA_APP_ID", "")
ADZUNA_APP_KEY = os.getenv("ADZUNA_APP_KEY", "")
PORT = int(os.getenv("PORT", "3000"))
APP_ENV = os.getenv("APP_ENV", "development")
FETCH_INTERVAL = os.getenv("FETCH_INTERVAL", "0 */6 * * *")

# --- Logging ---
LOG_DIR = PROJECT_ROOT / "logs"
LOG_FILE = LOG_DIR / "cyber_jobs.log"

APP_VERSION = "1.0.0"


def validate_config():
    """Check that critical configuration is present."""
    warnings = []

    if not ADZUNA_APP_ID:
        warnings.append("ADZUNA_APP_ID is not set — every category fetch will fail")
    if not ADZUNA_APP_KEY:
        warnings.append("ADZUNA_APP_KEY is not set — every category fetch will fail")
    if FETCH_WORKERS > len(CATEGORY_PLAN):
        warnings.append(
            f"fetch_workers ({FETCH_WORKERS}) exceeds category count ({len(CATEGORY_PLAN)})"
        )

    return warnings
