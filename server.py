"""
server.py — HTTP query surface over the snapshot store.

Handlers are plain `def` functions so FastAPI runs them on its threadpool; a
manual refresh therefore blocks only its own worker while other requests keep
reading the current snapshot.
"""

import time
from typing import Iterable, Optional

from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from categories import category_names
from config import APP_ENV, APP_VERSION
from errors import PipelineError, RefreshInProgressError
from models import to_iso, utc_now
from monitoring import get_logger
from refresh import RefreshOrchestrator
from snapshot_store import SnapshotStore

logger = get_logger("server")

ENDPOINTS = {
    "GET /api/jobs": "Fetch jobs with filtering and pagination",
    "GET /api/stats": "Get database statistics",
    "GET /api/categories": "Get job counts by category",
    "GET /api/logs": "Get recent fetch log entries",
    "GET /health": "Health check",
    "POST /api/admin/update": "Manual update trigger",
}
AVAILABLE_ENDPOINTS = ["/api/jobs", "/api/stats", "/api/categories", "/api/logs", "/health"]


def create_app(
    store: SnapshotStore,
    orchestrator: RefreshOrchestrator,
    categories: Optional[Iterable[str]] = None,
    environment: str = APP_ENV,
) -> FastAPI:
    category_list = list(categories) if categories is not None else category_names(orchestrator.plan)
    started = time.monotonic()

    app = FastAPI(title="Cybersecurity Jobs API", version=APP_VERSION)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return JSONResponse(
                status_code=404,
                content={
                    "success": False,
                    "error": "Endpoint not found",
                    "availableEndpoints": AVAILABLE_ENDPOINTS,
                },
            )
        return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.detail})

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {type(exc).__name__}: {exc}")
        return JSONResponse(status_code=500, content={"success": False, "error": "Internal server error"})

    @app.get("/")
    def index():
        snapshot = store.snapshot
        return {
            "message": "Cybersecurity Jobs API Server",
            "version": APP_VERSION,
            "status": "running",
            "serverStartTime": to_iso(snapshot.server_start_time),
            "lastUpdated": to_iso(snapshot.last_updated),
            "totalJobs": snapshot.stats.total,
            "endpoints": ENDPOINTS,
        }

    @app.get("/api/jobs")
    def list_jobs(
        category: Optional[str] = None,
        search: Optional[str] = None,
        page: int = Query(default=1, ge=1),
        limit: int = Query(default=50, ge=1, le=200),
    ):
        result = store.query(category=category, search=search, page=page, limit=limit)
        return {"success": True, "data": result.to_dict()}

    @app.get("/api/stats")
    def get_stats():
        snapshot = store.snapshot
        return {
            "success": True,
            "data": {
                "stats": snapshot.stats.to_dict(),
                "lastUpdated": to_iso(snapshot.last_updated),
                "totalFetched": snapshot.total_fetched,
                "serverStartTime": to_iso(snapshot.server_start_time),
                "fetchLogEntries": len(snapshot.fetch_log),
            },
        }

    @app.get("/api/categories")
    def get_categories():
        return {"success": True, "data": store.category_counts(category_list)}

    @app.get("/api/logs")
    def get_logs(limit: int = Query(default=50, ge=1, le=100)):
        return {
            "success": True,
            "data": {
                "logs": [entry.to_dict() for entry in store.fetch_log(limit)],
                "totalEntries": len(store.snapshot.fetch_log),
            },
        }

    @app.get("/health")
    def health():
        snapshot = store.snapshot
        return {
            "status": "healthy",
            "timestamp": to_iso(utc_now()),
            "uptime": round(time.monotonic() - started, 3),
            "jobsCount": len(snapshot.jobs),
            "lastUpdated": to_iso(snapshot.last_updated),
            "refreshState": orchestrator.state.value,
            "environment": environment,
        }

    @app.post("/api/admin/update")
    def manual_update():
        logger.info("Manual update triggered via API")
        try:
            result = orchestrator.trigger_refresh()
        except RefreshInProgressError as e:
            return JSONResponse(status_code=409, content={"success": False, "error": str(e)})
        except PipelineError as e:
            logger.error(f"Manual update failed: {e}")
            return JSONResponse(status_code=500, content={"success": False, "error": str(e)})

        return {
            "success": True,
            "message": "Job database updated successfully",
            "stats": result.stats.to_dict(),
            "lastUpdated": to_iso(result.last_updated),
            "fetched": result.fetched,
            "errors": result.errors,
        }

    return app
