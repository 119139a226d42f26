from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from contextlib import asynccontextmanager
from sqlalchemy.exc import OperationalError, TimeoutError as PoolTimeoutError
import logging

from .middleware import TracingMiddleware
from .logging_config import setup_logging
from .errors import EDLError, StoreUnavailable
from .db import session_scope
from .db_init import init_schema_and_seed_if_needed
from .feeds import providers
from .services.categories import CategoryService
from .services.expiration import run_sweep
from .services.ingestion import sync_provider
from .services.notifier import notifier
from .services.scheduler import PeriodicTask
from .api.categories import router as categories_router
from .api.indicators import router as indicators_router
from .api.whitelist import router as whitelist_router
from .api.edl import router as edl_router
from .api.sync import router as sync_router
from .api.health import router as health_router
from .api.prometheus import router as prometheus_router
from .api.logs import router as logs_router

# Import configuration
from .config import (
    API_PREFIX, API_VERSION, APP_PORT, DATABASE_URL, HOLDING_CATEGORY, STORE_RETRY_AFTER_SECONDS,
    EXPIRATION_SWEEP_ENABLED, EXPIRATION_SWEEP_INTERVAL_SECONDS, FEED_SYNC_INTERVAL_SECONDS,
)

# Configure logging at import time
setup_logging()

logger = logging.getLogger("edlhub")


def sync_enabled_feeds() -> dict:
    """Pull every enabled provider into the holding category"""
    results = {}
    with session_scope() as db:
        holding = CategoryService.resolve(db, HOLDING_CATEGORY)
        for name, provider in providers.items():
            if not provider.enabled:
                continue
            try:
                results[name] = sync_provider(db, provider, holding.id).to_dict()
            except Exception:
                # one provider failing must not block the others
                logger.exception("scheduled sync of %s failed", name, extra={"component": "feeds"})
    return results


@asynccontextmanager
async def lifespan(application: FastAPI):
    # Startup
    logger.info("EDL Hub starting up", extra={"component": "api", "version": API_VERSION,
                                              "database": DATABASE_URL.split("://", 1)[0]})

    # Ensure DB schema + seed default categories (idempotent)
    init_schema_and_seed_if_needed()

    tasks = []
    if EXPIRATION_SWEEP_ENABLED:
        tasks.append(PeriodicTask("expiration-sweeper", EXPIRATION_SWEEP_INTERVAL_SECONDS, run_sweep))
    if FEED_SYNC_INTERVAL_SECONDS > 0:
        tasks.append(PeriodicTask("feed-sync", FEED_SYNC_INTERVAL_SECONDS, sync_enabled_feeds))
    for task in tasks:
        task.start()
    application.state.periodic_tasks = tasks

    logger.info("EDL Hub ready", extra={"component": "api", "background_tasks": [t.name for t in tasks]})

    try:
        yield
    finally:
        # Graceful shutdown: a run in progress finishes before its task exits
        for task in tasks:
            await task.stop()
        notifier.shutdown(wait=False)
        logger.info("EDL Hub shutting down", extra={"component": "api"})


app = FastAPI(title="EDL Hub", version=API_VERSION, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(TracingMiddleware)


class ApiVersionHeaderMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-API-Version"] = API_VERSION
        return response


app.add_middleware(ApiVersionHeaderMiddleware)


# ------------------------------------------------------------
# Error handling
# ------------------------------------------------------------

def _error_response(status_code: int, detail: str, code: str) -> JSONResponse:
    headers = {"Retry-After": str(STORE_RETRY_AFTER_SECONDS)} if status_code == 503 else None
    return JSONResponse({"detail": detail, "code": code}, status_code=status_code, headers=headers)


@app.exception_handler(EDLError)
async def edl_error_handler(request: Request, exc: EDLError):
    if exc.status_code >= 500:
        logger.error("store error on %s: %s", request.url.path, exc.message)
    return _error_response(exc.status_code, exc.message, exc.code)


@app.exception_handler(OperationalError)
async def operational_error_handler(request: Request, exc: OperationalError):
    # locked / unreachable database
    logger.warning("database unavailable on %s: %s", request.url.path, exc.orig)
    return _error_response(503, "indicator store unavailable", StoreUnavailable.code)


@app.exception_handler(PoolTimeoutError)
async def pool_timeout_handler(request: Request, exc: PoolTimeoutError):
    logger.warning("database pool exhausted on %s", request.url.path)
    return _error_response(503, "indicator store busy", StoreUnavailable.code)


# ------------------------------------------------------------
# Routers
# ------------------------------------------------------------

# EDL feeds are served at the root for firewall polling
app.include_router(edl_router)

app.include_router(health_router, prefix=API_PREFIX)
app.include_router(prometheus_router, prefix=API_PREFIX)
app.include_router(categories_router, prefix=API_PREFIX)
app.include_router(indicators_router, prefix=API_PREFIX)
app.include_router(whitelist_router, prefix=API_PREFIX)
app.include_router(sync_router, prefix=API_PREFIX)
app.include_router(logs_router, prefix=API_PREFIX)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("edlhub.main:app", host="0.0.0.0", port=APP_PORT)
