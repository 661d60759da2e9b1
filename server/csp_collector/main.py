from __future__ import annotations

import asyncio
import logging

import duckdb
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import Counter
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy.exc import SQLAlchemyError

from .analytics import AnalyticsStore
from .buffer import ReportBuffer
from .config import Settings, configure_logging, get_settings
from .middleware import SecurityHeadersMiddleware
from .models import async_engine, init_db
from .routers import health, report, reports, tokens
from .scheduler.flush import start_flush_scheduler, stop_flush_scheduler

logger = logging.getLogger("csp-collector")

settings: Settings = get_settings()
configure_logging(settings.LOG_LEVEL)

app = FastAPI(
    title="CSP Collector",
    version="1.0.0",
    docs_url="/docs" if settings.EXPOSE_DOCS else None,
    redoc_url=None,
)
Instrumentator().instrument(app).expose(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,
)
app.add_middleware(
    SecurityHeadersMiddleware,
    hsts_policy=settings.HSTS_POLICY,
    csp_policy=settings.CONTENT_SECURITY_POLICY,
    frame_options=settings.FRAME_OPTIONS,
)

prometheus_counters = {
    "reports_received_total": Counter(
        "csp_reports_received_total", "Count of violation reports buffered"
    ),
    "reports_dropped_total": Counter(
        "csp_reports_dropped_total", "Count of violation reports dropped while the buffer was draining"
    ),
    "reports_flushed_total": Counter(
        "csp_reports_flushed_total", "Count of violation reports written to the analytics store"
    ),
    "flush_failures_total": Counter(
        "csp_flush_failures_total", "Count of flush batches discarded after a failed append"
    ),
    "tokens_issued_total": Counter("csp_tokens_issued_total", "Count of API tokens issued"),
    "tokens_revoked_total": Counter("csp_tokens_revoked_total", "Count of token revocation requests"),
}
app.state.prometheus_counters = prometheus_counters
app.state.report_buffer = ReportBuffer()


@app.exception_handler(SQLAlchemyError)
@app.exception_handler(duckdb.Error)
async def storage_error_handler(request: Request, exc: Exception):
    logger.exception("Storage error while handling %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal Server Error"},
    )


@app.on_event("startup")
async def on_startup():
    logger.info("Creating credential and analytics stores under %s if missing", settings.DATA_PATH)
    await init_db()
    store = AnalyticsStore(settings.analytics_db_path, pool_size=settings.ANALYTICS_POOL_SIZE)
    store.create_schema()
    app.state.analytics = store
    app.state.flush_lock = asyncio.Lock()
    app.state.flush_scheduler = start_flush_scheduler(
        app.state.report_buffer,
        store,
        settings.FLUSH_INTERVAL_SECONDS,
        prometheus_counters,
        app.state.flush_lock,
    )


@app.on_event("shutdown")
async def on_shutdown():
    store = getattr(app.state, "analytics", None)
    if store:
        await stop_flush_scheduler(
            getattr(app.state, "flush_scheduler", None),
            app.state.report_buffer,
            store,
            prometheus_counters,
            getattr(app.state, "flush_lock", None),
        )
    await async_engine.dispose()


app.include_router(report.router)
app.include_router(health.router)
app.include_router(health.protected, prefix="/api")
app.include_router(tokens.router, prefix="/api")
app.include_router(tokens.protected, prefix="/api")
app.include_router(reports.router, prefix="/api")
