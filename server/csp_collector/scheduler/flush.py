from __future__ import annotations

import asyncio
import logging
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from ..analytics import AnalyticsStore
from ..buffer import ReportBuffer

logger = logging.getLogger("csp-collector.flush")

FLUSH_JOB_ID = "flush_reports"


async def _flush(buffer: ReportBuffer, store: AnalyticsStore, counters: dict[str, Any] | None) -> int:
    batch = buffer.drain()
    if not batch:
        return 0
    try:
        written = await asyncio.to_thread(store.append_batch, batch)
    except Exception:
        logger.exception("Error appending %d buffered reports", len(batch))
        if counters:
            counters["flush_failures_total"].inc()
        return 0
    if counters:
        counters["reports_flushed_total"].inc(written)
    logger.debug("Flushed %d reports", written)
    return written


async def flush_reports(
    buffer: ReportBuffer,
    store: AnalyticsStore,
    counters: dict[str, Any] | None = None,
    lock: asyncio.Lock | None = None,
) -> int:
    """Drain the buffer and bulk-append the batch; returns the number written.

    A failed append is logged and the batch is discarded. When ``lock`` is
    given, flushes sharing it run one at a time.
    """
    if lock is None:
        return await _flush(buffer, store, counters)
    async with lock:
        return await _flush(buffer, store, counters)


def start_flush_scheduler(
    buffer: ReportBuffer,
    store: AnalyticsStore,
    interval_seconds: float,
    counters: dict[str, Any] | None = None,
    lock: asyncio.Lock | None = None,
) -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        flush_reports,
        "interval",
        seconds=interval_seconds,
        args=(buffer, store, counters, lock),
        id=FLUSH_JOB_ID,
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    scheduler.start()
    logger.info("Started report flush scheduler (every %ss)", interval_seconds)
    return scheduler


async def stop_flush_scheduler(
    scheduler: AsyncIOScheduler | None,
    buffer: ReportBuffer,
    store: AnalyticsStore,
    counters: dict[str, Any] | None = None,
    lock: asyncio.Lock | None = None,
) -> int:
    """Stop ticking, flush what is left and close the store.

    The final flush takes ``lock``, so it starts only after a tick that is
    already writing has finished; the store is closed under the same lock.
    Returns the number of records written by the final flush.
    """
    if scheduler:
        scheduler.shutdown(wait=False)
    lock = lock or asyncio.Lock()
    written = await flush_reports(buffer, store, counters, lock)
    async with lock:
        store.close()
    logger.info("Flushed %d buffered reports on shutdown", written)
    return written
