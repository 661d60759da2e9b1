from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Sequence

import duckdb
import pandas as pd

from .schemas import DistinctReport, ReportRecord, ViolationCount

logger = logging.getLogger("csp-collector.analytics")

DIRECTIVE_FAMILIES = (
    "base-uri",
    "script-src",
    "img-src",
    "style-src",
    "connect-src",
    "media-src",
    "object-src",
    "frame-src",
    "font-src",
)

REPORT_COLUMNS = (
    "source_ip",
    "created_at",
    "document_uri",
    "referrer",
    "violated_directive",
    "effective_directive",
    "original_policy",
    "disposition",
    "blocked_uri",
    "line_number",
    "column_number",
    "source_file",
    "status_code",
    "script_sample",
)

DISTINCT_COLUMNS = (
    "violated_directive",
    "effective_directive",
    "original_policy",
    "disposition",
    "blocked_uri",
    "source_file",
    "script_sample",
)

UINT_COLUMNS = ("line_number", "column_number", "status_code")

MAX_VIOLATION_DAYS = 14

CSP_REPORT_DDL = """
CREATE TABLE IF NOT EXISTS csp_report (
    source_ip TEXT NOT NULL,
    created_at TIMESTAMP DEFAULT NOW(),
    document_uri TEXT NOT NULL,
    referrer TEXT NOT NULL,
    violated_directive TEXT NOT NULL,
    effective_directive TEXT NOT NULL,
    original_policy TEXT NOT NULL,
    disposition TEXT NOT NULL,
    blocked_uri TEXT,
    line_number UINTEGER,
    column_number UINTEGER,
    source_file TEXT,
    status_code UINTEGER,
    script_sample TEXT NOT NULL
)
"""


def _paginate(query: str, limit: int | None, offset: int | None) -> tuple[str, list[int]]:
    params: list[int] = []
    if limit is not None:
        query += " LIMIT ?"
        params.append(limit)
    if offset is not None:
        query += " OFFSET ?"
        params.append(offset)
    return query, params


class AnalyticsStore:
    """Columnar store for persisted violations, backed by a DuckDB file.

    A single database handle is opened per process; every operation runs on
    its own cursor and at most ``pool_size`` operations run at once.
    """

    def __init__(self, path: Path | str, pool_size: int = 4):
        self.path = Path(path)
        self._db = duckdb.connect(str(self.path))
        self._slots = threading.BoundedSemaphore(pool_size)

    @contextmanager
    def connection(self) -> Iterator[duckdb.DuckDBPyConnection]:
        with self._slots:
            cursor = self._db.cursor()
            try:
                yield cursor
            finally:
                cursor.close()

    def create_schema(self) -> None:
        with self.connection() as conn:
            conn.execute(CSP_REPORT_DDL)

    def close(self) -> None:
        self._db.close()

    def append_batch(self, records: Sequence[ReportRecord]) -> int:
        """Write ``records`` with a single INSERT over a DataFrame scan."""
        if not records:
            return 0
        frame = pd.DataFrame([record.model_dump() for record in records], columns=list(REPORT_COLUMNS))
        frame["created_at"] = pd.to_datetime(frame["created_at"], utc=True).dt.tz_localize(None)
        frame = frame.astype({column: "UInt32" for column in UINT_COLUMNS})

        columns = ", ".join(REPORT_COLUMNS)
        with self.connection() as conn:
            conn.register("report_batch", frame)
            try:
                conn.execute(f"INSERT INTO csp_report ({columns}) SELECT {columns} FROM report_batch")
            finally:
                conn.unregister("report_batch")
        logger.debug("Appended %d reports", len(records))
        return len(records)

    def list_reports(self, limit: int | None = None, offset: int | None = None) -> list[ReportRecord]:
        query, params = _paginate(f"SELECT {', '.join(REPORT_COLUMNS)} FROM csp_report", limit, offset)
        with self.connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [ReportRecord(**dict(zip(REPORT_COLUMNS, row))) for row in rows]

    def list_distinct_reports(self, limit: int | None = None, offset: int | None = None) -> list[DistinctReport]:
        group_columns = ", ".join(DISTINCT_COLUMNS)
        query, params = _paginate(
            f"""
            SELECT {group_columns}, MIN(created_at) AS first_seen, COUNT(*) AS cnt
            FROM csp_report
            GROUP BY {group_columns}
            ORDER BY cnt DESC, first_seen ASC
            """,
            limit,
            offset,
        )
        with self.connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [
            DistinctReport(**dict(zip(DISTINCT_COLUMNS, row[:7])), first_seen=row[7], count=row[8])
            for row in rows
        ]

    def violation_count_by_day(self, days: int = 14) -> list[ViolationCount]:
        """Per-day counts for each directive family over the most recent ``days`` days."""
        days = min(days, MAX_VIOLATION_DAYS)
        counts = ",\n".join(
            f"COUNT(CASE WHEN violated_directive ILIKE '{family}%' THEN 1 END) AS {family.replace('-', '_')}"
            for family in DIRECTIVE_FAMILIES
        )
        query = f"""
            SELECT * FROM (
                SELECT CAST(created_at AS DATE) AS day,
                {counts}
                FROM csp_report
                GROUP BY 1
                ORDER BY 1 DESC
                LIMIT ?
            ) AS recent
            ORDER BY day ASC
        """
        fields = ["day", *(family.replace("-", "_") for family in DIRECTIVE_FAMILIES)]
        with self.connection() as conn:
            rows = conn.execute(query, [days]).fetchall()
        return [ViolationCount(**dict(zip(fields, row))) for row in rows]
