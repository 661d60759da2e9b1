from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ..analytics import AnalyticsStore
from ..config import get_settings
from ..dependencies import get_analytics
from ..schemas import DistinctReport, ReportRecord, ViolationCount
from ..security import require_token

router = APIRouter(tags=["reports"], dependencies=[Depends(require_token)])
settings = get_settings()


@router.get("/reports", response_model=list[ReportRecord])
def get_reports(
    limit: int | None = Query(default=None, ge=0),
    offset: int | None = Query(default=None, ge=0),
    store: AnalyticsStore = Depends(get_analytics),
):
    return store.list_reports(limit=limit, offset=offset)


@router.get("/distinct-reports", response_model=list[DistinctReport])
def get_distinct_reports(
    limit: int | None = Query(default=None, ge=0),
    offset: int | None = Query(default=None, ge=0),
    store: AnalyticsStore = Depends(get_analytics),
):
    return store.list_distinct_reports(limit=limit, offset=offset)


@router.get("/violation-count", response_model=list[ViolationCount])
def get_violation_count(store: AnalyticsStore = Depends(get_analytics)):
    return store.violation_count_by_day(days=settings.VIOLATION_COUNT_DAYS)
