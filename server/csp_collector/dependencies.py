from __future__ import annotations

from fastapi import Request

from .analytics import AnalyticsStore
from .buffer import ReportBuffer


def get_report_buffer(request: Request) -> ReportBuffer:
    return request.app.state.report_buffer


def get_analytics(request: Request) -> AnalyticsStore:
    return request.app.state.analytics
