from __future__ import annotations

import datetime as dt
import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError

from ..buffer import ReportBuffer
from ..config import get_settings
from ..dependencies import get_report_buffer
from ..schemas import ReportPayload, ReportRecord

logger = logging.getLogger("csp-collector.ingest")
router = APIRouter(tags=["ingest"])


def client_address(request: Request) -> str:
    if not get_settings().RECORD_SOURCE_IP:
        return ""
    return request.client.host if request.client else ""


async def parse_payload(request: Request) -> ReportPayload:
    try:
        body = json.loads(await request.body())
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Malformed JSON body") from exc
    if not isinstance(body, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Expected a JSON object")
    try:
        return ReportPayload.model_validate(body)
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Malformed report") from exc


@router.post("/", response_class=PlainTextResponse, status_code=status.HTTP_200_OK)
async def submit_report(request: Request, buffer: ReportBuffer = Depends(get_report_buffer)):
    payload = await parse_payload(request)
    record = ReportRecord.from_report(
        payload.csp_report,
        created_at=dt.datetime.now(dt.timezone.utc),
        source_ip=client_address(request),
    )
    counters = request.app.state.prometheus_counters
    if buffer.append(record):
        counters["reports_received_total"].inc()
    else:
        counters["reports_dropped_total"].inc()
        logger.debug("Dropped report for %s while buffer was draining", record.document_uri)
    return "OK"
