from __future__ import annotations

from fastapi import APIRouter, Depends, status
from fastapi.responses import PlainTextResponse

from ..schemas import HealthResponse
from ..security import require_token

router = APIRouter(tags=["health"])
protected = APIRouter(tags=["health"], dependencies=[Depends(require_token)])


@router.get("/health/liveness", response_model=HealthResponse, status_code=status.HTTP_200_OK)
async def liveness():
    return HealthResponse(status="ok")


@router.get("/health/readiness", response_model=HealthResponse, status_code=status.HTTP_200_OK)
async def readiness():
    return HealthResponse(status="ok")


@router.get("/api", response_class=PlainTextResponse)
async def api_root():
    return "OK"


@protected.get("/verify", response_class=PlainTextResponse)
async def verify():
    return "OK"
