from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Header, Request, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings, get_settings
from ..models import get_session
from ..schemas import TokenInfo
from ..security import is_master_secret, issue_token, list_tokens, require_token, revoke_token, unauthorized

logger = logging.getLogger("csp-collector.tokens")
router = APIRouter(tags=["tokens"])
protected = APIRouter(tags=["tokens"], dependencies=[Depends(require_token)])
settings: Settings = get_settings()


@router.post("/gen-token", response_class=PlainTextResponse, status_code=status.HTTP_200_OK)
async def gen_token(
    request: Request,
    authorization: str | None = Header(default=None),
    session: AsyncSession = Depends(get_session),
):
    if not is_master_secret(settings.SECRET_KEY, authorization):
        raise unauthorized()
    record, raw_token = await issue_token(session, settings.SECRET_KEY)
    request.app.state.prometheus_counters["tokens_issued_total"].inc()
    logger.info("Issued token %d with prefix %s", record.id, record.prefix)
    return raw_token


@protected.get("/tokens", response_model=list[TokenInfo])
async def get_tokens(session: AsyncSession = Depends(get_session)):
    return [TokenInfo(id=token.id, prefix=token.prefix) for token in await list_tokens(session)]


@protected.delete("/token/{token_id}", response_model=list[TokenInfo])
async def delete_token(token_id: int, request: Request, session: AsyncSession = Depends(get_session)):
    remaining = await revoke_token(session, token_id)
    request.app.state.prometheus_counters["tokens_revoked_total"].inc()
    logger.info("Revoked token %d", token_id)
    return [TokenInfo(id=token.id, prefix=token.prefix) for token in remaining]
