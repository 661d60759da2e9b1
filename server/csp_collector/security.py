from __future__ import annotations

import base64
import hashlib
import hmac
import secrets

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from .config import get_settings
from .models import ApiToken, get_session

TOKEN_BYTES = 30
PREFIX_LENGTH = 5


def unauthorized() -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


def hash_token(secret_key: str, token: str) -> str:
    digest = hmac.new(secret_key.encode("utf-8"), token.encode("utf-8"), hashlib.sha512).digest()
    return base64.b64encode(digest).decode("ascii")


def is_master_secret(secret_key: str, credential: str | None) -> bool:
    if not credential or not secret_key:
        return False
    return hmac.compare_digest(credential.strip().encode("utf-8"), secret_key.encode("utf-8"))


def generate_token() -> str:
    return base64.b64encode(secrets.token_bytes(TOKEN_BYTES)).decode("ascii")


async def issue_token(session: AsyncSession, secret_key: str) -> tuple[ApiToken, str]:
    """Persist a new token and return it along with the raw secret.

    Only the prefix and the keyed hash are stored; the raw value is handed
    back to the caller once.
    """
    raw_token = generate_token()
    record = ApiToken(prefix=raw_token[:PREFIX_LENGTH], hash=hash_token(secret_key, raw_token))
    session.add(record)
    await session.commit()
    return record, raw_token


async def find_token(session: AsyncSession, secret_key: str, presented: str) -> ApiToken | None:
    stmt = select(ApiToken).where(ApiToken.hash == hash_token(secret_key, presented)).limit(1)
    return (await session.execute(stmt)).scalar_one_or_none()


async def list_tokens(session: AsyncSession) -> list[ApiToken]:
    stmt = select(ApiToken).order_by(ApiToken.id.asc())
    return list((await session.execute(stmt)).scalars().all())


async def revoke_token(session: AsyncSession, token_id: int) -> list[ApiToken]:
    await session.execute(delete(ApiToken).where(ApiToken.id == token_id))
    await session.commit()
    return await list_tokens(session)


async def require_token(
    authorization: str | None = Header(default=None),
    session: AsyncSession = Depends(get_session),
) -> ApiToken:
    if not authorization:
        raise unauthorized()
    token = await find_token(session, get_settings().SECRET_KEY, authorization)
    if token is None:
        raise unauthorized()
    return token
