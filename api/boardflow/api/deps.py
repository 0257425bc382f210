import secrets

from fastapi import Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from boardflow.core.config import settings
from boardflow.db.session import get_session


async def get_db() -> AsyncSession:
    async for session in get_session():
        yield session


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def require_service_key(
    authorization: str | None = Header(default=None),
    apikey: str | None = Header(default=None),
) -> None:
    """Gate automation endpoints behind the shared service key when one is configured."""
    expected = settings.automation_service_key
    if not expected:
        return
    candidate = _bearer_token(authorization) or apikey
    if not candidate or not secrets.compare_digest(candidate, expected):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid service key")
