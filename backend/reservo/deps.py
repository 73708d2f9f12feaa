from functools import lru_cache
from typing import AsyncIterator, Awaitable, Callable

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from .config import Settings, get_settings
from .database import get_sessionmaker
from .domain.actors import Actor, Role
from .domain.policy import BookingWindow
from .features import Feature, is_feature_enabled
from .utils.auth import decode_access_token


async def get_session() -> AsyncIterator[AsyncSession]:
    async with get_sessionmaker()() as session:
        yield session


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_actor(
    authorization: str | None = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> Actor:
    if authorization is None:
        raise _unauthorized("Authentication required")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise _unauthorized("Authentication required")
    try:
        subject, role = decode_access_token(
            token.strip(),
            secret=settings.auth_secret,
            algorithms=[settings.auth_algorithm],
        )
    except ValueError as exc:
        raise _unauthorized("Invalid or expired token") from exc
    try:
        return Actor(id=subject, role=Role(role))
    except ValueError as exc:
        raise _unauthorized("Unknown role") from exc


def get_booking_window(settings: Settings = Depends(get_settings)) -> BookingWindow:
    return settings.booking_window()


@lru_cache
def require_feature(feature: Feature) -> Callable[..., Awaitable[None]]:
    """Router dependency answering 404 while `feature` is switched off for this environment."""

    async def _feature_enabled(settings: Settings = Depends(get_settings)) -> None:
        if not is_feature_enabled(feature, settings.env_name):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Feature not available")

    return _feature_enabled
