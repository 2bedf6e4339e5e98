import logging
from datetime import date
from typing import AsyncIterator, Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import ProgrammingError
from sqlalchemy.ext.asyncio import AsyncSession

from .config import get_settings
from .database import async_session
from .domain.actors import Actor
from .models import User
from .utils.auth import AuthTokenError, decode_access_token, extract_bearer_token
from .utils.time import local_today

logger = logging.getLogger(__name__)

_BEARER_CHALLENGE = {"WWW-Authenticate": "Bearer"}


async def get_session() -> AsyncIterator[AsyncSession]:
    async with async_session() as session:
        yield session


async def get_current_actor(
    authorization: Optional[str] = Header(default=None),
    session: AsyncSession = Depends(get_session),
) -> Actor:
    settings = get_settings()
    try:
        token = extract_bearer_token(authorization)
        user_id = decode_access_token(token, secret=settings.auth_secret, algorithms=[settings.auth_algorithm])
    except AuthTokenError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
            headers=_BEARER_CHALLENGE,
        ) from exc

    try:
        user = await session.scalar(select(User).where(User.id == user_id))
        actor = Actor(user_id=user.id, role=user.role, location_id=user.location_id) if isinstance(user, User) else None
    except ProgrammingError as exc:
        logger.exception("user lookup failed")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="user store unavailable") from exc
    finally:
        # Close the implicit read transaction; routes open their own with session.begin().
        await session.rollback()

    if actor is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="user not found",
            headers=_BEARER_CHALLENGE,
        )
    return actor


def get_today() -> date:
    return local_today(get_settings().local_timezone)
