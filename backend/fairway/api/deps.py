"""FastAPI dependencies for the API layer."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from fairway.config import Settings, get_settings
from fairway.core.security import decode_access_token
from fairway.database import get_db
from fairway.models import Channel, User
from fairway.services.membership import get_channel_or_404, is_member

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


@dataclass(slots=True)
class RequestContext:
    """Everything a handler needs about the current request."""

    user: User
    db: Session
    settings: Settings


def get_user_from_token(token: str, db: Session) -> User:
    """Resolve an active user from a JWT token or raise an HTTP 401 error."""

    payload = decode_access_token(token)
    sub = payload.get("sub")
    if sub is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )

    try:
        user_id = int(sub)
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from None

    user = db.get(User, user_id)
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )
    return user


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    return get_user_from_token(token, db)


def get_request_context(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> RequestContext:
    return RequestContext(user=user, db=db, settings=settings)


def require_admin(ctx: RequestContext = Depends(get_request_context)) -> RequestContext:
    if not ctx.user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return ctx


def require_channel_member(channel_id: int, ctx: RequestContext) -> Channel:
    """Return the channel when the caller belongs to it, raising 404/403 otherwise."""

    channel = get_channel_or_404(channel_id, ctx.db)
    if not is_member(channel.id, ctx.user.id, ctx.db):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not a channel member",
        )
    return channel
