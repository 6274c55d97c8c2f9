"""Authentication API endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from fairway.config import Settings, get_settings
from fairway.core.security import (
    access_token_lifetime,
    create_access_token,
    get_password_hash,
    verify_password,
)
from fairway.database import get_db
from fairway.models import User
from fairway.schemas import LoginRequest, Token, UserCreate, UserRead
from fairway.services.membership import join_general_channel

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def register_user(
    user_in: UserCreate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> User:
    """Register a new user and enrol them in the default channel."""

    email = user_in.email.lower()
    existing_user = db.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if existing_user is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email is already registered",
        )

    user = User(
        email=email,
        display_name=user_in.full_name,
        hashed_password=get_password_hash(user_in.password),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    if join_general_channel(user, db, settings):
        logger.info("User %s joined the %s channel", user.id, settings.general_channel_name)
    db.refresh(user)
    return user


@router.post("/login", response_model=Token)
def login_user(credentials: LoginRequest, db: Session = Depends(get_db)) -> Token:
    """Authenticate a user and return a JWT access token."""

    email = credentials.email.lower()
    db_user = db.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if db_user is None or not verify_password(credentials.password, db_user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
        )
    if not db_user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is deactivated")

    lifetime = access_token_lifetime()
    access_token = create_access_token({"sub": str(db_user.id)}, expires_delta=lifetime)
    return Token(
        access_token=access_token,
        token_type="bearer",
        expires_in=int(lifetime.total_seconds()),
    )
