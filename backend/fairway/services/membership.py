"""Channel lifecycle, membership changes and account flags."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fairway.config import Settings
from fairway.models import Channel, ChannelMember, User

logger = logging.getLogger(__name__)

GENERAL_CHANNEL_DESCRIPTION = "General discussion for the team"


@dataclass(slots=True)
class SetupResult:
    channel: Channel
    created: bool
    members_added: int


def get_channel_or_404(channel_id: int, db: Session) -> Channel:
    channel = db.get(Channel, channel_id)
    if channel is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Channel not found")
    return channel


def get_user_or_404(user_id: int, db: Session) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def is_member(channel_id: int, user_id: int, db: Session) -> bool:
    stmt = select(ChannelMember.id).where(
        ChannelMember.channel_id == channel_id,
        ChannelMember.user_id == user_id,
    )
    return db.execute(stmt).first() is not None


def channel_members(channel_id: int, db: Session) -> list[User]:
    stmt = (
        select(User)
        .join(ChannelMember, ChannelMember.user_id == User.id)
        .where(ChannelMember.channel_id == channel_id)
        .order_by(func.coalesce(User.display_name, User.email).asc(), User.id.asc())
    )
    return list(db.execute(stmt).scalars())


def _add_missing_active_members(channel: Channel, db: Session) -> int:
    existing = select(ChannelMember.user_id).where(ChannelMember.channel_id == channel.id)
    stmt = select(User.id).where(User.is_active.is_(True), User.id.not_in(existing))
    missing = list(db.execute(stmt).scalars())
    for user_id in missing:
        db.add(ChannelMember(channel_id=channel.id, user_id=user_id))
    return len(missing)


def create_channel(
    name: str,
    creator: User,
    db: Session,
    *,
    description: str | None = None,
    is_private: bool = False,
) -> Channel:
    """Create a channel and enrol every currently active user."""

    channel = Channel(
        name=name,
        description=description,
        is_private=is_private,
        created_by_id=creator.id,
    )
    db.add(channel)
    db.flush()
    added = _add_missing_active_members(channel, db)
    db.commit()
    db.refresh(channel)
    logger.info("User %s created channel %s with %s members", creator.id, channel.id, added)
    return channel


def delete_channel(channel: Channel, db: Session) -> None:
    channel_id = channel.id
    db.delete(channel)
    db.commit()
    logger.info("Deleted channel %s", channel_id)


def add_member(channel: Channel, user: User, db: Session) -> ChannelMember:
    if is_member(channel.id, user.id, db):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User is already a member")
    membership = ChannelMember(channel_id=channel.id, user_id=user.id)
    db.add(membership)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User is already a member")
    db.refresh(membership)
    return membership


def remove_member(channel: Channel, user_id: int, db: Session) -> None:
    stmt = select(ChannelMember).where(
        ChannelMember.channel_id == channel.id,
        ChannelMember.user_id == user_id,
    )
    membership = db.execute(stmt).scalar_one_or_none()
    if membership is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Membership not found")
    db.delete(membership)
    db.commit()


def set_user_flags(
    actor: User,
    target: User,
    db: Session,
    *,
    is_active: bool | None = None,
    is_admin: bool | None = None,
) -> User:
    """Change activation or admin flags; an admin cannot demote themselves."""

    if target.id == actor.id and is_admin is False:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot remove your own admin status",
        )
    if is_active is not None:
        target.is_active = is_active
    if is_admin is not None:
        target.is_admin = is_admin
    db.add(target)
    db.commit()
    db.refresh(target)
    logger.info(
        "User %s updated flags of user %s (active=%s, admin=%s)",
        actor.id,
        target.id,
        target.is_active,
        target.is_admin,
    )
    return target


def bootstrap_admin(user: User, db: Session) -> User:
    """Promote ``user`` when the deployment has no administrator yet."""

    existing = db.execute(select(User.id).where(User.is_admin.is_(True)).limit(1)).first()
    if existing is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Admin already exists")
    user.is_admin = True
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.warning("User %s bootstrapped as the first administrator", user.id)
    return user


def find_general_channel(db: Session, settings: Settings) -> Channel | None:
    stmt = (
        select(Channel)
        .where(Channel.name == settings.general_channel_name)
        .order_by(Channel.id.asc())
        .limit(1)
    )
    return db.execute(stmt).scalar_one_or_none()


def ensure_general_channel(actor: User, db: Session, settings: Settings) -> SetupResult:
    """Create the default channel if missing and enrol all active users."""

    channel = find_general_channel(db, settings)
    created = channel is None
    if channel is None:
        channel = Channel(
            name=settings.general_channel_name,
            description=GENERAL_CHANNEL_DESCRIPTION,
            created_by_id=actor.id,
        )
        db.add(channel)
        db.flush()
    added = _add_missing_active_members(channel, db)
    db.commit()
    db.refresh(channel)
    return SetupResult(channel=channel, created=created, members_added=added)


def join_general_channel(user: User, db: Session, settings: Settings) -> bool:
    """Enrol a new user in the default channel when it exists."""

    channel = find_general_channel(db, settings)
    if channel is None or is_member(channel.id, user.id, db):
        return False
    db.add(ChannelMember(channel_id=channel.id, user_id=user.id))
    db.commit()
    return True


def channel_member_ids(channel_id: int, db: Session) -> list[int]:
    stmt = select(ChannelMember.user_id).where(ChannelMember.channel_id == channel_id)
    return list(db.execute(stmt).scalars())


def channels_for_user(user_id: int, db: Session) -> list[Channel]:
    stmt = (
        select(Channel)
        .join(ChannelMember, ChannelMember.channel_id == Channel.id)
        .where(ChannelMember.user_id == user_id)
        .order_by(Channel.name.asc(), Channel.id.asc())
    )
    return list(db.execute(stmt).scalars())
