"""Browser push notification dispatch.

Delivery is best-effort: ``notify`` never raises. A subscription the push
service reports as gone (HTTP 404 or 410) is deleted; any other delivery
failure is logged and the remaining endpoints are still tried.
"""

from __future__ import annotations

import hashlib
import json
import logging
from typing import Any, Iterable

from pywebpush import WebPushException, webpush
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from fairway.config import Settings, get_settings
from fairway.database import get_db_session
from fairway.models import DirectMessage, PushSubscription, User
from fairway.monitoring.metrics import push_deliveries_total

logger = logging.getLogger(__name__)

_GONE_STATUSES = frozenset({404, 410})
_PREVIEW_LENGTH = 120


def build_payload(
    title: str,
    body: str,
    settings: Settings,
    *,
    url: str | None = None,
    tag: str | None = None,
) -> dict[str, Any]:
    return {
        "title": title,
        "body": body,
        "url": url or "/",
        "tag": tag or settings.web_push_default_tag,
    }


def _subscription_info(subscription: PushSubscription) -> dict[str, Any]:
    return {
        "endpoint": subscription.endpoint,
        "keys": {"p256dh": subscription.p256dh, "auth": subscription.auth},
    }


def _deliver(subscription: PushSubscription, data: str, settings: Settings) -> bool:
    """Send to one endpoint; return False when the endpoint is gone for good."""

    try:
        webpush(
            subscription_info=_subscription_info(subscription),
            data=data,
            vapid_private_key=settings.web_push_vapid_private_key,
            vapid_claims={"sub": settings.web_push_contact},
            ttl=settings.web_push_ttl_seconds,
            timeout=settings.web_push_timeout_seconds,
        )
    except WebPushException as exc:
        status_code = getattr(exc.response, "status_code", None)
        if status_code in _GONE_STATUSES:
            push_deliveries_total.inc(outcome="expired")
            logger.info("Push endpoint for user %s expired (%s)", subscription.user_id, status_code)
            return False
        push_deliveries_total.inc(outcome="failed")
        logger.warning("Push delivery to user %s failed: %s", subscription.user_id, exc)
        return True
    except Exception:  # noqa: BLE001 - one endpoint must not break the fan-out
        push_deliveries_total.inc(outcome="failed")
        logger.exception("Unexpected error delivering push to user %s", subscription.user_id)
        return True
    push_deliveries_total.inc(outcome="sent")
    return True


def send_to_users(
    user_ids: Iterable[int],
    payload: dict[str, Any],
    db: Session,
    settings: Settings,
) -> bool:
    """Fan ``payload`` out to every stored endpoint of ``user_ids``."""

    if not settings.push_enabled:
        push_deliveries_total.inc(outcome="disabled")
        logger.debug("Push notifications are not configured; skipping")
        return False

    recipients = sorted(set(user_ids))
    if not recipients:
        return True

    try:
        subscriptions = list(
            db.execute(
                select(PushSubscription).where(PushSubscription.user_id.in_(recipients))
            ).scalars()
        )
        data = json.dumps(payload)
        expired = [
            subscription.id
            for subscription in subscriptions
            if not _deliver(subscription, data, settings)
        ]
        if expired:
            db.execute(delete(PushSubscription).where(PushSubscription.id.in_(expired)))
            db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to dispatch push notification to %s", recipients)
        return False
    return True


def notify(
    user_ids: Iterable[int],
    title: str,
    body: str,
    *,
    url: str | None = None,
    tag: str | None = None,
    settings: Settings | None = None,
) -> bool:
    """Deliver a notification using a dedicated short-lived session.

    Meant to run after the response has been sent, so it cannot borrow the
    request's session.
    """

    settings = settings or get_settings()
    payload = build_payload(title, body, settings, url=url, tag=tag)
    try:
        with get_db_session() as db:
            return send_to_users(user_ids, payload, db, settings)
    except SQLAlchemyError:
        logger.exception("Could not open a session for push dispatch")
        return False


def notify_direct_message(message_id: int, settings: Settings | None = None) -> bool:
    """Notify the recipient of a direct message."""

    settings = settings or get_settings()
    if not settings.push_enabled:
        return False
    try:
        with get_db_session() as db:
            message = db.get(DirectMessage, message_id)
            if message is None:
                return False
            sender = db.get(User, message.sender_id)
            sender_name = (sender.display_name or sender.email) if sender else "Someone"
            preview = message.content
            if len(preview) > _PREVIEW_LENGTH:
                preview = preview[: _PREVIEW_LENGTH - 1] + "…"
            payload = build_payload(
                f"New message from {sender_name}",
                preview,
                settings,
                url=f"/dm/{message.sender_id}",
                tag=f"dm-{message.sender_id}",
            )
            return send_to_users([message.recipient_id], payload, db, settings)
    except SQLAlchemyError:
        logger.exception("Failed to notify recipient of direct message %s", message_id)
        return False


def endpoint_hash(endpoint: str) -> str:
    return hashlib.sha256(endpoint.encode("utf-8")).hexdigest()


def _find_subscription(user_id: int, endpoint: str, db: Session) -> PushSubscription | None:
    stmt = select(PushSubscription).where(
        PushSubscription.user_id == user_id,
        PushSubscription.endpoint_hash == endpoint_hash(endpoint),
    )
    return db.execute(stmt).scalar_one_or_none()


def upsert_subscription(
    user_id: int, endpoint: str, p256dh: str, auth: str, db: Session
) -> PushSubscription:
    """Store the endpoint for the user, replacing the keys if it is already known."""

    subscription = _find_subscription(user_id, endpoint, db)
    if subscription is None:
        subscription = PushSubscription(
            user_id=user_id,
            endpoint=endpoint,
            endpoint_hash=endpoint_hash(endpoint),
            p256dh=p256dh,
            auth=auth,
        )
        db.add(subscription)
        try:
            db.commit()
        except IntegrityError:
            # Registered concurrently; fall through and overwrite its keys.
            db.rollback()
            logger.debug("Push endpoint for user %s registered concurrently", user_id)
            subscription = _find_subscription(user_id, endpoint, db)
            if subscription is None:
                raise
        else:
            db.refresh(subscription)
            return subscription

    subscription.p256dh = p256dh
    subscription.auth = auth
    db.commit()
    db.refresh(subscription)
    return subscription


def remove_subscription(user_id: int, endpoint: str, db: Session) -> int:
    result = db.execute(
        delete(PushSubscription).where(
            PushSubscription.user_id == user_id,
            PushSubscription.endpoint_hash == endpoint_hash(endpoint),
        )
    )
    db.commit()
    return result.rowcount or 0


def list_subscriptions(user_id: int, db: Session) -> list[PushSubscription]:
    stmt = (
        select(PushSubscription)
        .where(PushSubscription.user_id == user_id)
        .order_by(PushSubscription.created_at.desc(), PushSubscription.id.desc())
    )
    return list(db.execute(stmt).scalars())
