"""Browser push subscription management and manual sends."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status

from fairway.api.deps import RequestContext, get_request_context, require_admin
from fairway.schemas import (
    PushSendRequest,
    PushSubscriptionCreate,
    PushSubscriptionDelete,
    PushSubscriptionStatus,
)
from fairway.schemas.push import PushSubscriptionRead
from fairway.services import notifications
from fairway.services.membership import get_user_or_404

router = APIRouter(prefix="/push", tags=["push"])


def _status(ctx: RequestContext) -> PushSubscriptionStatus:
    subscriptions = notifications.list_subscriptions(ctx.user.id, ctx.db)
    return PushSubscriptionStatus(
        enabled=ctx.settings.push_enabled,
        public_key=ctx.settings.web_push_vapid_public_key if ctx.settings.push_enabled else None,
        subscription_count=len(subscriptions),
        subscriptions=[PushSubscriptionRead.model_validate(item) for item in subscriptions],
    )


@router.post(
    "/subscriptions",
    response_model=PushSubscriptionRead,
    status_code=status.HTTP_201_CREATED,
)
def subscribe(
    payload: PushSubscriptionCreate, ctx: RequestContext = Depends(get_request_context)
) -> PushSubscriptionRead:
    """Register (or refresh the keys of) a browser endpoint for the caller."""

    subscription = notifications.upsert_subscription(
        ctx.user.id,
        payload.endpoint,
        payload.keys.p256dh,
        payload.keys.auth,
        ctx.db,
    )
    return PushSubscriptionRead.model_validate(subscription)


@router.delete("/subscriptions", status_code=status.HTTP_204_NO_CONTENT)
def unsubscribe(
    payload: PushSubscriptionDelete, ctx: RequestContext = Depends(get_request_context)
) -> Response:
    notifications.remove_subscription(ctx.user.id, payload.endpoint, ctx.db)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/subscriptions", response_model=PushSubscriptionStatus)
def subscription_status(ctx: RequestContext = Depends(get_request_context)) -> PushSubscriptionStatus:
    return _status(ctx)


@router.post("/test")
def send_test_notification(ctx: RequestContext = Depends(require_admin)) -> dict[str, object]:
    """Send a test notification to the calling admin's own devices."""

    subscriptions = notifications.list_subscriptions(ctx.user.id, ctx.db)
    if not subscriptions:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No push subscriptions registered for this user",
        )
    payload = notifications.build_payload(
        "Test notification",
        "Push notifications are working.",
        ctx.settings,
        tag="fairway-test",
    )
    success = notifications.send_to_users([ctx.user.id], payload, ctx.db, ctx.settings)
    return {
        "success": success,
        "subscription_count": len(subscriptions),
        "message": "Test notification sent" if success else "Push notifications are not configured",
    }


@router.post("/send")
def send_notification(
    payload: PushSendRequest, ctx: RequestContext = Depends(get_request_context)
) -> dict[str, bool]:
    target = get_user_or_404(payload.user_id, ctx.db)
    message = notifications.build_payload(
        payload.title,
        payload.body,
        ctx.settings,
        url=payload.url,
        tag=payload.tag,
    )
    if not notifications.send_to_users([target.id], message, ctx.db, ctx.settings):
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to send notification",
        )
    return {"success": True}
