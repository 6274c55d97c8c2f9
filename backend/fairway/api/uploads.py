"""File upload endpoint posting an attachment into a conversation."""

from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, HTTPException, UploadFile, status
from pydantic import BaseModel

from fairway.api.deps import RequestContext, get_request_context, require_channel_member
from fairway.core.storage import read_upload
from fairway.models import AttachmentTarget
from fairway.schemas import DirectMessageRead, MessageRead
from fairway.services import get_message_feed
from fairway.services import messages as message_service
from fairway.services.membership import channel_member_ids, get_user_or_404
from fairway.services.notifications import notify_direct_message
from fairway.services.serialization import serialize_direct_message, serialize_message

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/uploads", tags=["uploads"])


class UploadResult(BaseModel):
    target_type: AttachmentTarget
    message: MessageRead | None = None
    direct_message: DirectMessageRead | None = None


@router.post("", response_model=UploadResult, status_code=status.HTTP_201_CREATED)
async def upload_file(
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    target_type: AttachmentTarget = Form(...),
    target_id: int = Form(..., ge=1),
    ctx: RequestContext = Depends(get_request_context),
) -> UploadResult:
    """Store ``file`` inline and post it as a new message in the target conversation."""

    if target_type == AttachmentTarget.CHANNEL:
        channel = require_channel_member(target_id, ctx)
        stored = await read_upload(file)
        message = message_service.create_channel_message(
            channel.id,
            ctx.user,
            f"[Uploaded: {stored.file_name}]",
            ctx.db,
            ctx.settings,
            attachment=stored,
        )
        get_message_feed(ctx.settings).publish(
            channel_member_ids(channel.id, ctx.db),
            {"type": "message.created", "channel_id": channel.id, "message_id": message.id},
        )
        logger.info(
            "User %s uploaded %s (%s bytes) to channel %s",
            ctx.user.id,
            stored.file_name,
            stored.file_size,
            channel.id,
        )
        return UploadResult(
            target_type=target_type,
            message=serialize_message(message, ctx.user.id, ctx.db),
        )

    recipient = get_user_or_404(target_id, ctx.db)
    if not recipient.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    stored = await read_upload(file)
    direct_message = message_service.create_direct_message(
        ctx.user,
        recipient,
        f"[Uploaded: {stored.file_name}]",
        ctx.db,
        ctx.settings,
        attachment=stored,
    )
    get_message_feed(ctx.settings).publish(
        {ctx.user.id, recipient.id},
        {"type": "direct_message.created", "peer_ids": [ctx.user.id, recipient.id], "message_id": direct_message.id},
    )
    if recipient.id != ctx.user.id:
        background_tasks.add_task(notify_direct_message, direct_message.id, ctx.settings)
    return UploadResult(
        target_type=target_type,
        direct_message=serialize_direct_message(direct_message, ctx.user.id, ctx.db),
    )
