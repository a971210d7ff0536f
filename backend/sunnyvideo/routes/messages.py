"""
Sunny Video Backend: Video Message Route Handlers
===================================================

What:  Send, list, open, play/download and delete video messages.
How:   Thin handlers; MessageService owns the rules, VideoStorageService the
       blobs.
Who:   Called by the Record, Inbox and Sent screens.

Endpoints:
    POST   /api/messages                 multipart upload (201)
    GET    /api/messages                 inbox
    GET    /api/messages/sent            sent
    POST   /api/messages/{id}/open       recipient opens; first open marks viewed
    GET    /api/messages/{id}/video      the recording (playback / save to device)
    DELETE /api/messages/{id}            sender or recipient removes it

Expired messages are absent from both lists and answer 410 Gone on open and
video download.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from sunnyvideo.database import get_db_session
from sunnyvideo.dependencies import get_current_user
from sunnyvideo.models.user import User
from sunnyvideo.schemas.common import ErrorResponse
from sunnyvideo.schemas.message import (
    MessageListResponse,
    SendVideoResponse,
    VideoMessageResponse,
)
from sunnyvideo.services.message_service import message_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/messages", tags=["Messages"])

_UNAUTHORIZED = {401: {"description": "Not signed in", "model": ErrorResponse}}


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=SendVideoResponse,
    responses={
        **_UNAUTHORIZED,
        400: {"description": "Invalid recording, duration or effect", "model": ErrorResponse},
        403: {"description": "Recipient is not a contact", "model": ErrorResponse},
        429: {"description": "Rate limit exceeded", "model": ErrorResponse},
    },
    summary="Send a video message to a contact",
    description=(
        "Multipart upload of one recording (WebM or MP4, at most 10 seconds) with "
        "an optional filter and emoji overlay. The message expires 24 hours later."
    ),
)
async def send_video(
    video: UploadFile = File(..., description="The recording (video/webm or video/mp4)"),
    recipient_id: UUID = Form(..., description="A user in the sender's contacts"),
    duration_seconds: float = Form(..., description="Recording length in seconds"),
    video_filter: str = Form("none", alias="filter", description="Filter value from /api/effects"),
    emoji: Optional[str] = Form(None, description="Emoji overlay from /api/effects"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SendVideoResponse:
    content = await video.read()

    logger.info(
        "Received video from %s: filename=%s, size=%d bytes",
        user.id, video.filename or "unknown", len(content),
    )

    try:
        return await message_service.send_video(
            db,
            sender=user,
            recipient_id=recipient_id,
            filename=video.filename or "recording.webm",
            content=content,
            duration_seconds=duration_seconds,
            video_filter=video_filter,
            emoji=emoji,
            content_length=video.size,
        )
    finally:
        await video.close()


@router.get(
    "",
    response_model=MessageListResponse,
    responses=_UNAUTHORIZED,
    summary="Inbox: unexpired messages received, newest first",
)
async def list_inbox(
    response: Response,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageListResponse:
    result = await message_service.list_inbox(db, user)
    response.headers["X-Total-Count"] = str(result.total_count)
    response.headers["Cache-Control"] = "no-store"
    return result


@router.get(
    "/sent",
    response_model=MessageListResponse,
    responses=_UNAUTHORIZED,
    summary="Unexpired messages sent, newest first",
)
async def list_sent(
    response: Response,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageListResponse:
    result = await message_service.list_sent(db, user)
    response.headers["X-Total-Count"] = str(result.total_count)
    response.headers["Cache-Control"] = "no-store"
    return result


@router.post(
    "/{message_id}/open",
    response_model=VideoMessageResponse,
    responses={
        **_UNAUTHORIZED,
        403: {"description": "Only the recipient can open a message", "model": ErrorResponse},
        404: {"description": "Message not found", "model": ErrorResponse},
        410: {"description": "Message expired", "model": ErrorResponse},
    },
    summary="Open a received message",
)
async def open_message(
    message_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> VideoMessageResponse:
    return await message_service.open_message(db, user, message_id)


@router.get(
    "/{message_id}/video",
    responses={
        200: {"description": "The recording", "content": {"video/webm": {}, "video/mp4": {}}},
        **_UNAUTHORIZED,
        404: {"description": "Message or recording not found", "model": ErrorResponse},
        410: {"description": "Message expired", "model": ErrorResponse},
    },
    summary="Stream or download the recording",
)
async def get_video(
    message_id: UUID,
    download: bool = Query(default=False, description="Send as an attachment"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FileResponse:
    """
    Serves the blob for the player, or as `sunny_video_<id>.webm` when
    `download=true` ("Save to Device").
    """
    video = await message_service.get_video(db, user, message_id)
    return FileResponse(
        path=str(video.path),
        media_type=video.content_type,
        filename=video.filename if download else None,
        headers={"Cache-Control": "private, no-store"},
    )


@router.delete(
    "/{message_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        **_UNAUTHORIZED,
        404: {"description": "Message not found", "model": ErrorResponse},
    },
    summary="Delete a message",
)
async def delete_message(
    message_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await message_service.delete_message(db, user, message_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
