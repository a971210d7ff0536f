"""
Sunny Video Backend: Message Service (Business Logic Orchestrator)
====================================================================

What:  Send, list, open, play, delete and expire video messages.
How:   Composes VideoStorageService (blobs), ContactService (who may receive)
       and the timefmt helpers (expiry and labels) over one AsyncSession.
Who:   Called by the message routes and the expiry sweeper.

Send Flow (POST /api/messages):
    ┌──────────┐    ┌─────────────┐    ┌──────────────┐    ┌──────────┐
    │  Upload  │───▶│  Rules      │───▶│  Store blob  │───▶│  Insert  │
    │  (Route) │    │  duration,  │    │  (Storage    │    │  row     │
    └──────────┘    │  effects,   │    │   Service)   │    │  (DB)    │
                    │  contact    │    └──────────────┘    └──────────┘
                    └─────────────┘
    If the insert fails the stored blob is removed again.

Expiry:
    expires_at = send time + MESSAGE_TTL_HOURS. From that instant the message
    is left out of listings and refuses playback with 410 Gone; the sweeper
    deletes the row and blob on its next pass.

Viewed state:
    The first open by the recipient sets viewed = true and viewed_at = now.
    Later opens leave both unchanged.
"""

import logging
import math
from datetime import datetime
from pathlib import Path
from typing import NamedTuple, Optional
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sunnyvideo.config import settings
from sunnyvideo.effects import css_for, validate_emoji, validate_filter
from sunnyvideo.exceptions import (
    DatabaseError,
    MessageExpiredError,
    NotFoundError,
    PermissionDeniedError,
    SunnyVideoError,
    ValidationError,
)
from sunnyvideo.models.user import User
from sunnyvideo.models.video_message import VideoMessage
from sunnyvideo.schemas.message import (
    MessageListResponse,
    SendVideoResponse,
    VideoMessageResponse,
)
from sunnyvideo.services.contact_service import contact_service
from sunnyvideo.services.storage_service import storage_service
from sunnyvideo.timefmt import (
    compute_expires_at,
    ensure_aware,
    format_expiry,
    format_time_ago,
    is_expired,
    utcnow,
)

logger = logging.getLogger(__name__)

CONTACTS_ONLY_MESSAGE = "You can only send videos to users in your contacts"

# "Save to Device" names follow the sniffed container, not the upload's name
DOWNLOAD_EXTENSIONS = {
    "video/webm": ".webm",
    "video/mp4": ".mp4",
}


class VideoDownload(NamedTuple):
    path: Path
    content_type: str
    filename: str


def build_message_response(
    message: VideoMessage,
    now: datetime,
    sender_username: Optional[str] = None,
    recipient_username: Optional[str] = None,
) -> VideoMessageResponse:
    """Row + joined usernames → API view, with labels evaluated at `now`."""
    viewed_time_ago = None
    if message.viewed and message.viewed_at is not None:
        viewed_time_ago = format_time_ago(message.viewed_at, now)

    return VideoMessageResponse(
        id=message.id,
        sender_id=message.sender_id,
        sender_username=sender_username or "Unknown",
        recipient_id=message.recipient_id,
        recipient_username=recipient_username,
        video_url=f"/api/messages/{message.id}/video",
        content_type=message.content_type,
        duration_seconds=message.duration_seconds,
        filter=message.filter,
        filter_css=css_for(message.filter),
        emoji=message.emoji,
        created_at=message.created_at,
        expires_at=message.expires_at,
        viewed=message.viewed,
        viewed_at=message.viewed_at,
        is_new=not message.viewed,
        time_ago=format_time_ago(message.created_at, now),
        expires_in=format_expiry(message.expires_at, now),
        viewed_time_ago=viewed_time_ago,
    )


class MessageService:
    """
    Business logic layer for video messages.

    Error Handling Strategy:
        Rule violations raise ValidationError / PermissionDeniedError /
        NotFoundError / MessageExpiredError directly. Unexpected failures
        from the database are wrapped in DatabaseError; app exceptions
        propagate unchanged.
    """

    def validate_duration(self, duration_seconds: float) -> float:
        """Accept 0 < duration <= MAX_RECORDING_SECONDS; NaN and inf are rejected."""
        limit = settings.max_recording_seconds
        duration = float(duration_seconds)
        if not math.isfinite(duration) or duration <= 0:
            raise ValidationError(
                message="Recording duration must be a positive number of seconds.",
                field="duration_seconds",
            )
        if duration > limit:
            raise ValidationError(
                message=f"Recording is {duration:.1f}s long; the limit is {limit}s.",
                field="duration_seconds",
                context={"max_seconds": limit},
            )
        return duration

    async def send_video(
        self,
        db: AsyncSession,
        sender: User,
        recipient_id: UUID,
        filename: str,
        content: bytes,
        duration_seconds: float,
        video_filter: Optional[str] = None,
        emoji: Optional[str] = None,
        content_length: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> SendVideoResponse:
        """
        Validate and deliver a recording to one contact.

        Workflow Steps:
            1. Check duration, filter and emoji (no I/O)
            2. Check that the recipient is in the sender's contacts
            3. Validate and store the blob
            4. Insert the message row (expires_at = now + TTL, viewed = false)

        Raises:
            ValidationError:       bad duration / effect / upload
            PermissionDeniedError: recipient is not one of the sender's contacts
            FileStorageError:      blob could not be written
            DatabaseError:         row could not be inserted
        """
        now = ensure_aware(now or utcnow())

        duration = self.validate_duration(duration_seconds)
        chosen_filter = validate_filter(video_filter)
        chosen_emoji = validate_emoji(emoji)

        contact = await contact_service.find_contact(db, sender.id, recipient_id)
        if contact is None:
            raise PermissionDeniedError(
                message=CONTACTS_ONLY_MESSAGE,
                context={"recipient_id": str(recipient_id)},
            )

        stored = await storage_service.validate_and_store(
            filename=filename,
            content=content,
            owner_id=str(sender.id),
            content_length=content_length,
        )

        try:
            message = VideoMessage(
                sender_id=sender.id,
                recipient_id=recipient_id,
                video_path=stored.relative_path,
                content_type=stored.content_type,
                size_bytes=stored.size_bytes,
                duration_seconds=duration,
                filter=chosen_filter,
                emoji=chosen_emoji,
                created_at=now,
                expires_at=compute_expires_at(now, settings.message_ttl_hours),
                viewed=False,
            )
            db.add(message)
            await db.flush()
        except Exception as e:
            await storage_service.delete_file(stored.relative_path)
            if isinstance(e, SunnyVideoError):
                raise
            logger.error("Failed to save video message: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to send video. Please try again.",
                context={"original_error": type(e).__name__},
            )

        logger.info(
            "Video message %s sent %s → %s (%.1fs, %d bytes)",
            message.id, sender.id, recipient_id, duration, stored.size_bytes,
        )
        return SendVideoResponse(
            video_message=build_message_response(
                message,
                now,
                sender_username=sender.username,
                recipient_username=contact.contact_username,
            ),
        )

    async def list_inbox(
        self, db: AsyncSession, user: User, now: Optional[datetime] = None
    ) -> MessageListResponse:
        """
        Unexpired messages addressed to the caller, newest first.

        Query plan:
            SELECT m.*, u.username FROM video_messages m
            LEFT JOIN users u ON u.id = m.sender_id
            WHERE m.recipient_id = :me AND m.expires_at > :now
            ORDER BY m.created_at DESC
            → idx_video_messages_recipient_created
        """
        now = ensure_aware(now or utcnow())
        stmt = (
            select(VideoMessage, User.username)
            .outerjoin(User, User.id == VideoMessage.sender_id)
            .where(VideoMessage.recipient_id == user.id)
            .where(VideoMessage.expires_at > now)
            .order_by(VideoMessage.created_at.desc())
        )
        try:
            result = await db.execute(stmt)
            rows = result.all()
        except Exception as e:
            logger.error("Database error listing inbox: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve messages. Please try again.",
                context={"error_type": type(e).__name__},
            )

        messages = [
            build_message_response(message, now, sender_username=sender_username)
            for message, sender_username in rows
            if not is_expired(message.expires_at, now)
        ]
        return MessageListResponse(
            messages=messages,
            total_count=len(messages),
            unviewed_count=sum(1 for m in messages if m.is_new),
        )

    async def list_sent(
        self, db: AsyncSession, user: User, now: Optional[datetime] = None
    ) -> MessageListResponse:
        """Unexpired messages the caller sent, newest first, with recipient names."""
        now = ensure_aware(now or utcnow())
        stmt = (
            select(VideoMessage, User.username)
            .outerjoin(User, User.id == VideoMessage.recipient_id)
            .where(VideoMessage.sender_id == user.id)
            .where(VideoMessage.expires_at > now)
            .order_by(VideoMessage.created_at.desc())
        )
        try:
            result = await db.execute(stmt)
            rows = result.all()
        except Exception as e:
            logger.error("Database error listing sent messages: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve messages. Please try again.",
                context={"error_type": type(e).__name__},
            )

        messages = [
            build_message_response(
                message, now,
                sender_username=user.username,
                recipient_username=recipient_username,
            )
            for message, recipient_username in rows
            if not is_expired(message.expires_at, now)
        ]
        return MessageListResponse(
            messages=messages,
            total_count=len(messages),
            unviewed_count=sum(1 for m in messages if m.is_new),
        )

    async def _get_participant_message(
        self, db: AsyncSession, user: User, message_id: UUID
    ) -> VideoMessage:
        """
        Load a message the caller sent or received.

        Raises:
            NotFoundError for missing messages and for messages between
            other users (their existence is not revealed)
        """
        result = await db.execute(select(VideoMessage).where(VideoMessage.id == message_id))
        message = result.scalar_one_or_none()
        if message is None or user.id not in (message.sender_id, message.recipient_id):
            raise NotFoundError(resource="message", resource_id=str(message_id))
        return message

    async def open_message(
        self,
        db: AsyncSession,
        user: User,
        message_id: UUID,
        now: Optional[datetime] = None,
    ) -> VideoMessageResponse:
        """
        Recipient opens a message; the first open marks it viewed.

        Raises:
            NotFoundError:         not a participant / no such message
            PermissionDeniedError: the sender tried to open their own message
            MessageExpiredError:   past expires_at
        """
        now = ensure_aware(now or utcnow())
        message = await self._get_participant_message(db, user, message_id)

        if message.recipient_id != user.id:
            raise PermissionDeniedError(
                message="Only the recipient can open this message",
                context={"message_id": str(message_id)},
            )

        if is_expired(message.expires_at, now):
            raise MessageExpiredError(message_id=str(message_id))

        if not message.viewed:
            message.viewed = True
            message.viewed_at = now
            await db.flush()
            logger.info("Message %s viewed by %s", message.id, user.id)

        result = await db.execute(select(User.username).where(User.id == message.sender_id))
        sender_username = result.scalar_one_or_none()

        return build_message_response(
            message, now,
            sender_username=sender_username,
            recipient_username=user.username,
        )

    async def get_video(
        self,
        db: AsyncSession,
        user: User,
        message_id: UUID,
        now: Optional[datetime] = None,
    ) -> VideoDownload:
        """
        Locate the recording for playback or "Save to Device".

        Raises:
            NotFoundError:       not a participant, or the blob is gone
            MessageExpiredError: past expires_at
        """
        now = ensure_aware(now or utcnow())
        message = await self._get_participant_message(db, user, message_id)

        if is_expired(message.expires_at, now):
            raise MessageExpiredError(message_id=str(message_id))

        path = storage_service.resolve(message.video_path)
        extension = DOWNLOAD_EXTENSIONS.get(message.content_type, ".webm")
        return VideoDownload(
            path=path,
            content_type=message.content_type,
            filename=f"sunny_video_{message.id}{extension}",
        )

    async def delete_message(self, db: AsyncSession, user: User, message_id: UUID) -> None:
        """Sender or recipient removes a message; the blob goes with it."""
        message = await self._get_participant_message(db, user, message_id)
        video_path = message.video_path

        await db.delete(message)
        # Commit before touching the blob so a failed commit leaves both in place
        await db.commit()
        await storage_service.delete_file(video_path)
        logger.info("Message %s deleted by %s", message_id, user.id)

    async def purge_expired(self, db: AsyncSession, now: Optional[datetime] = None) -> int:
        """
        Delete every message whose expires_at has passed, with its blob.

        Who:     The expiry sweeper, on a fixed interval.
        Returns: Number of messages removed.
        """
        now = ensure_aware(now or utcnow())
        result = await db.execute(
            select(VideoMessage.id, VideoMessage.video_path)
            .where(VideoMessage.expires_at <= now)
        )
        expired = result.all()
        if not expired:
            return 0

        ids = [message_id for message_id, _ in expired]
        await db.execute(delete(VideoMessage).where(VideoMessage.id.in_(ids)))
        await db.commit()

        for _, video_path in expired:
            await storage_service.delete_file(video_path)

        logger.info("Purged %d expired video message(s)", len(expired))
        return len(expired)

    async def count_for_user(self, db: AsyncSession, user: User) -> dict:
        """Exact sent / received counts for profile stats (expired included)."""
        sent = await db.execute(
            select(func.count(VideoMessage.id)).where(VideoMessage.sender_id == user.id)
        )
        received = await db.execute(
            select(func.count(VideoMessage.id)).where(VideoMessage.recipient_id == user.id)
        )
        return {
            "videos_sent": sent.scalar() or 0,
            "videos_received": received.scalar() or 0,
        }


# ── Singleton Instance ────────────────────────────────────────────────────
message_service = MessageService()
