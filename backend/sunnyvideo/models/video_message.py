"""
Sunny Video Backend: Video Message SQLAlchemy Model
=====================================================

What:  ORM model representing the `video_messages` table.
Who:   Used by MessageService and by the expiry sweeper.

Lifecycle:
    1. Inserted when the sender uploads a recording (viewed = false,
       expires_at = created_at + MESSAGE_TTL_HOURS)
    2. First open by the recipient sets viewed = true and viewed_at
    3. After expires_at the message is hidden from the inbox and refuses
       playback (410); the sweeper deletes the row and its blob
    4. Either party can delete it earlier

Indexes:
    - (recipient_id, created_at DESC): the inbox query
    - expires_at: the sweeper's range delete
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, Float, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID, TIMESTAMP

from sunnyvideo.database import Base


class VideoMessage(Base):
    """An ephemeral recording addressed from one user to one contact."""

    __tablename__ = "video_messages"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )

    sender_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    recipient_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Relative key inside the video bucket, e.g.
    # videos/2025/01/15/video_1736899200000_<user-id>.webm
    video_path: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Blob key relative to the storage root",
    )

    content_type: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        default="video/webm",
        server_default=text("'video/webm'"),
    )

    size_bytes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    duration_seconds: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        comment="Length reported by the recorder; never above MAX_RECORDING_SECONDS",
    )

    # Presentation hints chosen at record time; the player applies them
    filter: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default="none",
        server_default=text("'none'"),
    )
    emoji: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    expires_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
    )

    viewed: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )

    viewed_at: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=True,
    )

    __table_args__ = (
        Index("idx_video_messages_recipient_created", "recipient_id", created_at.desc()),
        Index("idx_video_messages_sender", "sender_id"),
        Index("idx_video_messages_expires_at", "expires_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<VideoMessage(id={self.id}, sender={self.sender_id}, "
            f"recipient={self.recipient_id}, viewed={self.viewed})>"
        )
