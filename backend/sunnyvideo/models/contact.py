"""
Sunny Video Backend: Contact SQLAlchemy Model
===============================================

What:  ORM model representing the `contacts` table.

Contacts are one-directional and accepted automatically: a row
(user_id=A, contact_user_id=B) lets A send videos to B. contact_username is a
denormalised copy of B's username for list display; the user service keeps it
in step when B renames.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID, TIMESTAMP

from sunnyvideo.database import Base


class Contact(Base):
    """A single address-book entry owned by `user_id`."""

    __tablename__ = "contacts"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="Owner of this address-book entry",
    )

    contact_user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="The user that was added",
    )

    contact_username: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="Display copy of the added user's username",
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        UniqueConstraint("user_id", "contact_user_id", name="uq_contacts_pair"),
        Index("idx_contacts_user_created", "user_id", created_at.desc()),
    )

    def __repr__(self) -> str:
        return (
            f"<Contact(user_id={self.user_id}, "
            f"contact='{self.contact_username}')>"
        )
