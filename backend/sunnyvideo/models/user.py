"""
Sunny Video Backend: User SQLAlchemy Model
============================================

What:  ORM model representing the `users` table in PostgreSQL.
Who:   Used by the auth, user and contact services, and by Alembic.

Table Design:
    - UUID primary key: non-sequential, cannot be enumerated
    - email: login identifier, stored lower-cased, unique
    - username: public handle shown to contacts, unique, 3-20 characters
    - password_hash: Argon2id encoded hash (never the password itself)
    - token_version: embedded in every issued token; bumping it revokes
      all outstanding sessions (logout)
    - created_at: UTC with timezone ("Member since ...")
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID, TIMESTAMP

from sunnyvideo.database import Base


USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 20


class User(Base):
    """
    A registered Sunny Video account.

    Query Patterns:
        - Login: WHERE email = :email           → uq_users_email
        - Username check: WHERE username = :u   → uq_users_username
        - Search: WHERE username ILIKE '%q%'    → sequential scan, LIMIT 10
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )

    email: Mapped[str] = mapped_column(
        String(320),
        nullable=False,
        unique=True,
        comment="Login email, stored lower-cased",
    )

    username: Mapped[str] = mapped_column(
        String(USERNAME_MAX_LENGTH),
        nullable=False,
        unique=True,
        comment="Public handle shown to contacts",
    )

    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Argon2id encoded password hash",
    )

    token_version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
        comment="Incremented on logout; tokens carrying an older version are rejected",
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}')>"
