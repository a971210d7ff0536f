"""Create users, contacts and video_messages tables

Revision ID: 001
Revises: None
Create Date: 2025-01-15 00:00:00.000000+00:00

Rollback: downgrade() drops all three tables (destructive, all data lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _uuid_pk() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        server_default=sa.text("gen_random_uuid()"),
        nullable=False,
    )


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        postgresql.TIMESTAMP(timezone=True),
        server_default=sa.text("CURRENT_TIMESTAMP"),
        nullable=False,
    )


def upgrade() -> None:
    # ── users ─────────────────────────────────────────────────────────────
    op.create_table(
        "users",
        _uuid_pk(),
        sa.Column("email", sa.String(320), nullable=False, comment="Login email, stored lower-cased"),
        sa.Column("username", sa.String(20), nullable=False, comment="Public handle shown to contacts"),
        sa.Column("password_hash", sa.String(255), nullable=False, comment="Argon2id encoded password hash"),
        sa.Column(
            "token_version",
            sa.Integer(),
            server_default=sa.text("0"),
            nullable=False,
            comment="Incremented on logout; tokens carrying an older version are rejected",
        ),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.UniqueConstraint("username", name="uq_users_username"),
    )
    # Case-insensitive username uniqueness
    op.create_index(
        "uq_users_username_lower",
        "users",
        [sa.text("lower(username)")],
        unique=True,
    )

    # ── contacts ──────────────────────────────────────────────────────────
    op.create_table(
        "contacts",
        _uuid_pk(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("contact_user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("contact_username", sa.String(20), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_contacts"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["contact_user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", "contact_user_id", name="uq_contacts_pair"),
    )
    op.create_index(
        "idx_contacts_user_created",
        "contacts",
        ["user_id", sa.text("created_at DESC")],
    )

    # ── video_messages ────────────────────────────────────────────────────
    op.create_table(
        "video_messages",
        _uuid_pk(),
        sa.Column("sender_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("recipient_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("video_path", sa.String(255), nullable=False, comment="Blob key relative to the storage root"),
        sa.Column("content_type", sa.String(100), server_default=sa.text("'video/webm'"), nullable=False),
        sa.Column("size_bytes", sa.Integer(), nullable=False),
        sa.Column("duration_seconds", sa.Float(), nullable=False),
        sa.Column("filter", sa.String(32), server_default=sa.text("'none'"), nullable=False),
        sa.Column("emoji", sa.String(16), nullable=True),
        _created_at(),
        sa.Column("expires_at", postgresql.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("viewed", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("viewed_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_video_messages"),
        sa.ForeignKeyConstraint(["sender_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["recipient_id"], ["users.id"], ondelete="CASCADE"),
        sa.CheckConstraint("expires_at > created_at", name="ck_video_messages_expiry_after_send"),
    )
    op.create_index(
        "idx_video_messages_recipient_created",
        "video_messages",
        ["recipient_id", sa.text("created_at DESC")],
    )
    op.create_index("idx_video_messages_sender", "video_messages", ["sender_id"])
    op.create_index("idx_video_messages_expires_at", "video_messages", ["expires_at"])


def downgrade() -> None:
    op.drop_index("idx_video_messages_expires_at", table_name="video_messages")
    op.drop_index("idx_video_messages_sender", table_name="video_messages")
    op.drop_index("idx_video_messages_recipient_created", table_name="video_messages")
    op.drop_table("video_messages")

    op.drop_index("idx_contacts_user_created", table_name="contacts")
    op.drop_table("contacts")

    op.drop_index("uq_users_username_lower", table_name="users")
    op.drop_table("users")
