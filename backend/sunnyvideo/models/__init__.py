# Models package init
"""
Sunny Video Backend: ORM Models
=================================

Tables:
    - users:           accounts (credentials + public username)
    - contacts:        one-directional address book entries
    - video_messages:  ephemeral recordings sent between contacts

Importing this package registers every model on Base.metadata, which Alembic
relies on for --autogenerate.
"""

from sunnyvideo.models.user import User
from sunnyvideo.models.contact import Contact
from sunnyvideo.models.video_message import VideoMessage

__all__ = ["User", "Contact", "VideoMessage"]
