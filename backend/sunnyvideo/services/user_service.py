"""
Sunny Video Backend: Profile Service
======================================

What:  The caller's profile: read, rename, stats and account deletion.
Who:   Called by the /api/me routes.

Account deletion order:
    1. Collect blob keys of every message the user sent or received
    2. Delete those messages, contacts in both directions, the user row
    3. Commit, then remove the blobs (best-effort)
"""

import logging
from typing import Optional

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from sunnyvideo.exceptions import ConflictError
from sunnyvideo.models.contact import Contact
from sunnyvideo.models.user import User
from sunnyvideo.models.video_message import VideoMessage
from sunnyvideo.schemas.user import ProfileStats, UserResponse
from sunnyvideo.services.auth_service import USERNAME_TAKEN_MESSAGE, validate_username
from sunnyvideo.services.message_service import message_service
from sunnyvideo.services.storage_service import storage_service

logger = logging.getLogger(__name__)


class UserService:

    def get_profile(self, user: User) -> UserResponse:
        return UserResponse.model_validate(user)

    async def update_username(
        self, db: AsyncSession, user: User, new_username: Optional[str]
    ) -> UserResponse:
        """
        Rename the caller.

        A blank or unchanged name returns the current profile untouched.
        Contact rows that show this user are renamed with it.

        Raises:
            ValidationError  length outside 3-20 after trimming
            ConflictError    name taken by another user (case-insensitive)
        """
        username = (new_username or "").strip()
        if not username or username == user.username:
            return self.get_profile(user)

        username = validate_username(username)

        result = await db.execute(
            select(User.id).where(
                func.lower(User.username) == username.lower(),
                User.id != user.id,
            )
        )
        if result.scalar_one_or_none() is not None:
            raise ConflictError(message=USERNAME_TAKEN_MESSAGE, field="username")

        old_username = user.username
        user.username = username
        await db.execute(
            update(Contact)
            .where(Contact.contact_user_id == user.id)
            .values(contact_username=username)
        )
        await db.flush()

        logger.info("User %s renamed %s → %s", user.id, old_username, username)
        return self.get_profile(user)

    async def get_stats(self, db: AsyncSession, user: User) -> ProfileStats:
        counts = await message_service.count_for_user(db, user)
        result = await db.execute(
            select(func.count(Contact.id)).where(Contact.user_id == user.id)
        )
        return ProfileStats(contacts_count=result.scalar() or 0, **counts)

    async def delete_account(self, db: AsyncSession, user: User) -> None:
        """Remove the user and everything they own. Irreversible."""
        involves_user = or_(
            VideoMessage.sender_id == user.id,
            VideoMessage.recipient_id == user.id,
        )
        result = await db.execute(select(VideoMessage.video_path).where(involves_user))
        video_paths = list(result.scalars().all())

        await db.execute(delete(VideoMessage).where(involves_user))
        await db.execute(
            delete(Contact).where(
                or_(Contact.user_id == user.id, Contact.contact_user_id == user.id)
            )
        )
        await db.delete(user)
        # Commit before touching blobs so a failed commit leaves both in place
        await db.commit()

        for path in video_paths:
            await storage_service.delete_file(path)

        logger.info("Deleted account %s (%d videos removed)", user.id, len(video_paths))


user_service = UserService()
