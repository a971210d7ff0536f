"""
Sunny Video Backend: Contact Service
======================================

What:  User search and the caller's address book.
Who:   Called by the contacts and user-search routes; MessageService uses
       find_contact() to enforce contacts-only sending.

Rules:
    - Contacts are one-directional and accepted automatically
    - A user cannot add themselves or add the same person twice
    - Search never returns the caller or people already in their contacts
"""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sunnyvideo.exceptions import ConflictError, NotFoundError, ValidationError
from sunnyvideo.models.contact import Contact
from sunnyvideo.models.user import User
from sunnyvideo.schemas.contact import ContactListResponse, ContactResponse
from sunnyvideo.schemas.user import PublicUser, UserSearchResponse

logger = logging.getLogger(__name__)

SEARCH_RESULT_LIMIT = 10


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class ContactService:

    async def search_users(
        self, db: AsyncSession, user: User, query: str
    ) -> UserSearchResponse:
        """
        Case-insensitive substring search on username.

        Query plan:
            SELECT * FROM users
            WHERE username ILIKE '%q%' AND id <> :me
              AND id NOT IN (SELECT contact_user_id FROM contacts WHERE user_id = :me)
            ORDER BY username LIMIT 10
        """
        term = (query or "").strip()
        if not term:
            return UserSearchResponse(users=[])

        existing_contacts = select(Contact.contact_user_id).where(Contact.user_id == user.id)
        stmt = (
            select(User)
            .where(User.username.ilike(f"%{_escape_like(term)}%", escape="\\"))
            .where(User.id != user.id)
            .where(User.id.not_in(existing_contacts))
            .order_by(User.username)
            .limit(SEARCH_RESULT_LIMIT)
        )
        result = await db.execute(stmt)
        users = result.scalars().all()

        logger.debug("User search '%s' by %s: %d results", term, user.id, len(users))
        return UserSearchResponse(users=[PublicUser.model_validate(u) for u in users])

    async def list_contacts(self, db: AsyncSession, user: User) -> ContactListResponse:
        """Newest contacts first."""
        result = await db.execute(
            select(Contact)
            .where(Contact.user_id == user.id)
            .order_by(Contact.created_at.desc())
        )
        contacts = result.scalars().all()
        return ContactListResponse(
            contacts=[ContactResponse.model_validate(c) for c in contacts],
            total_count=len(contacts),
        )

    async def add_contact(
        self, db: AsyncSession, user: User, contact_user_id: UUID
    ) -> ContactResponse:
        """
        Add another user to the caller's contacts.

        Raises:
            ValidationError  adding yourself
            NotFoundError    no such user
            ConflictError    already a contact
        """
        if contact_user_id == user.id:
            raise ValidationError(
                message="You cannot add yourself as a contact.",
                field="contact_user_id",
            )

        result = await db.execute(select(User).where(User.id == contact_user_id))
        target = result.scalar_one_or_none()
        if target is None:
            raise NotFoundError(resource="user", resource_id=str(contact_user_id))

        if await self.find_contact(db, user.id, contact_user_id) is not None:
            raise ConflictError(
                message=f"{target.username} is already in your contacts.",
                field="contact_user_id",
            )

        contact = Contact(
            user_id=user.id,
            contact_user_id=target.id,
            contact_username=target.username,
        )
        db.add(contact)
        try:
            await db.flush()
        except IntegrityError:
            raise ConflictError(
                message=f"{target.username} is already in your contacts.",
                field="contact_user_id",
            )

        logger.info("User %s added contact %s", user.id, target.id)
        return ContactResponse.model_validate(contact)

    async def remove_contact(self, db: AsyncSession, user: User, contact_id: UUID) -> None:
        """
        Delete one of the caller's contact rows.

        Raises:
            NotFoundError if the row does not exist or belongs to someone else
        """
        result = await db.execute(
            select(Contact).where(Contact.id == contact_id, Contact.user_id == user.id)
        )
        contact = result.scalar_one_or_none()
        if contact is None:
            raise NotFoundError(resource="contact", resource_id=str(contact_id))

        await db.delete(contact)
        await db.flush()
        logger.info("User %s removed contact %s", user.id, contact.contact_user_id)

    async def find_contact(
        self, db: AsyncSession, owner_id: UUID, other_id: UUID
    ) -> Optional[Contact]:
        """The (owner → other) contact row, if owner has added other."""
        result = await db.execute(
            select(Contact).where(
                Contact.user_id == owner_id,
                Contact.contact_user_id == other_id,
            )
        )
        return result.scalar_one_or_none()


contact_service = ContactService()
