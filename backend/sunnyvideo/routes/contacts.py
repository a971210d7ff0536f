"""
Sunny Video Backend: Contacts Route Handlers
==============================================

What:  GET/POST /api/contacts and DELETE /api/contacts/{id}.
Who:   Called by the Contacts screen.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from sunnyvideo.database import get_db_session
from sunnyvideo.dependencies import get_current_user
from sunnyvideo.models.user import User
from sunnyvideo.schemas.common import ErrorResponse
from sunnyvideo.schemas.contact import ContactCreate, ContactListResponse, ContactResponse
from sunnyvideo.services.contact_service import contact_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/contacts", tags=["Contacts"])


@router.get(
    "",
    response_model=ContactListResponse,
    responses={401: {"description": "Not signed in", "model": ErrorResponse}},
    summary="List the caller's contacts",
)
async def list_contacts(
    response: Response,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ContactListResponse:
    result = await contact_service.list_contacts(db, user)
    response.headers["X-Total-Count"] = str(result.total_count)
    return result


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=ContactResponse,
    responses={
        400: {"description": "Cannot add yourself", "model": ErrorResponse},
        401: {"description": "Not signed in", "model": ErrorResponse},
        404: {"description": "User not found", "model": ErrorResponse},
        409: {"description": "Already a contact", "model": ErrorResponse},
    },
    summary="Add a contact",
)
async def add_contact(
    body: ContactCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ContactResponse:
    return await contact_service.add_contact(db, user, body.contact_user_id)


@router.delete(
    "/{contact_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        401: {"description": "Not signed in", "model": ErrorResponse},
        404: {"description": "Contact not found", "model": ErrorResponse},
    },
    summary="Remove a contact",
)
async def remove_contact(
    contact_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await contact_service.remove_contact(db, user, contact_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
