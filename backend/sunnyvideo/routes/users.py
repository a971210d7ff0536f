"""
Sunny Video Backend: Profile & User Search Route Handlers
===========================================================

What:  GET/PATCH/DELETE /api/me, GET /api/me/stats, GET /api/users/search.
Who:   Called by the Profile screen and the "Add Contact" search box.
"""

import logging

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from sunnyvideo.database import get_db_session
from sunnyvideo.dependencies import get_current_user
from sunnyvideo.models.user import User
from sunnyvideo.schemas.common import ErrorResponse
from sunnyvideo.schemas.user import (
    ProfileStats,
    UsernameUpdate,
    UserResponse,
    UserSearchResponse,
)
from sunnyvideo.services.contact_service import contact_service
from sunnyvideo.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Profile"])

_UNAUTHORIZED = {401: {"description": "Not signed in", "model": ErrorResponse}}


@router.get(
    "/me",
    response_model=UserResponse,
    responses=_UNAUTHORIZED,
    summary="The caller's profile",
)
async def get_me(user: User = Depends(get_current_user)) -> UserResponse:
    return user_service.get_profile(user)


@router.patch(
    "/me",
    response_model=UserResponse,
    responses={
        **_UNAUTHORIZED,
        400: {"description": "Username length out of range", "model": ErrorResponse},
        409: {"description": "Username already taken", "model": ErrorResponse},
    },
    summary="Change username",
    description=(
        "Blank or unchanged input is accepted and leaves the profile as it is. "
        "Contacts that show this user are renamed too."
    ),
)
async def update_me(
    body: UsernameUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    return await user_service.update_username(db, user, body.username)


@router.delete(
    "/me",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=_UNAUTHORIZED,
    summary="Delete account",
    description="Deletes the caller, their contacts and every message they sent or received.",
)
async def delete_me(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await user_service.delete_account(db, user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/me/stats",
    response_model=ProfileStats,
    responses=_UNAUTHORIZED,
    summary="Videos sent, videos received, contact count",
)
async def get_my_stats(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProfileStats:
    return await user_service.get_stats(db, user)


@router.get(
    "/users/search",
    response_model=UserSearchResponse,
    responses=_UNAUTHORIZED,
    summary="Find users to add as contacts",
    description=(
        "Case-insensitive substring match on username. Excludes the caller and "
        "users already in their contacts; at most 10 results."
    ),
)
async def search_users(
    q: str = Query(default="", max_length=64, description="Part of a username"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserSearchResponse:
    return await contact_service.search_users(db, user, q)
