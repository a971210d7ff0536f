"""
Sunny Video Backend: Auth Route Handlers
==========================================

What:  POST /api/auth/register, /api/auth/login, /api/auth/logout.
How:   Thin handlers; AuthService owns hashing, tokens and revocation.
Who:   Called by the sign-up / sign-in screens and the Profile "Logout" button.
"""

import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from sunnyvideo.database import get_db_session
from sunnyvideo.dependencies import get_current_user
from sunnyvideo.models.user import User
from sunnyvideo.schemas.auth import LoginRequest, RegisterRequest, TokenResponse
from sunnyvideo.schemas.common import ErrorResponse
from sunnyvideo.schemas.user import UserResponse
from sunnyvideo.services.auth_service import auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    response_model=UserResponse,
    responses={
        201: {"description": "Account created", "model": UserResponse},
        409: {"description": "Username or email already taken", "model": ErrorResponse},
        422: {"description": "Invalid username, email or password"},
    },
    summary="Create an account",
)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    """
    Register a new user. The client signs in afterwards with /login.

    Usernames are unique regardless of case.
    """
    return await auth_service.register(db, body)


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={
        200: {"description": "Signed in", "model": TokenResponse},
        401: {"description": "Invalid email or password", "model": ErrorResponse},
    },
    summary="Sign in with email and password",
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> TokenResponse:
    return await auth_service.login(db, body.email, body.password)


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={401: {"description": "Not signed in", "model": ErrorResponse}},
    summary="Sign out everywhere",
    description="Revokes every token issued to the caller so far.",
)
async def logout(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await auth_service.logout(db, user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
