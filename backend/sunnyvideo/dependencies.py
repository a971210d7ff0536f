"""
Sunny Video Backend: Request Dependencies
===========================================

What:  FastAPI dependencies shared by the authenticated routes.
How:   HTTPBearer extracts the Authorization header; AuthService verifies it
       and loads the User inside the request's database session.
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from sunnyvideo.database import get_db_session
from sunnyvideo.exceptions import AuthenticationError
from sunnyvideo.models.user import User
from sunnyvideo.services.auth_service import auth_service

# auto_error=False: a missing header raises our AuthenticationError (401 with
# the standard error body) instead of FastAPI's bare 403
bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    """
    Resolve the caller from `Authorization: Bearer <token>`.

    The same session instance is shared with the route (FastAPI caches
    dependencies per request), so the returned User can be modified and
    flushed by services.

    Raises:
        AuthenticationError (401) when the header is missing or the token is
        rejected.
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Authentication required")

    user = await auth_service.authenticate_token(db, credentials.credentials)
    request.state.user_id = str(user.id)
    return user
