"""
Sunny Video Backend: Authentication Service
=============================================

What:  Account registration, credential checks, and bearer session tokens.
How:   Passwords are hashed with Argon2id (argon2-cffi). Sessions are
       HS256-signed JWTs (PyJWT) carrying the user id (`sub`) and the
       user's token_version (`ver`).
Who:   Called by the auth routes and by the get_current_user dependency.

Token Lifecycle:
    login   → token issued with ver = user.token_version
    request → signature + exp checked, user loaded, ver compared
    logout  → user.token_version += 1; every earlier token now fails the
              ver comparison
"""

import logging
import uuid
from datetime import timedelta
from typing import Any, Dict, Tuple

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sunnyvideo.config import settings
from sunnyvideo.exceptions import (
    AuthenticationError,
    ConflictError,
    DatabaseError,
    ValidationError,
)
from sunnyvideo.models.user import USERNAME_MAX_LENGTH, USERNAME_MIN_LENGTH, User
from sunnyvideo.schemas.auth import RegisterRequest, TokenResponse
from sunnyvideo.schemas.user import UserResponse
from sunnyvideo.timefmt import utcnow

logger = logging.getLogger(__name__)

USERNAME_TAKEN_MESSAGE = "Username is already taken. Please choose a different one."
INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"

_password_hasher = PasswordHasher()


def validate_username(username: str) -> str:
    """Trimmed username, or ValidationError if it is not 3-20 characters."""
    username = username.strip()
    if not USERNAME_MIN_LENGTH <= len(username) <= USERNAME_MAX_LENGTH:
        raise ValidationError(
            message=(
                f"Username must be between {USERNAME_MIN_LENGTH} and "
                f"{USERNAME_MAX_LENGTH} characters."
            ),
            field="username",
        )
    return username


def hash_password(password: str) -> str:
    return _password_hasher.hash(password)


def verify_password(password: str, encoded_hash: str) -> bool:
    try:
        return _password_hasher.verify(encoded_hash, password)
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


class AuthService:
    """
    Stateless; every method receives its AsyncSession.

    Errors:
        ConflictError        username / email already registered
        AuthenticationError  bad credentials or unusable token
        DatabaseError        unexpected persistence failure
    """

    # ── Tokens ────────────────────────────────────────────────────────────

    def create_access_token(self, user: User) -> Tuple[str, int]:
        """
        Returns: (encoded token, lifetime in seconds)
        """
        issued_at = utcnow()
        ttl = timedelta(minutes=settings.access_token_ttl_minutes)
        payload = {
            "sub": str(user.id),
            "ver": user.token_version,
            "iat": issued_at,
            "exp": issued_at + ttl,
        }
        token = jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)
        return token, int(ttl.total_seconds())

    def decode_token(self, token: str) -> Dict[str, Any]:
        """
        Verify signature and expiry.

        Raises: AuthenticationError with a message the client can act on.
        """
        try:
            claims = jwt.decode(
                token,
                settings.jwt_secret,
                algorithms=[settings.jwt_algorithm],
                options={"require": ["sub", "exp"]},
            )
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Your session has expired. Please sign in again.")
        except jwt.InvalidTokenError as e:
            logger.info("Rejected bearer token: %s", type(e).__name__)
            raise AuthenticationError("Invalid authentication token")
        return claims

    async def authenticate_token(self, db: AsyncSession, token: str) -> User:
        """
        Resolve a bearer token to its User.

        Raises: AuthenticationError if the token is bad, the user is gone,
                or the token predates the user's last logout.
        """
        claims = self.decode_token(token)
        try:
            user_id = uuid.UUID(str(claims["sub"]))
        except ValueError:
            raise AuthenticationError("Invalid authentication token")

        result = await db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()

        if user is None:
            raise AuthenticationError("Account no longer exists")
        if claims.get("ver", 0) != user.token_version:
            raise AuthenticationError("Your session has ended. Please sign in again.")
        return user

    # ── Accounts ──────────────────────────────────────────────────────────

    async def register(self, db: AsyncSession, data: RegisterRequest) -> UserResponse:
        """
        Create an account.

        Username uniqueness is case-insensitive; email is already lower-cased
        by the schema.

        Raises:
            ValidationError if the username is not 3-20 characters
            ConflictError if the username or email is taken
        """
        username = validate_username(data.username)

        result = await db.execute(
            select(User.id).where(func.lower(User.username) == username.lower())
        )
        if result.scalar_one_or_none() is not None:
            raise ConflictError(message=USERNAME_TAKEN_MESSAGE, field="username")

        result = await db.execute(select(User.id).where(User.email == data.email))
        if result.scalar_one_or_none() is not None:
            raise ConflictError(
                message="An account with this email already exists.",
                field="email",
            )

        user = User(
            email=data.email,
            username=username,
            password_hash=hash_password(data.password),
        )
        db.add(user)
        try:
            await db.flush()
        except IntegrityError:
            # Lost a race with a concurrent registration
            raise ConflictError(message=USERNAME_TAKEN_MESSAGE, field="username")
        except Exception as e:
            logger.error("Database error registering %s: %s", username, str(e), exc_info=True)
            raise DatabaseError(context={"error_type": type(e).__name__})

        logger.info("Registered user %s (%s)", user.id, username)
        return UserResponse.model_validate(user)

    async def login(self, db: AsyncSession, email: str, password: str) -> TokenResponse:
        """
        Exchange credentials for a bearer token.

        Raises:
            AuthenticationError for an unknown email or wrong password
            (same message for both)
        """
        result = await db.execute(select(User).where(User.email == email.strip().lower()))
        user = result.scalar_one_or_none()

        if user is None or not verify_password(password, user.password_hash):
            logger.info("Failed login for %s", email)
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

        if _password_hasher.check_needs_rehash(user.password_hash):
            user.password_hash = hash_password(password)
            await db.flush()

        token, expires_in = self.create_access_token(user)
        logger.info("User %s signed in", user.id)
        return TokenResponse(
            access_token=token,
            expires_in=expires_in,
            user=UserResponse.model_validate(user),
        )

    async def logout(self, db: AsyncSession, user: User) -> None:
        """Revoke every token issued to this user so far."""
        user.token_version += 1
        await db.flush()
        logger.info("User %s signed out (token_version=%d)", user.id, user.token_version)


# ── Singleton Instance ────────────────────────────────────────────────────
auth_service = AuthService()
