"""
Sunny Video Backend: Authentication Schemas
=============================================

Request bodies for POST /api/auth/register and /api/auth/login, and the token
envelope returned by login.

The password length rule is enforced here (at least 6 characters). The
username length (3-20 after trimming) is checked by AuthService.register so
it fails with the same 400 body as a rename.
"""

from pydantic import BaseModel, Field, field_validator

from sunnyvideo.schemas.user import UserResponse


def _normalize_email(v: str) -> str:
    email = v.strip().lower()
    local, sep, domain = email.partition("@")
    if not sep or not local or "." not in domain:
        raise ValueError("Enter a valid email address")
    return email


class RegisterRequest(BaseModel):
    username: str = Field(description="Public handle (3-20 characters after trimming)")
    email: str = Field(max_length=320)
    password: str = Field(min_length=6, max_length=128)

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _normalize_email(v)


class LoginRequest(BaseModel):
    email: str = Field(max_length=320)
    password: str = Field(min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _normalize_email(v)


class TokenResponse(BaseModel):
    """
    Returned by a successful login.

    The client sends `access_token` as `Authorization: Bearer <token>` on
    every subsequent request until it expires or the user logs out.
    """
    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(description="Token lifetime in seconds")
    user: UserResponse
