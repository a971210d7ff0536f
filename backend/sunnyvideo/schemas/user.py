"""
Sunny Video Backend: Profile Schemas
======================================

What:  Profile, username update, user search and stats payloads.
Who:   Returned by /api/me, /api/me/stats and /api/users/search.
"""

import uuid
from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from sunnyvideo.models.user import USERNAME_MAX_LENGTH


class UserResponse(BaseModel):
    """The caller's own profile. Email is only ever shown to its owner."""
    id: uuid.UUID
    email: str
    username: str
    created_at: datetime = Field(description="Account creation time ('Member since')")

    model_config = {"from_attributes": True}


class PublicUser(BaseModel):
    """Another user as seen in search results."""
    id: uuid.UUID
    username: str

    model_config = {"from_attributes": True}


class UserSearchResponse(BaseModel):
    users: List[PublicUser]


class UsernameUpdate(BaseModel):
    """
    Body of PATCH /api/me.

    Length is checked after trimming by UserService, because a blank or
    unchanged username is accepted as a no-op.
    """
    username: str = Field(max_length=USERNAME_MAX_LENGTH + 64)


class ProfileStats(BaseModel):
    videos_sent: int = 0
    videos_received: int = 0
    contacts_count: int = 0
