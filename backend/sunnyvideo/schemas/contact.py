"""
Sunny Video Backend: Contact Schemas
======================================
"""

import uuid
from datetime import datetime
from typing import List

from pydantic import BaseModel, Field


class ContactCreate(BaseModel):
    """Body of POST /api/contacts: the user to add (from search results)."""
    contact_user_id: uuid.UUID


class ContactResponse(BaseModel):
    id: uuid.UUID
    contact_user_id: uuid.UUID
    contact_username: str
    created_at: datetime = Field(description="When the contact was added")

    model_config = {"from_attributes": True}


class ContactListResponse(BaseModel):
    contacts: List[ContactResponse]
    total_count: int
