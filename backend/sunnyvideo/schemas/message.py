"""
Sunny Video Backend: Video Message Schemas
============================================

What:  Response models for inbox, sent list, open and send operations.
How:   Built by MessageService from a VideoMessage row plus the usernames it
       joined and labels computed against a single `now`.

Display fields:
    - time_ago:        "Just now" / "5m ago" / "3h ago" / "2d ago"
    - expires_in:      "42m left" / "23h left"
    - viewed_time_ago: set once the recipient has opened the message
    - is_new:          true until the first open ("NEW" badge)
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class VideoMessageResponse(BaseModel):
    id: uuid.UUID
    sender_id: uuid.UUID
    sender_username: str = Field(default="Unknown", description="'Unknown' if the sender is gone")
    recipient_id: uuid.UUID
    recipient_username: Optional[str] = None
    video_url: str = Field(description="Authenticated URL streaming the recording")
    content_type: str
    duration_seconds: float
    filter: str = Field(description="Filter value chosen at record time")
    filter_css: str = Field(description="CSS filter the player applies")
    emoji: Optional[str] = None
    created_at: datetime
    expires_at: datetime
    viewed: bool
    viewed_at: Optional[datetime] = None
    is_new: bool
    time_ago: str
    expires_in: str
    viewed_time_ago: Optional[str] = None


class MessageListResponse(BaseModel):
    messages: List[VideoMessageResponse]
    total_count: int = Field(description="Unexpired messages in this list")
    unviewed_count: int = 0


class SendVideoResponse(BaseModel):
    message: str = Field(default="Video sent successfully!")
    video_message: VideoMessageResponse
