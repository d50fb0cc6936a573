"""Story-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class StoryCreate(BaseModel):
    """Schema for publishing a story."""

    type: str | None = Field(None, description="One of photo, video, text")
    media_url: str | None = Field(None, description="Location of the story media")
    expires_at: datetime | None = Field(None, description="When the story stops being listed")


class StoryResponse(BaseModel):
    """Story with its author's public profile."""

    id: str
    user_id: str
    type: str
    media_url: str
    created_at: datetime
    expires_at: datetime
    display_name: str | None = None
    avatar_url: str | None = None

    model_config = ConfigDict(from_attributes=True)
