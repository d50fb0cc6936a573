"""User-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class UserResponse(BaseModel):
    """Public profile of an account."""

    id: str
    email: str
    display_name: str
    avatar_url: str | None
    role: str
    online: bool
    last_seen: datetime | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProfileUpdateRequest(BaseModel):
    """Schema for updating user profile information."""

    display_name: str | None = Field(
        None,
        max_length=100,
        description="New display name (1-100 characters)",
    )
    avatar_url: str | None = Field(None, description="New avatar URL; empty string clears it")
