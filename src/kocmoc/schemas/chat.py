"""Chat-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class DirectChatCreate(BaseModel):
    """Open (or reuse) the direct chat with another user."""

    user_id: str = Field(..., description="The other participant")


class GroupChatCreate(BaseModel):
    """Create a group chat owned by the caller."""

    name: str = Field(..., description="Group name")
    member_ids: list[str] = Field(..., description="Users to add besides the caller")


class AddMemberRequest(BaseModel):
    """Add a user to a group chat."""

    user_id: str


class ChatResponse(BaseModel):
    """Chat header."""

    id: str
    is_group: bool
    name: str | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DirectChatResponse(ChatResponse):
    """Direct chat plus whether this request created it."""

    created: bool


class MemberResponse(BaseModel):
    """Chat member with public profile fields."""

    user_id: str
    display_name: str
    avatar_url: str | None
    role: str
    online: bool
    last_seen: datetime | None
    joined_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ChatDetailResponse(ChatResponse):
    """Chat header with its members."""

    members: list[MemberResponse]


class ChatSummaryResponse(ChatResponse):
    """Chat list entry with unread counter and last message preview."""

    unread_count: int
    last_text: str | None
    last_message_at: datetime | None
