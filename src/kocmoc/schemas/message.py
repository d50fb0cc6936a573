"""Message-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class MessageCreate(BaseModel):
    """Schema for posting a message to a chat. At least one payload field is required."""

    type: str = Field("text", description="One of text, file, audio, sticker")
    text: str | None = None
    file_url: str | None = None
    audio_url: str | None = None
    sticker_url: str | None = None

    def payload(self) -> dict[str, str | None]:
        """Return the content fields only."""
        return self.model_dump(include={"text", "file_url", "audio_url", "sticker_url"})


class MessageEdit(BaseModel):
    """Replacement text for an existing message."""

    text: str


class MessageForward(BaseModel):
    """Forward a message into another chat."""

    target_chat_id: str


class MessageResponse(BaseModel):
    """Message as returned by the API."""

    id: str
    chat_id: str
    sender_id: str
    sender_name: str
    sender_avatar: str | None
    type: str
    text: str | None
    file_url: str | None
    audio_url: str | None
    sticker_url: str | None
    edited: bool
    deleted: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
