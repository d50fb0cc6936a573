"""Messages stored per chat."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from kocmoc.db.session import Base
from kocmoc.db.time import utcnow

from .user import new_id


class MessageType(str, Enum):
    """Kind of payload a message carries."""

    TEXT = "text"
    FILE = "file"
    AUDIO = "audio"
    STICKER = "sticker"


PAYLOAD_FIELDS = ("text", "file_url", "audio_url", "sticker_url")


class Message(Base):
    """Append-mostly chat entry; sender and chat never change after insert."""

    __tablename__ = "messages"
    __table_args__ = (Index("ix_messages_chat_created_at", "chat_id", "created_at"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    chat_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("chats.id", ondelete="CASCADE"),
        nullable=False,
    )
    sender_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    type: Mapped[str] = mapped_column(String(16), nullable=False, default=MessageType.TEXT.value)
    text: Mapped[str | None] = mapped_column(Text, nullable=True)
    file_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    audio_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    sticker_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Monotonic flags: set once, never cleared.
    edited: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
