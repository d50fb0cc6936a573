"""Chats and the membership join table."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from kocmoc.db.session import Base
from kocmoc.db.time import utcnow

from .user import new_id


class MemberRole(str, Enum):
    """Role a user holds inside one chat, fixed at join time."""

    OWNER = "owner"
    MEMBER = "member"


def direct_key(user_a: str, user_b: str) -> str:
    """Return the normalized key for an unordered pair of users."""
    low, high = sorted((user_a, user_b))
    return f"{low}:{high}"


class Chat(Base):
    """Direct (two-member) or group conversation."""

    __tablename__ = "chats"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    is_group: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    name: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Set only for direct chats; the unique index allows one chat per user pair.
    direct_key: Mapped[str | None] = mapped_column(String(80), unique=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class ChatMember(Base):
    """Fact that a user participates in a chat."""

    __tablename__ = "chat_members"

    chat_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("chats.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    role: Mapped[str] = mapped_column(String(16), nullable=False, default=MemberRole.MEMBER.value)
    unread_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
