# src/kocmoc/models/__init__.py
"""SQLAlchemy models for the Kocmoc application."""

from .chat import Chat, ChatMember, MemberRole, direct_key
from .message import PAYLOAD_FIELDS, Message, MessageType
from .story import Story, StoryType, StoryView
from .user import AuthSession, Role, User, new_id
from .verification import VerificationCode

__all__ = [
    "AuthSession", "Role", "User", "new_id",
    "Chat", "ChatMember", "MemberRole", "direct_key",
    "Message", "MessageType", "PAYLOAD_FIELDS",
    "Story", "StoryType", "StoryView",
    "VerificationCode",
]
