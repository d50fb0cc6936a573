# src/kocmoc/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .auth import LoginRequest, RegisterRequest, TokenResponse
from .chat import ChatDetailResponse, ChatResponse, ChatSummaryResponse
from .message import MessageCreate, MessageResponse
from .story import StoryCreate, StoryResponse
from .user import ProfileUpdateRequest, UserResponse

__all__ = [
    "LoginRequest", "RegisterRequest", "TokenResponse",
    "ChatDetailResponse", "ChatResponse", "ChatSummaryResponse",
    "MessageCreate", "MessageResponse",
    "StoryCreate", "StoryResponse",
    "ProfileUpdateRequest", "UserResponse",
]
