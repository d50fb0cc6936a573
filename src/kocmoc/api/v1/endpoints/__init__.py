"""API endpoint modules for version 1."""

from .auth import router as auth_router
from .chats import router as chats_router
from .messages import router as messages_router
from .stories import router as stories_router
from .users import router as users_router

__all__ = [
    "auth_router",
    "chats_router",
    "messages_router",
    "stories_router",
    "users_router",
]
