"""Domain services; each talks to the database only through ``kocmoc.db.Store``."""

from .accounts import AccountService, LoginResult, Registration, UserProfile
from .chats import ChatDetail, ChatDirectory, ChatInfo, ChatSummary
from .container import ServiceContainer
from .mailer import Mailer, NullMailer, SmtpMailer, build_mailer
from .membership import MembershipRegistry, MemberView
from .messages import MessageLedger, MessageView
from .sessions import Identity, SessionManager
from .stories import StoryEntry, StoryFeed
from .verification import Redemption, VerificationService

__all__ = [
    "AccountService", "LoginResult", "Registration", "UserProfile",
    "ChatDetail", "ChatDirectory", "ChatInfo", "ChatSummary",
    "ServiceContainer",
    "Mailer", "NullMailer", "SmtpMailer", "build_mailer",
    "MembershipRegistry", "MemberView",
    "MessageLedger", "MessageView",
    "Identity", "SessionManager",
    "StoryEntry", "StoryFeed",
    "Redemption", "VerificationService",
]
