"""Wires every service around a single store."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

from kocmoc.core.settings import Settings
from kocmoc.db.store import Store
from kocmoc.db.time import utcnow

from .accounts import AccountService
from .chats import ChatDirectory
from .mailer import Mailer, build_mailer
from .membership import MembershipRegistry
from .messages import MessageLedger
from .sessions import SessionManager
from .stories import StoryFeed
from .verification import VerificationService


class ServiceContainer:
    """Holds the long-lived service objects shared by all requests."""

    def __init__(
        self,
        store: Store,
        settings: Settings,
        *,
        mailer: Mailer | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.settings = settings
        self.mailer = mailer if mailer is not None else build_mailer(settings)

        self.sessions = SessionManager(
            store,
            secret_key=settings.secret_key,
            algorithm=settings.jwt_algorithm,
            ttl_minutes=settings.access_token_expire_minutes,
            clock=clock,
        )
        self.verification = VerificationService(
            store,
            self.mailer,
            self.sessions,
            ttl_minutes=settings.verification_code_expires_minutes,
            clock=clock,
        )
        self.accounts = AccountService(store, self.sessions, self.verification, clock=clock)
        self.membership = MembershipRegistry(store, clock=clock)
        self.chats = ChatDirectory(store, self.membership, clock=clock)
        self.messages = MessageLedger(
            store,
            self.membership,
            page_max=settings.message_page_max,
            clock=clock,
        )
        self.stories = StoryFeed(store, clock=clock)
