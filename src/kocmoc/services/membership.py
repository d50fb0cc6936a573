"""Membership registry: the authorization predicate for chat access."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import insert, select, update

from kocmoc.core.errors import ConflictError, ForbiddenError
from kocmoc.db.store import Executor, Store
from kocmoc.db.time import as_utc, utcnow
from kocmoc.models import ChatMember, MemberRole, User


@dataclass(frozen=True)
class MemberView:
    """Chat member together with the public part of their profile."""

    user_id: str
    display_name: str
    avatar_url: str | None
    role: str
    online: bool
    last_seen: datetime | None
    joined_at: datetime


class MembershipRegistry:
    """Tracks who belongs to which chat and with what role."""

    def __init__(self, store: Store, *, clock: Callable[[], datetime] = utcnow) -> None:
        self.store = store
        self._clock = clock

    def is_member(self, chat_id: str, user_id: str, executor: Executor | None = None) -> bool:
        """Return True iff a membership row exists for the pair."""
        row = (executor or self.store).query_one(
            select(ChatMember.user_id).where(
                ChatMember.chat_id == chat_id,
                ChatMember.user_id == user_id,
            )
        )
        return row is not None

    def require_member(
        self,
        chat_id: str,
        user_id: str,
        executor: Executor | None = None,
        *,
        message: str = "You are not a member of this chat",
    ) -> None:
        """Raise ``ForbiddenError`` unless ``user_id`` belongs to ``chat_id``."""
        if not self.is_member(chat_id, user_id, executor):
            raise ForbiddenError(message)

    def role_of(self, chat_id: str, user_id: str, executor: Executor | None = None) -> MemberRole | None:
        """Return the member's role, or None for non-members."""
        row = (executor or self.store).query_one(
            select(ChatMember.role).where(
                ChatMember.chat_id == chat_id,
                ChatMember.user_id == user_id,
            )
        )
        return MemberRole(row.role) if row is not None else None

    def add_member(
        self,
        chat_id: str,
        user_id: str,
        role: MemberRole = MemberRole.MEMBER,
        executor: Executor | None = None,
    ) -> None:
        """Insert a membership row.

        Raises:
            ConflictError: The user already belongs to the chat.
        """
        try:
            (executor or self.store).execute(
                insert(ChatMember).values(
                    chat_id=chat_id,
                    user_id=user_id,
                    role=role.value,
                    unread_count=0,
                    joined_at=self._clock(),
                )
            )
        except ConflictError as err:
            raise ConflictError("User is already a member of this chat") from err

    def list_members(self, chat_id: str, executor: Executor | None = None) -> list[MemberView]:
        """Return members ordered by join time, earliest first."""
        rows = (executor or self.store).query_many(
            select(
                ChatMember.user_id,
                ChatMember.role,
                ChatMember.joined_at,
                User.display_name,
                User.avatar_url,
                User.online,
                User.last_seen,
            )
            .join(User, User.id == ChatMember.user_id)
            .where(ChatMember.chat_id == chat_id)
            .order_by(ChatMember.joined_at.asc(), ChatMember.user_id.asc())
        )
        return [
            MemberView(
                user_id=row.user_id,
                display_name=row.display_name,
                avatar_url=row.avatar_url,
                role=row.role,
                online=row.online,
                last_seen=as_utc(row.last_seen) if row.last_seen else None,
                joined_at=as_utc(row.joined_at),
            )
            for row in rows
        ]

    def increment_unread(self, chat_id: str, sender_id: str, executor: Executor | None = None) -> None:
        """Bump every other member's unread counter with a store-side increment."""
        (executor or self.store).execute(
            update(ChatMember)
            .where(ChatMember.chat_id == chat_id, ChatMember.user_id != sender_id)
            .values(unread_count=ChatMember.unread_count + 1)
        )

    def mark_read(self, chat_id: str, user_id: str) -> None:
        """Reset the caller's unread counter for ``chat_id``."""
        with self.store.transaction() as tx:
            self.require_member(chat_id, user_id, tx)
            tx.execute(
                update(ChatMember)
                .where(ChatMember.chat_id == chat_id, ChatMember.user_id == user_id)
                .values(unread_count=0)
            )
