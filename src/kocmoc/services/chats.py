"""Chat directory: direct-chat deduplication, group creation and deletion."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import and_, delete, func, insert, select
from sqlalchemy.engine import Row

from kocmoc.core.errors import ConflictError, ForbiddenError, InvalidArgumentError, NotFoundError
from kocmoc.db.store import Executor, Store
from kocmoc.db.time import as_utc, utcnow
from kocmoc.models import Chat, ChatMember, MemberRole, Message, User, direct_key

from .membership import MemberView, MembershipRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChatInfo:
    """Chat header fields."""

    id: str
    is_group: bool
    name: str | None
    created_at: datetime


@dataclass(frozen=True)
class ChatDetail:
    """Chat header plus its members in join order."""

    chat: ChatInfo
    members: list[MemberView]


@dataclass(frozen=True)
class ChatSummary:
    """Entry of a user's chat list with the latest visible message preview."""

    id: str
    is_group: bool
    name: str | None
    created_at: datetime
    unread_count: int
    last_text: str | None
    last_message_at: datetime | None


def _to_info(row: Row) -> ChatInfo:
    return ChatInfo(
        id=row.id,
        is_group=row.is_group,
        name=row.name,
        created_at=as_utc(row.created_at),
    )


_CHAT_COLUMNS = (Chat.id, Chat.is_group, Chat.name, Chat.created_at)


class ChatDirectory:
    """Creates, lists and deletes chats."""

    def __init__(
        self,
        store: Store,
        membership: MembershipRegistry,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.membership = membership
        self._clock = clock

    def _find(self, chat_id: str, executor: Executor | None = None) -> ChatInfo | None:
        row = (executor or self.store).query_one(select(*_CHAT_COLUMNS).where(Chat.id == chat_id))
        return _to_info(row) if row is not None else None

    def _find_direct(self, key: str, executor: Executor | None = None) -> ChatInfo | None:
        row = (executor or self.store).query_one(select(*_CHAT_COLUMNS).where(Chat.direct_key == key))
        return _to_info(row) if row is not None else None

    def _require_users(self, user_ids: set[str], executor: Executor) -> None:
        found = executor.query_many(select(User.id).where(User.id.in_(user_ids)))
        missing = user_ids - {row.id for row in found}
        if missing:
            raise NotFoundError("Participant not found")

    def open_direct(self, user_a: str, user_b: str) -> tuple[ChatInfo, bool]:
        """Return the single direct chat for the unordered pair, creating it if needed.

        Returns:
            The chat and whether this call created it.
        """
        if user_a == user_b:
            raise InvalidArgumentError("Cannot open a direct chat with yourself")
        key = direct_key(user_a, user_b)

        existing = self._find_direct(key)
        if existing is not None:
            return existing, False

        try:
            with self.store.transaction() as tx:
                self._require_users({user_a, user_b}, tx)
                now = self._clock()
                result = tx.execute(
                    insert(Chat).values(is_group=False, name=None, direct_key=key, created_at=now)
                )
                chat_id = result.inserted_id
                for user_id in (user_a, user_b):
                    self.membership.add_member(chat_id, user_id, MemberRole.MEMBER, tx)
        except ConflictError:
            # A concurrent caller committed the pair first; our rows were rolled back.
            winner = self._find_direct(key)
            if winner is None:
                raise
            logger.info("Direct chat race for %s resolved to existing chat %s", key, winner.id)
            return winner, False

        return ChatInfo(id=chat_id, is_group=False, name=None, created_at=now), True

    def create_group(self, name: str, owner_id: str, member_ids: list[str]) -> ChatInfo:
        """Create a group chat owned by ``owner_id``.

        Raises:
            InvalidArgumentError: Empty name or empty member list.
            NotFoundError: A member id names no user.
        """
        name = (name or "").strip()
        if not name:
            raise InvalidArgumentError("Group name is required")
        if not member_ids:
            raise InvalidArgumentError("At least one member is required")

        # Preserve request order while collapsing duplicates and the owner.
        others = [uid for uid in dict.fromkeys(member_ids) if uid != owner_id]

        with self.store.transaction() as tx:
            self._require_users({owner_id, *others}, tx)
            now = self._clock()
            result = tx.execute(insert(Chat).values(is_group=True, name=name, created_at=now))
            chat_id = result.inserted_id
            self.membership.add_member(chat_id, owner_id, MemberRole.OWNER, tx)
            for user_id in others:
                self.membership.add_member(chat_id, user_id, MemberRole.MEMBER, tx)

        return ChatInfo(id=chat_id, is_group=True, name=name, created_at=now)

    def add_group_member(
        self,
        chat_id: str,
        requester_id: str,
        user_id: str,
        *,
        requester_is_admin: bool = False,
    ) -> None:
        """Add ``user_id`` to a group chat on behalf of its owner or an admin."""
        with self.store.transaction() as tx:
            chat = self._find(chat_id, tx)
            if chat is None:
                raise NotFoundError("Chat not found")
            role = self.membership.role_of(chat_id, requester_id, tx)
            if role is None:
                raise ForbiddenError("You are not a member of this chat")
            if not chat.is_group:
                raise InvalidArgumentError("Direct chats cannot take additional members")
            if role is not MemberRole.OWNER and not requester_is_admin:
                raise ForbiddenError("Only the chat owner can add members")
            self._require_users({user_id}, tx)
            self.membership.add_member(chat_id, user_id, MemberRole.MEMBER, tx)

    def get_chat(self, chat_id: str, user_id: str) -> ChatDetail:
        """Return a chat with its members; the caller must belong to it."""
        with self.store.transaction() as tx:
            chat = self._find(chat_id, tx)
            if chat is None:
                raise NotFoundError("Chat not found")
            self.membership.require_member(chat_id, user_id, tx)
            members = self.membership.list_members(chat_id, tx)
        return ChatDetail(chat=chat, members=members)

    def delete_chat(self, chat_id: str, requesting_user_id: str) -> None:
        """Delete a chat; any member may do so. Memberships and messages cascade."""
        with self.store.transaction() as tx:
            if self._find(chat_id, tx) is None:
                raise NotFoundError("Chat not found")
            self.membership.require_member(chat_id, requesting_user_id, tx)
            tx.execute(delete(Chat).where(Chat.id == chat_id))
        logger.info("Chat %s deleted by user %s", chat_id, requesting_user_id)

    def list_for_user(self, user_id: str) -> list[ChatSummary]:
        """Return the user's chats with the newest non-deleted message preview."""
        latest = (
            select(
                Message.chat_id.label("chat_id"),
                func.max(Message.created_at).label("last_message_at"),
            )
            .where(Message.deleted.is_(False))
            .group_by(Message.chat_id)
            .subquery()
        )
        preview = (
            select(Message.text)
            .where(
                Message.chat_id == Chat.id,
                Message.deleted.is_(False),
                Message.created_at == latest.c.last_message_at,
            )
            .order_by(Message.id.desc())
            .limit(1)
            .scalar_subquery()
        )
        rows = self.store.query_many(
            select(
                *_CHAT_COLUMNS,
                ChatMember.unread_count,
                latest.c.last_message_at,
                preview.label("last_text"),
            )
            .join(ChatMember, and_(ChatMember.chat_id == Chat.id, ChatMember.user_id == user_id))
            .outerjoin(latest, latest.c.chat_id == Chat.id)
            .order_by(
                latest.c.last_message_at.is_(None),
                latest.c.last_message_at.desc(),
                Chat.created_at.desc(),
            )
        )
        return [
            ChatSummary(
                id=row.id,
                is_group=row.is_group,
                name=row.name,
                created_at=as_utc(row.created_at),
                unread_count=row.unread_count,
                last_text=row.last_text,
                last_message_at=as_utc(row.last_message_at) if row.last_message_at else None,
            )
            for row in rows
        ]
