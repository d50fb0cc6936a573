"""Message ledger: membership-gated append and sender-only mutation."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import insert, select, update
from sqlalchemy.engine import Row

from kocmoc.core.errors import ConflictError, ForbiddenError, InvalidArgumentError, NotFoundError
from kocmoc.db.store import Executor, Store
from kocmoc.db.time import as_utc, utcnow
from kocmoc.models import PAYLOAD_FIELDS, Message, MessageType, User

from .membership import MembershipRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MessageView:
    """Message row joined with its sender's public profile."""

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


_MESSAGE_COLUMNS = (
    Message.id,
    Message.chat_id,
    Message.sender_id,
    Message.type,
    Message.text,
    Message.file_url,
    Message.audio_url,
    Message.sticker_url,
    Message.edited,
    Message.deleted,
    Message.created_at,
    User.display_name.label("sender_name"),
    User.avatar_url.label("sender_avatar"),
)


def _message_select():
    return select(*_MESSAGE_COLUMNS).join(User, User.id == Message.sender_id)


def _to_view(row: Row) -> MessageView:
    return MessageView(
        id=row.id,
        chat_id=row.chat_id,
        sender_id=row.sender_id,
        sender_name=row.sender_name,
        sender_avatar=row.sender_avatar,
        type=row.type,
        text=row.text,
        file_url=row.file_url,
        audio_url=row.audio_url,
        sticker_url=row.sticker_url,
        edited=row.edited,
        deleted=row.deleted,
        created_at=as_utc(row.created_at),
    )


def _clean_payload(payload: dict[str, Any]) -> dict[str, str | None]:
    """Keep only known payload fields, turning blanks into None."""
    unknown = set(payload) - set(PAYLOAD_FIELDS)
    if unknown:
        raise InvalidArgumentError(f"Unknown payload fields: {', '.join(sorted(unknown))}")
    cleaned = {field: (payload.get(field) or None) for field in PAYLOAD_FIELDS}
    if not any(cleaned.values()):
        raise InvalidArgumentError("Message cannot be empty")
    return cleaned


class MessageLedger:
    """Per-chat message log with soft delete and edit flags."""

    def __init__(
        self,
        store: Store,
        membership: MembershipRegistry,
        *,
        page_max: int = 200,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.membership = membership
        self.page_max = page_max
        self._clock = clock

    def _get(self, message_id: str, executor: Executor) -> MessageView | None:
        row = executor.query_one(_message_select().where(Message.id == message_id))
        return _to_view(row) if row is not None else None

    def _insert(
        self,
        tx: Executor,
        *,
        chat_id: str,
        sender_id: str,
        message_type: str,
        payload: dict[str, str | None],
    ) -> MessageView:
        result = tx.execute(
            insert(Message).values(
                chat_id=chat_id,
                sender_id=sender_id,
                type=message_type,
                edited=False,
                deleted=False,
                created_at=self._clock(),
                **payload,
            )
        )
        self.membership.increment_unread(chat_id, sender_id, tx)
        created = self._get(result.inserted_id, tx)
        if created is None:
            raise RuntimeError(f"Inserted message {result.inserted_id} is not readable")
        return created

    def append(
        self,
        chat_id: str,
        sender_id: str,
        message_type: str | MessageType,
        payload: dict[str, Any],
    ) -> MessageView:
        """Store a new message from a chat member.

        Raises:
            ForbiddenError: The sender is not a member of the chat.
            InvalidArgumentError: Unknown type or an entirely empty payload.
        """
        try:
            kind = MessageType(message_type or MessageType.TEXT)
        except ValueError as err:
            raise InvalidArgumentError(f"Unsupported message type: {message_type}") from err

        with self.store.transaction() as tx:
            self.membership.require_member(chat_id, sender_id, tx)
            cleaned = _clean_payload(payload)
            return self._insert(
                tx,
                chat_id=chat_id,
                sender_id=sender_id,
                message_type=kind.value,
                payload=cleaned,
            )

    def list(
        self,
        chat_id: str,
        requesting_user_id: str,
        limit: int = 50,
        offset: int = 0,
    ) -> list[MessageView]:
        """Return a limit/offset window of the chat, oldest first.

        Soft-deleted messages are included with ``deleted=True``; callers
        decide whether to render them.
        """
        if limit < 1 or limit > self.page_max:
            raise InvalidArgumentError(f"limit must be between 1 and {self.page_max}")
        if offset < 0:
            raise InvalidArgumentError("offset must not be negative")

        with self.store.transaction() as tx:
            self.membership.require_member(chat_id, requesting_user_id, tx)
            rows = tx.query_many(
                _message_select()
                .where(Message.chat_id == chat_id)
                .order_by(Message.created_at.asc(), Message.id.asc())
                .limit(limit)
                .offset(offset)
            )
        return [_to_view(row) for row in rows]

    def _require_own(self, message_id: str, requesting_user_id: str, tx: Executor, action: str) -> MessageView:
        message = self._get(message_id, tx)
        if message is None:
            raise NotFoundError("Message not found")
        if message.sender_id != requesting_user_id:
            raise ForbiddenError(f"You can only {action} your own messages")
        return message

    def edit(self, message_id: str, requesting_user_id: str, new_text: str) -> MessageView:
        """Replace the text of the caller's own message and flag it edited."""
        if not new_text or not new_text.strip():
            raise InvalidArgumentError("Text is required")
        with self.store.transaction() as tx:
            message = self._require_own(message_id, requesting_user_id, tx, "edit")
            if message.deleted:
                raise ConflictError("Deleted messages cannot be edited")
            tx.execute(
                update(Message)
                .where(Message.id == message_id)
                .values(text=new_text, edited=True)
            )
            updated = self._get(message_id, tx)
        if updated is None:
            raise NotFoundError("Message not found")
        return updated

    def soft_delete(self, message_id: str, requesting_user_id: str) -> None:
        """Mark the caller's own message deleted; the row stays in storage."""
        with self.store.transaction() as tx:
            self._require_own(message_id, requesting_user_id, tx, "delete")
            tx.execute(update(Message).where(Message.id == message_id).values(deleted=True))
        logger.info("Message %s deleted by user %s", message_id, requesting_user_id)

    def forward(self, message_id: str, requesting_user_id: str, target_chat_id: str) -> MessageView:
        """Copy a message's content into ``target_chat_id`` as a new message by the caller.

        Only membership of the target chat is required.
        """
        with self.store.transaction() as tx:
            source = self._get(message_id, tx)
            if source is None:
                raise NotFoundError("Message not found")
            self.membership.require_member(
                target_chat_id,
                requesting_user_id,
                tx,
                message="You are not a member of the target chat",
            )
            payload = {field: getattr(source, field) for field in PAYLOAD_FIELDS}
            return self._insert(
                tx,
                chat_id=target_chat_id,
                sender_id=requesting_user_id,
                message_type=source.type,
                payload=payload,
            )

    def search(self, chat_id: str, requesting_user_id: str, query: str) -> list[MessageView]:
        """Return visible messages whose text contains ``query``, newest first."""
        query = (query or "").strip()
        if not query:
            raise InvalidArgumentError("Search query is required")
        escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        with self.store.transaction() as tx:
            self.membership.require_member(chat_id, requesting_user_id, tx)
            rows = tx.query_many(
                _message_select()
                .where(
                    Message.chat_id == chat_id,
                    Message.deleted.is_(False),
                    Message.text.ilike(f"%{escaped}%", escape="\\"),
                )
                .order_by(Message.created_at.desc(), Message.id.desc())
                .limit(self.page_max)
            )
        return [_to_view(row) for row in rows]
