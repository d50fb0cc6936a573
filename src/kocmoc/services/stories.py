"""Ephemeral story feed: time-boxed broadcasts and view receipts."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import insert, select, update

from kocmoc.core.errors import ConflictError, InvalidArgumentError, NotFoundError
from kocmoc.db.store import Store
from kocmoc.db.time import as_utc, utcnow
from kocmoc.models import Story, StoryType, StoryView, User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoryEntry:
    """Story row with its author's public profile."""

    id: str
    user_id: str
    type: str
    media_url: str
    created_at: datetime
    expires_at: datetime
    display_name: str | None = None
    avatar_url: str | None = None


class StoryFeed:
    """Publishes stories and filters out the expired ones on read."""

    def __init__(self, store: Store, *, clock: Callable[[], datetime] = utcnow) -> None:
        self.store = store
        self._clock = clock

    def publish(
        self,
        user_id: str,
        story_type: str | StoryType | None,
        media_url: str | None,
        expires_at: datetime | None,
    ) -> StoryEntry:
        """Store a story that stays visible until ``expires_at``."""
        if not story_type or not media_url or expires_at is None:
            raise InvalidArgumentError("type, media_url and expires_at are required")
        try:
            kind = StoryType(story_type)
        except ValueError as err:
            raise InvalidArgumentError(f"Unsupported story type: {story_type}") from err

        now = self._clock()
        expires_at = as_utc(expires_at)
        result = self.store.execute(
            insert(Story).values(
                user_id=user_id,
                type=kind.value,
                media_url=media_url,
                created_at=now,
                expires_at=expires_at,
            )
        )
        return StoryEntry(
            id=result.inserted_id,
            user_id=user_id,
            type=kind.value,
            media_url=media_url,
            created_at=now,
            expires_at=expires_at,
        )

    def list_active(self) -> list[StoryEntry]:
        """Return unexpired stories, newest first."""
        rows = self.store.query_many(
            select(
                Story.id,
                Story.user_id,
                Story.type,
                Story.media_url,
                Story.created_at,
                Story.expires_at,
                User.display_name,
                User.avatar_url,
            )
            .join(User, User.id == Story.user_id)
            .where(Story.expires_at > self._clock())
            .order_by(Story.created_at.desc(), Story.id.desc())
        )
        return [
            StoryEntry(
                id=row.id,
                user_id=row.user_id,
                type=row.type,
                media_url=row.media_url,
                created_at=as_utc(row.created_at),
                expires_at=as_utc(row.expires_at),
                display_name=row.display_name,
                avatar_url=row.avatar_url,
            )
            for row in rows
        ]

    def _touch(self, story_id: str, viewer_id: str, viewed_at: datetime) -> bool:
        result = self.store.execute(
            update(StoryView)
            .where(StoryView.story_id == story_id, StoryView.viewer_id == viewer_id)
            .values(viewed_at=viewed_at)
        )
        return result.rows_affected > 0

    def record_view(self, story_id: str, viewer_id: str) -> None:
        """Upsert the viewer's receipt so it carries the latest view time."""
        if self.store.query_one(select(Story.id).where(Story.id == story_id)) is None:
            raise NotFoundError("Story not found")

        viewed_at = self._clock()
        if self._touch(story_id, viewer_id, viewed_at):
            return
        try:
            self.store.execute(
                insert(StoryView).values(story_id=story_id, viewer_id=viewer_id, viewed_at=viewed_at)
            )
        except ConflictError:
            # Another request inserted the first receipt in between.
            logger.debug("Story view insert raced for %s/%s; updating", story_id, viewer_id)
            self._touch(story_id, viewer_id, viewed_at)
