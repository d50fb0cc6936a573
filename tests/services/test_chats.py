# tests/services/test_chats.py
"""Tests for the chat directory."""

from __future__ import annotations

import threading
from pathlib import Path

import pytest
from sqlalchemy import func, insert, select

from kocmoc.core.errors import ConflictError, ForbiddenError, InvalidArgumentError, NotFoundError
from kocmoc.core.security import hash_password
from kocmoc.db import Store, create_tables
from kocmoc.models import Chat, ChatMember, Message, User
from kocmoc.services import ChatDirectory, MembershipRegistry, ServiceContainer


def _count(store: Store, model, *criteria) -> int:
    row = store.query_one(select(func.count().label("n")).select_from(model).where(*criteria))
    assert row is not None
    return row.n


class TestOpenDirect:
    """Direct chats are unique per unordered pair."""

    def test_creates_chat_with_both_members(self, container: ServiceContainer, alice: str, bob: str) -> None:
        chat, created = container.chats.open_direct(alice, bob)

        assert created
        assert not chat.is_group
        members = {m.user_id for m in container.membership.list_members(chat.id)}
        assert members == {alice, bob}

    def test_reopening_returns_same_chat_either_direction(
        self, container: ServiceContainer, store: Store, alice: str, bob: str
    ) -> None:
        first, _ = container.chats.open_direct(alice, bob)
        again, created_again = container.chats.open_direct(alice, bob)
        reverse, created_reverse = container.chats.open_direct(bob, alice)

        assert again.id == first.id == reverse.id
        assert not created_again and not created_reverse
        assert _count(store, Chat, Chat.is_group.is_(False)) == 1
        assert _count(store, ChatMember, ChatMember.chat_id == first.id) == 2

    def test_rejects_self_chat(self, container: ServiceContainer, alice: str) -> None:
        with pytest.raises(InvalidArgumentError):
            container.chats.open_direct(alice, alice)

    def test_unknown_participant(self, container: ServiceContainer, store: Store, alice: str) -> None:
        with pytest.raises(NotFoundError):
            container.chats.open_direct(alice, "00000000-0000-0000-0000-000000000000")
        assert _count(store, Chat) == 0

    def test_lost_race_returns_winner(
        self, container: ServiceContainer, alice: str, bob: str, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        winner, _ = container.chats.open_direct(alice, bob)
        real_find = ChatDirectory._find_direct
        calls = {"n": 0}

        def _stale_find(self, key, executor=None):
            calls["n"] += 1
            # The first lookup happens before the competing insert is visible.
            if calls["n"] == 1:
                return None
            return real_find(self, key, executor)

        monkeypatch.setattr(ChatDirectory, "_find_direct", _stale_find)

        chat, created = container.chats.open_direct(bob, alice)

        assert chat.id == winner.id
        assert not created

    def test_concurrent_open_creates_exactly_one_chat(self, tmp_path: Path) -> None:
        store = Store(f"sqlite:///{tmp_path / 'race.db'}").open()
        try:
            create_tables(store.engine)
            ids = []
            for email in ("a@example.com", "b@example.com"):
                result = store.execute(
                    insert(User).values(email=email, password_hash=hash_password("pw"), display_name=email)
                )
                ids.append(result.inserted_id)
            directory = ChatDirectory(store, MembershipRegistry(store))

            barrier = threading.Barrier(8)
            results: list[str] = []
            errors: list[Exception] = []
            lock = threading.Lock()

            def _worker(index: int) -> None:
                pair = ids if index % 2 == 0 else list(reversed(ids))
                barrier.wait()
                try:
                    chat, _ = directory.open_direct(*pair)
                except Exception as exc:
                    with lock:
                        errors.append(exc)
                    return
                with lock:
                    results.append(chat.id)

            threads = [threading.Thread(target=_worker, args=(i,)) for i in range(8)]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join()

            assert errors == []
            assert len(set(results)) == 1
            assert _count(store, Chat) == 1
            assert _count(store, ChatMember) == 2
        finally:
            store.close()


class TestGroups:
    def test_create_group_owner_and_members(self, container: ServiceContainer, alice: str, bob: str, carol: str) -> None:
        group = container.chats.create_group("  Team  ", alice, [bob, carol, bob, alice])

        assert group.is_group
        assert group.name == "Team"
        members = container.membership.list_members(group.id)
        assert [m.user_id for m in members] == [alice, bob, carol]
        assert [m.role for m in members] == ["owner", "member", "member"]

    @pytest.mark.parametrize(("name", "members"), [("", ["x"]), ("   ", ["x"]), ("Team", [])])
    def test_create_group_validation(self, container: ServiceContainer, alice: str, name: str, members: list[str]) -> None:
        with pytest.raises(InvalidArgumentError):
            container.chats.create_group(name, alice, members)

    def test_create_group_unknown_member(self, container: ServiceContainer, store: Store, alice: str) -> None:
        with pytest.raises(NotFoundError):
            container.chats.create_group("Team", alice, ["missing"])
        assert _count(store, Chat) == 0

    def test_owner_adds_member(self, container: ServiceContainer, alice: str, bob: str, carol: str) -> None:
        group = container.chats.create_group("Team", alice, [bob])

        container.chats.add_group_member(group.id, alice, carol)

        assert container.membership.is_member(group.id, carol)

    def test_plain_member_cannot_add(self, container: ServiceContainer, alice: str, bob: str, carol: str) -> None:
        group = container.chats.create_group("Team", alice, [bob])

        with pytest.raises(ForbiddenError):
            container.chats.add_group_member(group.id, bob, carol)

    def test_admin_member_can_add(self, container: ServiceContainer, alice: str, bob: str, carol: str) -> None:
        group = container.chats.create_group("Team", alice, [bob])

        container.chats.add_group_member(group.id, bob, carol, requester_is_admin=True)

        assert container.membership.is_member(group.id, carol)

    def test_outsider_cannot_add(self, container: ServiceContainer, alice: str, bob: str, carol: str) -> None:
        group = container.chats.create_group("Team", alice, [bob])

        with pytest.raises(ForbiddenError):
            container.chats.add_group_member(group.id, carol, carol)

    def test_adding_existing_member_conflicts(self, container: ServiceContainer, alice: str, bob: str) -> None:
        group = container.chats.create_group("Team", alice, [bob])

        with pytest.raises(ConflictError):
            container.chats.add_group_member(group.id, alice, bob)

    def test_direct_chat_takes_no_members(self, container: ServiceContainer, alice: str, bob: str, carol: str) -> None:
        chat, _ = container.chats.open_direct(alice, bob)

        with pytest.raises(InvalidArgumentError):
            container.chats.add_group_member(chat.id, alice, carol)


class TestGetAndDelete:
    def test_get_chat_returns_members(self, container: ServiceContainer, alice: str, bob: str) -> None:
        chat, _ = container.chats.open_direct(alice, bob)

        detail = container.chats.get_chat(chat.id, bob)

        assert detail.chat.id == chat.id
        assert {m.user_id for m in detail.members} == {alice, bob}

    def test_get_chat_forbidden_for_outsider(self, container: ServiceContainer, alice: str, bob: str, carol: str) -> None:
        chat, _ = container.chats.open_direct(alice, bob)

        with pytest.raises(ForbiddenError):
            container.chats.get_chat(chat.id, carol)

    def test_get_unknown_chat(self, container: ServiceContainer, alice: str) -> None:
        with pytest.raises(NotFoundError):
            container.chats.get_chat("missing", alice)

    def test_delete_cascades(self, container: ServiceContainer, store: Store, alice: str, bob: str) -> None:
        chat, _ = container.chats.open_direct(alice, bob)
        container.messages.append(chat.id, alice, "text", {"text": "hi"})

        container.chats.delete_chat(chat.id, bob)

        assert _count(store, Chat) == 0
        assert _count(store, ChatMember) == 0
        assert _count(store, Message) == 0
        with pytest.raises(NotFoundError):
            container.chats.delete_chat(chat.id, alice)

    def test_delete_requires_membership(self, container: ServiceContainer, alice: str, bob: str, carol: str) -> None:
        chat, _ = container.chats.open_direct(alice, bob)

        with pytest.raises(ForbiddenError):
            container.chats.delete_chat(chat.id, carol)

    def test_reopen_after_delete_creates_new_chat(self, container: ServiceContainer, alice: str, bob: str) -> None:
        first, _ = container.chats.open_direct(alice, bob)
        container.chats.delete_chat(first.id, alice)

        second, created = container.chats.open_direct(alice, bob)

        assert created
        assert second.id != first.id


class TestListForUser:
    def test_orders_by_latest_visible_message(
        self, container: ServiceContainer, alice: str, bob: str, carol: str
    ) -> None:
        with_bob, _ = container.chats.open_direct(alice, bob)
        with_carol, _ = container.chats.open_direct(alice, carol)
        quiet = container.chats.create_group("Quiet", alice, [bob])
        container.messages.append(with_bob.id, bob, "text", {"text": "older"})
        container.messages.append(with_carol.id, carol, "text", {"text": "newer"})

        chats = container.chats.list_for_user(alice)

        assert [c.id for c in chats] == [with_carol.id, with_bob.id, quiet.id]
        assert chats[0].last_text == "newer"
        assert chats[2].last_text is None
        assert chats[2].last_message_at is None

    def test_preview_skips_deleted_messages(self, container: ServiceContainer, alice: str, bob: str) -> None:
        chat, _ = container.chats.open_direct(alice, bob)
        container.messages.append(chat.id, alice, "text", {"text": "kept"})
        removed = container.messages.append(chat.id, alice, "text", {"text": "removed"})
        container.messages.soft_delete(removed.id, alice)

        (summary,) = container.chats.list_for_user(bob)

        assert summary.last_text == "kept"

    def test_excludes_foreign_chats(self, container: ServiceContainer, alice: str, bob: str, carol: str) -> None:
        container.chats.open_direct(alice, bob)

        assert container.chats.list_for_user(carol) == []

