"""
Tests for the persisted sync state store (in-memory SQLite).
"""

import pytest

from core.state_store import SyncStateStore, state_key


def test_state_key_joins_namespace_and_name():
    assert state_key("directory.migration", "employees") == "directory.migration.employees"
    assert state_key("directory.install.", ".seeded") == "directory.install.seeded"


class TestSyncStateStore:

    @pytest.mark.asyncio
    async def test_unset_key(self, session_factory):
        store = SyncStateStore(session_factory)

        assert await store.get("missing") is None
        assert await store.is_set("missing") is False

    @pytest.mark.asyncio
    async def test_set_and_overwrite(self, session_factory):
        store = SyncStateStore(session_factory)

        await store.set("a.b", "first")
        await store.set("a.b", "second")

        assert await store.get("a.b") == "second"
        assert await store.is_set("a.b") is True

    @pytest.mark.asyncio
    async def test_check_and_set_only_first_caller_wins(self, session_factory):
        store = SyncStateStore(session_factory)

        assert await store.check_and_set("directory.install.seeded") is True
        assert await store.check_and_set("directory.install.seeded") is False
        assert await store.is_set("directory.install.seeded") is True

    @pytest.mark.asyncio
    async def test_clear(self, session_factory):
        store = SyncStateStore(session_factory)
        await store.set("x.y")

        assert await store.clear("x.y") is True
        assert await store.clear("x.y") is False
        assert await store.check_and_set("x.y") is True
