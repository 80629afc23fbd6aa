"""
Tests for DirectoryModule lifecycle: first-install seed, one-time migrations,
sync service registration and shutdown.
"""

from contextlib import asynccontextmanager

import pytest
from unittest.mock import AsyncMock, MagicMock
from sqlalchemy import func, select

from core.state_store import SyncStateStore, state_key
from core.sync_manager import SyncResult
from modules.directory import directory_module as module_impl
from modules.directory.directory_module import SEEDED_KEY, DirectoryModule, service_key
from modules.directory.models import Employee
from modules.directory.services import seed_data
from modules.directory.services.mappers import EntityKind
from modules.directory.services.sync_engine import SyncEngine


@pytest.fixture
def bind_database(monkeypatch, session_factory):
    """Point the module's session helpers at the test database."""

    @asynccontextmanager
    async def standalone_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    monkeypatch.setattr(module_impl, "get_session_factory", lambda: session_factory)
    monkeypatch.setattr(module_impl, "get_standalone_session", standalone_session)
    return session_factory


@pytest.fixture
def offline_settings(directory_settings):
    """Settings without a remote: startup only seeds."""
    return directory_settings.model_copy(update={"firestore_project_id": "", "storage_bucket": ""})


@pytest.fixture
def mock_engine():
    engine = MagicMock(spec=SyncEngine)
    engine.collection_for = MagicMock(side_effect=lambda kind: kind.value)
    engine.store = MagicMock()
    engine.store.close = AsyncMock()
    return engine


def result_for(kind, succeeded=True):
    result = SyncResult(operation="push_all", collection=kind.value).begin()
    return result.complete(1) if succeeded else result.fail("offline")


async def count_employees(session_factory):
    async with session_factory() as session:
        return (await session.execute(select(func.count()).select_from(Employee))).scalar_one()


class TestFirstInstallSeed:

    @pytest.mark.asyncio
    async def test_seeds_once(self, bind_database, offline_settings, fresh_sync_manager):
        first = DirectoryModule(settings=offline_settings)
        await first.async_startup()
        second = DirectoryModule(settings=offline_settings)
        await second.async_startup()

        assert first.get_status()["details"]["seeded"] is True
        assert second.get_status()["details"]["seeded"] is False
        assert await count_employees(bind_database) == seed_data.employee_seed_count()
        assert await SyncStateStore(bind_database).is_set(SEEDED_KEY)

    @pytest.mark.asyncio
    async def test_skips_populated_store(self, bind_database, offline_settings, fresh_sync_manager):
        async with bind_database() as session:
            session.add(Employee(name="Existing", projects=[]))
            await session.commit()

        module = DirectoryModule(settings=offline_settings)
        await module.async_startup()

        assert await count_employees(bind_database) == 1
        assert module.get_status()["details"]["seeded"] is False

    @pytest.mark.asyncio
    async def test_without_remote_sync_is_disabled(self, bind_database, offline_settings, fresh_sync_manager):
        module = DirectoryModule(settings=offline_settings)
        await module.async_startup()

        assert module.engine is None
        assert module.get_status()["status"] == "warning"
        assert fresh_sync_manager.list_services() == []


class TestMigrations:

    @pytest.mark.asyncio
    async def test_flags_set_only_after_success(
        self, bind_database, directory_settings, fresh_sync_manager, mock_engine
    ):
        settings = directory_settings.model_copy(update={"migrate_on_startup": True})
        mock_engine.push_all = AsyncMock(
            side_effect=lambda kind: result_for(kind, succeeded=kind is not EntityKind.MUNICIPALITY)
        )
        module = DirectoryModule(settings=settings)
        module.attach_engine(mock_engine)

        migrated = await module.run_migrations()

        assert migrated == ["employees", "regional_info"]
        state = SyncStateStore(bind_database)
        assert await state.is_set(state_key("directory.migration", "employees"))
        assert not await state.is_set(state_key("directory.migration", "municipalities"))

        mock_engine.push_all = AsyncMock(side_effect=lambda kind: result_for(kind))
        assert await module.run_migrations() == ["municipalities"]
        mock_engine.push_all.assert_awaited_once_with(EntityKind.MUNICIPALITY)

    @pytest.mark.asyncio
    async def test_disabled_by_default(self, bind_database, directory_settings, fresh_sync_manager, mock_engine):
        mock_engine.push_all = AsyncMock()
        module = DirectoryModule(settings=directory_settings)
        module.attach_engine(mock_engine)

        assert await module.run_migrations() == []
        mock_engine.push_all.assert_not_awaited()


class TestServicesAndShutdown:

    def test_attach_registers_one_service_per_collection(
        self, directory_settings, fresh_sync_manager, mock_engine
    ):
        module = DirectoryModule(settings=directory_settings)
        module.attach_engine(mock_engine)

        keys = [info["key"] for info in module.get_status()["details"]["services"]]
        assert keys == [service_key(kind) for kind in EntityKind]
        assert module.reseed is not None

    def test_sync_event_without_engine(self, directory_settings):
        module = DirectoryModule(settings=directory_settings)

        assert module.handle_event(MagicMock(), {"type": "sync"}) == {"status": "unavailable"}

    @pytest.mark.asyncio
    async def test_shutdown(self, directory_settings, fresh_sync_manager, mock_engine):
        module = DirectoryModule(settings=directory_settings)
        module.attach_engine(mock_engine)

        await module.async_shutdown()
        module.on_shutdown()

        mock_engine.store.close.assert_awaited_once()
        assert fresh_sync_manager.list_services() == []
