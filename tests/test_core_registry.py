"""
Unit Tests for core.registry module.

Tests ModuleRegistry and ModuleLoader classes.
"""

import pytest
from unittest.mock import MagicMock


class TestModuleRegistry:
    """Tests for ModuleRegistry class."""

    def test_singleton_pattern(self, fresh_registry):
        from core.registry import ModuleRegistry

        assert ModuleRegistry() is fresh_registry

    def test_initialization(self, fresh_registry):
        assert fresh_registry._modules == {}
        assert fresh_registry._context is None
        assert fresh_registry._initialized is True

    def test_register_calls_on_entry_with_context(self, fresh_registry, app_context, mock_module):
        fresh_registry.set_context(app_context)

        assert fresh_registry.register(mock_module) is True
        assert mock_module._initialized is True
        assert fresh_registry.get_module("mock_module") is mock_module

    def test_register_duplicate_is_rejected(self, fresh_registry, mock_module_factory):
        assert fresh_registry.register(mock_module_factory("a")) is True
        assert fresh_registry.register(mock_module_factory("a")) is False
        assert fresh_registry.get_module_names() == ["a"]

    def test_register_survives_on_entry_failure(self, fresh_registry, app_context):
        fresh_registry.set_context(app_context)
        module = MagicMock()
        module.get_module_name.return_value = "broken"
        module.on_entry.side_effect = RuntimeError("boom")

        assert fresh_registry.register(module) is True
        assert any("init failed" in line for line in app_context.get_event_log())

    def test_unregister_calls_on_shutdown(self, fresh_registry, mock_module):
        fresh_registry.register(mock_module)

        assert fresh_registry.unregister("mock_module") is True
        assert mock_module._shutdown is True
        assert fresh_registry.get_module("mock_module") is None

    def test_unregister_unknown_module(self, fresh_registry):
        assert fresh_registry.unregister("missing") is False

    def test_get_statuses_isolates_failures(self, fresh_registry, mock_module_factory):
        good = mock_module_factory("good")
        bad = MagicMock()
        bad.get_module_name.return_value = "bad"
        bad.get_status.side_effect = RuntimeError("status broke")
        fresh_registry.register(good)
        fresh_registry.register(bad)

        statuses = fresh_registry.get_statuses()

        assert statuses["good"]["status"] == "active"
        assert statuses["bad"]["status"] == "error"

    @pytest.mark.asyncio
    async def test_async_startup_all(self, fresh_registry, mock_module_factory):
        first = mock_module_factory("first")
        second = mock_module_factory("second")
        fresh_registry.register(first)
        fresh_registry.register(second)

        await fresh_registry.async_startup_all()

        assert first._started and second._started

    @pytest.mark.asyncio
    async def test_async_startup_failure_does_not_stop_others(self, fresh_registry, mock_module_factory):
        from unittest.mock import AsyncMock

        broken = MagicMock()
        broken.get_module_name.return_value = "broken"
        broken.async_startup = AsyncMock(side_effect=RuntimeError("boom"))
        healthy = mock_module_factory("healthy")
        fresh_registry.register(broken)
        fresh_registry.register(healthy)

        failed = await fresh_registry.async_startup_all()

        assert failed == ["broken"]
        assert healthy._started is True

    def test_shutdown_all(self, fresh_registry, mock_module_factory):
        modules = [mock_module_factory(name) for name in ("a", "b")]
        for module in modules:
            fresh_registry.register(module)

        fresh_registry.shutdown_all()

        assert fresh_registry.get_all_modules() == []
        assert all(module._shutdown for module in modules)

    @pytest.mark.asyncio
    async def test_shutdown_runs_in_reverse_order(self, fresh_registry, mock_module_factory):
        order = []
        for name in ("first", "second"):
            module = mock_module_factory(name)
            module.on_shutdown = lambda name=name: order.append(name)
            fresh_registry.register(module)

        await fresh_registry.async_shutdown_all()
        fresh_registry.shutdown_all()

        assert order == ["second", "first"]


class TestModuleLoader:
    """Tests for ModuleLoader class."""

    def test_missing_directory_loads_nothing(self, fresh_registry, tmp_path):
        from core.registry import ModuleLoader

        loader = ModuleLoader(fresh_registry)

        assert loader.load_from_directory(str(tmp_path / "nope")) == 0

    def test_loads_directory_module(self, fresh_registry, monkeypatch):
        from pathlib import Path

        from core.registry import ModuleLoader
        from modules.directory import DirectoryModule

        monkeypatch.setattr(
            "modules.directory.directory_module.get_directory_settings",
            lambda: MagicMock(),
        )
        modules_path = Path(__file__).resolve().parent.parent / "modules"
        loader = ModuleLoader(fresh_registry)

        count = loader.load_from_directory(str(modules_path))

        assert count >= 1
        assert isinstance(fresh_registry.get_module("directory"), DirectoryModule)
