"""
Pytest Configuration and Shared Fixtures.

Provides common test fixtures for framework unit tests.
"""

from typing import Any, Callable

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, MagicMock

from core.database.engine import create_engine_for_url
from core.database.session import create_session_factory, init_database


# =============================================================================
# Environment Fixtures
# =============================================================================


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Set up mock environment variables for testing."""
    env_vars = {
        "SERVER_HOST": "127.0.0.1",
        "SERVER_PORT": "8000",
        "BASE_URL": "https://test.example.com",
        "APP_DEBUG": "true",
        "APP_LOG_LEVEL": "DEBUG",
        "APP_ENV": "development",
        "DATABASE_URL": "sqlite+aiosqlite:///:memory:",
    }

    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)

    return env_vars


@pytest.fixture
def config_loader(mock_env_vars):
    """Create a ConfigLoader instance with mock environment."""
    from core.app_context import ConfigLoader

    loader = ConfigLoader()
    loader.load()
    return loader


@pytest.fixture
def app_context(mock_env_vars):
    """Create an AppContext instance with mock environment."""
    from core.app_context import AppContext

    return AppContext()


# =============================================================================
# Registry Fixtures
# =============================================================================


@pytest.fixture
def fresh_registry():
    """A ModuleRegistry with its singleton state reset before and after the test."""
    from core.registry import ModuleRegistry

    ModuleRegistry._instance = None
    registry = ModuleRegistry()
    yield registry
    ModuleRegistry._instance = None


@pytest.fixture
def fresh_sync_manager():
    """Reset the SyncManager singleton around the test."""
    from core.sync_manager import get_sync_manager, reset_sync_manager

    reset_sync_manager()
    yield get_sync_manager()
    reset_sync_manager()


class MockModule:
    """Mock module implementation for testing."""

    def __init__(self, name: str = "mock_module"):
        self._name = name
        self._initialized = False
        self._started = False
        self._shutdown = False

    def get_module_name(self) -> str:
        return self._name

    def on_entry(self, context) -> None:
        self._initialized = True

    def handle_event(self, context, event: dict) -> dict | None:
        return {"handled": True, "module": self._name}

    async def async_startup(self) -> None:
        self._started = True

    async def async_shutdown(self) -> None:
        pass

    def get_api_router(self):
        return None

    def get_status(self) -> dict:
        return {"status": "active", "details": {}}

    def on_shutdown(self) -> None:
        self._shutdown = True


@pytest.fixture
def mock_module():
    """Create a mock module instance."""
    return MockModule()


@pytest.fixture
def mock_module_factory():
    """Factory for creating mock modules with custom names."""
    def _create(name: str):
        return MockModule(name)
    return _create


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def db_engine():
    """In-memory SQLite engine with every table created."""
    engine = create_engine_for_url("sqlite+aiosqlite:///:memory:")
    await init_database(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return create_session_factory(db_engine)


# =============================================================================
# HTTP Client Fixtures
# =============================================================================


@pytest.fixture
def mock_httpx_response_factory() -> Callable[..., MagicMock]:
    """
    Factory fixture for creating mock httpx responses.

    Returns a callable that creates mock responses with customizable properties.
    """
    def _create_response(
        status_code: int = 200,
        json_data: Any = None,
        text: str | None = None,
    ) -> MagicMock:
        mock_response = MagicMock()
        mock_response.status_code = status_code
        mock_response.json.return_value = json_data if json_data is not None else {}
        mock_response.text = text if text is not None else str(json_data)
        return mock_response

    return _create_response


@pytest.fixture
def mock_request_client() -> MagicMock:
    """Mock httpx.AsyncClient whose ``request`` is an AsyncMock."""
    mock_client = MagicMock()
    mock_client.request = AsyncMock()
    mock_client.aclose = AsyncMock()
    return mock_client
