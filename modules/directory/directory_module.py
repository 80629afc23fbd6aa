"""
Directory Module Entry Point.

Implements IAppModule interface for integration with the framework.
Keeps the local employee directory in sync with the remote document store.
"""

import asyncio
import logging
from typing import Any, Optional, TYPE_CHECKING

from fastapi import APIRouter
from sqlalchemy import select

from core.database import get_session_factory, get_standalone_session
from core.http_client import HttpClientManager
from core.interface import IAppModule
from core.state_store import SyncStateStore, state_key
from core.sync_manager import get_sync_manager
from modules.directory.core.config import DirectorySettings, get_directory_settings
from modules.directory.models import Employee
from modules.directory.routers import sync_router
from modules.directory.services.mappers import EntityKind
from modules.directory.services.reseed import ReseedEngine, seed_defaults
from modules.directory.services.sync_engine import (
    CollectionSyncService,
    SyncEngine,
    create_sync_engine,
)

if TYPE_CHECKING:
    from core.app_context import AppContext

logger = logging.getLogger(__name__)


MODULE_NAME = "directory"
SEEDED_KEY = state_key("directory.install", "seeded")
MIGRATION_NAMESPACE = "directory.migration"

SERVICE_NAMES = {
    EntityKind.EMPLOYEE: "Employees",
    EntityKind.MUNICIPALITY: "Municipalities",
    EntityKind.REGIONAL_INFO: "Regional Offices",
}


def service_key(kind: EntityKind) -> str:
    return f"{MODULE_NAME}_{kind.value}"


class DirectoryModule(IAppModule):
    """
    Employee directory sync module.

    Startup:
        - Seeds the default dataset on first install
        - Wires the sync engine and registers one sync service per collection
        - Runs the one-time migration push, then the startup pull, in background
    """

    def __init__(self, settings: Optional[DirectorySettings] = None) -> None:
        self._context: Optional["AppContext"] = None
        self._api_router: Optional[APIRouter] = None
        self._settings = settings or get_directory_settings()
        self._engine: Optional[SyncEngine] = None
        self._reseed: Optional[ReseedEngine] = None
        self._http_manager: Optional[HttpClientManager] = None
        self._status: dict[str, Any] = {
            "status": "initializing",
            "seeded": False,
            "migrated": [],
            "last_error": None,
        }
        # Store background task references to prevent garbage collection
        self._background_tasks: list[asyncio.Task[Any]] = []

    def get_module_name(self) -> str:
        """Return module identifier."""
        return MODULE_NAME

    @property
    def settings(self) -> DirectorySettings:
        return self._settings

    @property
    def engine(self) -> Optional[SyncEngine]:
        """Sync engine, available once async_startup() wired the remote stores."""
        return self._engine

    @property
    def reseed(self) -> Optional[ReseedEngine]:
        return self._reseed

    def on_entry(self, context: "AppContext") -> None:
        """
        Initialize the directory module.

        Args:
            context: Application context from the main framework.
        """
        self._context = context
        logger.info("Directory module initializing...")

        self._api_router = APIRouter(prefix="/directory")
        self._api_router.include_router(sync_router)

        context.log_event("Directory module loaded", "DIRECTORY")

    def get_api_router(self) -> Optional[APIRouter]:
        return self._api_router

    # =========================================================================
    # Startup
    # =========================================================================

    async def async_startup(self) -> None:
        """
        Seed, wire the engine and schedule the startup sync.

        Called by the framework during FastAPI lifespan startup.
        """
        logger.info("Directory module async startup...")

        if self._settings.seed_on_first_install:
            await self._seed_first_install()

        if not self._settings.remote_configured:
            logger.warning(
                "Remote store not configured (DIRECTORY_FIRESTORE_PROJECT_ID / "
                "DIRECTORY_STORAGE_BUCKET); sync disabled"
            )
            self._status["status"] = "warning"
            self._status["last_error"] = "remote store not configured"
            return

        client = self._context.http_client if self._context else None
        if client is None:
            self._http_manager = HttpClientManager(timeout=self._settings.http_timeout_seconds)
            client = await self._http_manager.start()

        self.attach_engine(create_sync_engine(client, self._settings, get_session_factory()))
        self._start_startup_sync()

        logger.info("Directory module async startup completed")

    def attach_engine(self, engine: SyncEngine) -> None:
        """Install the sync engine and register one sync service per collection."""
        self._engine = engine
        self._reseed = ReseedEngine(engine, self._settings)

        sync_manager = get_sync_manager()
        for kind in EntityKind:
            sync_manager.register(
                key=service_key(kind),
                name=SERVICE_NAMES[kind],
                service=CollectionSyncService(engine, kind),
                module_name=MODULE_NAME,
                auto_sync_on_startup=self._settings.pull_on_startup,
            )
        self._status["status"] = "active"

    async def _seed_first_install(self) -> None:
        """Insert the default dataset once, on an empty local store."""
        state = SyncStateStore(get_session_factory())
        if not await state.check_and_set(SEEDED_KEY):
            return

        try:
            async with get_standalone_session() as session:
                existing = (await session.execute(select(Employee.row_id).limit(1))).first()
                if existing is not None:
                    logger.info("Local directory already populated, skipping first-install seed")
                    return
                await seed_defaults(session)
            self._status["seeded"] = True
            logger.info("First-install seed completed")
        except Exception as e:
            logger.exception(f"First-install seed failed: {e}")
            self._status["last_error"] = str(e)
            await state.clear(SEEDED_KEY)

    async def run_migrations(self) -> list[str]:
        """
        Push every collection that has never been migrated.

        A collection's flag is set only after its push succeeded, so a failed
        migration is retried on the next start.

        Returns:
            Collections migrated by this call.
        """
        if self._engine is None or not self._settings.migrate_on_startup:
            return []

        state = SyncStateStore(get_session_factory())
        migrated = []
        for kind in EntityKind:
            key = state_key(MIGRATION_NAMESPACE, self._engine.collection_for(kind))
            if await state.is_set(key):
                continue

            result = await self._engine.push_all(kind)
            if result.succeeded:
                await state.set(key)
                migrated.append(kind.value)
            else:
                logger.error(f"Migration of {kind.value} failed, will retry on next start: {result.error}")

        self._status["migrated"] = migrated
        return migrated

    def _start_startup_sync(self) -> None:
        """
        Run migrations, then the startup pull, as a background task.
        """
        async def startup_worker() -> None:
            try:
                await self.run_migrations()
                task = get_sync_manager().start_background_sync()
                if task is not None:
                    await task
            except asyncio.CancelledError:
                logger.info("Directory startup sync was cancelled")
                raise
            except Exception as e:
                logger.exception(f"Directory startup sync failed: {e}")
                self._status["status"] = "error"
                self._status["last_error"] = str(e)

        def handle_task_exception(task: asyncio.Task[Any]) -> None:
            """Callback to handle task exceptions without crashing the app."""
            if task.cancelled():
                return
            exc = task.exception()
            if exc is not None:
                logger.error(f"Directory startup task failed: {exc}", exc_info=exc)

        try:
            loop = asyncio.get_running_loop()
            task = loop.create_task(startup_worker(), name="directory_startup_sync")
            task.add_done_callback(handle_task_exception)
            self._background_tasks.append(task)
            logger.info("Directory startup sync started in background")
        except RuntimeError:
            logger.error("Cannot start directory sync: no running event loop")

    # =========================================================================
    # Events and status
    # =========================================================================

    def handle_event(self, context: "AppContext", event: dict) -> Optional[dict]:
        """
        Handle events routed to this module.

        ``{"type": "sync"}`` schedules a pull of every collection.
        """
        event_type = event.get("type", "")

        if event_type == "sync":
            if self._engine is None:
                return {"status": "unavailable"}
            task = get_sync_manager().start_background_sync()
            return {"status": "sync_started" if task is not None else "not_started"}

        return {
            "success": True,
            "module": self.get_module_name(),
            "message": f"Event received: {event_type}",
        }

    def get_status(self) -> dict:
        services = [
            info for info in get_sync_manager().list_services()
            if info["module"] == MODULE_NAME
        ]
        return {
            "status": self._status["status"],
            "details": {
                "seeded": self._status["seeded"],
                "migrated": list(self._status["migrated"]),
                "last_error": self._status["last_error"],
                "services": services,
            },
        }

    # =========================================================================
    # Shutdown
    # =========================================================================

    async def async_shutdown(self) -> None:
        """Cancel background work, close the local session and any owned HTTP client."""
        for task in self._background_tasks:
            if not task.done():
                task.cancel()
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
        self._background_tasks.clear()

        if self._engine is not None:
            await self._engine.store.close()

        if self._http_manager is not None:
            await self._http_manager.stop()
            self._http_manager = None

    def on_shutdown(self) -> None:
        sync_manager = get_sync_manager()
        for kind in EntityKind:
            sync_manager.unregister(service_key(kind))
        logger.info("Directory module shut down")
