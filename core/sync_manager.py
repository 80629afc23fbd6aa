"""
Sync Manager Infrastructure.

Provides the result types shared by every sync operation and a centralized
SyncManager that coordinates the collection sync services registered by
modules.

This is part of the core framework - modules register their services with
SyncManager in ``on_entry`` and the framework runs startup syncs once the
event loop is up.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol

logger = logging.getLogger(__name__)


# =============================================================================
# Data Classes
# =============================================================================


class SyncState(str, Enum):
    """Lifecycle of one sync operation."""

    IDLE = "idle"
    IN_FLIGHT = "in_flight"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class SyncResult:
    """Result of a sync operation."""

    operation: str
    collection: str
    state: SyncState = SyncState.IDLE
    count: int = 0
    failed: int = 0
    error: Optional[str] = None
    error_kind: Optional[str] = None
    duration_ms: float = 0.0
    error_messages: List[str] = field(default_factory=list)
    _started: float = field(default=0.0, repr=False, compare=False)

    @property
    def succeeded(self) -> bool:
        return self.state == SyncState.COMPLETED

    def begin(self) -> "SyncResult":
        """Mark the operation in flight and start the clock."""
        self.state = SyncState.IN_FLIGHT
        self._started = time.monotonic()
        return self

    def complete(self, count: int) -> "SyncResult":
        self.count = count
        self.state = SyncState.COMPLETED
        self._stop_clock()
        return self

    def fail(self, error: str | BaseException) -> "SyncResult":
        """
        Mark the operation failed.

        The first recorded error is kept as ``error``; later ones only extend
        ``error_messages``.
        """
        message = error if isinstance(error, str) else f"{type(error).__name__}: {error}"
        if self.error is None:
            self.error = message
            if isinstance(error, BaseException):
                self.error_kind = type(error).__name__
        if message not in self.error_messages:
            self.error_messages.append(message)
        self.state = SyncState.FAILED
        self._stop_clock()
        return self

    def _stop_clock(self) -> None:
        if self._started:
            self.duration_ms = (time.monotonic() - self._started) * 1000

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation": self.operation,
            "collection": self.collection,
            "state": self.state.value,
            "succeeded": self.succeeded,
            "count": self.count,
            "failed": self.failed,
            "error": self.error,
            "error_kind": self.error_kind,
            "duration_ms": round(self.duration_ms, 1),
            "error_messages": self.error_messages[:10],  # Limit errors
        }


class SyncService(Protocol):
    """A service the manager can run: one full pull of one collection."""

    async def sync_all_data(self) -> SyncResult: ...


@dataclass
class SyncServiceInfo:
    """Metadata about a registered sync service."""

    key: str  # Unique identifier (e.g., "directory_employees")
    name: str  # Human-readable name
    service: SyncService
    module_name: str
    auto_sync_on_startup: bool = True
    last_sync_time: Optional[datetime] = None
    last_sync_result: Optional[SyncResult] = None
    status: str = "idle"  # idle, syncing, error


# =============================================================================
# Sync Manager (Singleton)
# =============================================================================


class SyncManager:
    """
    Centralized manager for all collection sync services.

    Features:
    - Registry of all sync services across modules
    - Startup sync coordination (as an asyncio task, never a thread)
    - Status monitoring

    Usage:
        # In module's on_entry:
        sync_manager = get_sync_manager()
        sync_manager.register(
            key="directory_employees",
            name="Employees",
            service=CollectionSyncService(engine, EntityKind.EMPLOYEE),
            module_name="directory",
        )
    """

    def __init__(self) -> None:
        self._services: Dict[str, SyncServiceInfo] = {}
        self._background_task: Optional[asyncio.Task[Dict[str, SyncResult]]] = None

    def register(
        self,
        key: str,
        name: str,
        service: SyncService,
        module_name: str,
        auto_sync_on_startup: bool = True,
    ) -> None:
        """
        Register a sync service.

        Args:
            key: Unique identifier (e.g., "directory_employees").
            name: Human-readable name (e.g., "Employees").
            service: The sync service instance.
            module_name: Owning module name.
            auto_sync_on_startup: Whether to sync on app startup.
        """
        self._services[key] = SyncServiceInfo(
            key=key,
            name=name,
            service=service,
            module_name=module_name,
            auto_sync_on_startup=auto_sync_on_startup,
        )
        logger.info(f"Registered sync service: {key} ({name})")

    def unregister(self, key: str) -> None:
        """Unregister a sync service."""
        if self._services.pop(key, None) is not None:
            logger.info(f"Unregistered sync service: {key}")

    def get_service(self, key: str) -> Optional[SyncService]:
        """Get a sync service by key."""
        info = self._services.get(key)
        return info.service if info else None

    def get_service_info(self, key: str) -> Optional[SyncServiceInfo]:
        """Get service info by key."""
        return self._services.get(key)

    def list_services(self) -> List[Dict[str, Any]]:
        """List all registered services with their status."""
        return [
            {
                "key": info.key,
                "name": info.name,
                "module": info.module_name,
                "status": info.status,
                "last_sync": info.last_sync_time.isoformat() if info.last_sync_time else None,
                "last_result": info.last_sync_result.to_dict() if info.last_sync_result else None,
            }
            for info in self._services.values()
        ]

    # =========================================================================
    # Sync Operations
    # =========================================================================

    async def sync_service(self, key: str) -> Optional[SyncResult]:
        """
        Trigger sync for a specific service.

        Args:
            key: Service key.

        Returns:
            SyncResult or None if service not found.
        """
        info = self._services.get(key)
        if not info:
            logger.warning(f"Sync service not found: {key}")
            return None

        info.status = "syncing"

        try:
            result = await info.service.sync_all_data()
        except Exception as e:
            logger.exception(f"Sync failed for {key}: {e}")
            result = SyncResult(operation="pull_all", collection=key).fail(e)

        info.last_sync_time = datetime.now()
        info.last_sync_result = result
        info.status = "idle" if result.succeeded else "error"
        return result

    async def sync_all(self, auto_only: bool = True) -> Dict[str, SyncResult]:
        """
        Sync all registered services, one after another.

        Args:
            auto_only: If True, only sync services with auto_sync_on_startup=True.

        Returns:
            Dict mapping service key to SyncResult.
        """
        results = {}

        for key, info in list(self._services.items()):
            if auto_only and not info.auto_sync_on_startup:
                continue

            logger.info(f"Running sync for: {key}")
            result = await self.sync_service(key)
            if result:
                results[key] = result

        return results

    def start_background_sync(self) -> Optional[asyncio.Task[Dict[str, SyncResult]]]:
        """
        Schedule sync_all() on the running event loop.

        Runs as a task so app startup is not blocked. Calling it again while a
        run is still pending returns the pending task.
        """
        if self._background_task is not None and not self._background_task.done():
            return self._background_task

        async def sync_worker() -> Dict[str, SyncResult]:
            logger.info("Starting background sync for all services...")
            results = await self.sync_all(auto_only=True)
            for key, result in results.items():
                logger.info(
                    f"[{key}] Sync {result.state.value}: "
                    f"{result.count} processed, {result.failed} failed"
                )
            return results

        def handle_task_exception(task: asyncio.Task[Any]) -> None:
            if task.cancelled():
                return
            exc = task.exception()
            if exc is not None:
                logger.error(f"Background sync failed: {exc}", exc_info=exc)

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.error("Cannot start background sync: no running event loop")
            return None

        self._background_task = loop.create_task(sync_worker(), name="background_sync")
        self._background_task.add_done_callback(handle_task_exception)
        logger.info("Background sync task started")
        return self._background_task

    async def shutdown(self) -> None:
        """Cancel a pending background sync."""
        task = self._background_task
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._background_task = None


# =============================================================================
# Singleton Access
# =============================================================================


_sync_manager: Optional[SyncManager] = None


def get_sync_manager() -> SyncManager:
    """Get the singleton SyncManager instance."""
    global _sync_manager
    if _sync_manager is None:
        _sync_manager = SyncManager()
    return _sync_manager


def reset_sync_manager() -> None:
    """Reset the singleton (for testing)."""
    global _sync_manager
    _sync_manager = None
