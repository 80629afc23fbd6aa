"""
IAppModule - contract between the framework and a pluggable module.

Lifecycle, as driven by ModuleRegistry and the FastAPI lifespan:

    on_entry(context)     synchronous, at registration
    async_startup()       once the event loop runs (seeding, first sync)
    async_shutdown()      before the loop stops (cancel tasks, close clients)
    on_shutdown()         synchronous, when the module is unregistered
"""
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from fastapi import APIRouter

    from core.app_context import AppContext


class IAppModule(ABC):
    """
    Base class discovered by ModuleLoader in every ``modules/<name>`` package.

    Only the name, the entry hook and the event handler are mandatory; every
    other hook defaults to a no-op.
    """

    @abstractmethod
    def get_module_name(self) -> str:
        """Unique registry key, e.g. ``"directory"``."""

    @abstractmethod
    def on_entry(self, context: "AppContext") -> None:
        """
        Bind the module to the application context.

        Must not touch the event loop; async work belongs in async_startup().

        Args:
            context: Shared configuration, event log and HTTP client.
        """

    @abstractmethod
    def handle_event(self, context: "AppContext", event: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        React to an event routed to this module.

        Args:
            context: The application context.
            event: Payload with at least a ``"type"`` key.

        Returns:
            A response payload, or None when the event is not handled.
        """

    async def async_startup(self) -> None:
        pass

    async def async_shutdown(self) -> None:
        pass

    def get_api_router(self) -> Optional["APIRouter"]:
        """Router mounted under /api, or None for modules without endpoints."""
        return None

    def on_shutdown(self) -> None:
        pass

    def get_status(self) -> Dict[str, Any]:
        """
        Health snapshot for ``/api/modules`` and ``/health``.

        Returns:
            ``{"status": "active" | "warning" | "error" | "initializing",
            "details": {...}}``. A module reporting ``error`` marks the
            service as degraded.
        """
        return {"status": "active", "details": {}}
