"""
Status API - service health and sync monitoring endpoints.

Read-only views over the AppContext, the module registry and the
SyncManager, mounted under /api.
"""
from typing import Any, Dict, List, Optional, TYPE_CHECKING
import platform

from fastapi import APIRouter, Query

from core.sync_manager import get_sync_manager

if TYPE_CHECKING:
    from core.app_context import AppContext
    from core.registry import ModuleRegistry


# Set by init_status_api()
_context: Optional["AppContext"] = None
_registry: Optional["ModuleRegistry"] = None

router = APIRouter(prefix="/api", tags=["status"])


def init_status_api(context: "AppContext", registry: "ModuleRegistry") -> APIRouter:
    """Bind the status endpoints to the running context and registry."""
    global _context, _registry
    _context = context
    _registry = registry
    return router


@router.get("/status")
async def get_status() -> Dict[str, Any]:
    """Server state, environment and loaded modules."""
    server_running, server_port = _context.get_server_status() if _context else (False, 0)

    return {
        "status": "running" if server_running else "stopped",
        "port": server_port,
        "environment": _context.config.get("app.env", "development") if _context else "unknown",
        "python_version": platform.python_version(),
        "modules_loaded": _registry.get_module_names() if _registry else [],
    }


@router.get("/modules")
async def get_modules() -> Dict[str, Dict[str, Any]]:
    """Status reported by every loaded module."""
    return {"modules": _registry.get_statuses() if _registry else {}}


@router.get("/sync-services")
async def get_sync_services() -> Dict[str, Any]:
    """
    Registered sync services with their last results.

    ``failing`` lists the services whose last run did not complete.
    """
    services = get_sync_manager().list_services()
    failing = [service["key"] for service in services if service["status"] == "error"]
    return {"services": services, "failing": failing}


@router.get("/logs")
async def get_logs(limit: int = Query(100, ge=1, le=500)) -> Dict[str, List[str]]:
    """The most recent ``limit`` entries of the in-memory event log."""
    logs = _context.get_event_log() if _context else []
    return {"logs": logs[-limit:]}
