"""Core module - Application kernel components."""
from core.app_context import AppContext, ConfigLoader
from core.interface import IAppModule
from core.logging_config import setup_logging
from core.registry import ModuleRegistry, ModuleLoader
from core.sync_manager import SyncManager, SyncResult, SyncState, get_sync_manager
from core import database

__all__ = [
    "AppContext", "ConfigLoader", "IAppModule",
    "ModuleRegistry", "ModuleLoader",
    "SyncManager", "SyncResult", "SyncState", "get_sync_manager",
    "setup_logging", "database",
]
