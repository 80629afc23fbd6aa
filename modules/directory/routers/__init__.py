"""
Directory Routers Package.
"""

from modules.directory.routers.sync import router as sync_router

__all__ = [
    "sync_router",
]
