"""
Directory Sync - Entry Point.

Headless ASGI application for uvicorn execution.

Usage:
    uvicorn main:app --host 0.0.0.0 --port 8000 --reload

Or run directly:
    python main.py
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

import uvicorn
from fastapi import FastAPI

from api.status_api import init_status_api
from core.app_context import AppContext
from core.database import close_db_connections, init_database
from core.http_client import create_http_client_context
from core.logging_config import setup_logging
from core.registry import ModuleLoader, ModuleRegistry
from core.server import create_base_app, set_registry
from core.sync_manager import get_sync_manager

MODULES_DIR = Path(__file__).parent / "modules"
API_PREFIX = "/api"

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup: shared HTTP client -> database schema -> module async startup.
    Shutdown runs the same steps in reverse.
    """
    context: AppContext = app.state.context
    registry: ModuleRegistry = app.state.registry
    port = context.config.get("server.port", 8000)

    logger.info("Starting Directory Sync...")

    async with create_http_client_context(app, timeout=30.0, max_connections=100) as http_manager:
        context.set_http_client(http_manager.client)

        try:
            await init_database()
        except Exception as e:
            logger.error(f"Database initialization failed: {e}")
            raise
        logger.info("Database initialized")

        failed = await registry.async_startup_all()
        for name in failed:
            context.log_event(f"Module '{name}' failed to start", "ERROR")

        context.set_server_status(True, port)
        context.log_event("Application started successfully", "SUCCESS")

        yield

        logger.info("Shutting down Directory Sync...")
        await get_sync_manager().shutdown()
        await registry.async_shutdown_all()
        registry.shutdown_all()
        context.set_http_client(None)
        context.set_server_status(False, port)

    await close_db_connections()
    logger.info("Cleanup complete")


def create_app() -> FastAPI:
    """
    Build the application: context, logging, modules and routers.

    Module routers are mounted under /api.
    """
    context = AppContext()
    setup_logging(context.config.get("app.log_level", "INFO"))

    registry = ModuleRegistry()
    registry.set_context(context)
    count = ModuleLoader(registry).load_from_directory(str(MODULES_DIR))
    context.log_event(f"Loaded {count} module(s) from {MODULES_DIR.name}/", "LOADER")

    app = create_base_app(context, registry)
    set_registry(app, registry)
    app.include_router(init_status_api(context, registry))

    for module in registry.get_all_modules():
        module_router = module.get_api_router()
        if module_router is None:
            continue
        app.include_router(module_router, prefix=API_PREFIX)
        context.log_event(f"Mounted {module.get_module_name()} API at {API_PREFIX}", "LOADER")

    app.router.lifespan_context = lifespan
    return app


# Export for uvicorn
app = create_app()


def main() -> None:
    """Run the application directly with uvicorn."""
    config = app.state.context.config
    debug = config.get("app.debug", False)

    uvicorn_config = {
        "host": config.get("server.host", "127.0.0.1"),
        "port": config.get("server.port", 8000),
        "reload": debug,
        "log_level": "warning",
        "access_log": False,
    }

    # Photo cache and the SQLite file change at runtime
    if debug:
        uvicorn_config["reload_excludes"] = [
            "logs/*",
            "cache/*",
            "**/__pycache__/*",
            ".venv/*",
            "*.log",
            "*.db",
            "*.db-journal",
        ]

    uvicorn.run("main:app", **uvicorn_config)


if __name__ == "__main__":
    main()
