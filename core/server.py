"""
FastAPI Application Factory.

Builds the bare application: CORS, security headers, a JSON handler for
unhandled errors, and the root/health routes. Module routers and the status
API are mounted by main.py.
"""

from typing import TYPE_CHECKING, Any, Dict, List
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.app_context import AppContext

if TYPE_CHECKING:
    from core.registry import ModuleRegistry

_logger = logging.getLogger(__name__)

DEV_ORIGINS = [
    "http://localhost:8000",
    "http://127.0.0.1:8000",
]

SECURITY_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}


def allowed_origins(context: AppContext) -> List[str]:
    """BASE_URL, plus localhost origins in debug mode. Never ``*``."""
    origins: List[str] = []
    base_url = context.config.get("server.base_url", "")
    if base_url:
        origins.append(base_url.rstrip("/"))
    if context.config.get("app.debug", False):
        origins.extend(DEV_ORIGINS)
    return origins


def create_base_app(
    context: AppContext,
    registry: "ModuleRegistry | None" = None,
    title: str = "Directory Sync API",
    description: str = "Employee directory synchronization service",
    version: str = "1.0.0",
) -> FastAPI:
    """
    Create the base FastAPI application.

    Args:
        context: Application context, exposed as ``app.state.context``.
        registry: Module registry, exposed as ``app.state.registry``.
        title: API title for OpenAPI documentation.
        description: API description for OpenAPI documentation.
        version: API version string.
    """
    app = FastAPI(title=title, description=description, version=version)

    app.state.context = context
    app.state.registry = registry

    origins = allowed_origins(context)
    if not origins:
        _logger.warning(
            "BASE_URL not configured and not in debug mode; "
            "cross-origin requests will be rejected"
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers.update(SECURITY_HEADERS)
        if request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        _logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
        context.log_event(f"{request.method} {request.url.path} failed: {type(exc).__name__}", "ERROR")
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    _register_core_routes(app)

    return app


def _register_core_routes(app: FastAPI) -> None:

    @app.get("/")
    async def root() -> Dict[str, str]:
        return {"service": app.title, "docs": "/docs"}

    @app.get("/health")
    async def health_check() -> Dict[str, Any]:
        """``ok`` unless a loaded module reports ``error``."""
        registry = app.state.registry
        statuses = registry.get_statuses() if registry is not None else {}
        failing = sorted(name for name, info in statuses.items() if info.get("status") == "error")
        return {
            "status": "degraded" if failing else "ok",
            "service": app.title,
            "failing_modules": failing,
        }


def set_registry(app: FastAPI, registry: "ModuleRegistry") -> None:
    """Expose the module registry as ``app.state.registry``."""
    app.state.registry = registry
