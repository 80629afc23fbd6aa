"""
HTTP Client Lifecycle Management.

One httpx.AsyncClient per owning scope: the FastAPI lifespan owns the shared
client, CLI scripts and modules running outside the lifespan own their own.
Every client is built by ``build_client`` so they share limits and headers.

Usage:
    # FastAPI lifespan
    async with create_http_client_context(app) as http_manager:
        context.set_http_client(http_manager.client)
        yield

    # CLI script
    async with create_standalone_http_client() as client:
        engine = create_sync_engine(client, settings, session_factory)
"""

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncGenerator, Dict, Optional

import httpx

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger(__name__)


USER_AGENT = "directory-sync/1.0"


def build_client(
    timeout: float = 30.0,
    max_connections: int = 100,
    max_keepalive_connections: int = 20,
    keepalive_expiry: float = 30.0,
    headers: Optional[Dict[str, str]] = None,
) -> httpx.AsyncClient:
    """Create an AsyncClient with the application's defaults."""
    limits = httpx.Limits(
        max_connections=max_connections,
        max_keepalive_connections=max_keepalive_connections,
        keepalive_expiry=keepalive_expiry,
    )
    return httpx.AsyncClient(
        timeout=timeout,
        limits=limits,
        headers={"User-Agent": USER_AGENT, **(headers or {})},
        follow_redirects=True,
    )


class HttpClientManager:
    """
    Start/stop wrapper around one AsyncClient.

    Args:
        timeout: Default request timeout in seconds.
        max_connections: Maximum number of concurrent connections.
    """

    def __init__(self, timeout: float = 30.0, max_connections: int = 100) -> None:
        self._timeout = timeout
        self._max_connections = max_connections
        self._client: Optional[httpx.AsyncClient] = None

    async def start(self) -> httpx.AsyncClient:
        """
        Create the client.

        Raises:
            RuntimeError: If the client is already started.
        """
        if self._client is not None:
            raise RuntimeError("HTTP client already started")

        self._client = build_client(timeout=self._timeout, max_connections=self._max_connections)
        logger.info(
            f"HTTP client started (timeout={self._timeout}s, "
            f"max_connections={self._max_connections})"
        )
        return self._client

    async def stop(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("HTTP client closed")

    @property
    def client(self) -> httpx.AsyncClient:
        """
        The managed client.

        Raises:
            RuntimeError: If the client is not started.
        """
        if self._client is None:
            raise RuntimeError(
                "HTTP client not started. Ensure lifespan context is properly configured."
            )
        return self._client

    @property
    def is_running(self) -> bool:
        return self._client is not None and not self._client.is_closed


@asynccontextmanager
async def create_http_client_context(
    app: "FastAPI",
    timeout: float = 30.0,
    max_connections: int = 100,
) -> AsyncGenerator[HttpClientManager, None]:
    """
    Lifespan-scoped client, also published as ``app.state.http_client``.

    Yields:
        The started HttpClientManager. The client is closed on exit.
    """
    manager = HttpClientManager(timeout=timeout, max_connections=max_connections)

    try:
        client = await manager.start()
        app.state.http_client = client
        yield manager
    finally:
        await manager.stop()
        if hasattr(app.state, "http_client"):
            delattr(app.state, "http_client")


@asynccontextmanager
async def create_standalone_http_client(
    timeout: float = 30.0,
    max_connections: int = 50,
) -> AsyncGenerator[httpx.AsyncClient, None]:
    """
    Client bound to the caller's scope, for CLI runs and background jobs.

    Yields:
        httpx.AsyncClient, closed when the block exits.
    """
    client = build_client(timeout=timeout, max_connections=max_connections)
    logger.debug(f"Standalone HTTP client created (timeout={timeout}s)")

    try:
        yield client
    finally:
        await client.aclose()
        logger.debug("Standalone HTTP client closed")
