"""
AppContext - shared runtime state for the framework and its modules.

ConfigLoader reads the process-level settings (server, logging, local
database) from the environment, after loading ``.env`` when one exists.
Module-specific settings live in each module's own pydantic-settings class.
"""
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
import os
import logging

from dotenv import load_dotenv

if TYPE_CHECKING:
    import httpx


DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./directory.db"
PROJECT_ROOT = Path(__file__).resolve().parent.parent
TRUTHY = ("1", "true", "yes", "on")


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in TRUTHY


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    try:
        return int(raw) if raw else default
    except ValueError:
        logging.getLogger(__name__).warning(f"{name}={raw!r} is not an integer, using {default}")
        return default


@dataclass
class ConfigLoader:
    """
    Process settings, addressed with dotted keys ("server.port", "database.url").

    Sections:
        server: host, port, base_url (the public origin allowed by CORS)
        app: debug, log_level, env
        database: url, echo
    """

    _config: Dict[str, Any] = field(default_factory=dict)

    def load(self, env_path: Optional[str] = None) -> None:
        """Load ``env_path`` (or ``<project root>/.env``) and read the environment."""
        env_file = Path(env_path) if env_path else PROJECT_ROOT / ".env"
        if env_file.exists():
            load_dotenv(env_file)

        self._config = {
            "server": {
                "host": os.getenv("SERVER_HOST", "127.0.0.1"),
                "port": _env_int("SERVER_PORT", 8000),
                "base_url": os.getenv("BASE_URL", ""),
            },
            "app": {
                "debug": _env_flag("APP_DEBUG", True),
                "log_level": os.getenv("APP_LOG_LEVEL", "INFO").upper(),
                "env": os.getenv("APP_ENV", "development").strip().lower(),
            },
            "database": {
                "url": os.getenv("DATABASE_URL", "").strip() or DEFAULT_DATABASE_URL,
                "echo": _env_flag("DATABASE_ECHO", False),
            },
        }

    def get(self, key: str, default: Any = None) -> Any:
        value: Any = self._config
        for part in key.split("."):
            if not isinstance(value, dict) or part not in value:
                return default
            value = value[part]
        return value

    def is_production(self) -> bool:
        return self.get("app.env") == "production"

    @property
    def database_url(self) -> str:
        return self.get("database.url", DEFAULT_DATABASE_URL)


class AppContext:
    """
    Handed to every module in ``IAppModule.on_entry``.

    Holds the configuration, a bounded in-memory event log shown by
    ``/api/logs``, the server run state, and the HTTP client shared by
    remote-store clients while the application lifespan is active.
    """

    MAX_EVENTS = 500

    def __init__(self, env_path: Optional[str] = None) -> None:
        self._logger = logging.getLogger(__name__)
        self._config_loader = ConfigLoader()
        self._config_loader.load(env_path)

        self._event_log: List[str] = []
        self._max_log_entries: int = self.MAX_EVENTS

        self._server_running: bool = False
        self._server_port: int = self._config_loader.get("server.port", 8000)

        self._http_client: Optional["httpx.AsyncClient"] = None

    @property
    def config(self) -> ConfigLoader:
        return self._config_loader

    def log_event(self, message: str, level: str = "INFO") -> None:
        """
        Record ``message`` in the event log and forward it to the logger.

        ``ERROR`` and ``WARNING`` events are logged at the matching level;
        any other tag (``SUCCESS``, ``LOADER``...) is logged at INFO.
        """
        stamped = f"[{datetime.now().strftime('%H:%M:%S')}] [{level}] {message}"
        self._event_log.append(stamped)
        overflow = len(self._event_log) - self._max_log_entries
        if overflow > 0:
            del self._event_log[:overflow]

        log_level = logging.getLevelName(level.upper())
        self._logger.log(log_level if isinstance(log_level, int) else logging.INFO, message)

    def get_event_log(self) -> List[str]:
        """Snapshot of the event log, oldest first."""
        return list(self._event_log)

    def set_server_status(self, running: bool, port: int = 8000) -> None:
        self._server_running = running
        self._server_port = port

    def get_server_status(self) -> Tuple[bool, int]:
        return self._server_running, self._server_port

    def set_http_client(self, client: Optional["httpx.AsyncClient"]) -> None:
        """Publish (or withdraw, with None) the shared HTTP client."""
        self._http_client = client

    @property
    def http_client(self) -> Optional["httpx.AsyncClient"]:
        """Shared HTTP client, or None outside the application lifespan."""
        return self._http_client
