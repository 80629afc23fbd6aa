"""
Directory Module Configuration.

Manages environment variables specific to the Directory module.
Uses prefix DIRECTORY_ to avoid conflicts with other modules.
"""

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DirectorySettings(BaseSettings):
    """
    Directory module settings loaded from environment variables.

    All variables use the DIRECTORY_ prefix for module isolation.
    Sensitive values use SecretStr for security.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Firestore (remote document store)
    firestore_project_id: Annotated[
        str,
        Field(
            default="",
            description="Google Cloud project holding the Firestore database",
            validation_alias="DIRECTORY_FIRESTORE_PROJECT_ID",
        ),
    ] = ""

    firestore_database: Annotated[
        str,
        Field(
            default="(default)",
            description="Firestore database ID",
            validation_alias="DIRECTORY_FIRESTORE_DATABASE",
        ),
    ] = "(default)"

    firestore_api_base: Annotated[
        str,
        Field(
            default="https://firestore.googleapis.com",
            description="Firestore REST base URL (point at the emulator in development)",
            validation_alias="DIRECTORY_FIRESTORE_API_BASE",
        ),
    ] = "https://firestore.googleapis.com"

    # Firebase Storage (remote blob store)
    storage_bucket: Annotated[
        str,
        Field(
            default="",
            description="Firebase Storage bucket for employee photos",
            validation_alias="DIRECTORY_STORAGE_BUCKET",
        ),
    ] = ""

    storage_api_base: Annotated[
        str,
        Field(
            default="https://firebasestorage.googleapis.com",
            description="Firebase Storage REST base URL",
            validation_alias="DIRECTORY_STORAGE_API_BASE",
        ),
    ] = "https://firebasestorage.googleapis.com"

    auth_token: Annotated[
        Optional[SecretStr],
        Field(
            default=None,
            description="Bearer token sent to Firestore and Storage",
            validation_alias="DIRECTORY_AUTH_TOKEN",
        ),
    ] = None

    # Collections and paths
    employees_collection: Annotated[
        str,
        Field(default="employees", validation_alias="DIRECTORY_EMPLOYEES_COLLECTION"),
    ] = "employees"

    municipalities_collection: Annotated[
        str,
        Field(default="municipios", validation_alias="DIRECTORY_MUNICIPALITIES_COLLECTION"),
    ] = "municipios"

    regional_info_collection: Annotated[
        str,
        Field(default="regionalInfo", validation_alias="DIRECTORY_REGIONAL_INFO_COLLECTION"),
    ] = "regionalInfo"

    image_namespace: Annotated[
        str,
        Field(
            default="employeeImages",
            description="Remote folder holding employee photos",
            validation_alias="DIRECTORY_IMAGE_NAMESPACE",
        ),
    ] = "employeeImages"

    cache_dir: Annotated[
        Path,
        Field(
            default=Path("cache") / "employeeImages",
            description="Local disk cache for downloaded photos",
            validation_alias="DIRECTORY_CACHE_DIR",
        ),
    ] = Path("cache") / "employeeImages"

    # Sync behaviour
    max_download_bytes: Annotated[
        int,
        Field(
            default=8 * 1024 * 1024,
            description="Largest photo accepted on download",
            validation_alias="DIRECTORY_MAX_DOWNLOAD_BYTES",
        ),
    ] = 8 * 1024 * 1024

    sync_max_concurrency: Annotated[
        int,
        Field(
            default=8,
            ge=1,
            description="Per-record operations running at once in push-all/pull-all",
            validation_alias="DIRECTORY_SYNC_MAX_CONCURRENCY",
        ),
    ] = 8

    http_timeout_seconds: Annotated[
        float,
        Field(
            default=30.0,
            description="HTTP timeout for Firestore and Storage requests",
            validation_alias="DIRECTORY_HTTP_TIMEOUT_SECONDS",
        ),
    ] = 30.0

    pull_on_startup: Annotated[
        bool,
        Field(
            default=True,
            description="Pull every collection when the app starts",
            validation_alias="DIRECTORY_PULL_ON_STARTUP",
        ),
    ] = True

    migrate_on_startup: Annotated[
        bool,
        Field(
            default=False,
            description="Run the one-time push-all migration on first start",
            validation_alias="DIRECTORY_MIGRATE_ON_STARTUP",
        ),
    ] = False

    seed_on_first_install: Annotated[
        bool,
        Field(
            default=True,
            description="Seed the default roster when the local store is first created",
            validation_alias="DIRECTORY_SEED_ON_FIRST_INSTALL",
        ),
    ] = True

    # Development gate for the destructive reset
    environment: Annotated[
        str,
        Field(
            default="development",
            description="development | production",
            validation_alias="DIRECTORY_ENVIRONMENT",
        ),
    ] = "development"

    debug: Annotated[
        bool,
        Field(default=False, validation_alias="DIRECTORY_DEBUG"),
    ] = False

    preview_mode: Annotated[
        bool,
        Field(
            default=False,
            description="Explicit preview flag; allows the reset outside a terminal",
            validation_alias="DIRECTORY_PREVIEW_MODE",
        ),
    ] = False

    @property
    def remote_configured(self) -> bool:
        """True when both the document store and the blob store are addressable."""
        return bool(self.firestore_project_id and self.storage_bucket)

    def auth_token_value(self) -> Optional[str]:
        return self.auth_token.get_secret_value() if self.auth_token else None


@lru_cache
def get_directory_settings() -> DirectorySettings:
    """
    Get cached directory module settings.

    Uses LRU cache to ensure settings are loaded only once.

    Returns:
        DirectorySettings: Directory settings instance.
    """
    return DirectorySettings()
