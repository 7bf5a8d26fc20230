"""Core configuration - centralized config for the skylink package.

All environment-based configuration should flow through this module.

Usage:
    from skylink.core.config import get_config
    config = get_config()

    repository_url = config.repository_url
    timeout = config.http_timeout
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CoreSettings(BaseSettings):
    """Core configuration settings for Skylink.

    Settings can be configured via environment variables with the
    SKYLINK_ prefix, or a ``.env`` file in the working directory.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ==========================================================================
    # REPOSITORY (DID SIDE) SETTINGS
    # ==========================================================================

    repository_url: str = Field(
        default="https://bsky.social",
        description="Base URL of the repository host (XRPC service)",
        validation_alias="SKYLINK_REPOSITORY_URL",
    )
    plc_directory_url: str = Field(
        default="https://plc.directory",
        description="did:plc directory used to find a DID's repository host",
        validation_alias="SKYLINK_PLC_DIRECTORY_URL",
    )
    resolve_repository_host: bool = Field(
        default=True,
        description="Read records from the DID's own repository host instead of repository_url",
        validation_alias="SKYLINK_RESOLVE_REPOSITORY_HOST",
    )
    handle: str | None = Field(
        default=None,
        description="Handle or DID used to open a repository session",
        validation_alias="SKYLINK_HANDLE",
    )
    app_password: str | None = Field(
        default=None,
        description="App password for the repository session",
        validation_alias="SKYLINK_APP_PASSWORD",
    )

    # ==========================================================================
    # MESSAGING NETWORK SETTINGS
    # ==========================================================================

    messaging_url: str = Field(
        default="https://messaging.example.net",
        description="Base URL of the messaging network identity API",
        validation_alias="SKYLINK_MESSAGING_URL",
    )
    index_url: str | None = Field(
        default=None,
        description="Base URL of the optional inbox -> DID index service",
        validation_alias="SKYLINK_INDEX_URL",
    )

    # ==========================================================================
    # NETWORK SETTINGS
    # ==========================================================================

    http_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Total timeout in seconds for every external fetch",
        validation_alias="SKYLINK_HTTP_TIMEOUT",
    )

    # ==========================================================================
    # KEY STORAGE SETTINGS
    # ==========================================================================

    secret_store_path: str = Field(
        default=str(Path.home() / ".skylink" / "secrets.json"),
        description="Path of the JSON file holding the installation key",
        validation_alias="SKYLINK_SECRET_STORE",
    )

    # ==========================================================================
    # LOGGING SETTINGS
    # ==========================================================================

    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
        validation_alias="SKYLINK_LOG_LEVEL",
    )
    log_format: str = Field(
        default="",
        description="Log format: 'json', 'text', or '' (auto-detect)",
        validation_alias="SKYLINK_LOG_FORMAT",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (optional)",
        validation_alias="SKYLINK_LOG_FILE",
    )

    # ==========================================================================
    # COMPUTED PROPERTIES
    # ==========================================================================

    @property
    def index_enabled(self) -> bool:
        """Whether an inbox -> DID index service is configured."""
        return bool(self.index_url)

    @property
    def has_repository_login(self) -> bool:
        return bool(self.handle and self.app_password)


# ==========================================================================
# GLOBAL CONFIG INSTANCE (lazy loaded)
# ==========================================================================

_config: CoreSettings | None = None


def get_config() -> CoreSettings:
    """Get the global configuration instance.

    Returns:
        The singleton CoreSettings instance.
    """
    global _config
    if _config is None:
        _config = CoreSettings()
    return _config


def clear_config_cache() -> None:
    """Clear the config cache. Useful for testing."""
    global _config
    _config = None
