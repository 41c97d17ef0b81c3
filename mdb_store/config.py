"""
Configuration management for MDB_STORE.

StoreConfig collects connection settings from explicit arguments or
environment variables. It is optional: ConnectionManager can always be
constructed directly from a host/port pair, a cloud host or a URI.
"""

import os
from typing import Any

from .constants import (
    DEFAULT_APP_NAME,
    DEFAULT_HOST,
    DEFAULT_MAX_POOL_SIZE,
    DEFAULT_MIN_POOL_SIZE,
    DEFAULT_PORT,
    DEFAULT_SERVER_SELECTION_TIMEOUT_MS,
)
from .exceptions import ConfigurationError


class StoreConfig:
    """
    MongoDB store configuration.

    Example:
        # Using environment variables
        config = StoreConfig()
        manager = ConnectionManager.from_config(config)

        # Or using direct parameters
        config = StoreConfig(host="localhost", port=27017, db_name="my_db")
    """

    def __init__(
        self,
        mongo_uri: str | None = None,
        host: str | None = None,
        port: int | None = None,
        db_name: str | None = None,
        username: str | None = None,
        password: str | None = None,
        max_pool_size: int | None = None,
        min_pool_size: int | None = None,
        server_selection_timeout_ms: int | None = None,
    ):
        """
        Initialize configuration.

        Args:
            mongo_uri: Full connection URI (defaults to MONGO_URI env var).
                       Takes precedence over host/port/credentials.
            host: MongoDB host (defaults to MONGO_HOST or localhost)
            port: MongoDB port (defaults to MONGO_PORT or 27017)
            db_name: Database name (defaults to MONGO_DB_NAME env var)
            username: Cloud username (defaults to MONGO_USERNAME env var)
            password: Cloud password (defaults to MONGO_PASSWORD env var)
            max_pool_size: Maximum connection pool size (defaults to 50 or MONGO_MAX_POOL_SIZE)
            min_pool_size: Minimum connection pool size (defaults to 0 or MONGO_MIN_POOL_SIZE)
            server_selection_timeout_ms: Server selection timeout in ms (defaults to 5000)
        """
        self.mongo_uri = mongo_uri or os.getenv("MONGO_URI", "")
        self.host = host or os.getenv("MONGO_HOST", DEFAULT_HOST)
        self.port = port or int(os.getenv("MONGO_PORT", str(DEFAULT_PORT)))
        self.db_name = db_name or os.getenv("MONGO_DB_NAME", "")
        self.username = username or os.getenv("MONGO_USERNAME", "")
        self.password = password or os.getenv("MONGO_PASSWORD", "")
        self.max_pool_size = max_pool_size or int(
            os.getenv("MONGO_MAX_POOL_SIZE", str(DEFAULT_MAX_POOL_SIZE))
        )
        if min_pool_size is None:
            min_pool_size = int(os.getenv("MONGO_MIN_POOL_SIZE", str(DEFAULT_MIN_POOL_SIZE)))
        self.min_pool_size = min_pool_size
        self.server_selection_timeout_ms = server_selection_timeout_ms or int(
            os.getenv(
                "MONGO_SERVER_SELECTION_TIMEOUT_MS",
                str(DEFAULT_SERVER_SELECTION_TIMEOUT_MS),
            )
        )

    @property
    def is_cloud(self) -> bool:
        """Whether credentials select the cloud-hosted (mongodb+srv) variant."""
        return bool(self.username and self.password) and not self.mongo_uri

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ConfigurationError: If required configuration is missing or invalid
        """
        if not self.db_name:
            raise ConfigurationError(
                "db_name is required (set MONGO_DB_NAME environment variable or pass directly)",
                config_key="db_name",
            )

        if not self.mongo_uri and not self.host:
            raise ConfigurationError(
                "Either mongo_uri or host is required",
                config_key="host",
            )

        if bool(self.username) != bool(self.password):
            raise ConfigurationError(
                "username and password must be provided together",
                config_key="username" if self.username else "password",
            )

        if not 0 < self.port < 65536:
            raise ConfigurationError(
                f"port must be between 1 and 65535, got {self.port}",
                config_key="port",
                config_value=self.port,
            )

        if self.max_pool_size < 1:
            raise ConfigurationError(
                f"max_pool_size must be >= 1, got {self.max_pool_size}",
                config_key="max_pool_size",
                config_value=self.max_pool_size,
            )

        if self.min_pool_size < 0:
            raise ConfigurationError(
                f"min_pool_size must be >= 0, got {self.min_pool_size}",
                config_key="min_pool_size",
                config_value=self.min_pool_size,
            )

        if self.min_pool_size > self.max_pool_size:
            raise ConfigurationError(
                f"min_pool_size ({self.min_pool_size}) cannot be greater than "
                f"max_pool_size ({self.max_pool_size})",
                config_key="min_pool_size",
                config_value=self.min_pool_size,
            )

        if self.server_selection_timeout_ms < 1:
            raise ConfigurationError(
                f"server_selection_timeout_ms must be >= 1, got "
                f"{self.server_selection_timeout_ms}",
                config_key="server_selection_timeout_ms",
                config_value=self.server_selection_timeout_ms,
            )

    def driver_options(self) -> dict[str, Any]:
        """
        Build the keyword options handed to AsyncIOMotorClient.

        Returns:
            Dictionary of driver options
        """
        return {
            "appname": DEFAULT_APP_NAME,
            "maxPoolSize": self.max_pool_size,
            "minPoolSize": self.min_pool_size,
            "serverSelectionTimeoutMS": self.server_selection_timeout_ms,
        }
