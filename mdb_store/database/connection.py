"""
Shared MongoDB connection handle.

A ConnectionManager owns exactly one connection attempt per database target.
Establishment is scheduled as soon as the manager is created inside a running
event loop (or on the first get_connection() call otherwise) and never blocks
the caller. The resulting task is the shared connection handle: it settles
once, to the database or to the driver's error, and every collection awaits
that same handle before touching the store.

This module is part of MDB_STORE.

Usage:
    from mdb_store.database import ConnectionManager

    manager = ConnectionManager("localhost", 27017, "my_database")
    db = await manager.get_connection()

    cloud = ConnectionManager.for_cloud("user", "p@ss", "cluster0.example.net", "my_database")
"""

import asyncio
import logging
import re
import time
from collections.abc import Mapping
from enum import Enum
from typing import Any
from urllib.parse import quote_plus

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from ..config import StoreConfig
from ..constants import CLOUD_URI_QUERY, DEFAULT_PORT, MONGO_SCHEME, MONGO_SRV_SCHEME
from ..observability import get_logger as get_contextual_logger
from ..observability import record_operation

logger = logging.getLogger(__name__)
contextual_logger = get_contextual_logger(__name__)

_CREDENTIALS_PATTERN = re.compile(r"(?<=://)([^:/@]+):([^@/]+)@")


def build_uri(host: str, port: int, database: str) -> str:
    """Build a standard ``mongodb://host:port/database`` URI."""
    return f"{MONGO_SCHEME}://{host}:{port}/{database}"


def build_cloud_uri(username: str, password: str, host: str, database: str) -> str:
    """
    Build a cloud-hosted ``mongodb+srv`` URI.

    Username and password are percent-encoded so reserved characters
    (``@``, ``:``, ``/``, ``%``) survive URI parsing.
    """
    return (
        f"{MONGO_SRV_SCHEME}://{quote_plus(username)}:{quote_plus(password)}"
        f"@{host}/{database}?{CLOUD_URI_QUERY}"
    )


def redact_uri(uri: str) -> str:
    """Mask the password component of a connection URI for logging."""
    return _CREDENTIALS_PATTERN.sub(r"\1:***@", uri)


class ConnectionState(str, Enum):
    """Lifecycle of the shared connection handle."""

    IDLE = "idle"
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


class ConnectionManager:
    """
    Owns the single shared connection handle for one database target.

    The handle is an ``asyncio.Task`` resolving to the AsyncIOMotorDatabase.
    Its outcome is logged once. A failed handle stays failed: the driver's
    exception is re-raised, unchanged, to everything awaiting it.
    """

    def __init__(
        self,
        host: str,
        port: int = DEFAULT_PORT,
        database: str = "",
        options: Mapping[str, Any] | None = None,
    ) -> None:
        """
        Initialize the manager for a standard ``host:port`` target.

        Args:
            host: MongoDB host
            port: MongoDB port
            database: Database name
            options: Driver options passed unchanged to AsyncIOMotorClient
        """
        self._configure(build_uri(host, port, database), database, options)

    @classmethod
    def for_cloud(
        cls,
        username: str,
        password: str,
        host: str,
        database: str,
        options: Mapping[str, Any] | None = None,
    ) -> "ConnectionManager":
        """
        Create a manager for a cloud-hosted (``mongodb+srv``) target.

        Args:
            username: Database user (percent-encoded into the URI)
            password: Database password (percent-encoded into the URI)
            host: Cluster host name
            database: Database name
            options: Driver options passed unchanged to AsyncIOMotorClient
        """
        manager = cls.__new__(cls)
        manager._configure(build_cloud_uri(username, password, host, database), database, options)
        return manager

    @classmethod
    def from_uri(
        cls, uri: str, database: str, options: Mapping[str, Any] | None = None
    ) -> "ConnectionManager":
        """Create a manager for an explicit connection URI."""
        manager = cls.__new__(cls)
        manager._configure(uri, database, options)
        return manager

    @classmethod
    def from_config(cls, config: StoreConfig) -> "ConnectionManager":
        """
        Create a manager from a validated StoreConfig.

        ``mongo_uri`` wins over credentials, credentials select the cloud
        variant, otherwise ``host``/``port`` are used.
        """
        config.validate()
        options = config.driver_options()
        if config.mongo_uri:
            return cls.from_uri(config.mongo_uri, config.db_name, options)
        if config.is_cloud:
            return cls.for_cloud(
                config.username, config.password, config.host, config.db_name, options
            )
        return cls(config.host, config.port, config.db_name, options)

    def _configure(self, uri: str, database: str, options: Mapping[str, Any] | None) -> None:
        self._uri = uri
        self._database_name = database
        self._options: dict[str, Any] = dict(options or {})
        self._client: AsyncIOMotorClient | None = None
        self._connection: asyncio.Task | None = None
        self._started_at: float | None = None

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(
                f"No running event loop; connection to {self.redacted_uri} "
                f"starts on first get_connection()"
            )
            return
        self._start()

    def _start(self) -> None:
        loop = asyncio.get_running_loop()
        self._started_at = time.time()
        contextual_logger.info(
            "Connecting to MongoDB",
            extra={"mongo_uri": self.redacted_uri, "db_name": self._database_name},
        )
        self._connection = loop.create_task(self._connect())
        self._connection.add_done_callback(self._on_settled)

    async def _connect(self) -> AsyncIOMotorDatabase:
        self._client = AsyncIOMotorClient(self._uri, **self._options)
        await self._client.admin.command("ping")
        return self._client[self._database_name]

    def _on_settled(self, task: asyncio.Task) -> None:
        duration_ms = (time.time() - (self._started_at or time.time())) * 1000

        if task.cancelled():
            record_operation("connection.initialize", duration_ms, success=False)
            contextual_logger.warning(
                "MongoDB connection attempt cancelled",
                extra={"db_name": self._database_name},
            )
            return

        error = task.exception()
        if error is None:
            record_operation("connection.initialize", duration_ms, success=True)
            contextual_logger.info(
                "Connected to MongoDB",
                extra={
                    "db_name": self._database_name,
                    "duration_ms": round(duration_ms, 2),
                },
            )
            return

        record_operation("connection.initialize", duration_ms, success=False)
        contextual_logger.critical(
            "MongoDB connection failed",
            extra={
                "mongo_uri": self.redacted_uri,
                "error_type": type(error).__name__,
                "error": str(error),
                "duration_ms": round(duration_ms, 2),
            },
            exc_info=error,
        )

    def get_connection(self) -> "asyncio.Task[AsyncIOMotorDatabase]":
        """
        Return the shared connection handle.

        Every call returns the same task; only the first call made without a
        prior start (manager created outside an event loop) begins the
        connection attempt, and that call must happen inside a running loop.

        Returns:
            Task resolving to the AsyncIOMotorDatabase

        Raises:
            RuntimeError: If establishment has not started and no event loop
                is running
        """
        if self._connection is None:
            self._start()
        return self._connection

    def close(self) -> None:
        """
        Close the underlying client.

        Cancels a still-pending attempt. The handle must not be used for new
        operations afterwards.
        """
        if self._connection is not None and not self._connection.done():
            self._connection.cancel()
        if self._client is not None:
            self._client.close()
            contextual_logger.info(
                "MongoDB connection closed", extra={"db_name": self._database_name}
            )

    @property
    def state(self) -> ConnectionState:
        """Current state of the shared handle."""
        if self._connection is None:
            return ConnectionState.IDLE
        if not self._connection.done():
            return ConnectionState.PENDING
        if self._connection.cancelled() or self._connection.exception() is not None:
            return ConnectionState.FAILED
        return ConnectionState.READY

    @property
    def uri(self) -> str:
        """Connection URI, including credentials."""
        return self._uri

    @property
    def redacted_uri(self) -> str:
        """Connection URI with the password masked."""
        return redact_uri(self._uri)

    @property
    def database_name(self) -> str:
        """Database name."""
        return self._database_name

    @property
    def options(self) -> dict[str, Any]:
        """Copy of the driver options."""
        return dict(self._options)

    def __repr__(self) -> str:
        return f"ConnectionManager(uri={self.redacted_uri!r}, state={self.state.value!r})"
