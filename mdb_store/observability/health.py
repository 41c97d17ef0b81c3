"""
Health check utilities for MDB_STORE.

Provides a health check for a ConnectionManager's shared connection.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from pymongo.errors import PyMongoError

from ..constants import DEFAULT_HEALTH_TIMEOUT_SECONDS

if TYPE_CHECKING:
    from ..database.connection import ConnectionManager

logger = logging.getLogger(__name__)


class HealthStatus(str, Enum):
    """Health status enumeration."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


@dataclass
class HealthCheckResult:
    """Result of a health check."""

    name: str
    status: HealthStatus
    message: str
    details: dict[str, Any] | None = None
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "status": self.status.value,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


async def check_connection_health(
    manager: "ConnectionManager | None",
    timeout_seconds: float = DEFAULT_HEALTH_TIMEOUT_SECONDS,
) -> HealthCheckResult:
    """
    Check the health of a ConnectionManager's connection.

    Waits (up to ``timeout_seconds``) for the shared handle to settle, then
    pings the server through the resolved database's client. A handle that
    is still pending when the wait runs out reports UNKNOWN; a failed or
    cancelled handle, or a failed ping, reports UNHEALTHY.

    Args:
        manager: ConnectionManager instance
        timeout_seconds: Timeout for settling and pinging

    Returns:
        HealthCheckResult
    """
    if manager is None:
        return HealthCheckResult(
            name="mongodb",
            status=HealthStatus.UNHEALTHY,
            message="ConnectionManager not configured",
        )

    details = {"database": manager.database_name, "timeout_seconds": timeout_seconds}

    handle = manager.get_connection()
    try:
        database = await asyncio.wait_for(asyncio.shield(handle), timeout=timeout_seconds)
    except asyncio.TimeoutError:
        return HealthCheckResult(
            name="mongodb",
            status=HealthStatus.UNKNOWN,
            message=f"MongoDB connection still pending after {timeout_seconds}s",
            details=details,
        )
    except asyncio.CancelledError:
        # Only a cancelled handle (closed manager) is a result; cancelling
        # this check itself propagates.
        if not handle.cancelled():
            raise
        return HealthCheckResult(
            name="mongodb",
            status=HealthStatus.UNHEALTHY,
            message="MongoDB connection attempt was cancelled (manager closed)",
            details={**details, "error_type": "CancelledError"},
        )
    except (PyMongoError, TypeError, ValueError) as e:
        # TypeError / ValueError come from AsyncIOMotorClient rejecting its options
        logger.warning(f"MongoDB connection unavailable: {e}")
        return HealthCheckResult(
            name="mongodb",
            status=HealthStatus.UNHEALTHY,
            message=f"MongoDB connection failed: {str(e)}",
            details={**details, "error_type": type(e).__name__},
        )

    try:
        await asyncio.wait_for(database.client.admin.command("ping"), timeout=timeout_seconds)
    except asyncio.TimeoutError:
        return HealthCheckResult(
            name="mongodb",
            status=HealthStatus.UNHEALTHY,
            message=f"MongoDB ping timed out after {timeout_seconds}s",
            details=details,
        )
    except PyMongoError as e:
        logger.warning(f"MongoDB health check failed: {e}")
        return HealthCheckResult(
            name="mongodb",
            status=HealthStatus.UNHEALTHY,
            message=f"MongoDB health check failed: {str(e)}",
            details={**details, "error_type": type(e).__name__},
        )

    return HealthCheckResult(
        name="mongodb",
        status=HealthStatus.HEALTHY,
        message="MongoDB connection is healthy",
        details=details,
    )
