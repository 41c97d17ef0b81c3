"""
Constants for MDB_STORE.

This module contains the shared defaults used by the connection manager,
configuration and collection layers.
"""

from typing import Final

# ============================================================================
# CONNECTION CONSTANTS
# ============================================================================

MONGO_SCHEME: Final[str] = "mongodb"
"""URI scheme for standard (host:port) deployments."""

MONGO_SRV_SCHEME: Final[str] = "mongodb+srv"
"""URI scheme for cloud-hosted deployments resolved through DNS seed lists."""

DEFAULT_HOST: Final[str] = "localhost"
"""Default MongoDB host."""

DEFAULT_PORT: Final[int] = 27017
"""Default MongoDB port."""

CLOUD_URI_QUERY: Final[str] = "retryWrites=true"
"""Query string appended to cloud-hosted connection URIs."""

# Connection pool defaults (only used when building options from StoreConfig)
DEFAULT_MAX_POOL_SIZE: Final[int] = 50
"""Default maximum MongoDB connection pool size."""

DEFAULT_MIN_POOL_SIZE: Final[int] = 0
"""Default minimum MongoDB connection pool size."""

DEFAULT_SERVER_SELECTION_TIMEOUT_MS: Final[int] = 5000
"""Default server selection timeout in milliseconds."""

DEFAULT_APP_NAME: Final[str] = "MDB_STORE"
"""Application name reported to the server when built from StoreConfig."""

# ============================================================================
# COLLECTION CONSTANTS
# ============================================================================

ID_FIELD: Final[str] = "_id"
"""Primary key field of every stored document."""

REF_KEY: Final[str] = "ref"
"""Key under a field's json_schema_extra naming the referenced model."""

# ============================================================================
# HEALTH CHECK CONSTANTS
# ============================================================================

DEFAULT_HEALTH_TIMEOUT_SECONDS: Final[float] = 5.0
"""Default timeout for the connection health ping (seconds)."""

# ============================================================================
# METRICS CONSTANTS
# ============================================================================

MAX_TRACKED_METRICS: Final[int] = 10000
"""Maximum number of distinct metric keys kept before LRU eviction."""
