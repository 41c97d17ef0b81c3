"""
MDB_STORE - typed MongoDB collections

A thin asyncio layer over Motor: one shared connection handle per database
target, and typed collection accessors that wait for it before delegating
save, find, update, remove and aggregate operations to the driver.
"""

from .config import StoreConfig
from .database import (CollectionBinding, ConnectionManager, ConnectionState,
                       PopulateOptions, TypedCollection)
from .exceptions import (ConfigurationError, MissingSchemaError,
                         ModelRegistrationError, MongoStoreError)
from .schema import Document, DocumentId, ObjectIdField, ref

__version__ = "0.1.0"

__all__ = [
    # Connection
    "ConnectionManager",
    "ConnectionState",
    "StoreConfig",
    # Collections
    "TypedCollection",
    "CollectionBinding",
    "PopulateOptions",
    # Schema
    "Document",
    "DocumentId",
    "ObjectIdField",
    "ref",
    # Errors
    "MongoStoreError",
    "ConfigurationError",
    "ModelRegistrationError",
    "MissingSchemaError",
]
