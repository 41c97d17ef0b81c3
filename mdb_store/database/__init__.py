"""
Database layer.

Provides the shared connection handle, the model registry, typed collection
accessors and relation expansion.
"""

from .collection import TypedCollection, as_filter, as_update
from .connection import (ConnectionManager, ConnectionState, build_cloud_uri,
                         build_uri, redact_uri)
from .models import (CollectionBinding, delete_model, get_model,
                     register_model, registered_models)
from .populate import PopulateOptions, normalize_populate, populate_documents

__all__ = [
    # Connection
    "ConnectionManager",
    "ConnectionState",
    "build_uri",
    "build_cloud_uri",
    "redact_uri",
    # Model registry
    "CollectionBinding",
    "register_model",
    "get_model",
    "delete_model",
    "registered_models",
    # Collections
    "TypedCollection",
    "as_filter",
    "as_update",
    # Relation expansion
    "PopulateOptions",
    "normalize_populate",
    "populate_documents",
]
