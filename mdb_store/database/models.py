"""
Model registry.

Pairs a logical model name with its schema descriptor and storage collection.
A binding is created once per model name and is immutable afterwards; typed
collections and relation expansion look bindings up here by name.
"""

import logging
import threading
from dataclasses import dataclass

from ..exceptions import MissingSchemaError, ModelRegistrationError
from ..schema import Document

logger = logging.getLogger(__name__)

_registry: dict[str, "CollectionBinding"] = {}
_registry_lock = threading.Lock()


@dataclass(frozen=True)
class CollectionBinding:
    """A model name bound to its schema and storage collection name."""

    name: str
    schema: type[Document]
    collection_name: str


def _validate_collection_name(collection_name: str, model_name: str) -> None:
    if not collection_name or not isinstance(collection_name, str):
        raise ModelRegistrationError("Collection name must be a non-empty string", model_name)
    if "$" in collection_name or "\x00" in collection_name:
        raise ModelRegistrationError(
            f"Collection name '{collection_name}' contains an illegal character",
            model_name,
            context={"collection_name": collection_name},
        )
    if collection_name.startswith("system."):
        raise ModelRegistrationError(
            f"Collection name '{collection_name}' is reserved",
            model_name,
            context={"collection_name": collection_name},
        )


def register_model(
    name: str, schema: type[Document], plural: str | None = None
) -> CollectionBinding:
    """
    Register a model, or return the existing binding for an identical one.

    The storage collection is ``plural`` when given, otherwise ``name``.

    Args:
        name: Logical model name
        schema: Document subclass describing the stored documents
        plural: Optional storage collection name

    Returns:
        The CollectionBinding for this model

    Raises:
        ModelRegistrationError: If the arguments are invalid or ``name`` is
            already bound to a different schema or collection
    """
    if not name or not isinstance(name, str):
        raise ModelRegistrationError("Model name must be a non-empty string")
    if not isinstance(schema, type) or not issubclass(schema, Document):
        raise ModelRegistrationError(
            f"Schema for model '{name}' must be a Document subclass, got {schema!r}",
            name,
        )

    collection_name = plural or name
    _validate_collection_name(collection_name, name)
    binding = CollectionBinding(name=name, schema=schema, collection_name=collection_name)

    with _registry_lock:
        existing = _registry.get(name)
        if existing is not None:
            if existing != binding:
                raise ModelRegistrationError(
                    f"Cannot overwrite model '{name}' once registered",
                    name,
                    context={
                        "registered_schema": existing.schema.__name__,
                        "registered_collection": existing.collection_name,
                    },
                )
            return existing
        _registry[name] = binding

    logger.debug(f"Registered model '{name}' -> collection '{collection_name}'")
    return binding


def get_model(name: str) -> CollectionBinding:
    """
    Look up a registered model.

    Raises:
        MissingSchemaError: If no model is registered under ``name``
    """
    with _registry_lock:
        binding = _registry.get(name)
    if binding is None:
        raise MissingSchemaError(f"Schema hasn't been registered for model '{name}'", name)
    return binding


def delete_model(name: str) -> bool:
    """Remove a model from the registry. Returns whether it was registered."""
    with _registry_lock:
        return _registry.pop(name, None) is not None


def registered_models() -> list[str]:
    """Names of all registered models."""
    with _registry_lock:
        return sorted(_registry)
