"""
Custom exceptions for MDB_STORE.

Errors raised by this package itself derive from MongoStoreError. Errors
raised by the driver are never wrapped: they reach callers unchanged and are
re-exported here under the names callers usually match on.
"""

from typing import Any, Dict, Optional

from pymongo.errors import ConnectionFailure, OperationFailure, PyMongoError

# Driver error families, re-exported as-is.
StoreConnectionError = ConnectionFailure
OperationError = OperationFailure
PersistenceError = PyMongoError


class MongoStoreError(RuntimeError):
    """
    Base exception for MDB_STORE errors.

    Attributes:
        message: Error message
        context: Optional dictionary with additional context (model_name,
                 collection_name, etc.)
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """Return formatted error message with context if available."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} (context: {context_str})"
        return self.message


class ConfigurationError(MongoStoreError):
    """
    Raised when configuration is invalid or missing.

    Attributes:
        message: Error message
        config_key: Configuration key that caused the error (if available)
        config_value: Configuration value that caused the error (if available)
        context: Additional context information
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if config_key:
            context["config_key"] = config_key
        if config_value is not None:
            context["config_value"] = config_value
        super().__init__(message, context=context)
        self.config_key = config_key
        self.config_value = config_value


class ModelRegistrationError(MongoStoreError):
    """
    Raised when a model name is registered again with a different schema.

    Attributes:
        model_name: The conflicting model name
    """

    def __init__(
        self,
        message: str,
        model_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if model_name:
            context["model_name"] = model_name
        super().__init__(message, context=context)
        self.model_name = model_name


class MissingSchemaError(MongoStoreError):
    """
    Raised when relation expansion cannot resolve the referenced model.

    Attributes:
        model_name: Model name that was looked up (if known)
        path: Field path being expanded (if known)
    """

    def __init__(
        self,
        message: str,
        model_name: Optional[str] = None,
        path: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if model_name:
            context["model_name"] = model_name
        if path:
            context["path"] = path
        super().__init__(message, context=context)
        self.model_name = model_name
        self.path = path
