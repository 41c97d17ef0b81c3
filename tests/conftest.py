"""
Pytest configuration and shared fixtures for MDB_STORE tests.

This module provides:
- Mock Motor database / collection / cursor fixtures
- A resolved connection handle wrapping the mock database
- Schema descriptors used across tests
- Model registry and metrics isolation
- Testcontainers fixtures for integration tests
"""

import asyncio
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from mdb_store.database import models as model_registry
from mdb_store.observability import get_metrics_collector
from mdb_store.schema import Document, ObjectIdField, ref

def pytest_configure(config):
    config.addinivalue_line(
        "markers", "integration: requires a MongoDB container (testcontainers)"
    )


# ============================================================================
# SCHEMA FIXTURES
# ============================================================================


class User(Document):
    name: str
    email: str | None = None
    age: int | None = None


class Post(Document):
    title: str
    author: ObjectIdField | None = ref("User", default=None)
    reviewers: list[ObjectIdField] = ref("User", default_factory=list)


@pytest.fixture
def user_schema() -> type[User]:
    return User


@pytest.fixture
def post_schema() -> type[Post]:
    return Post


# ============================================================================
# ISOLATION
# ============================================================================


@pytest.fixture(autouse=True)
def clean_model_registry():
    """Start every test with an empty model registry."""
    for name in model_registry.registered_models():
        model_registry.delete_model(name)
    yield
    for name in model_registry.registered_models():
        model_registry.delete_model(name)


@pytest.fixture(autouse=True)
def reset_metrics():
    """Start every test with an empty metrics collector."""
    get_metrics_collector().reset()
    yield
    get_metrics_collector().reset()


# ============================================================================
# MOCK MONGODB FIXTURES
# ============================================================================


def make_cursor(documents: list[dict[str, Any]] | None = None) -> MagicMock:
    """Create a mock cursor whose limit() chains and to_list() returns documents."""
    cursor = MagicMock()
    cursor.limit = MagicMock(return_value=cursor)
    cursor.to_list = AsyncMock(return_value=list(documents or []))
    return cursor


def make_collection(name: str) -> MagicMock:
    """Create a mock AsyncIOMotorCollection with async driver methods."""
    collection = MagicMock()
    collection.name = name
    collection.find = MagicMock(return_value=make_cursor())
    collection.aggregate = MagicMock(return_value=make_cursor())
    collection.insert_one = AsyncMock(return_value=MagicMock(inserted_id="test_id"))
    collection.replace_one = AsyncMock(return_value=MagicMock(modified_count=1, upserted_id=None))
    collection.find_one_and_update = AsyncMock(return_value=None)
    collection.find_one_and_delete = AsyncMock(return_value=None)
    collection.count_documents = AsyncMock(return_value=0)
    return collection


@pytest.fixture
def mock_mongo_database() -> MagicMock:
    """
    Create a mock AsyncIOMotorDatabase.

    ``db[name]`` returns the same mock collection for the same name, so tests
    can configure a collection before the code under test looks it up.
    """
    db = MagicMock()
    db.name = "test_db"
    collections: dict[str, MagicMock] = {}

    def get_collection(self, name: str) -> MagicMock:
        if name not in collections:
            collections[name] = make_collection(name)
        return collections[name]

    db.__getitem__ = get_collection
    db.client = MagicMock()
    db.client.admin.command = AsyncMock(return_value={"ok": 1})
    return db


@pytest.fixture
def mock_mongo_client(mock_mongo_database: MagicMock) -> MagicMock:
    """Create a mock AsyncIOMotorClient whose databases are mock_mongo_database."""
    client = MagicMock()
    client.admin.command = AsyncMock(return_value={"ok": 1})
    client.__getitem__ = MagicMock(return_value=mock_mongo_database)
    mock_mongo_database.client = client
    return client


@pytest.fixture
def resolved_connection(mock_mongo_database: MagicMock):
    """
    Return a factory for an already-resolved connection handle.

    Futures are bound to the running loop, so the handle is created inside
    the test coroutine by calling the factory.
    """

    def factory() -> asyncio.Future:
        future = asyncio.get_running_loop().create_future()
        future.set_result(mock_mongo_database)
        return future

    return factory


# ============================================================================
# TESTCONTAINERS FIXTURES (Real MongoDB for Integration Tests)
# ============================================================================


@pytest.fixture(scope="session")
def mongodb_container():
    """
    Start a MongoDB container for integration tests.

    Session-scoped: the container starts once and is reused. Skipped when
    testcontainers is not installed or no container runtime is reachable.
    """
    try:
        from testcontainers.mongodb import MongoDbContainer
    except ImportError:
        pytest.skip("testcontainers not installed. Install with: pip install -e '.[integration]'")

    container = MongoDbContainer("mongo:7.0")
    try:
        container.start()
    except Exception as e:  # noqa: BLE001
        pytest.skip(f"MongoDB container could not be started: {e}")

    yield container
    container.stop()


@pytest.fixture
def mongodb_connection_string(mongodb_container) -> str:
    """Connection URI (with the container's root credentials) of the MongoDB container."""
    return mongodb_container.get_connection_url()
