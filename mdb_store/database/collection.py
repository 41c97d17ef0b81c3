"""
Typed collection accessor.

A TypedCollection binds a registered model (name, schema, storage collection)
to a connection handle and exposes save / find / update / remove / aggregate
operations. Every operation first awaits the connection handle, then
delegates to the driver. Driver errors reach the caller unchanged, and a
query that matches nothing returns None or an empty list.

Full documents come back as schema instances. Reshaped results (projected,
populated or ``lean=True`` queries, and all aggregation output) come back as
plain dicts, since they no longer satisfy the schema.

This module is part of MDB_STORE.

Usage:
    from mdb_store import ConnectionManager, Document, TypedCollection

    class User(Document):
        name: str

    manager = ConnectionManager("localhost", 27017, "testdb")
    users = TypedCollection(manager.get_connection(), "User", User)

    alice = await users.save({"name": "Alice"})
    same = await users.find_one({"_id": alice.id})
"""

import functools
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Generic, TypeVar, Union

from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase
from pydantic import BaseModel, ValidationError
from pymongo import ReturnDocument

from ..constants import ID_FIELD
from ..observability import collection_context, get_logger, timed_operation
from ..schema import Document, coerce_object_id
from .connection import ConnectionManager
from .models import CollectionBinding, register_model
from .populate import PopulateArgument, populate_documents

logger = get_logger(__name__)

T = TypeVar("T", bound=Document)

ConnectionSource = Union[ConnectionManager, Awaitable[AsyncIOMotorDatabase]]


def as_filter(filter_or_id: Any) -> dict[str, Any]:
    """
    Normalize a filter argument.

    Mappings are used as filters. Any other value is an identifier and
    becomes ``{"_id": value}``, with hex strings coerced to ObjectId.
    """
    if filter_or_id is None:
        return {}
    if isinstance(filter_or_id, Mapping):
        return dict(filter_or_id)
    return {ID_FIELD: coerce_object_id(filter_or_id)}


def as_update(update: Any) -> Any:
    """
    Normalize an update argument.

    Documents without update operators are applied as ``$set``. Pipelines
    (lists) and operator documents pass through unchanged.
    """
    if isinstance(update, BaseModel):
        update = update.model_dump(by_alias=True, exclude_unset=True)
        update.pop(ID_FIELD, None)
    if isinstance(update, Mapping):
        if update and not any(str(key).startswith("$") for key in update):
            return {"$set": dict(update)}
        return dict(update)
    return update


def collection_operation(operation: str) -> Callable:
    """
    Time a TypedCollection coroutine as ``collection.<operation>`` and scope
    its log records to the collection's model.
    """

    def decorator(func: Callable) -> Callable:
        timed = timed_operation(f"collection.{operation}")(func)

        @functools.wraps(func)
        async def wrapper(self: "TypedCollection", *args: Any, **kwargs: Any) -> Any:
            with collection_context(
                self.name, collection_name=self.collection_name, operation=operation
            ):
                return await timed(self, *args, **kwargs)

        return wrapper

    return decorator


class TypedCollection(Generic[T]):
    """
    Data access for one registered model.

    Args:
        connection: The shared connection handle (as returned by
            ConnectionManager.get_connection()), or the ConnectionManager
            itself when collections are wired up before an event loop runs
        name: Logical model name
        schema: Document subclass describing the stored documents
        plural: Optional storage collection name (defaults to ``name``)
    """

    def __init__(
        self,
        connection: ConnectionSource,
        name: str,
        schema: type[T],
        plural: str | None = None,
    ) -> None:
        self._connection = connection
        self._binding = register_model(name, schema, plural)

    @property
    def binding(self) -> CollectionBinding:
        """The model binding this collection operates on."""
        return self._binding

    @property
    def name(self) -> str:
        """Logical model name."""
        return self._binding.name

    @property
    def collection_name(self) -> str:
        """Storage collection name."""
        return self._binding.collection_name

    @property
    def schema(self) -> type[T]:
        """Schema descriptor class."""
        return self._binding.schema

    async def _database(self) -> AsyncIOMotorDatabase:
        connection = self._connection
        if isinstance(connection, ConnectionManager):
            connection = connection.get_connection()
        return await connection

    async def _collection(self) -> AsyncIOMotorCollection:
        database = await self._database()
        return database[self._binding.collection_name]

    def _hydrate(self, document: dict[str, Any] | None, reshaped: bool) -> T | dict | None:
        if document is None:
            return None
        if reshaped:
            return document
        return self.schema.model_validate(document)

    def _hydrate_written(
        self, document: dict[str, Any] | None, reshaped: bool
    ) -> T | dict | None:
        # The write is already applied: a document the schema rejects is returned as stored.
        try:
            return self._hydrate(document, reshaped)
        except ValidationError as e:
            logger.warning(
                f"Stored {self.name} document does not match {self.schema.__name__}; "
                f"returning it unvalidated",
                extra={"document_id": document.get(ID_FIELD), "error_count": e.error_count()},
            )
            return document

    @collection_operation("save")
    async def save(self, record: T | Mapping[str, Any]) -> T:
        """
        Persist a record.

        Records without an id are inserted and receive the generated id.
        Records with an id replace the stored document (or are inserted
        under that id).

        Args:
            record: A schema instance, or a mapping validated into one

        Returns:
            The persisted record

        Raises:
            pydantic.ValidationError: If a mapping does not satisfy the schema
        """
        if not isinstance(record, self.schema):
            record = self.schema.model_validate(record)

        collection = await self._collection()
        document = record.to_document()

        if record.id is None:
            result = await collection.insert_one(document)
            record.id = result.inserted_id
        else:
            await collection.replace_one({ID_FIELD: record.id}, document, upsert=True)

        logger.debug(f"Saved {self.name} with id={record.id}")
        return record

    @collection_operation("find")
    async def find(
        self,
        filter: Mapping[str, Any] | None = None,
        output_fields: Mapping[str, Any] | None = None,
        populate: PopulateArgument | None = None,
        limit: int | None = None,
        lean: bool = False,
    ) -> list[T] | list[dict[str, Any]]:
        """
        Find records matching a filter, in storage order.

        Args:
            filter: Query filter (None matches everything)
            output_fields: Projection, e.g. {"name": 1} or {"password": 0}
            populate: Reference paths to expand (see PopulateOptions)
            limit: Maximum number of records (None or 0 for no limit)
            lean: Return plain dicts instead of schema instances

        Returns:
            List of records (empty if nothing matched)
        """
        database = await self._database()
        cursor = database[self._binding.collection_name].find(as_filter(filter), output_fields)
        if limit:
            cursor = cursor.limit(limit)
        documents = await cursor.to_list(length=None)

        if populate:
            documents = await populate_documents(database, self._binding, documents, populate)

        reshaped = lean or output_fields is not None or bool(populate)
        return [self._hydrate(document, reshaped) for document in documents]

    async def find_one(
        self,
        filter: Mapping[str, Any] | None = None,
        output_fields: Mapping[str, Any] | None = None,
        populate: PopulateArgument | None = None,
        lean: bool = False,
    ) -> T | dict[str, Any] | None:
        """
        Find the first record matching a filter.

        Returns:
            The first record of find(..., limit=1), or None
        """
        records = await self.find(filter, output_fields, populate, limit=1, lean=lean)
        return records[0] if records else None

    @collection_operation("find_one_and_update")
    async def find_one_and_update(
        self,
        filter: Mapping[str, Any],
        update: Any,
        options: Mapping[str, Any] | None = None,
    ) -> T | dict[str, Any] | None:
        """
        Apply an update to the first matching record.

        Args:
            filter: Query filter
            update: Update operators, a pipeline, or a plain field mapping
                    (applied as $set)
            options: Passed to the driver (projection, sort, upsert,
                     return_document). ``new=True`` is shorthand for
                     ``return_document=ReturnDocument.AFTER``.

        Returns:
            The pre-update record by default, the post-update record when
            requested, or None if nothing matched. A stored document the
            schema rejects is returned as a plain dict.
        """
        driver_options = dict(options or {})
        if driver_options.pop("new", False):
            driver_options.setdefault("return_document", ReturnDocument.AFTER)

        collection = await self._collection()
        document = await collection.find_one_and_update(
            as_filter(filter), as_update(update), **driver_options
        )
        return self._hydrate_written(
            document, reshaped=driver_options.get("projection") is not None
        )

    @collection_operation("find_one_and_remove")
    async def find_one_and_remove(self, filter: Any) -> T | None:
        """
        Remove the first matching record and return it.

        Args:
            filter: Query filter, or a bare id as shorthand for {"_id": id}

        Returns:
            The removed record (a plain dict if the schema rejects it), or
            None if nothing matched
        """
        collection = await self._collection()
        document = await collection.find_one_and_delete(as_filter(filter))
        if document is not None:
            logger.debug(f"Removed {self.name} with id={document.get(ID_FIELD)}")
        return self._hydrate_written(document, reshaped=False)

    @collection_operation("aggregate")
    async def aggregate(
        self,
        filter: Mapping[str, Any] | None = None,
        output_fields: Mapping[str, Any] | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """
        Run a match / project / limit pipeline.

        Args:
            filter: $match stage filter
            output_fields: Optional $project stage
            limit: Optional $limit stage

        Returns:
            List of result documents
        """
        pipeline: list[dict[str, Any]] = [{"$match": as_filter(filter)}]
        if output_fields:
            pipeline.append({"$project": dict(output_fields)})
        if limit:
            pipeline.append({"$limit": limit})

        collection = await self._collection()
        cursor = collection.aggregate(pipeline)
        return await cursor.to_list(length=None)

    async def aggregate_one(
        self,
        filter: Mapping[str, Any] | None = None,
        output_fields: Mapping[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        """First result of aggregate(..., limit=1), or None."""
        results = await self.aggregate(filter, output_fields, limit=1)
        return results[0] if results else None

    @collection_operation("count")
    async def count(self, filter: Mapping[str, Any] | None = None) -> int:
        """Count records matching a filter."""
        collection = await self._collection()
        return await collection.count_documents(as_filter(filter))

    def __repr__(self) -> str:
        return (
            f"TypedCollection(name={self.name!r}, collection={self.collection_name!r}, "
            f"schema={self.schema.__name__})"
        )
