"""
Relation expansion.

Replaces reference values (an id, or a list of ids) in query results with the
referenced documents. Each populated path costs one ``$in`` query against the
referenced model's collection, whatever the number of source documents.
Only top-level fields are expanded.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Union

from motor.motor_asyncio import AsyncIOMotorDatabase

from ..constants import ID_FIELD
from ..exceptions import MissingSchemaError
from .models import CollectionBinding, get_model

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PopulateOptions:
    """
    How to expand one reference path.

    Attributes:
        path: Field holding the reference(s)
        select: Projection applied to the referenced documents
        model: Referenced model name; defaults to the field's ref() declaration
        match: Extra filter the referenced documents must satisfy. Single
               references that fail it become None; list entries are dropped.
    """

    path: str
    select: Mapping[str, Any] | None = None
    model: str | None = None
    match: Mapping[str, Any] | None = None


PopulateArgument = Union[str, PopulateOptions, Mapping[str, Any], Iterable[Any]]


def normalize_populate(populate: PopulateArgument | None) -> list[PopulateOptions]:
    """
    Normalize the accepted populate forms into a list of PopulateOptions.

    Accepts a space-separated path string, a PopulateOptions, a mapping with
    PopulateOptions fields, or any iterable of those.
    """
    if populate is None:
        return []
    if isinstance(populate, PopulateOptions):
        return [populate]
    if isinstance(populate, str):
        return [PopulateOptions(path=path) for path in populate.split()]
    if isinstance(populate, Mapping):
        return [PopulateOptions(**populate)]
    if isinstance(populate, Iterable):
        options: list[PopulateOptions] = []
        for item in populate:
            options.extend(normalize_populate(item))
        return options
    raise TypeError(f"Unsupported populate argument: {populate!r}")


def _resolve_target(binding: CollectionBinding, options: PopulateOptions) -> CollectionBinding:
    model_name = options.model or binding.schema.reference_model(options.path)
    if not model_name:
        raise MissingSchemaError(
            f"Path '{options.path}' of model '{binding.name}' has no ref and no model was given",
            path=options.path,
            context={"source_model": binding.name},
        )
    return get_model(model_name)


def _collect_ids(documents: list[dict[str, Any]], path: str) -> list[Any]:
    ids: list[Any] = []
    seen: set[Any] = set()
    for document in documents:
        value = document.get(path)
        values = value if isinstance(value, list) else [value]
        for item in values:
            if item is None or isinstance(item, Mapping) or item in seen:
                continue
            seen.add(item)
            ids.append(item)
    return ids


async def populate_documents(
    database: AsyncIOMotorDatabase,
    binding: CollectionBinding,
    documents: list[dict[str, Any]],
    populate: PopulateArgument | None,
) -> list[dict[str, Any]]:
    """
    Expand references in ``documents`` in place.

    Args:
        database: Resolved database handle
        binding: Binding of the model the documents belong to
        documents: Raw documents returned by the driver
        populate: Populate argument (see normalize_populate)

    Returns:
        The same list, with reference values replaced by referenced documents

    Raises:
        MissingSchemaError: If a path's referenced model cannot be resolved
    """
    for options in normalize_populate(populate):
        target = _resolve_target(binding, options)
        ids = _collect_ids(documents, options.path)
        if not ids:
            continue

        query: dict[str, Any] = {ID_FIELD: {"$in": ids}}
        if options.match:
            query = {"$and": [query, dict(options.match)]}

        projection = dict(options.select) if options.select else None
        strip_id = False
        if projection is not None and not projection.get(ID_FIELD, 1):
            # _id is needed to match results back to their references
            projection.pop(ID_FIELD)
            strip_id = True
            if not projection:
                projection = None

        cursor = database[target.collection_name].find(query, projection)
        related = await cursor.to_list(length=None)
        by_id = {doc[ID_FIELD]: doc for doc in related if ID_FIELD in doc}
        if strip_id:
            by_id = {
                key: {k: v for k, v in doc.items() if k != ID_FIELD} for key, doc in by_id.items()
            }

        for document in documents:
            if options.path not in document:
                continue
            value = document[options.path]
            if isinstance(value, list):
                document[options.path] = [
                    by_id[item] for item in value if not isinstance(item, Mapping) and item in by_id
                ]
            elif value is not None and not isinstance(value, Mapping):
                document[options.path] = by_id.get(value)

        logger.debug(
            f"Populated '{options.path}' of {binding.name} from {target.collection_name} "
            f"({len(by_id)}/{len(ids)} references resolved)"
        )

    return documents
