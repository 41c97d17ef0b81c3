"""
Schema descriptors for typed collections.

A schema is a pydantic model deriving from Document. Its fields describe the
stored document; ``id`` maps to the ``_id`` primary key. Reference fields are
declared with ref() so relation expansion knows which model they point to.

Example:
    class User(Document):
        name: str
        email: str | None = None

    class Post(Document):
        title: str
        author: ObjectIdField | None = ref("User", default=None)
        tags: list[str] = []
"""

from typing import Annotated, Any, Union

from bson import ObjectId
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from .constants import ID_FIELD, REF_KEY


def coerce_object_id(value: Any) -> Any:
    """Convert 24-character hex strings to ObjectId, leave other values as-is."""
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return value


ObjectIdField = Annotated[ObjectId, BeforeValidator(coerce_object_id)]
"""ObjectId field type that also accepts its hex string form."""

DocumentId = Annotated[Union[ObjectId, str, int], BeforeValidator(coerce_object_id)]
"""Primary key type: an ObjectId, or a caller-chosen string or integer key."""


def ref(model_name: str, **kwargs: Any) -> Any:
    """
    Declare a field that references documents of another registered model.

    Args:
        model_name: Name the referenced model was registered under
        **kwargs: Passed to pydantic.Field (default, description, ...)

    Returns:
        A pydantic FieldInfo carrying the reference in json_schema_extra
    """
    extra = dict(kwargs.pop("json_schema_extra", None) or {})
    extra[REF_KEY] = model_name
    return Field(json_schema_extra=extra, **kwargs)


class Document(BaseModel):
    """
    Base class for schema descriptors.

    ``id`` is None until the record has been saved; the store then fills in
    the generated identifier.
    """

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    id: DocumentId | None = Field(default=None, alias=ID_FIELD)

    def to_document(self) -> dict[str, Any]:
        """Serialize for storage, omitting ``_id`` while it is unset."""
        document = self.model_dump(by_alias=True)
        if document.get(ID_FIELD) is None:
            document.pop(ID_FIELD, None)
        return document

    @classmethod
    def reference_model(cls, path: str) -> str | None:
        """
        Return the model name referenced by a field, if declared with ref().

        Args:
            path: Field name or its alias as stored in the document
        """
        for name, info in cls.model_fields.items():
            if path not in (name, info.alias):
                continue
            extra = info.json_schema_extra
            if isinstance(extra, dict):
                return extra.get(REF_KEY)
            return None
        return None
