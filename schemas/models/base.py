"""
Shared pieces for MongoDB-backed document models.

- PyObjectId: lets pydantic accept an ObjectId (or its hex string) and keeps
  it as a BSON ObjectId for pymongo, while JSON dumps render it as hex.
- UtcDateTime: every stored instant is timezone-aware UTC after validation.
- MongoBaseModel: maps ``_id`` onto ``id`` and converts to/from raw documents.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Optional, TypeVar

from bson import ObjectId
from pydantic import AfterValidator, BaseModel, ConfigDict, Field, GetCoreSchemaHandler
from pydantic_core import core_schema

from shared.datetime_utils import ensure_utc

M = TypeVar("M", bound="MongoBaseModel")


def _coerce_object_id(value: Any) -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    raise ValueError(f"Invalid ObjectId: {value!r}")


def _dump_object_id(value: ObjectId, info: core_schema.SerializationInfo) -> Any:
    return str(value) if info.mode == "json" else value


class PyObjectId(ObjectId):
    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            _coerce_object_id,
            serialization=core_schema.plain_serializer_function_ser_schema(
                _dump_object_id, info_arg=True
            ),
        )

    _validate = staticmethod(_coerce_object_id)


UtcDateTime = Annotated[datetime, AfterValidator(ensure_utc)]


class MongoBaseModel(BaseModel):
    """Document model keyed by a MongoDB ``_id`` (exposed as ``id``)."""

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    id: Optional[PyObjectId] = Field(default=None, alias="_id")

    def to_mongo(self) -> dict:
        """Dump for pymongo: aliased keys, native BSON types, no ``_id`` until assigned."""
        doc = self.model_dump(by_alias=True)
        if doc.get("_id") is None:
            doc.pop("_id", None)
        return doc

    @classmethod
    def from_mongo(cls: type[M], doc: Optional[dict]) -> Optional[M]:
        """Validate a raw document; ``None`` (nothing found) passes through."""
        return None if doc is None else cls.model_validate(doc)
