import os
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, PositiveInt, field_serializer, field_validator
from typing_extensions import TypeAliasType

MetadataValue = TypeAliasType(
    "MetadataValue",
    Union[
        bool,
        int,
        float,
        str,
        datetime,
        ObjectId,
        None,
        List["MetadataValue"],
        Dict[str, "MetadataValue"],
    ],
)

Metadata = Dict[str, MetadataValue]


def _jsonable(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    return value


class FileMetadata(BaseModel):
    """A GridFS files-collection document.

    Field aliases follow the names the driver stores (``_id``, ``chunkSize``,
    ``uploadDate``, ``contentType``) so raw documents validate directly.
    """

    id: ObjectId = Field(alias="_id")
    length: int
    chunk_size: int = Field(alias="chunkSize")
    upload_date: datetime = Field(alias="uploadDate")
    md5: Optional[str] = None
    filename: str
    content_type: Optional[str] = Field(default=None, alias="contentType")
    metadata: Optional[Metadata] = None
    aliases: Optional[List[str]] = None

    model_config = ConfigDict(arbitrary_types_allowed=True, populate_by_name=True, frozen=True)

    @classmethod
    def from_grid_file(cls, grid_file: Any) -> "FileMetadata":
        """Build a record from a GridOut (cursor result) or a closed GridIn.

        Reads the files document the driver keeps in ``_file``; the property
        accessors for ``md5`` and ``contentType`` are deprecated on GridIn.
        """
        return cls.model_validate(grid_file._file)

    @field_serializer("id", when_used="json")
    def serialize_id(self, value: ObjectId) -> str:
        return str(value)

    @field_serializer("metadata", when_used="json")
    def serialize_metadata(self, value: Optional[Metadata]) -> Any:
        return _jsonable(value)


class FileMetadataOut(BaseModel):
    id: str
    length: int
    chunk_size: int
    upload_date: datetime
    md5: Optional[str] = None
    filename: str
    content_type: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    aliases: Optional[List[str]] = None

    @classmethod
    def from_record(cls, record: FileMetadata) -> "FileMetadataOut":
        return cls.model_validate(record.model_dump(mode="json"))


class WriteOptions(BaseModel):
    filename: str = Field(min_length=1)
    chunk_size_bytes: Optional[PositiveInt] = None
    content_type: Optional[str] = None
    aliases: Optional[List[str]] = None
    metadata: Optional[Metadata] = None

    model_config = ConfigDict(arbitrary_types_allowed=True)


class DownloadOptions(BaseModel):
    """Controls where ``download_file`` writes.

    ``filename`` is either a literal name, ``True`` to name the file after the
    record (its id in the temp dir, its stored filename otherwise) or
    ``False`` for a generated unique name.
    """

    filename: Union[bool, str] = False
    target_dir: Optional[str] = None

    @field_validator("target_dir", mode="before")
    @classmethod
    def coerce_path(cls, v: Any) -> Any:
        if isinstance(v, os.PathLike):
            return os.fspath(v)
        return v
