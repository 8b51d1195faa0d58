from datetime import datetime
from typing import Any, Dict, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, NonNegativeInt

from mongo_gridfs.schemas import Metadata


class FileFilter(BaseModel):
    """Field comparisons against the files collection, ANDed together.

    Only the fields that are set end up in the rendered query.
    """

    id: Optional[ObjectId] = None
    filename: Optional[str] = None
    content_type: Optional[str] = None
    alias: Optional[str] = None
    metadata: Optional[Metadata] = None
    uploaded_after: Optional[datetime] = None
    uploaded_before: Optional[datetime] = None
    min_length: Optional[NonNegativeInt] = None
    max_length: Optional[NonNegativeInt] = None

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def to_query(self) -> Dict[str, Any]:
        query: Dict[str, Any] = {}
        if self.id is not None:
            query["_id"] = self.id
        if self.filename is not None:
            query["filename"] = self.filename
        if self.content_type is not None:
            query["contentType"] = self.content_type
        if self.alias is not None:
            # equality on an array field matches any element
            query["aliases"] = self.alias
        if self.metadata:
            for key, value in self.metadata.items():
                query[f"metadata.{key}"] = value

        upload_range: Dict[str, Any] = {}
        if self.uploaded_after is not None:
            upload_range["$gte"] = self.uploaded_after
        if self.uploaded_before is not None:
            upload_range["$lt"] = self.uploaded_before
        if upload_range:
            query["uploadDate"] = upload_range

        length_range: Dict[str, Any] = {}
        if self.min_length is not None:
            length_range["$gte"] = self.min_length
        if self.max_length is not None:
            length_range["$lte"] = self.max_length
        if length_range:
            query["length"] = length_range

        return query
