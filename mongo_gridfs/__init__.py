from mongo_gridfs.exceptions import (
    GridFSError,
    InvalidIdentifierError,
    NotFoundError,
    PathUnavailableError,
    SourceFileNotFoundError,
)
from mongo_gridfs.filters import FileFilter
from mongo_gridfs.gridfs_store import DEFAULT_BUCKET_NAME, MongoGridFS
from mongo_gridfs.schemas import DownloadOptions, FileMetadata, WriteOptions

__all__ = [
    "DEFAULT_BUCKET_NAME",
    "DownloadOptions",
    "FileFilter",
    "FileMetadata",
    "GridFSError",
    "InvalidIdentifierError",
    "MongoGridFS",
    "NotFoundError",
    "PathUnavailableError",
    "SourceFileNotFoundError",
    "WriteOptions",
]
