"""Awaitable wrapper around a GridFS bucket of an already-open database."""

import inspect
import logging
import os
import tempfile
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, List, Mapping, Optional, Union

import aiofiles
import aiofiles.os
from bson import ObjectId
from bson.errors import InvalidId
from gridfs.asynchronous.grid_file import AsyncGridFSBucket, AsyncGridIn, AsyncGridOut
from pymongo.asynchronous.database import AsyncDatabase

from mongo_gridfs.exceptions import (
    InvalidIdentifierError,
    NotFoundError,
    PathUnavailableError,
    SourceFileNotFoundError,
)
from mongo_gridfs.filters import FileFilter
from mongo_gridfs.schemas import DownloadOptions, FileMetadata, WriteOptions

logger = logging.getLogger(__name__)

DEFAULT_BUCKET_NAME = "fs"

DEFAULT_TRANSFER_CHUNK_SIZE = 1024 * 1024

FilterLike = Union[FileFilter, Mapping[str, Any], None]

def parse_object_id(file_id: Union[str, ObjectId]) -> ObjectId:
    if isinstance(file_id, ObjectId):
        return file_id
    try:
        return ObjectId(file_id)
    except (InvalidId, TypeError) as e:
        raise InvalidIdentifierError(f"'{file_id}' is not a valid ObjectId") from e

def unique_filename(directory: str, prefix: Optional[str] = None) -> str:
    name = uuid.uuid4().hex
    if prefix:
        name = f"{prefix}-{name}"
    return f"{directory}/{name}"

async def iter_chunks(source: Any, chunk_size: int) -> AsyncIterator[bytes]:
    """Yield the bytes of ``source`` in pieces of at most ``chunk_size``.

    Accepts raw bytes, anything with a sync or async ``read(size)`` (aiofiles
    handles, GridOut, BytesIO), async iterables and plain iterables of bytes.
    """
    if isinstance(source, (bytes, bytearray, memoryview)):
        data = bytes(source)
        for start in range(0, len(data), chunk_size):
            yield data[start:start + chunk_size]
        return

    if hasattr(source, "read"):
        while True:
            chunk = source.read(chunk_size)
            if inspect.isawaitable(chunk):
                chunk = await chunk
            if not chunk:
                break
            yield chunk
        return

    if hasattr(source, "__aiter__"):
        async for chunk in source:
            if chunk:
                yield chunk
        return

    if hasattr(source, "__iter__"):
        for chunk in source:
            if chunk:
                yield chunk
        return

    raise TypeError(f"Cannot read bytes from {type(source).__name__}")

@asynccontextmanager
async def removing_on_exit(path: str, enabled: bool = True):
    """Delete ``path`` when the block exits, whatever the outcome.

    Failing to delete is logged and never replaces the block's own result.
    """
    try:
        yield path
    finally:
        if enabled:
            try:
                if await aiofiles.os.path.exists(path):
                    await aiofiles.os.remove(path)
                    logger.debug(f"Removed source file {path}")
            except OSError:
                logger.exception(f"Could not remove source file {path}")

class MongoGridFS:
    def __init__(
        self,
        database: AsyncDatabase,
        bucket_name: str = DEFAULT_BUCKET_NAME,
        transfer_chunk_size: int = DEFAULT_TRANSFER_CHUNK_SIZE,
        unique_prefix: Optional[str] = None,
    ):
        self.database = database
        self.bucket_name = bucket_name
        self.transfer_chunk_size = transfer_chunk_size
        self.unique_prefix = unique_prefix

    @property
    def bucket(self) -> AsyncGridFSBucket:
        # Rebuilt on every access; the handle holds no state of its own.
        return AsyncGridFSBucket(self.database, bucket_name=self.bucket_name)

    @staticmethod
    def get_download_path(
        record: FileMetadata,
        options: Union[DownloadOptions, Mapping[str, Any], None] = None,
        prefix: Optional[str] = None,
    ) -> str:
        """Compute where ``record`` would be downloaded to. Performs no I/O.

        Without ``target_dir`` everything lands in the system temp directory.
        With ``target_dir`` and ``filename=True`` the stored filename is
        returned as-is and ``target_dir`` is not applied.
        """
        options = _download_options(options)
        filename = options.filename
        if not options.target_dir:
            base_dir = tempfile.gettempdir()
            if isinstance(filename, str):
                return f"{base_dir}/{filename}"
            if filename is True:
                return f"{base_dir}/{record.id}"
            return unique_filename(base_dir, prefix)

        if isinstance(filename, str):
            return f"{options.target_dir}/{filename}"
        if filename is True:
            return record.filename
        return unique_filename(options.target_dir, prefix)

    async def find(self, filter: FilterLike = None) -> List[FileMetadata]:
        query = _to_query(filter)
        logger.debug(f"Querying bucket '{self.bucket_name}' with {query}")
        records = []
        async for grid_out in self.bucket.find(query):
            records.append(FileMetadata.from_grid_file(grid_out))
        return records

    async def find_one(self, filter: FilterLike = None) -> FileMetadata:
        result = await self.find(filter)
        if not result:
            logger.warning(f"No file found in bucket '{self.bucket_name}' for {_to_query(filter)}")
            raise NotFoundError("No Object found")
        return result[0]

    async def find_by_id(self, file_id: Union[str, ObjectId]) -> FileMetadata:
        return await self.find_one({"_id": parse_object_id(file_id)})

    async def read_file_stream(self, file_id: Union[str, ObjectId]) -> AsyncGridOut:
        """Open a download stream for the file. The caller must close it."""
        record = await self.find_by_id(file_id)
        return await self.bucket.open_download_stream(record.id)

    async def download_file(
        self,
        file_id: Union[str, ObjectId],
        options: Union[DownloadOptions, Mapping[str, Any], None] = None,
    ) -> str:
        record = await self.find_by_id(file_id)
        download_path = self.get_download_path(record, options, prefix=self.unique_prefix)

        target_dir = os.path.dirname(download_path) or os.curdir
        if not await aiofiles.os.path.isdir(target_dir):
            raise PathUnavailableError(f"Directory {target_dir} does not exist")

        logger.info(f"Downloading file {record.id} ('{record.filename}') to {download_path}")
        grid_out = await self.bucket.open_download_stream(record.id)
        try:
            # A partially written file is left in place if the copy fails.
            async with aiofiles.open(download_path, "wb") as out_file:
                while chunk := await grid_out.read(self.transfer_chunk_size):
                    await out_file.write(chunk)
        finally:
            await grid_out.close()
        return download_path

    async def write_file_stream(
        self,
        source: Any,
        options: Union[WriteOptions, Mapping[str, Any]],
    ) -> FileMetadata:
        """Store everything read from ``source`` as a new file.

        The files document is only inserted when the upload stream is closed,
        so a failed upload never shows up in ``find``. Chunks already written
        are left to the store.
        """
        options = _write_options(options)
        grid_in = self._open_upload_stream(options)
        async for chunk in iter_chunks(source, self.transfer_chunk_size):
            await grid_in.write(chunk)
        await grid_in.close()

        record = FileMetadata.from_grid_file(grid_in)
        logger.info(f"Stored '{record.filename}' as {record.id} ({record.length} bytes) in bucket '{self.bucket_name}'")
        return record

    async def upload_file(
        self,
        upload_file_path: Union[str, os.PathLike],
        options: Union[WriteOptions, Mapping[str, Any]],
        delete_file: bool = True,
    ) -> FileMetadata:
        upload_file_path = os.fspath(upload_file_path)
        if not await aiofiles.os.path.exists(upload_file_path):
            raise SourceFileNotFoundError(f"File not found: {upload_file_path}")

        async with removing_on_exit(upload_file_path, enabled=delete_file):
            async with aiofiles.open(upload_file_path, "rb") as source:
                return await self.write_file_stream(source, options)

    async def delete(self, file_id: Union[str, ObjectId]) -> bool:
        oid = parse_object_id(file_id)
        await self.bucket.delete(oid)
        logger.info(f"Deleted file {oid} from bucket '{self.bucket_name}'")
        return True

    def _open_upload_stream(self, options: WriteOptions) -> AsyncGridIn:
        # AsyncGridFSBucket.open_upload_stream has no way to set contentType
        # or aliases, so the stream is built over the bucket's root collection.
        fields = {"filename": options.filename}
        if options.chunk_size_bytes is not None:
            fields["chunkSize"] = options.chunk_size_bytes
        if options.content_type is not None:
            fields["contentType"] = options.content_type
        if options.metadata is not None:
            fields["metadata"] = options.metadata
        if options.aliases is not None:
            fields["aliases"] = options.aliases
        return AsyncGridIn(self.database[self.bucket_name], **fields)

def _to_query(filter: FilterLike) -> dict:
    if filter is None:
        return {}
    if isinstance(filter, FileFilter):
        return filter.to_query()
    return dict(filter)

def _download_options(options) -> DownloadOptions:
    if options is None:
        return DownloadOptions()
    if isinstance(options, DownloadOptions):
        return options
    return DownloadOptions.model_validate(options)

def _write_options(options) -> WriteOptions:
    if isinstance(options, WriteOptions):
        return options
    return WriteOptions.model_validate(options)
