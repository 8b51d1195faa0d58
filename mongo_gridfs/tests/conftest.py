import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncGenerator

project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

import httpx
import pytest
import pytest_asyncio
from bson import ObjectId
from gridfs.errors import NoFile
from httpx import AsyncClient

from mongo_gridfs import gridfs_store
from mongo_gridfs.database import get_gridfs
from mongo_gridfs.gridfs_store import MongoGridFS
from mongo_gridfs.main import app

DEFAULT_CHUNK_SIZE = 255 * 1024

_ATTRIBUTE_FIELDS = {
    "chunk_size": "chunkSize",
    "upload_date": "uploadDate",
    "content_type": "contentType",
}


class FakeGridFile:
    """Exposes files-document fields as attributes, like the driver's grid files."""

    def __init__(self, document: dict):
        self._file = document

    def __getattr__(self, name):
        key = _ATTRIBUTE_FIELDS.get(name, name)
        file_document = self.__dict__.get("_file", {})
        if key in file_document:
            return file_document[key]
        if name in ("md5", "content_type", "metadata", "aliases"):
            return None
        raise AttributeError(name)


class FakeGridOut(FakeGridFile):
    def __init__(self, document: dict, data: bytes):
        super().__init__(document)
        self._data = data
        self._position = 0
        self.closed = False

    async def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            size = len(self._data) - self._position
        chunk = self._data[self._position:self._position + size]
        self._position += len(chunk)
        return chunk

    async def close(self) -> None:
        self.closed = True


class FakeGridIn(FakeGridFile):
    def __init__(self, root_collection, **kwargs):
        document = {"_id": ObjectId(), "chunkSize": DEFAULT_CHUNK_SIZE}
        document.update(kwargs)
        super().__init__(document)
        self._files = root_collection.database.files_for(root_collection.name)
        self._buffer = bytearray()

    async def write(self, data: bytes) -> None:
        self._buffer.extend(data)

    async def close(self) -> None:
        self._file["length"] = len(self._buffer)
        self._file["uploadDate"] = datetime.now(timezone.utc)
        self._files[self._file["_id"]] = (dict(self._file), bytes(self._buffer))


class FakeCollection:
    def __init__(self, database, name: str):
        self.database = database
        self.name = name


class FakeDatabase:
    def __init__(self):
        self.buckets = {}

    def __getitem__(self, name: str) -> FakeCollection:
        return FakeCollection(self, name)

    def files_for(self, bucket_name: str) -> dict:
        return self.buckets.setdefault(bucket_name, {})


def _lookup(document: dict, dotted_key: str):
    value = document
    for part in dotted_key.split("."):
        if not isinstance(value, dict) or part not in value:
            return None
        value = value[part]
    return value


def _matches(document: dict, query: dict) -> bool:
    for key, condition in query.items():
        value = _lookup(document, key)
        if isinstance(condition, dict) and any(op.startswith("$") for op in condition):
            for op, operand in condition.items():
                if value is None:
                    return False
                if op == "$gte" and not value >= operand:
                    return False
                if op == "$lt" and not value < operand:
                    return False
                if op == "$lte" and not value <= operand:
                    return False
        elif isinstance(value, list):
            if condition not in value:
                return False
        elif value != condition:
            return False
    return True


class FakeCursor:
    def __init__(self, items):
        self._items = list(items)

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self._items:
            raise StopAsyncIteration
        return self._items.pop(0)


class FakeGridFSBucket:
    instances = 0

    def __init__(self, database: FakeDatabase, bucket_name: str = "fs"):
        FakeGridFSBucket.instances += 1
        self._files = database.files_for(bucket_name)

    def find(self, query: dict) -> FakeCursor:
        return FakeCursor(
            FakeGridOut(document, data)
            for document, data in self._files.values()
            if _matches(document, query)
        )

    async def open_download_stream(self, file_id: ObjectId) -> FakeGridOut:
        if file_id not in self._files:
            raise NoFile(f"no file in gridfs collection with _id {file_id!r}")
        document, data = self._files[file_id]
        return FakeGridOut(document, data)

    async def delete(self, file_id: ObjectId) -> None:
        if self._files.pop(file_id, None) is None:
            raise NoFile(f"no file could be deleted because none matched {file_id}")


@pytest.fixture(scope="function")
def fake_database(monkeypatch) -> FakeDatabase:
    monkeypatch.setattr(gridfs_store, "AsyncGridFSBucket", FakeGridFSBucket)
    monkeypatch.setattr(gridfs_store, "AsyncGridIn", FakeGridIn)
    return FakeDatabase()


@pytest.fixture(scope="function")
def store(fake_database) -> MongoGridFS:
    return MongoGridFS(fake_database, bucket_name="fs")


@pytest_asyncio.fixture(scope="function")
async def async_client(store: MongoGridFS) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_gridfs():
        yield store

    app.dependency_overrides[get_gridfs] = override_get_gridfs

    transport = httpx.ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testgridfs") as client:
        yield client

    app.dependency_overrides.clear()
