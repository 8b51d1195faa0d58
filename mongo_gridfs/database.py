from typing import AsyncGenerator

from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase

from mongo_gridfs.config import settings
from mongo_gridfs.gridfs_store import MongoGridFS
from mongo_gridfs.logging_config import get_logger

logger = get_logger(__name__)

client_store = {}

def get_client() -> AsyncMongoClient:
    if "client" not in client_store:
        logger.info("Creating MongoDB client")
        client_store["client"] = AsyncMongoClient(settings.MONGODB_URL)
    return client_store["client"]

def get_database() -> AsyncDatabase:
    return get_client()[settings.MONGODB_DATABASE]

async def get_gridfs() -> AsyncGenerator[MongoGridFS, None]:
    yield MongoGridFS(
        get_database(),
        bucket_name=settings.GRIDFS_BUCKET_NAME,
        transfer_chunk_size=settings.GRIDFS_DOWNLOAD_CHUNK_SIZE,
        unique_prefix=settings.GRIDFS_UNIQUE_PREFIX,
    )

async def close_client() -> None:
    client = client_store.pop("client", None)
    if client is not None:
        logger.info("Closing MongoDB client")
        await client.close()
