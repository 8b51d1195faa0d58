from contextlib import asynccontextmanager

from fastapi import FastAPI

from mongo_gridfs.config import settings
from mongo_gridfs.database import close_client
from mongo_gridfs.logging_config import get_logger
from mongo_gridfs.routers import files as files_router

logger = get_logger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("GridFS service starting up...")
    logger.info(f"MongoDB database: {settings.MONGODB_DATABASE}, bucket: {settings.GRIDFS_BUCKET_NAME}")
    yield
    logger.info("GridFS service shutting down...")
    await close_client()

app = FastAPI(
    title="GridFS Service",
    version="0.1.0",
    lifespan=lifespan
)

app.include_router(files_router.router)

@app.get("/ping")
async def ping():
    return {"ping": "pong! from GridFS service"}

if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting GridFS service on {settings.GRIDFS_HOST}:{settings.GRIDFS_PORT}")
    uvicorn.run("mongo_gridfs.main:app", host=settings.GRIDFS_HOST, port=settings.GRIDFS_PORT, reload=True)
