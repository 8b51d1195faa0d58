from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from mongo_gridfs.gridfs_store import DEFAULT_BUCKET_NAME

env_path = Path(__file__).parent / ".env"


class Settings(BaseSettings):
    MONGODB_URL: str = "mongodb://localhost:27017"
    MONGODB_DATABASE: str = "gridfs"
    GRIDFS_BUCKET_NAME: str = DEFAULT_BUCKET_NAME
    GRIDFS_DOWNLOAD_CHUNK_SIZE: int = 1024 * 1024
    GRIDFS_UNIQUE_PREFIX: Optional[str] = None
    GRIDFS_HOST: str = "0.0.0.0"
    GRIDFS_PORT: int = 8003
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=env_path, env_file_encoding="utf-8", extra="ignore")


settings = Settings()
