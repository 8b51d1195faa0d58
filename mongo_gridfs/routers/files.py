from typing import List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import StreamingResponse
from gridfs.errors import NoFile

from mongo_gridfs.database import get_gridfs
from mongo_gridfs.exceptions import InvalidIdentifierError, NotFoundError
from mongo_gridfs.filters import FileFilter
from mongo_gridfs.gridfs_store import MongoGridFS
from mongo_gridfs.logging_config import get_logger
from mongo_gridfs.schemas import FileMetadata, FileMetadataOut, WriteOptions

logger = get_logger(__name__)

router = APIRouter(
    tags=["files"],
)

async def get_record_or_404(store: MongoGridFS, file_id: str) -> FileMetadata:
    try:
        return await store.find_by_id(file_id)
    except InvalidIdentifierError:
        logger.warning(f"Rejected malformed file id: {file_id}")
        raise HTTPException(status_code=400, detail="Invalid file id")
    except NotFoundError:
        logger.warning(f"File not found: ID {file_id}")
        raise HTTPException(status_code=404, detail="File not found")

@router.post("/upload", response_model=FileMetadataOut)
async def upload_file(
    file: UploadFile = File(...),
    store: MongoGridFS = Depends(get_gridfs),
):
    logger.info(f"Upload request for filename: '{file.filename}', content_type: '{file.content_type}'")
    options = WriteOptions(
        filename=file.filename or "upload",
        content_type=file.content_type,
    )
    try:
        record = await store.write_file_stream(file, options)
    except Exception as e:
        logger.exception(f"Error storing file '{file.filename}'")
        raise HTTPException(status_code=500, detail=f"Error saving file: {str(e)}")
    finally:
        await file.close()
    return FileMetadataOut.from_record(record)

@router.get("/files", response_model=List[FileMetadataOut])
async def list_files(
    filename: Optional[str] = None,
    content_type: Optional[str] = None,
    store: MongoGridFS = Depends(get_gridfs),
):
    records = await store.find(FileFilter(filename=filename, content_type=content_type))
    return [FileMetadataOut.from_record(record) for record in records]

@router.get("/{file_id}/metadata", response_model=FileMetadataOut)
async def get_file_metadata_endpoint(
    file_id: str,
    store: MongoGridFS = Depends(get_gridfs),
):
    record = await get_record_or_404(store, file_id)
    return FileMetadataOut.from_record(record)

@router.get("/{file_id}/download")
async def download_file(
    file_id: str,
    store: MongoGridFS = Depends(get_gridfs),
):
    logger.info(f"Download request for file_id: {file_id}")
    try:
        grid_out = await store.read_file_stream(file_id)
    except InvalidIdentifierError:
        raise HTTPException(status_code=400, detail="Invalid file id")
    except (NotFoundError, NoFile):
        logger.warning(f"File not found for download: ID {file_id}")
        raise HTTPException(status_code=404, detail="File not found")
    record = FileMetadata.from_grid_file(grid_out)

    async def stream_chunks():
        try:
            while chunk := await grid_out.read(store.transfer_chunk_size):
                yield chunk
        finally:
            await grid_out.close()

    return StreamingResponse(
        stream_chunks(),
        media_type=record.content_type or "application/octet-stream",
        headers={"Content-Disposition": f'attachment; filename="{quote(record.filename)}"'},
    )

@router.delete("/{file_id}")
async def delete_file(
    file_id: str,
    store: MongoGridFS = Depends(get_gridfs),
):
    try:
        deleted = await store.delete(file_id)
    except InvalidIdentifierError:
        raise HTTPException(status_code=400, detail="Invalid file id")
    except NoFile:
        logger.warning(f"Delete requested for missing file: ID {file_id}")
        raise HTTPException(status_code=404, detail="File not found")
    return {"deleted": deleted}
