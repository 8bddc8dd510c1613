from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from hackmates.database.blob_store import BlobStore
from hackmates.utils.dependencies import get_blob_store


router = APIRouter(prefix="/files", tags=["files"])


@router.get("/{ref}")
async def download(ref: str, blobs: BlobStore = Depends(get_blob_store)):
    content_type, chunks = await blobs.open(ref)
    return StreamingResponse(chunks, media_type=content_type)
