"""Document API routes for feeding the index."""

from fastapi import APIRouter, HTTPException

from mane.api.schemas import DocumentRequest
from mane.api.services_store import get_services
from mane.memory.vault import MEDIA_TYPES
from mane.utils.logging import logger

router = APIRouter(prefix="/documents", tags=["documents"])


@router.post("")
async def add_document(request: DocumentRequest):
    """
    Index a file from its already extracted content.
    Images and audio are indexed by their caption or transcript.
    """
    if not request.file_path.strip():
        raise HTTPException(status_code=400, detail="filePath is required")
    if request.media_type not in MEDIA_TYPES:
        raise HTTPException(status_code=400, detail=f"Unknown media type: {request.media_type}")
    if not request.content.strip():
        raise HTTPException(status_code=400, detail="content is required")

    services = await get_services()
    try:
        doc_id = await services.index.add_document(
            request.file_path, request.content, request.media_type
        )
    except Exception as e:
        logger.error(f"Error indexing {request.file_path}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to index document: {e}")

    return {"success": True, "id": doc_id, "filePath": request.file_path}


@router.get("/count")
async def count_documents():
    services = await get_services()
    return {"count": await services.index.count()}


@router.delete("")
async def clear_documents():
    """Drop every indexed document."""
    services = await get_services()
    try:
        await services.index.clear()
    except Exception as e:
        logger.error(f"Error clearing index: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to clear index: {e}")

    return {"success": True, "message": "Index cleared"}
