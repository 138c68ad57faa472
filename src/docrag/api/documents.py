"""Document upload, listing and deletion."""
from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.concurrency import run_in_threadpool

from docrag.api.errors import APIError
from docrag.services.rag import RAGService, get_rag_service
from docrag.storage import StorageError

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])

DEFAULT_CONTENT_TYPE = "application/octet-stream"


@router.get("")
def list_documents(rag_service: RAGService = Depends(get_rag_service)) -> list[dict[str, Any]]:
    try:
        documents = rag_service.list_documents()
    except StorageError as exc:
        LOGGER.error("Error fetching documents: %s", exc)
        raise APIError(500, "Failed to fetch documents", details=str(exc)) from exc
    return [document.to_dict() for document in documents]


@router.post("/upload")
async def upload_document(
    file: Optional[UploadFile] = File(None),
    rag_service: RAGService = Depends(get_rag_service),
) -> dict[str, Any]:
    """Store the uploaded file and index its text.

    The upload succeeds even when indexing fails; the failure is only logged.
    """

    if file is None or not file.filename:
        raise APIError(400, "No file provided")

    data = await file.read()
    content_type = file.content_type or DEFAULT_CONTENT_TYPE
    try:
        document = await run_in_threadpool(
            rag_service.upload_document, file.filename, content_type, data
        )
    except StorageError as exc:
        LOGGER.error("Error uploading document %s: %s", file.filename, exc)
        raise APIError(500, "Failed to upload document", details=str(exc)) from exc
    return document.to_dict()


@router.delete("/{document_id}")
def delete_document(
    document_id: str,
    rag_service: RAGService = Depends(get_rag_service),
) -> dict[str, bool]:
    try:
        deleted = rag_service.delete_document(document_id)
    except StorageError as exc:
        LOGGER.error("Error deleting document %s: %s", document_id, exc)
        raise APIError(500, "Failed to delete document", details=str(exc)) from exc
    if not deleted:
        raise APIError(404, "Document not found")
    return {"success": True}
