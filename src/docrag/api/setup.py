"""Idempotent bootstrap of the chunk table and the document bucket."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from docrag.api.errors import (
    APIError,
    MANUAL_BUCKET_INSTRUCTIONS,
    MANUAL_SETUP_INSTRUCTIONS,
    MANUAL_TABLE_INSTRUCTIONS,
)
from docrag.services.rag import RAGService, get_rag_service

router = APIRouter(tags=["setup"])


@router.post("/setup")
def run_setup(rag_service: RAGService = Depends(get_rag_service)) -> dict[str, Any]:
    report = rag_service.setup()

    if report.bucket_error is not None:
        if report.table_error is not None:
            raise APIError(
                500,
                "Failed to create table and bucket",
                tableDetails=report.table_error,
                bucketDetails=report.bucket_error,
                manualSetupInstructions=MANUAL_SETUP_INSTRUCTIONS,
            )
        raise APIError(
            500,
            "Failed to create bucket",
            details=report.bucket_error,
            manualSetupInstructions=MANUAL_BUCKET_INSTRUCTIONS,
        )

    if report.table_error is not None:
        return {
            "partialSuccess": True,
            "message": "Storage bucket created, but database setup needs manual intervention",
            "tableError": report.table_error,
            "manualSetupInstructions": MANUAL_TABLE_INSTRUCTIONS,
        }

    return {
        "success": True,
        "message": "Database and storage initialized successfully",
        "table": report.table,
        "bucket": report.bucket,
    }
