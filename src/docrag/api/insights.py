from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends

from docrag.api.errors import APIError
from docrag.services.rag import DocumentCheckError, RAGService, get_rag_service

LOGGER = logging.getLogger(__name__)

router = APIRouter(tags=["insights"])


@router.get("/insights")
def generate_insights(rag_service: RAGService = Depends(get_rag_service)) -> dict[str, Any]:
    """Produce an analytic summary across every stored document."""

    try:
        insight = rag_service.generate_insight()
    except DocumentCheckError as exc:
        raise APIError(500, "Failed to check for documents", details=str(exc)) from exc
    except Exception as exc:
        LOGGER.exception("Error in insights route")
        raise APIError(500, "Internal server error", details=str(exc)) from exc

    if insight is None:
        raise APIError(404, "No documents found to generate insights")
    return insight.to_dict()
