"""Chat endpoint answering questions over the uploaded documents."""
from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from docrag.api.errors import APIError
from docrag.services.rag import DocumentCheckError, RAGService, get_rag_service

LOGGER = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])


class ChatRequest(BaseModel):
    """Request body accepted by the chat endpoint."""

    message: Optional[str] = Field(None, description="User question to answer.")
    chatId: Optional[str] = Field(None, description="Client-side conversation identifier.")


class ChatResponse(BaseModel):
    response: str
    debug: dict[str, Any]


@router.post("/chat", response_model=ChatResponse)
def chat(
    request: ChatRequest,
    rag_service: RAGService = Depends(get_rag_service),
) -> ChatResponse:
    """Answer ``message`` from the stored chunks, or directly when there are none."""

    if not request.message:
        raise APIError(400, "Message is required")

    try:
        result = rag_service.chat(request.message, request.chatId)
    except DocumentCheckError as exc:
        raise APIError(500, "Failed to check for documents", details=str(exc)) from exc
    except Exception as exc:
        LOGGER.exception("Error in chat route")
        raise APIError(500, "Internal server error", details=str(exc)) from exc
    return ChatResponse(response=result.response, debug=result.debug)
