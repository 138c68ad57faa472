"""Prompt templates for question answering and document insights."""
from __future__ import annotations

from typing import Iterable

from docrag.models import ScoredChunk

QA_PROMPT_TEMPLATE = """You are a helpful assistant that answers questions based on the provided documents.
Documents:
{context}

Question: {question}

Answer the question based only on the provided documents. If the documents don't contain the answer, say "I don't have enough information to answer this question".
Your answer should be thorough, accurate, and helpful."""

INSIGHT_PROMPT_TEMPLATE = """You are an insights analyst looking at documents provided by a user.
Documents:
{context}

Based on these documents, provide the following insights:
1. Key themes and topics
2. Main entities mentioned
3. Potential action items
4. A brief summary

Format your response as simple markdown with headers for each section."""

NO_DOCUMENTS_PROMPT_TEMPLATE = """You are a helpful AI assistant. User doesn't have any documents uploaded yet.
Answer the following question:
{question}"""

RETRIEVAL_ERROR_PROMPT_TEMPLATE = """You are a helpful AI assistant. There was an error retrieving documents.
Please answer the following question with general knowledge:
{question}"""


def format_documents(chunks: Iterable[ScoredChunk]) -> str:
    """Join retrieved chunk texts into a single context block."""

    return "\n\n".join(chunk.content for chunk in chunks)


def build_qa_prompt(question: str, context: str) -> str:
    if question is None:
        raise ValueError("question must not be None")
    return QA_PROMPT_TEMPLATE.format(context=context, question=question)


def build_insight_prompt(context: str) -> str:
    return INSIGHT_PROMPT_TEMPLATE.format(context=context)


def build_no_documents_prompt(question: str) -> str:
    return NO_DOCUMENTS_PROMPT_TEMPLATE.format(question=question)


def build_retrieval_error_prompt(question: str) -> str:
    return RETRIEVAL_ERROR_PROMPT_TEMPLATE.format(question=question)


__all__ = [
    "INSIGHT_PROMPT_TEMPLATE",
    "QA_PROMPT_TEMPLATE",
    "build_insight_prompt",
    "build_no_documents_prompt",
    "build_qa_prompt",
    "build_retrieval_error_prompt",
    "format_documents",
]
