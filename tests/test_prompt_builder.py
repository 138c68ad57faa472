from docrag.models import Chunk, ScoredChunk
from docrag.prompt_builder import (
    build_insight_prompt,
    build_no_documents_prompt,
    build_qa_prompt,
    format_documents,
)


def test_qa_prompt_contains_context_then_question() -> None:
    chunks = [
        ScoredChunk(Chunk(id="d-chunk-0", document_id="d", content="Refunds take 14 days."), 0.9),
        ScoredChunk(Chunk(id="d-chunk-1", document_id="d", content="Shipping is free."), 0.6),
    ]

    context = format_documents(chunks)
    prompt = build_qa_prompt("How long do refunds take?", context)

    assert context == "Refunds take 14 days.\n\nShipping is free."
    assert prompt.index("Refunds take 14 days.") < prompt.index("Question: How long do refunds take?")
    assert "based only on the provided documents" in prompt


def test_insight_and_direct_prompts() -> None:
    assert "Key themes and topics" in build_insight_prompt("ctx")
    assert build_no_documents_prompt("What is RAG?").endswith("What is RAG?")


def test_empty_context_is_allowed() -> None:
    assert "Documents:\n\n\nQuestion: q" in build_qa_prompt("q", format_documents([]))
