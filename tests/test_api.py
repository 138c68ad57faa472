from __future__ import annotations

from unittest.mock import Mock

import httpx
import pytest
from botocore.exceptions import EndpointConnectionError

from docrag.chunkstore import StoreUnavailableError
from docrag.llm_provider import LLMResult
from docrag.services.rag import get_rag_service
from docrag.storage import S3DocumentStorage


def _upload(client, content: bytes = b"Refunds are issued within 14 days.", name: str = "policy.txt"):
    return client.post("/documents/upload", files={"file": (name, content, "text/plain")})


def test_read_root_returns_ok(client) -> None:
    response = client.get("/")

    assert response.status_code == 200
    assert response.text == "ok"


def test_chat_requires_message(client) -> None:
    for payload in ({"message": ""}, {"chatId": "c1"}, {"message": None, "chatId": "c1"}):
        response = client.post("/chat", json=payload)
        assert response.status_code == 400
        assert response.json() == {"error": "Message is required"}


def test_chat_returns_response_and_debug(client) -> None:
    _upload(client)

    response = client.post("/chat", json={"message": "How long do refunds take?", "chatId": "c1"})

    assert response.status_code == 200
    body = response.json()
    assert body["response"].startswith("MOCK_ANSWER:")
    assert body["debug"]["hasDocuments"] is True
    assert body["debug"]["processSteps"][0]["step"] == "query_received"


def test_chat_model_failure_returns_500(client, rag_service) -> None:
    failing = Mock()
    failing.generate.return_value = LLMResult.failure("upstream", "Error generating response: timeout")
    rag_service._llm_factory = lambda: failing

    response = client.post("/chat", json={"message": "hi"})

    assert response.status_code == 500
    assert response.json() == {
        "error": "Internal server error",
        "details": "Error generating response: timeout",
    }


def test_chat_store_failure_returns_500(client, rag_service, monkeypatch) -> None:
    def _unavailable():
        raise StoreUnavailableError("database offline")

    monkeypatch.setattr(rag_service.chunk_store, "has_chunks", _unavailable)

    response = client.post("/chat", json={"message": "hi"})

    assert response.status_code == 500
    assert response.json()["error"] == "Failed to check for documents"


def test_upload_list_and_delete_document(client) -> None:
    uploaded = _upload(client)
    assert uploaded.status_code == 200
    document = uploaded.json()
    assert document["name"] == "policy.txt"
    assert document["type"] == "text/plain"
    assert document["url"].endswith(document["path"])

    listed = client.get("/documents")
    assert listed.status_code == 200
    assert [item["id"] for item in listed.json()] == [document["id"]]

    deleted = client.delete(f"/documents/{document['id']}")
    assert deleted.status_code == 200
    assert deleted.json() == {"success": True}
    assert client.get("/documents").json() == []


def test_upload_without_file_returns_400(client) -> None:
    response = client.post("/documents/upload")

    assert response.status_code == 400
    assert response.json() == {"error": "No file provided"}


def test_upload_rejected_by_storage_returns_500(client) -> None:
    response = client.post(
        "/documents/upload", files={"file": ("image.png", b"\x89PNG", "image/png")}
    )

    assert response.status_code == 500
    assert response.json()["error"] == "Failed to upload document"


def test_delete_unknown_document_returns_404(client) -> None:
    response = client.delete("/documents/missing-id")

    assert response.status_code == 404
    assert response.json() == {"error": "Document not found"}


def test_insights_without_documents_returns_404(client) -> None:
    response = client.get("/insights")

    assert response.status_code == 404
    assert response.json() == {"error": "No documents found to generate insights"}


def test_insights_with_documents(client) -> None:
    _upload(client)

    response = client.get("/insights")

    assert response.status_code == 200
    body = response.json()
    assert body["documentId"] == "all"
    assert body["content"].startswith("MOCK_ANSWER:")
    assert set(body) == {"id", "documentId", "content", "createdAt"}


def test_setup_is_idempotent(client) -> None:
    first = client.post("/setup")
    second = client.post("/setup")

    assert first.status_code == 200
    assert first.json()["success"] is True
    assert (first.json()["table"], first.json()["bucket"]) == ("created", "created")
    assert second.status_code == 200
    assert (second.json()["table"], second.json()["bucket"]) == ("exists", "exists")


def test_setup_partial_success_when_table_fails(client, rag_service, monkeypatch) -> None:
    def _fail():
        raise StoreUnavailableError("permission denied for schema public")

    monkeypatch.setattr(rag_service.chunk_store, "ensure_schema", _fail)

    response = client.post("/setup")

    assert response.status_code == 200
    body = response.json()
    assert body["partialSuccess"] is True
    assert body["tableError"] == "permission denied for schema public"
    assert "sql/schema.sql" in body["manualSetupInstructions"]


def test_setup_reports_both_failures(client, rag_service, monkeypatch) -> None:
    def _fail():
        raise RuntimeError("unreachable")

    monkeypatch.setattr(rag_service.chunk_store, "ensure_schema", _fail)
    monkeypatch.setattr(rag_service.storage, "ensure_bucket", _fail)

    response = client.post("/setup")

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "Failed to create table and bucket"
    assert body["tableDetails"] == "unreachable"
    assert body["bucketDetails"] == "unreachable"


@pytest.mark.anyio
async def test_upload_through_async_client(rag_service) -> None:
    from docrag.main import app

    app.dependency_overrides[get_rag_service] = lambda: rag_service
    try:
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as async_client:
            response = await async_client.post(
                "/documents/upload", files={"file": ("notes.md", b"# Notes\n\nBody", "text/markdown")}
            )
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    assert response.json()["type"] == "text/markdown"
    assert rag_service.chunk_store.has_chunks()


def test_upload_storage_connection_error_returns_500(client, rag_service) -> None:
    s3_client = Mock()
    s3_client.head_object.side_effect = EndpointConnectionError(endpoint_url="https://s3.example.com")
    rag_service._storage = S3DocumentStorage("documents", client=s3_client)

    response = _upload(client)

    assert response.status_code == 500
    assert response.json()["error"] == "Failed to upload document"
    s3_client.put_object.assert_not_called()


def test_insights_store_check_failure_returns_500(client, rag_service, monkeypatch) -> None:
    def _unavailable():
        raise StoreUnavailableError("database offline")

    monkeypatch.setattr(rag_service.chunk_store, "has_chunks", _unavailable)

    response = client.get("/insights")

    assert response.status_code == 500
    assert response.json() == {
        "error": "Failed to check for documents",
        "details": "database offline",
    }


def test_insights_retrieval_failure_returns_internal_error(client, rag_service, monkeypatch) -> None:
    _upload(client)

    def _window_failed(query, debug=False):
        raise StoreUnavailableError("window query failed")

    monkeypatch.setattr(rag_service.retriever, "fetch_candidates", _window_failed)

    response = client.get("/insights")

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error", "details": "window query failed"}
