from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import Mock

import pytest

from docrag.chunkstore import InMemoryChunkStore
from docrag.embeddings import (
    MAX_EMBED_BATCH,
    CohereEmbedder,
    DeterministicEmbedder,
    create_embedder,
    get_embedder,
)
from docrag.ingest.pipeline import IngestPipeline
from docrag.models import Document
from docrag.settings import ConfigurationError, load_settings


def test_missing_api_key_fails_immediately() -> None:
    with pytest.raises(ConfigurationError):
        get_embedder()


def test_cohere_embedder_uses_input_types() -> None:
    client = Mock()
    client.embed.return_value = SimpleNamespace(embeddings=[[0.1, 0.2], [0.3, 0.4]])
    embedder = CohereEmbedder(client=client, settings=load_settings())

    vectors = embedder.embed_documents(["a", "b"])

    assert vectors == [[0.1, 0.2], [0.3, 0.4]]
    client.embed.assert_called_once_with(
        texts=["a", "b"], model="embed-english-v3.0", input_type="search_document"
    )

    client.embed.reset_mock()
    client.embed.return_value = SimpleNamespace(embeddings=[[1.0, 0.0]])
    assert embedder.embed_query("q") == [1.0, 0.0]
    assert client.embed.call_args.kwargs["input_type"] == "search_query"


def test_empty_batch_skips_the_api() -> None:
    client = Mock()
    embedder = CohereEmbedder(client=client, settings=load_settings())

    assert embedder.embed_documents([]) == []
    client.embed.assert_not_called()


def test_deterministic_embedder_is_stable() -> None:
    embedder = DeterministicEmbedder(dimension=8)

    first = embedder.embed_query("same text")

    assert first == embedder.embed_documents(["same text"])[0]
    assert len(first) == 8
    assert first != embedder.embed_query("other text")


def test_mock_provider_from_settings(monkeypatch) -> None:
    monkeypatch.setenv("EMBEDDING_PROVIDER", "mock")

    assert isinstance(create_embedder(load_settings()), DeterministicEmbedder)


class _LimitedEmbedClient:
    """Fake Cohere client that rejects oversized requests like the hosted API."""

    def __init__(self) -> None:
        self.batch_sizes: list[int] = []

    def embed(self, *, texts, model, input_type):
        if len(texts) > MAX_EMBED_BATCH:
            raise RuntimeError(
                f"invalid request: texts must have a maximum length of {MAX_EMBED_BATCH}"
            )
        self.batch_sizes.append(len(texts))
        return SimpleNamespace(embeddings=[[float(len(text))] for text in texts])


def test_cohere_embedder_splits_large_batches() -> None:
    client = _LimitedEmbedClient()
    embedder = CohereEmbedder(client=client, settings=load_settings())
    texts = ["x" * (index + 1) for index in range(250)]

    vectors = embedder.embed_documents(texts)

    assert client.batch_sizes == [96, 96, 58]
    assert vectors == [[float(index + 1)] for index in range(250)]


def test_large_document_is_indexed_through_cohere() -> None:
    client = _LimitedEmbedClient()
    store = InMemoryChunkStore()
    pipeline = IngestPipeline(store, CohereEmbedder(client=client, settings=load_settings()))
    paragraphs = [f"Paragraph {index}. " + "word " * 200 for index in range(120)]
    document = Document(
        id="doc-large",
        name="large.txt",
        type="text/plain",
        size=0,
        path="large.txt",
        created_at="2024-01-01T00:00:00+00:00",
    )

    assert pipeline.process("\n\n".join(paragraphs).encode("utf-8"), document)

    stored = store.list_by_document("doc-large")
    assert len(stored) > MAX_EMBED_BATCH
    assert max(client.batch_sizes) <= MAX_EMBED_BATCH
    assert sum(client.batch_sizes) == len(stored)
