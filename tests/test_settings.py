import pytest

from docrag.settings import ConfigurationError, get_settings, load_settings, reset_settings_cache


def test_defaults() -> None:
    settings = load_settings()

    assert settings.llm_provider == "cohere"
    assert settings.chunk_store == "memory"
    assert settings.document_storage == "memory"
    assert settings.storage_bucket == "documents"
    assert settings.retriever_strategy == "scored"
    assert (settings.retrieval_window, settings.retrieval_top_k) == (10, 5)


def test_invalid_numbers_fall_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("RETRIEVAL_TOP_K", "many")
    monkeypatch.setenv("LLM_TEMPERATURE", "warm")

    settings = load_settings()

    assert settings.retrieval_top_k == 5
    assert settings.llm_temperature == 0.1


def test_require_api_key(monkeypatch) -> None:
    with pytest.raises(ConfigurationError):
        load_settings().require_api_key()

    monkeypatch.setenv("COHERE_API_KEY", " secret ")
    assert load_settings().require_api_key() == "secret"


def test_settings_are_cached_until_reset(monkeypatch) -> None:
    first = get_settings()
    monkeypatch.setenv("STORAGE_BUCKET", "uploads")

    assert get_settings() is first
    reset_settings_cache()
    assert get_settings().storage_bucket == "uploads"
