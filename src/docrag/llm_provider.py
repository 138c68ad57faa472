"""Access to the hosted language model used for answers and insights."""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Literal, Optional

import cohere

from docrag.settings import ConfigurationError, Settings, get_settings
from docrag.telemetry import emit_inference_request, emit_inference_result

LOGGER = logging.getLogger(__name__)

NO_RESPONSE_TEXT = "No response generated."

ErrorKind = Literal["upstream", "empty_prompt"]


@dataclass(frozen=True, slots=True)
class LLMResult:
    """Outcome of a model call: either generated text or a typed failure."""

    ok: bool
    text: str = ""
    error_kind: Optional[ErrorKind] = None
    error_message: Optional[str] = None

    @classmethod
    def success(cls, text: str) -> "LLMResult":
        return cls(ok=True, text=text)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> "LLMResult":
        return cls(ok=False, error_kind=kind, error_message=message)


class LLMError(RuntimeError):
    """Base exception raised for language model issues."""


class GenerationError(LLMError):
    """Raised by callers that need an answer when the model call failed."""

    def __init__(self, result: LLMResult) -> None:
        super().__init__(result.error_message or "Language model call failed")
        self.kind = result.error_kind
        self.result = result


def unwrap(result: LLMResult) -> str:
    """Return the generated text or raise :class:`GenerationError`."""

    if not result.ok:
        raise GenerationError(result)
    return result.text


class LLM:
    """Common interface exposed by language model implementations."""

    temperature: float = 0.1
    max_tokens: int | None = None

    def generate(self, prompt: str, *, chat_id: str | None = None) -> LLMResult:
        """Send ``prompt`` to the model and wrap the outcome."""

        if not prompt.strip():
            return LLMResult.failure("empty_prompt", "Prompt must not be empty")

        req_id = uuid.uuid4().hex
        emit_inference_request(
            req_id=req_id,
            model=self.model_name,
            prompt_preview=prompt,
            prompt_len=len(prompt),
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            chat_id=chat_id,
        )
        started = time.perf_counter()
        try:
            text = self._complete(prompt)
        except Exception as error:
            LOGGER.exception("Language model request failed")
            result = LLMResult.failure("upstream", f"Error generating response: {error}")
        else:
            result = LLMResult.success(text.strip() or NO_RESPONSE_TEXT)

        emit_inference_result(
            req_id=req_id,
            duration_ms=(time.perf_counter() - started) * 1000.0,
            model_used=self.model_name,
            answer_preview=result.text or (result.error_message or ""),
            ok=result.ok,
            chat_id=chat_id,
            error_kind=result.error_kind,
        )
        return result

    def _complete(self, prompt: str) -> str:
        raise NotImplementedError

    @property
    def model_name(self) -> str:
        """Human-readable identifier describing the model."""

        return "stub"


class CohereLLM(LLM):
    """Chat completions through ``cohere.Client.chat``."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        client: Any | None = None,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._model = model or settings.cohere_chat_model
        self.temperature = settings.llm_temperature if temperature is None else temperature
        self.max_tokens = settings.llm_max_tokens if max_tokens is None else max_tokens
        if client is None:
            key = api_key or settings.require_api_key()
            client = cohere.Client(api_key=key)
        self._client = client

    @property
    def model_name(self) -> str:
        return self._model

    def _complete(self, prompt: str) -> str:
        response = self._client.chat(
            message=prompt,
            model=self._model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        return str(getattr(response, "text", "") or "")


class MockLLM(LLM):
    """Deterministic model used for tests and offline development."""

    def _complete(self, prompt: str) -> str:
        return f"MOCK_ANSWER: {prompt[:100]}"

    @property
    def model_name(self) -> str:
        return "mock"


def create_llm(settings: Settings | None = None) -> LLM:
    settings = settings or get_settings()
    provider = settings.llm_provider
    if provider == "mock":
        return MockLLM()
    if provider == "cohere":
        return CohereLLM(settings=settings)
    raise ConfigurationError(f"Unsupported LLM_PROVIDER: {provider!r}")


@lru_cache()
def get_llm() -> LLM:
    """Return the configured language model, failing fast without an API key."""

    return create_llm()


def reset_llm_cache() -> None:
    """Clear the cached language model (primarily for testing)."""

    get_llm.cache_clear()  # type: ignore[attr-defined]


__all__ = [
    "CohereLLM",
    "GenerationError",
    "LLM",
    "LLMError",
    "LLMResult",
    "MockLLM",
    "NO_RESPONSE_TEXT",
    "create_llm",
    "get_llm",
    "reset_llm_cache",
    "unwrap",
]
