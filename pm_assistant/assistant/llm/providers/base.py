"""Provider interface and normalized request/response contracts."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

import requests

from pm_assistant.assistant.errors import ProviderError
from pm_assistant.assistant.llm.catalog import provider_label

logger = logging.getLogger(__name__)

DEFAULT_GENERATION_MAX_TOKENS = 2000
DEFAULT_CHAT_MAX_TOKENS = 8192
DEFAULT_TEMPERATURE = 0.7
DEFAULT_TIMEOUT_S = 60.0


@dataclass(frozen=True)
class ChatTurn:
    role: Literal["user", "assistant"]
    content: str

    def as_message(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class GenerationOptions:
    """Sampling knobs; unset values fall back to the request-kind defaults."""

    max_tokens: int | None = None
    temperature: float | None = None

    @classmethod
    def for_generation(cls, **overrides: Any) -> "GenerationOptions":
        base = {"max_tokens": DEFAULT_GENERATION_MAX_TOKENS, "temperature": DEFAULT_TEMPERATURE}
        base.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**base)

    @classmethod
    def for_chat(cls, **overrides: Any) -> "GenerationOptions":
        base = {"max_tokens": DEFAULT_CHAT_MAX_TOKENS, "temperature": DEFAULT_TEMPERATURE}
        base.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**base)

    def resolved_max_tokens(self) -> int:
        return DEFAULT_GENERATION_MAX_TOKENS if self.max_tokens is None else self.max_tokens

    def resolved_temperature(self) -> float:
        return DEFAULT_TEMPERATURE if self.temperature is None else self.temperature


@dataclass(frozen=True)
class LLMRequest:
    """Normalized provider request independent of vendor wire formats."""

    api_key: str = field(repr=False)
    model: str
    system_prompt: str
    turns: tuple[ChatTurn, ...]
    options: GenerationOptions = GenerationOptions()


@dataclass(frozen=True)
class GenerationResult:
    """Normalized provider response."""

    text: str
    model: str
    provider: str
    tokens_used: int | None = None


class LLMProvider(Protocol):
    """Provider adapter protocol implemented once per upstream vendor."""

    name: str

    def run(self, request: LLMRequest) -> GenerationResult:
        """Execute one outbound call and return normalized output."""


def extract_error_message(body: Any) -> str:
    """Pull a human-readable message out of a vendor error body."""

    if not isinstance(body, dict):
        return ""
    error = body.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        if isinstance(message, str) and message.strip():
            return message.strip()
    if isinstance(error, str) and error.strip():
        return error.strip()
    for key in ("message", "detail"):
        value = body.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


class HTTPProvider:
    """Shared POST/decode/error-normalization for JSON-over-HTTPS providers.

    Subclasses supply the endpoint, headers, request body, and the extraction
    path for text and token usage. Exactly one request is sent per ``run``;
    retries belong to the caller.
    """

    name = ""

    def __init__(
        self,
        session: requests.Session | None = None,
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        self.session = session or requests.Session()
        self.timeout_s = timeout_s

    @property
    def label(self) -> str:
        return provider_label(self.name)

    def endpoint(self, request: LLMRequest) -> str:
        raise NotImplementedError

    def headers(self, request: LLMRequest) -> dict[str, str]:
        raise NotImplementedError

    def body(self, request: LLMRequest) -> dict[str, Any]:
        raise NotImplementedError

    def extract_text(self, payload: dict[str, Any]) -> str:
        raise NotImplementedError

    def extract_tokens(self, payload: dict[str, Any]) -> int | None:
        raise NotImplementedError

    def run(self, request: LLMRequest) -> GenerationResult:
        started = time.perf_counter()
        try:
            response = self.session.request(
                method="POST",
                url=self.endpoint(request),
                headers={"Content-Type": "application/json", **self.headers(request)},
                json=self.body(request),
                timeout=self.timeout_s,
            )
        except requests.Timeout as exc:
            logger.warning("provider=%s model=%s timed out", self.name, request.model)
            raise ProviderError(
                f"Failed to call {self.label}: request timed out",
                provider=self.name,
                reason_code="provider_timeout",
            ) from exc
        except requests.RequestException as exc:
            logger.warning(
                "provider=%s model=%s transport error: %s", self.name, request.model, exc
            )
            raise ProviderError(
                f"Failed to call {self.label}: {exc}",
                provider=self.name,
                reason_code="provider_unavailable",
            ) from exc

        elapsed_ms = (time.perf_counter() - started) * 1000
        if response.status_code >= 400:
            message = extract_error_message(_safe_json(response)) or f"{self.label} API error"
            logger.warning(
                "provider=%s model=%s status=%s elapsed_ms=%.1f",
                self.name,
                request.model,
                response.status_code,
                elapsed_ms,
            )
            raise ProviderError(
                message,
                provider=self.name,
                status_code=response.status_code,
                reason_code=_reason_for_status(response.status_code),
            )

        payload = _safe_json(response)
        try:
            text = self.extract_text(payload)
            tokens = self.extract_tokens(payload)
        except (AttributeError, KeyError, IndexError, TypeError) as exc:
            raise ProviderError(
                f"{self.label} returned a malformed response",
                provider=self.name,
                status_code=response.status_code,
                reason_code="provider_malformed_response",
            ) from exc
        if text is not None and not isinstance(text, str):
            raise ProviderError(
                f"{self.label} returned a malformed response",
                provider=self.name,
                status_code=response.status_code,
                reason_code="provider_malformed_response",
            )

        logger.debug(
            "provider=%s model=%s tokens=%s elapsed_ms=%.1f",
            self.name,
            request.model,
            tokens,
            elapsed_ms,
        )
        return GenerationResult(
            text=text or "",
            model=request.model,
            provider=self.name,
            tokens_used=tokens,
        )


def _safe_json(response: Any) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _reason_for_status(status_code: int) -> str:
    if status_code in {401, 403}:
        return "provider_auth_denied"
    if status_code == 429:
        return "provider_rate_limited"
    if 400 <= status_code < 500:
        return "provider_invalid_request"
    return "provider_unavailable"


def optional_int(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return int(value)
