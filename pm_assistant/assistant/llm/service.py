"""Uniform generate() over the registered provider adapters."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from pm_assistant.assistant.config import ProviderConfig
from pm_assistant.assistant.errors import ConfigurationError
from pm_assistant.assistant.llm.providers import (
    ChatTurn,
    GenerationOptions,
    GenerationResult,
    LLMProvider,
    LLMRequest,
)

_VALID_ROLES = {"user", "assistant"}


def coerce_turns(turns: Iterable[ChatTurn | Mapping[str, Any]]) -> tuple[ChatTurn, ...]:
    """Accept ChatTurn objects or {role, content} mappings, preserving order."""

    normalized: list[ChatTurn] = []
    for index, turn in enumerate(turns):
        if isinstance(turn, ChatTurn):
            normalized.append(turn)
            continue
        role = str(turn.get("role", "")).strip()
        if role not in _VALID_ROLES:
            raise ValueError(f"invalid_turn_role:{index}:{role or '-'}")
        content = str(turn.get("content") or "")
        normalized.append(ChatTurn(role=role, content=content))  # type: ignore[arg-type]
    return tuple(normalized)


def _select_provider(provider_name: str, providers: Mapping[str, LLMProvider]) -> LLMProvider:
    provider = providers.get(provider_name)
    if provider is None:
        raise ConfigurationError(
            f"Unsupported AI provider: {provider_name}", reason_code="ai_provider_unsupported"
        )
    return provider


def generate(
    config: ProviderConfig,
    system_prompt: str,
    turns: Iterable[ChatTurn | Mapping[str, Any]],
    options: GenerationOptions | None = None,
    *,
    providers: Mapping[str, LLMProvider],
) -> GenerationResult:
    """Send one request to the configured provider.

    Returns the normalized result or raises ProviderError; no retries.
    """

    provider = _select_provider(config.provider, providers)
    request = LLMRequest(
        api_key=config.api_key,
        model=config.model,
        system_prompt=system_prompt,
        turns=coerce_turns(turns),
        options=options or GenerationOptions.for_generation(),
    )
    return provider.run(request)
