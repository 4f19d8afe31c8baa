"""Provider adapters for assistant generation."""

from __future__ import annotations

import requests

from pm_assistant.assistant.llm.providers.anthropic import AnthropicProvider
from pm_assistant.assistant.llm.providers.base import (
    ChatTurn,
    GenerationOptions,
    GenerationResult,
    HTTPProvider,
    LLMProvider,
    LLMRequest,
)
from pm_assistant.assistant.llm.providers.gemini import GeminiProvider
from pm_assistant.assistant.llm.providers.openai import (
    DeepSeekProvider,
    GroqProvider,
    MistralProvider,
    OpenAIProvider,
    OpenRouterProvider,
    XAIProvider,
)
from pm_assistant.shared.settings import AssistantSettings


def registered_providers(
    settings: AssistantSettings | None = None,
    *,
    session: requests.Session | None = None,
) -> dict[str, LLMProvider]:
    """Build one adapter per supported vendor sharing a session and timeout."""

    resolved = settings or AssistantSettings()
    shared_session = session or requests.Session()
    timeout_s = resolved.request_timeout_s
    providers: list[LLMProvider] = [
        OpenAIProvider(session=shared_session, timeout_s=timeout_s),
        AnthropicProvider(session=shared_session, timeout_s=timeout_s),
        GeminiProvider(session=shared_session, timeout_s=timeout_s),
        GroqProvider(session=shared_session, timeout_s=timeout_s),
        MistralProvider(session=shared_session, timeout_s=timeout_s),
        XAIProvider(session=shared_session, timeout_s=timeout_s),
        DeepSeekProvider(session=shared_session, timeout_s=timeout_s),
        OpenRouterProvider(
            session=shared_session,
            timeout_s=timeout_s,
            site_url=resolved.site_url,
            app_title=resolved.app_title,
        ),
    ]
    return dict(sorted(((provider.name, provider) for provider in providers), key=lambda kv: kv[0]))


__all__ = [
    "AnthropicProvider",
    "ChatTurn",
    "DeepSeekProvider",
    "GeminiProvider",
    "GenerationOptions",
    "GenerationResult",
    "GroqProvider",
    "HTTPProvider",
    "LLMProvider",
    "LLMRequest",
    "MistralProvider",
    "OpenAIProvider",
    "OpenRouterProvider",
    "XAIProvider",
    "registered_providers",
]
