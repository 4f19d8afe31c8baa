"""OpenAI chat-completions adapter and the vendors that speak the same wire format."""

from __future__ import annotations

from typing import Any

import requests

from pm_assistant.assistant.llm.catalog import DEEPSEEK, GROQ, MISTRAL, OPENAI, OPENROUTER, XAI
from pm_assistant.assistant.llm.providers.base import (
    DEFAULT_TIMEOUT_S,
    HTTPProvider,
    LLMRequest,
    optional_int,
)


class OpenAIProvider(HTTPProvider):
    """`messages` array with a leading system message; text at choices[0].message.content."""

    name = OPENAI
    url = "https://api.openai.com/v1/chat/completions"

    def endpoint(self, request: LLMRequest) -> str:
        return self.url

    def headers(self, request: LLMRequest) -> dict[str, str]:
        return {"Authorization": f"Bearer {request.api_key}"}

    def body(self, request: LLMRequest) -> dict[str, Any]:
        return {
            "model": request.model,
            "messages": [
                {"role": "system", "content": request.system_prompt},
                *[turn.as_message() for turn in request.turns],
            ],
            "max_tokens": request.options.resolved_max_tokens(),
            "temperature": request.options.resolved_temperature(),
        }

    def extract_text(self, payload: dict[str, Any]) -> str:
        return payload["choices"][0]["message"]["content"] or ""

    def extract_tokens(self, payload: dict[str, Any]) -> int | None:
        usage = payload.get("usage") or {}
        return optional_int(usage.get("total_tokens"))


class GroqProvider(OpenAIProvider):
    name = GROQ
    url = "https://api.groq.com/openai/v1/chat/completions"


class MistralProvider(OpenAIProvider):
    name = MISTRAL
    url = "https://api.mistral.ai/v1/chat/completions"


class XAIProvider(OpenAIProvider):
    name = XAI
    url = "https://api.x.ai/v1/chat/completions"


class DeepSeekProvider(OpenAIProvider):
    name = DEEPSEEK
    url = "https://api.deepseek.com/chat/completions"


class OpenRouterProvider(OpenAIProvider):
    """OpenRouter additionally wants the calling site identified."""

    name = OPENROUTER
    url = "https://openrouter.ai/api/v1/chat/completions"

    def __init__(
        self,
        session: requests.Session | None = None,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        *,
        site_url: str = "http://localhost:3000",
        app_title: str = "Project Dashboard",
    ) -> None:
        super().__init__(session=session, timeout_s=timeout_s)
        self.site_url = site_url
        self.app_title = app_title

    def headers(self, request: LLMRequest) -> dict[str, str]:
        headers = super().headers(request)
        headers["HTTP-Referer"] = self.site_url
        headers["X-Title"] = self.app_title
        return headers
