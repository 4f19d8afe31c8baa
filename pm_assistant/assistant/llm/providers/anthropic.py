"""Anthropic messages adapter."""

from __future__ import annotations

from typing import Any

from pm_assistant.assistant.llm.catalog import ANTHROPIC
from pm_assistant.assistant.llm.providers.base import HTTPProvider, LLMRequest, optional_int

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicProvider(HTTPProvider):
    """System prompt travels in its own field, not in the messages array."""

    name = ANTHROPIC
    url = "https://api.anthropic.com/v1/messages"

    def endpoint(self, request: LLMRequest) -> str:
        return self.url

    def headers(self, request: LLMRequest) -> dict[str, str]:
        return {"x-api-key": request.api_key, "anthropic-version": ANTHROPIC_VERSION}

    def body(self, request: LLMRequest) -> dict[str, Any]:
        return {
            "model": request.model,
            "max_tokens": request.options.resolved_max_tokens(),
            "temperature": request.options.resolved_temperature(),
            "system": request.system_prompt,
            "messages": [turn.as_message() for turn in request.turns],
        }

    def extract_text(self, payload: dict[str, Any]) -> str:
        return payload["content"][0]["text"] or ""

    def extract_tokens(self, payload: dict[str, Any]) -> int | None:
        usage = payload.get("usage") or {}
        input_tokens = optional_int(usage.get("input_tokens"))
        output_tokens = optional_int(usage.get("output_tokens"))
        if input_tokens is None or output_tokens is None:
            return None
        return input_tokens + output_tokens
