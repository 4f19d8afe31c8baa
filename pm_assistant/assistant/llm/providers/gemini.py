"""Google Gemini generateContent adapter."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from pm_assistant.assistant.llm.catalog import GOOGLE
from pm_assistant.assistant.llm.providers.base import HTTPProvider, LLMRequest, optional_int

_GEMINI_ROLES = {"user": "user", "assistant": "model"}


class GeminiProvider(HTTPProvider):
    """`systemInstruction` + `contents[].parts`; assistant turns use the `model` role."""

    name = GOOGLE
    base_url = "https://generativelanguage.googleapis.com/v1beta/models"

    def endpoint(self, request: LLMRequest) -> str:
        return f"{self.base_url}/{quote(request.model, safe='')}:generateContent"

    def headers(self, request: LLMRequest) -> dict[str, str]:
        return {"x-goog-api-key": request.api_key}

    def body(self, request: LLMRequest) -> dict[str, Any]:
        return {
            "systemInstruction": {"parts": [{"text": request.system_prompt}]},
            "contents": [
                {"role": _GEMINI_ROLES[turn.role], "parts": [{"text": turn.content}]}
                for turn in request.turns
            ],
            "generationConfig": {
                "maxOutputTokens": request.options.resolved_max_tokens(),
                "temperature": request.options.resolved_temperature(),
            },
        }

    def extract_text(self, payload: dict[str, Any]) -> str:
        return payload["candidates"][0]["content"]["parts"][0]["text"] or ""

    def extract_tokens(self, payload: dict[str, Any]) -> int | None:
        usage = payload.get("usageMetadata") or {}
        return optional_int(usage.get("totalTokenCount"))
