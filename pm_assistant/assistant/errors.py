"""Assistant error taxonomy surfaced to callers."""

from __future__ import annotations

import math
import time
from typing import Any


class AssistantError(RuntimeError):
    """Base class for request-level assistant failures."""

    reason_code = "assistant_error"

    def __init__(self, message: str, *, reason_code: str | None = None) -> None:
        super().__init__(message)
        if reason_code:
            self.reason_code = reason_code

    def as_dict(self) -> dict[str, Any]:
        return {"error": str(self), "reason_code": self.reason_code}


class ConfigurationError(AssistantError):
    """No provider, no credential, or a provider/model outside the catalog."""

    reason_code = "ai_not_configured"


class RateLimitError(AssistantError):
    """Daily or concurrent ceiling exceeded before any provider call."""

    reason_code = "rate_limited"

    def __init__(self, reset_at: float, *, limiter: str = "", now: float | None = None) -> None:
        current = time.time() if now is None else now
        self.reset_at = reset_at
        self.limiter = limiter
        self.retry_after_s = max(0, math.ceil(reset_at - current))
        super().__init__(
            f"Rate limit exceeded. Please try again in {self.retry_after_s} seconds."
        )

    def as_dict(self) -> dict[str, Any]:
        payload = super().as_dict()
        payload.update(
            {
                "limiter": self.limiter,
                "reset_at": self.reset_at,
                "retry_after_s": self.retry_after_s,
            }
        )
        return payload


class ProviderError(AssistantError):
    """Normalized failure from one upstream language-model provider."""

    reason_code = "provider_failed"

    def __init__(
        self,
        message: str,
        *,
        provider: str,
        status_code: int | None = None,
        reason_code: str | None = None,
    ) -> None:
        super().__init__(message, reason_code=reason_code)
        self.provider = provider
        self.status_code = status_code

    def as_dict(self) -> dict[str, Any]:
        payload = super().as_dict()
        payload.update({"provider": self.provider, "status_code": self.status_code})
        return payload
