"""Shared runtime settings for the assistant pipeline."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass


def _env_float(source: Mapping[str, str], key: str, default: float) -> float:
    raw = str(source.get(key, "")).strip()
    if not raw:
        return default
    return float(raw)


def _env_int(source: Mapping[str, str], key: str, default: int) -> int:
    raw = str(source.get(key, "")).strip()
    if not raw:
        return default
    return int(raw)


@dataclass(frozen=True)
class AssistantSettings:
    """Timeouts, rate-limit ceilings, and outbound identity used by the assistant."""

    request_timeout_s: float = 60.0
    daily_limit: int = 50
    daily_window_s: int = 24 * 60 * 60
    concurrent_limit: int = 3
    concurrent_window_s: int = 60
    site_url: str = "http://localhost:3000"
    app_title: str = "Project Dashboard"

    @classmethod
    def from_env(cls, env: dict[str, str] | None = None) -> "AssistantSettings":
        source = os.environ if env is None else env
        return cls(
            request_timeout_s=max(1.0, _env_float(source, "PM_ASSISTANT_REQUEST_TIMEOUT_S", 60.0)),
            daily_limit=max(1, _env_int(source, "PM_ASSISTANT_DAILY_LIMIT", 50)),
            daily_window_s=max(1, _env_int(source, "PM_ASSISTANT_DAILY_WINDOW_S", 24 * 60 * 60)),
            concurrent_limit=max(1, _env_int(source, "PM_ASSISTANT_CONCURRENT_LIMIT", 3)),
            concurrent_window_s=max(1, _env_int(source, "PM_ASSISTANT_CONCURRENT_WINDOW_S", 60)),
            site_url=(
                str(source.get("PM_ASSISTANT_SITE_URL", "")).strip() or "http://localhost:3000"
            ),
            app_title=str(source.get("PM_ASSISTANT_APP_TITLE", "")).strip() or "Project Dashboard",
        )


def get_assistant_settings(env: dict[str, str] | None = None) -> AssistantSettings:
    """Build assistant settings from environment variables."""

    return AssistantSettings.from_env(env)
