"""Per-user AI provider configuration with safe credential handling."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol

from pm_assistant.assistant.errors import ConfigurationError
from pm_assistant.assistant.llm.catalog import (
    DEFAULT_MODELS_V1,
    default_model,
    is_known_model,
    is_known_provider,
)

PROVIDER_NOT_CONFIGURED = "AI provider not configured. Please configure AI settings first."
API_KEY_NOT_CONFIGURED = "AI API key not configured. Please add your API key in settings."


@dataclass(frozen=True)
class ProviderConfig:
    provider: str
    api_key: str = field(repr=False)
    model: str

    def redacted(self) -> dict[str, str]:
        return {
            "provider": self.provider,
            "model": self.model,
            "api_key": _redact_token(self.api_key),
        }


@dataclass(frozen=True)
class StoredAISettings:
    """Raw settings row as kept by the settings collaborator."""

    provider: str | None
    api_key: str | None = field(default=None, repr=False)
    model_preference: str | None = None


class SettingsStore(Protocol):
    """Read-only view of the settings collaborator."""

    def get_ai_settings(self, user_id: str) -> StoredAISettings | None: ...


class InMemorySettingsStore:
    def __init__(self, rows: dict[str, StoredAISettings] | None = None) -> None:
        self.rows = dict(rows or {})

    def put(self, user_id: str, settings: StoredAISettings) -> None:
        self.rows[user_id] = settings

    def get_ai_settings(self, user_id: str) -> StoredAISettings | None:
        return self.rows.get(user_id)


class EnvSettingsStore:
    """Single-tenant store that answers every user with the process env settings."""

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        self.env = os.environ if env is None else env

    def get_ai_settings(self, user_id: str) -> StoredAISettings | None:
        return load_ai_settings_from_env(self.env)


def load_ai_settings_from_env(env: Mapping[str, str] | None = None) -> StoredAISettings:
    env_map = os.environ if env is None else env
    return StoredAISettings(
        provider=_clean(env_map.get("PM_ASSISTANT_AI_PROVIDER")),
        api_key=_clean(env_map.get("PM_ASSISTANT_AI_API_KEY")),
        model_preference=_clean(env_map.get("PM_ASSISTANT_AI_MODEL")),
    )


def resolve_provider_config(
    stored: StoredAISettings | None,
    default_models: Mapping[str, str] = DEFAULT_MODELS_V1,
) -> ProviderConfig:
    """Validate a stored settings row against the catalog.

    Raises ConfigurationError for every unusable state; nothing downstream
    runs without a complete, known configuration.
    """

    if stored is None or not _clean(stored.provider):
        raise ConfigurationError(PROVIDER_NOT_CONFIGURED)
    provider = str(_clean(stored.provider)).lower()
    if not is_known_provider(provider):
        raise ConfigurationError(
            f"Unsupported AI provider: {provider}", reason_code="ai_provider_unsupported"
        )
    api_key = _clean(stored.api_key)
    if not api_key:
        raise ConfigurationError(API_KEY_NOT_CONFIGURED, reason_code="ai_api_key_missing")

    model = _clean(stored.model_preference) or default_model(provider, default_models)
    if not is_known_model(provider, model):
        raise ConfigurationError(
            f"Unsupported model for {provider}: {model}", reason_code="ai_model_unsupported"
        )
    return ProviderConfig(provider=provider, api_key=api_key, model=model)


def verify_ai_config(
    store: SettingsStore,
    user_id: str,
    default_models: Mapping[str, str] = DEFAULT_MODELS_V1,
) -> ProviderConfig:
    return resolve_provider_config(store.get_ai_settings(user_id), default_models)


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _redact_token(token: str | None) -> str:
    if token is None:
        return "unset"
    if len(token) <= 8:
        return "***"
    return f"{token[:4]}...{token[-4:]}"
