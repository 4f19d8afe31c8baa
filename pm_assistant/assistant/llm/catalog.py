"""Provider identifiers, known models, and versioned default-model tables."""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

OPENAI = "openai"
ANTHROPIC = "anthropic"
GOOGLE = "google"
GROQ = "groq"
MISTRAL = "mistral"
XAI = "xai"
DEEPSEEK = "deepseek"
OPENROUTER = "openrouter"

ALL_PROVIDERS = (
    OPENAI,
    ANTHROPIC,
    GOOGLE,
    GROQ,
    MISTRAL,
    XAI,
    DEEPSEEK,
    OPENROUTER,
)

PROVIDER_LABELS = {
    OPENAI: "OpenAI",
    ANTHROPIC: "Anthropic",
    GOOGLE: "Gemini",
    GROQ: "Groq",
    MISTRAL: "Mistral",
    XAI: "xAI",
    DEEPSEEK: "DeepSeek",
    OPENROUTER: "OpenRouter",
}

KNOWN_MODELS: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        OPENAI: ("gpt-4o", "gpt-4o-mini", "gpt-4-turbo", "o1", "o1-mini", "o3-mini"),
        ANTHROPIC: (
            "claude-3-5-sonnet-20241022",
            "claude-3-5-haiku-20241022",
            "claude-3-opus-20240229",
            "claude-sonnet-4-20250514",
        ),
        GOOGLE: (
            "gemini-2.5-flash",
            "gemini-2.0-flash-exp",
            "gemini-1.5-pro",
            "gemini-1.5-flash",
        ),
        GROQ: (
            "llama-3.3-70b-versatile",
            "llama-3.1-8b-instant",
            "llama3-70b-8192",
            "mixtral-8x7b-32768",
            "gemma2-9b-it",
        ),
        MISTRAL: (
            "mistral-large-latest",
            "mistral-medium-latest",
            "mistral-small-latest",
            "codestral-latest",
            "pixtral-large-latest",
        ),
        XAI: ("grok-2-latest", "grok-2-vision-latest", "grok-beta"),
        DEEPSEEK: ("deepseek-chat", "deepseek-coder", "deepseek-reasoner"),
        OPENROUTER: (
            "openrouter/auto",
            "anthropic/claude-3.5-sonnet",
            "openai/gpt-4o",
            "meta-llama/llama-3.1-405b-instruct",
            "mistralai/mistral-large",
            "google/gemini-pro-1.5",
            "deepseek/deepseek-chat",
            "qwen/qwen-2.5-72b-instruct",
        ),
    }
)

# Used only when the user stored no model preference. Never edit a published
# table in place; add a new version and switch the registry to it.
DEFAULT_MODELS_V1: Mapping[str, str] = MappingProxyType(
    {
        OPENAI: "gpt-4o-mini",
        ANTHROPIC: "claude-3-5-haiku-20241022",
        GOOGLE: "gemini-2.5-flash",
        GROQ: "llama-3.3-70b-versatile",
        MISTRAL: "mistral-small-latest",
        XAI: "grok-2-latest",
        DEEPSEEK: "deepseek-chat",
        OPENROUTER: "openrouter/auto",
    }
)


def is_known_provider(provider: str) -> bool:
    return provider in ALL_PROVIDERS


def is_known_model(provider: str, model: str) -> bool:
    return model in KNOWN_MODELS.get(provider, ())


def provider_label(provider: str) -> str:
    return PROVIDER_LABELS.get(provider, provider)


def default_model(provider: str, table: Mapping[str, str] = DEFAULT_MODELS_V1) -> str:
    model = table.get(provider)
    if model is None:
        raise ValueError(f"unknown_provider:{provider}")
    return model
