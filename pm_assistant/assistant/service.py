"""One assistant request flow: config, rate limits, prompt, provider, parse."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import requests

from pm_assistant.assistant.actions import ProposedAction
from pm_assistant.assistant.boundary import DomainBoundary
from pm_assistant.assistant.config import (
    EnvSettingsStore,
    ProviderConfig,
    SettingsStore,
    verify_ai_config,
)
from pm_assistant.assistant.errors import RateLimitError
from pm_assistant.assistant.executor import ActionBatch, ActionExecutor, ActionOutcome
from pm_assistant.assistant.llm.catalog import DEFAULT_MODELS_V1
from pm_assistant.assistant.llm.providers import (
    ChatTurn,
    GenerationOptions,
    GenerationResult,
    LLMProvider,
    registered_providers,
)
from pm_assistant.assistant.llm.service import generate
from pm_assistant.assistant.models import ChatContext
from pm_assistant.assistant.parser import ParsedReply, SuggestedAction, parse_chat_response
from pm_assistant.assistant.prompt import build_system_prompt
from pm_assistant.assistant.rate_limit import RateLimiter, build_ai_rate_limiters
from pm_assistant.shared.settings import AssistantSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChatReply:
    content: str
    status: str
    actions: tuple[ProposedAction, ...] = ()
    suggested_actions: tuple[SuggestedAction, ...] = ()
    parse_error: str | None = None
    provider: str = ""
    model: str = ""
    tokens_used: int | None = None

    @classmethod
    def from_parsed(cls, parsed: ParsedReply, result: GenerationResult) -> ChatReply:
        return cls(
            content=parsed.content,
            status=parsed.status,
            actions=parsed.actions,
            suggested_actions=parsed.suggested_actions,
            parse_error=parsed.parse_error,
            provider=result.provider,
            model=result.model,
            tokens_used=result.tokens_used,
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "content": self.content,
            "status": self.status,
            "actions": [action.as_dict() for action in self.actions],
            "suggested_actions": [item.as_dict() for item in self.suggested_actions],
            "parse_error": self.parse_error,
            "provider": self.provider,
            "model": self.model,
            "tokens_used": self.tokens_used,
        }


class AssistantService:
    def __init__(
        self,
        settings_store: SettingsStore,
        providers: Mapping[str, LLMProvider],
        rate_limiters: Sequence[RateLimiter],
        *,
        default_models: Mapping[str, str] = DEFAULT_MODELS_V1,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.settings_store = settings_store
        self.providers = providers
        self.rate_limiters = tuple(rate_limiters)
        self.default_models = default_models
        self.clock = clock

    @classmethod
    def from_settings(
        cls,
        settings: AssistantSettings | None = None,
        *,
        settings_store: SettingsStore | None = None,
        session: requests.Session | None = None,
    ) -> AssistantService:
        resolved = settings or AssistantSettings.from_env()
        return cls(
            settings_store=settings_store or EnvSettingsStore(),
            providers=registered_providers(resolved, session=session),
            rate_limiters=build_ai_rate_limiters(resolved),
        )

    def resolve_config(self, user_id: str) -> ProviderConfig:
        return verify_ai_config(self.settings_store, user_id, self.default_models)

    def check_rate_limits(self, user_id: str) -> None:
        """Consult every limiter in order; the first rejection aborts."""

        for limiter in self.rate_limiters:
            result = limiter.check(user_id)
            if not result.success:
                logger.info("Rate limit hit: limiter=%s user=%s", limiter.name, user_id)
                raise RateLimitError(result.reset_at, limiter=limiter.name, now=self.clock())

    def complete(
        self,
        user_id: str,
        system_prompt: str,
        turns: Iterable[ChatTurn | Mapping[str, Any]],
        options: GenerationOptions | None = None,
    ) -> GenerationResult:
        """Guarded provider call shared by chat and single-shot generation."""

        config = self.resolve_config(user_id)
        self.check_rate_limits(user_id)
        return generate(
            config,
            system_prompt,
            turns,
            options,
            providers=self.providers,
        )

    def send_chat_message(
        self,
        user_id: str,
        messages: Iterable[ChatTurn | Mapping[str, Any]],
        context: ChatContext,
    ) -> ChatReply:
        system_prompt = build_system_prompt(context)
        result = self.complete(user_id, system_prompt, messages, GenerationOptions.for_chat())
        parsed = parse_chat_response(result.text)
        logger.info(
            "Chat reply parsed: status=%s actions=%d suggestions=%d",
            parsed.status,
            len(parsed.actions),
            len(parsed.suggested_actions),
        )
        return ChatReply.from_parsed(parsed, result)

    def execute_actions(
        self,
        actions: Iterable[ProposedAction],
        context: ChatContext,
        boundary: DomainBoundary,
    ) -> list[ActionOutcome]:
        org_id = context.app_data.organization.id or None
        executor = ActionExecutor(boundary, org_id=org_id)
        return executor.execute(ActionBatch.of(actions))
