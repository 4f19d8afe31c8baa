"""Sequential execution of a proposed action batch against the domain boundary."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Literal

from pm_assistant.assistant.actions import (
    ORG_SCOPED_ACTIONS,
    ActionValidationError,
    ProposedAction,
    decode_action,
)
from pm_assistant.assistant.boundary import DomainBoundary, DomainError
from pm_assistant.assistant.placeholders import (
    PLACEHOLDER_TOKENS,
    MissingPlaceholderError,
    PlaceholderBindings,
    resolve_placeholders,
)

logger = logging.getLogger(__name__)

OutcomeStatus = Literal["succeeded", "failed"]


@dataclass
class ActionBatch:
    actions: tuple[ProposedAction, ...]
    bindings: PlaceholderBindings = field(default_factory=PlaceholderBindings)

    @classmethod
    def of(cls, actions: Iterable[ProposedAction]) -> ActionBatch:
        return cls(actions=tuple(actions))


@dataclass(frozen=True)
class ActionOutcome:
    index: int
    action_type: str
    status: OutcomeStatus
    dispatched: bool = False
    entity_kind: str | None = None
    entity_id: str | None = None
    entity_name: str | None = None
    error_code: str | None = None
    error: str | None = None
    resolved_data: dict[str, Any] | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"

    def as_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "action_type": self.action_type,
            "status": self.status,
            "dispatched": self.dispatched,
            "entity_kind": self.entity_kind,
            "entity_id": self.entity_id,
            "entity_name": self.entity_name,
            "error_code": self.error_code,
            "error": self.error,
            "resolved_data": self.resolved_data,
        }


class ActionExecutor:
    """Runs a batch in order, one action at a time, binding placeholders as it goes.

    A failed action never stops the batch; later actions that reference an
    entity the failed action would have created fail with ``missing_placeholder``.
    """

    def __init__(self, boundary: DomainBoundary, org_id: str | None = None) -> None:
        self.boundary = boundary
        self.org_id = org_id or None

    def execute(self, batch: ActionBatch) -> list[ActionOutcome]:
        outcomes = [
            self._run_one(index, action, batch.bindings)
            for index, action in enumerate(batch.actions)
        ]
        failed = sum(1 for outcome in outcomes if not outcome.succeeded)
        logger.info(
            "Executed action batch: total=%d succeeded=%d failed=%d",
            len(outcomes),
            len(outcomes) - failed,
            failed,
        )
        return outcomes

    def _inject_org(self, action_type: str, data: dict[str, Any]) -> dict[str, Any]:
        if action_type in ORG_SCOPED_ACTIONS and self.org_id and not data.get("orgId"):
            return {**data, "orgId": self.org_id}
        return data

    def _run_one(
        self, index: int, action: ProposedAction, bindings: PlaceholderBindings
    ) -> ActionOutcome:
        try:
            resolved = resolve_placeholders(action.data, bindings)
        except MissingPlaceholderError as exc:
            logger.warning("Action %d (%s) references unbound %s", index, action.type, exc.token)
            return ActionOutcome(
                index=index,
                action_type=action.type,
                status="failed",
                error_code="missing_placeholder",
                error=(
                    f"Placeholder {exc.token} is not bound; "
                    f"no earlier action created a {exc.kind}"
                ),
            )
        resolved = self._inject_org(action.type, resolved)

        try:
            spec, payload = decode_action(ProposedAction(type=action.type, data=resolved))
        except ActionValidationError as exc:
            logger.warning("Action %d (%s) rejected: %s", index, action.type, exc.code)
            return ActionOutcome(
                index=index,
                action_type=action.type,
                status="failed",
                error_code=exc.code,
                error=exc.summary(),
                resolved_data=resolved,
            )

        operation = getattr(self.boundary, spec.boundary_method)
        try:
            result = operation(payload)
        except DomainError as exc:
            logger.warning("Action %d (%s) failed: %s", index, action.type, exc.reason_code)
            return ActionOutcome(
                index=index,
                action_type=action.type,
                status="failed",
                dispatched=True,
                entity_kind=spec.creates,
                error_code="dispatch_failed",
                error=f"{exc.reason_code}: {exc.message}",
                resolved_data=resolved,
            )
        except Exception as exc:
            logger.exception("Action %d (%s) raised unexpectedly", index, action.type)
            return ActionOutcome(
                index=index,
                action_type=action.type,
                status="failed",
                dispatched=True,
                entity_kind=spec.creates,
                error_code="dispatch_failed",
                error=str(exc) or "An unexpected error occurred",
                resolved_data=resolved,
            )

        if spec.creates in PLACEHOLDER_TOKENS and result.entity_id:
            kind = spec.creates
            bindings.bind(kind, result.entity_id, action_index=index)  # type: ignore[arg-type]
        logger.debug("Action %d (%s) succeeded: entity_id=%s", index, action.type, result.entity_id)
        return ActionOutcome(
            index=index,
            action_type=action.type,
            status="succeeded",
            dispatched=True,
            entity_kind=spec.creates,
            entity_id=result.entity_id,
            entity_name=result.name,
            resolved_data=resolved,
        )
