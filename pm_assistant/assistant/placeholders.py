"""Batch-scoped binding of $NEW_*_ID tokens to real entity ids."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Literal

PlaceholderKind = Literal["project", "workstream", "task", "client"]

PLACEHOLDER_TOKENS: dict[PlaceholderKind, str] = {
    "project": "$NEW_PROJECT_ID",
    "workstream": "$NEW_WORKSTREAM_ID",
    "task": "$NEW_TASK_ID",
    "client": "$NEW_CLIENT_ID",
}
_KIND_BY_TOKEN = {token: kind for kind, token in PLACEHOLDER_TOKENS.items()}
_TOKEN_RE = re.compile(r"\$NEW_(?:PROJECT|WORKSTREAM|TASK|CLIENT)_ID\b")


class MissingPlaceholderError(LookupError):
    def __init__(self, token: str) -> None:
        self.token = token
        self.kind = _KIND_BY_TOKEN[token]
        super().__init__(f"missing_placeholder:{token}")


@dataclass(frozen=True)
class BindingEvent:
    kind: PlaceholderKind
    entity_id: str
    action_index: int


@dataclass
class PlaceholderBindings:
    """Token table for one batch.

    A kind stays bound once bound; a later create of the same kind replaces
    the id it resolves to. ``history`` records every bind in order.
    """

    current: dict[PlaceholderKind, str] = field(default_factory=dict)
    history: list[BindingEvent] = field(default_factory=list)

    def bind(self, kind: PlaceholderKind, entity_id: str, *, action_index: int = -1) -> None:
        self.current[kind] = entity_id
        self.history.append(BindingEvent(kind=kind, entity_id=entity_id, action_index=action_index))

    def lookup(self, token: str) -> str:
        entity_id = self.current.get(_KIND_BY_TOKEN[token])
        if entity_id is None:
            raise MissingPlaceholderError(token)
        return entity_id

    def as_dict(self) -> dict[str, str]:
        return {
            PLACEHOLDER_TOKENS[kind]: entity_id for kind, entity_id in sorted(self.current.items())
        }


def find_placeholders(value: Any) -> list[str]:
    """All tokens referenced anywhere in a payload, in first-seen order."""

    seen: list[str] = []
    if isinstance(value, str):
        for token in _TOKEN_RE.findall(value):
            if token not in seen:
                seen.append(token)
    elif isinstance(value, dict):
        for item in value.values():
            seen.extend(token for token in find_placeholders(item) if token not in seen)
    elif isinstance(value, (list, tuple)):
        for item in value:
            seen.extend(token for token in find_placeholders(item) if token not in seen)
    return seen


def resolve_placeholders(value: Any, bindings: PlaceholderBindings) -> Any:
    """Return a copy of ``value`` with every token substituted.

    Raises MissingPlaceholderError for the first unbound token; the input is
    never modified.
    """

    if isinstance(value, str):
        return _TOKEN_RE.sub(lambda match: bindings.lookup(match.group(0)), value)
    if isinstance(value, dict):
        return {key: resolve_placeholders(item, bindings) for key, item in value.items()}
    if isinstance(value, list):
        return [resolve_placeholders(item, bindings) for item in value]
    if isinstance(value, tuple):
        return tuple(resolve_placeholders(item, bindings) for item in value)
    return value
