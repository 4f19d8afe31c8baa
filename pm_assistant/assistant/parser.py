"""Best-effort extraction of proposed actions from a model reply."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Literal

from pm_assistant.assistant.actions import ProposedAction

logger = logging.getLogger(__name__)

ParseStatus = Literal["no_actions", "single_action", "multiple_actions", "malformed_actions"]

SUGGESTIONS_MARKER = "SUGGESTED_ACTIONS"
MULTI_ACTION_MARKER = "ACTIONS_JSON"
SINGLE_ACTION_MARKER = "ACTION_JSON"

_DECODER = json.JSONDecoder()
_FENCE_OPEN = re.compile(r"\s*```[A-Za-z]*[ \t]*\n?")
_FENCE_CLOSE = re.compile(r"\s*```")
_FENCE_BEFORE = re.compile(r"```[A-Za-z]*\s*$")


@dataclass(frozen=True)
class SuggestedAction:
    label: str
    prompt: str

    def as_dict(self) -> dict[str, str]:
        return {"label": self.label, "prompt": self.prompt}


@dataclass(frozen=True)
class ParsedReply:
    content: str
    actions: tuple[ProposedAction, ...] = ()
    suggested_actions: tuple[SuggestedAction, ...] = ()
    status: ParseStatus = "no_actions"
    parse_error: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "content": self.content,
            "status": self.status,
            "actions": [action.as_dict() for action in self.actions],
            "suggested_actions": [item.as_dict() for item in self.suggested_actions],
            "parse_error": self.parse_error,
        }


class _PayloadError(ValueError):
    pass


@dataclass(frozen=True)
class _Span:
    start: int
    end: int
    value: Any


def _find_marker(text: str, marker: str) -> re.Match[str] | None:
    return re.search(rf"(?<![A-Za-z_]){marker}:", text)


def _extract(text: str, marker: str) -> _Span | None:
    """Decode the JSON value following ``marker``; None when the marker is absent.

    The span covers the marker, the value and a code fence wrapped around either.
    """

    match = _find_marker(text, marker)
    if match is None:
        return None
    start = match.start()
    pos = match.end()

    fence_open = _FENCE_OPEN.match(text, pos)
    fenced_inside = fence_open is not None
    if fence_open is not None:
        pos = fence_open.end()
    while pos < len(text) and text[pos].isspace():
        pos += 1

    try:
        value, end = _DECODER.raw_decode(text, pos)
    except json.JSONDecodeError as exc:
        raise _PayloadError(f"invalid_json:{marker}:{exc.msg}") from exc

    fenced_outside = _FENCE_BEFORE.search(text, 0, start) is not None
    if fenced_inside or fenced_outside:
        fence_close = _FENCE_CLOSE.match(text, end)
        if fence_close is not None:
            end = fence_close.end()
            if fenced_outside:
                before = _FENCE_BEFORE.search(text, 0, start)
                if before is not None:
                    start = before.start()
    return _Span(start=start, end=end, value=value)


def _remove(text: str, span: _Span) -> str:
    return (text[: span.start].rstrip() + "\n" + text[span.end :].lstrip()).strip()


def _coerce_action(item: Any, index: int) -> ProposedAction:
    if not isinstance(item, dict):
        raise _PayloadError(f"action_not_object:{index}")
    action_type = item.get("type")
    if not isinstance(action_type, str):
        raise _PayloadError(f"action_type_not_string:{index}")
    data = item.get("data", {})
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise _PayloadError(f"action_data_not_object:{index}")
    return ProposedAction(type=action_type, data=data)


def _parse_suggestions(text: str) -> tuple[str, tuple[SuggestedAction, ...]]:
    try:
        span = _extract(text, SUGGESTIONS_MARKER)
    except _PayloadError as exc:
        logger.debug("Ignoring malformed suggestions: %s", exc)
        return text, ()
    if span is None or not isinstance(span.value, list):
        return text, ()
    suggestions = tuple(
        SuggestedAction(label=item["label"], prompt=item["prompt"])
        for item in span.value
        if isinstance(item, dict)
        and isinstance(item.get("label"), str)
        and isinstance(item.get("prompt"), str)
    )
    return _remove(text, span), suggestions


def _parse_multi(text: str) -> tuple[_Span, tuple[ProposedAction, ...]] | None:
    span = _extract(text, MULTI_ACTION_MARKER)
    if span is None:
        return None
    if not isinstance(span.value, list):
        raise _PayloadError(f"expected_array:{MULTI_ACTION_MARKER}")
    return span, tuple(_coerce_action(item, index) for index, item in enumerate(span.value))


def _parse_single(text: str) -> tuple[_Span, tuple[ProposedAction, ...]] | None:
    span = _extract(text, SINGLE_ACTION_MARKER)
    if span is None:
        return None
    if not isinstance(span.value, dict):
        raise _PayloadError(f"expected_object:{SINGLE_ACTION_MARKER}")
    return span, (_coerce_action(span.value, 0),)


def _status_for(actions: tuple[ProposedAction, ...]) -> ParseStatus:
    if not actions:
        return "no_actions"
    return "single_action" if len(actions) == 1 else "multiple_actions"


def parse_chat_response(raw_text: str) -> ParsedReply:
    """Split a reply into conversational content, actions and suggestion chips.

    Never raises: a broken action payload yields ``malformed_actions`` with the
    untouched original text as content.
    """

    text, suggestions = _parse_suggestions(raw_text)

    multi_error: str | None = None
    try:
        found = _parse_multi(text)
    except _PayloadError as exc:
        multi_error = str(exc)
        found = None
    if found is not None:
        span, actions = found
        return ParsedReply(
            content=_remove(text, span),
            actions=actions,
            suggested_actions=suggestions,
            status=_status_for(actions),
        )

    try:
        found = _parse_single(text)
    except _PayloadError as exc:
        logger.info("Discarding malformed action payload: %s", exc)
        return ParsedReply(
            content=raw_text,
            suggested_actions=suggestions,
            status="malformed_actions",
            parse_error=str(exc),
        )
    if found is not None:
        span, actions = found
        return ParsedReply(
            content=_remove(text, span),
            actions=actions,
            suggested_actions=suggestions,
            status="single_action",
        )

    if multi_error is not None:
        logger.info("Discarding malformed action payload: %s", multi_error)
        return ParsedReply(
            content=raw_text,
            suggested_actions=suggestions,
            status="malformed_actions",
            parse_error=multi_error,
        )
    return ParsedReply(content=text.strip(), suggested_actions=suggestions)
