"""pm-assistant CLI."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, NoReturn

import typer
import yaml
from pydantic import ValidationError

from pm_assistant.assistant.boundary import InMemoryDomainBoundary
from pm_assistant.assistant.errors import AssistantError
from pm_assistant.assistant.generation import check_connection
from pm_assistant.assistant.llm.catalog import (
    ALL_PROVIDERS,
    DEFAULT_MODELS_V1,
    KNOWN_MODELS,
    provider_label,
)
from pm_assistant.assistant.models import ChatContext
from pm_assistant.assistant.parser import parse_chat_response
from pm_assistant.assistant.prompt import build_system_prompt
from pm_assistant.assistant.service import AssistantService
from pm_assistant.shared.settings import get_assistant_settings

app = typer.Typer(add_completion=False, help="pm-assistant: AI assistant action orchestration")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _emit(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, sort_keys=True))


def _load_context(path: Path) -> ChatContext:
    try:
        raw = yaml.safe_load(path.read_text()) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise typer.BadParameter(f"Cannot read context file {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise typer.BadParameter("Context file must contain a mapping")
    try:
        return ChatContext.model_validate(raw)
    except ValidationError as exc:
        raise typer.BadParameter(
            f"Invalid chat context: {exc.error_count()} error(s)\n{exc}"
        ) from exc


def _service() -> AssistantService:
    return AssistantService.from_settings(get_assistant_settings())


def _fail(exc: AssistantError) -> NoReturn:
    typer.echo(json.dumps(exc.as_dict(), indent=2, sort_keys=True), err=True)
    raise typer.Exit(code=1) from exc


@app.command()
def prompt(
    context: Path = typer.Option(..., "--context", help="ChatContext as YAML or JSON."),
) -> None:
    """Print the system prompt built from a context snapshot."""
    typer.echo(build_system_prompt(_load_context(context)))


@app.command()
def parse(file: Path = typer.Option(..., "--file", help="Raw model reply text.")) -> None:
    """Parse a model reply into content, actions and suggestions."""
    _emit(parse_chat_response(file.read_text()).as_dict())


@app.command()
def chat(
    context: Path = typer.Option(..., "--context"),
    message: str = typer.Option(..., "--message"),
    user_id: str = typer.Option("local", "--user-id"),
    execute: bool = typer.Option(
        False, "--execute", help="Run proposed actions against an in-memory boundary."
    ),
) -> None:
    """Send one message to the configured provider."""
    chat_context = _load_context(context)
    service = _service()
    try:
        reply = service.send_chat_message(
            user_id, [{"role": "user", "content": message}], chat_context
        )
    except AssistantError as exc:
        _fail(exc)

    payload: dict[str, Any] = {"reply": reply.as_dict()}
    if execute and reply.actions:
        boundary = InMemoryDomainBoundary.from_context(chat_context)
        outcomes = service.execute_actions(reply.actions, chat_context, boundary)
        payload["outcomes"] = [outcome.as_dict() for outcome in outcomes]
    _emit(payload)


@app.command()
def models() -> None:
    """List supported providers, their default model and known models."""
    for provider in ALL_PROVIDERS:
        default = DEFAULT_MODELS_V1[provider]
        typer.echo(f"{provider} ({provider_label(provider)}): default={default}")
        for model in KNOWN_MODELS[provider]:
            typer.echo(f"  - {model}")


@app.command("test-connection")
def test_connection(user_id: str = typer.Option("local", "--user-id")) -> None:
    """Check that the configured provider answers."""
    try:
        result = check_connection(_service(), user_id)
    except AssistantError as exc:
        _fail(exc)
    _emit({"success": result.success, "provider": result.provider, "model": result.model})
    if not result.success:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
