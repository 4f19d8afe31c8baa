from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

import pm_assistant.cli as cli
from pm_assistant.assistant.config import InMemorySettingsStore, StoredAISettings
from pm_assistant.assistant.llm.providers import registered_providers
from pm_assistant.assistant.rate_limit import build_ai_rate_limiters
from pm_assistant.assistant.service import AssistantService

CONTEXT_YAML = """\
pageType: project_detail
appData:
  organization: {id: org-1, name: Acme}
  members:
    - {id: u1, name: Ana, role: admin}
  projects:
    - {id: p1, name: Website, status: active}
"""


@dataclass
class FakeResponse:
    status_code: int
    payload: Any

    def json(self) -> Any:
        return self.payload


class FakeSession:
    def __init__(self, texts: list[str]) -> None:
        self.texts = texts
        self.calls: list[dict[str, Any]] = []

    def request(self, **kwargs: Any) -> FakeResponse:
        self.calls.append(kwargs)
        return FakeResponse(200, {"choices": [{"message": {"content": self.texts.pop(0)}}]})


def _install_service(
    monkeypatch: pytest.MonkeyPatch, texts: list[str], api_key: str | None = "sk-123456789"
) -> FakeSession:
    session = FakeSession(texts)
    store = InMemorySettingsStore({"local": StoredAISettings(provider="openai", api_key=api_key)})
    service = AssistantService(
        settings_store=store,
        providers=registered_providers(session=session),  # type: ignore[arg-type]
        rate_limiters=build_ai_rate_limiters(),
    )
    monkeypatch.setattr(cli, "_service", lambda: service)
    return session


def _write(tmp_path: Path, name: str, content: str) -> str:
    path = tmp_path / name
    path.write_text(content)
    return str(path)


def test_prompt_command_renders_context_file(tmp_path: Path) -> None:
    context = _write(tmp_path, "context.yaml", CONTEXT_YAML)

    result = CliRunner().invoke(cli.app, ["prompt", "--context", context])

    assert result.exit_code == 0, result.output
    assert "- Members (1): Ana (admin)" in result.stdout
    assert "Current User ID: u1" in result.stdout


def test_prompt_command_accepts_json_context(tmp_path: Path) -> None:
    context = _write(
        tmp_path, "context.json", json.dumps({"pageType": "inbox", "appData": {"members": []}})
    )

    result = CliRunner().invoke(cli.app, ["prompt", "--context", context])

    assert result.exit_code == 0, result.output
    assert "- Members (0): None" in result.stdout


def test_prompt_command_rejects_invalid_context(tmp_path: Path) -> None:
    context = _write(tmp_path, "context.yaml", "pageType: nowhere\n")

    result = CliRunner().invoke(cli.app, ["prompt", "--context", context])

    assert result.exit_code == 2


def test_parse_command_emits_json(tmp_path: Path) -> None:
    reply = _write(
        tmp_path,
        "reply.txt",
        'Done.\nACTION_JSON: {"type":"create_task","data":{"title":"Fix bug","projectId":"p1"}}',
    )

    result = CliRunner().invoke(cli.app, ["parse", "--file", reply])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["content"] == "Done."
    assert payload["status"] == "single_action"
    assert payload["actions"][0]["type"] == "create_task"


def test_models_command_lists_defaults() -> None:
    result = CliRunner().invoke(cli.app, ["models"])

    assert result.exit_code == 0
    assert "google (Gemini): default=gemini-2.5-flash" in result.stdout
    assert "  - openrouter/auto" in result.stdout


def test_chat_command_executes_actions_in_memory(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    session = _install_service(
        monkeypatch,
        [
            'Adding it.\nACTIONS_JSON: [{"type":"create_workstream",'
            '"data":{"name":"QA","projectId":"p1"}},'
            '{"type":"create_task","data":{"title":"Test","projectId":"p1",'
            '"workstreamId":"$NEW_WORKSTREAM_ID"}}]'
        ],
    )
    context = _write(tmp_path, "context.yaml", CONTEXT_YAML)

    result = CliRunner().invoke(
        cli.app, ["chat", "--context", context, "--message", "add QA", "--execute"]
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["reply"]["status"] == "multiple_actions"
    assert [outcome["status"] for outcome in payload["outcomes"]] == ["succeeded", "succeeded"]
    assert payload["outcomes"][1]["resolved_data"]["workstreamId"] == "workstream-1"
    assert len(session.calls) == 1


def test_chat_command_reports_configuration_error(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    session = _install_service(monkeypatch, [], api_key=None)
    context = _write(tmp_path, "context.yaml", CONTEXT_YAML)

    result = CliRunner().invoke(cli.app, ["chat", "--context", context, "--message", "hi"])

    assert result.exit_code == 1
    assert "AI API key not configured" in result.output
    assert session.calls == []


def test_test_connection_command(monkeypatch: pytest.MonkeyPatch) -> None:
    _install_service(monkeypatch, ["Connection successful!"])

    result = CliRunner().invoke(cli.app, ["test-connection"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout) == {
        "success": True,
        "provider": "openai",
        "model": "gpt-4o-mini",
    }
