"""Single-shot generation helpers built on the guarded provider call."""

from __future__ import annotations

import json
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Literal

from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError

from pm_assistant.assistant.errors import AssistantError
from pm_assistant.assistant.llm.providers import GenerationOptions, GenerationResult
from pm_assistant.assistant.service import AssistantService

DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant for project management tasks."
CONNECTION_TEST_PROMPT = "Say 'Connection successful!' in exactly those words."
CONNECTION_TEST_SYSTEM_PROMPT = "You are a test assistant. Follow instructions exactly."

MAX_PROMPT_FIELD_CHARS = 50000
NOTE_MIN_CHARS = 10
NOTE_MAX_CHARS = 50000

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_ACTION_MARKERS = re.compile(r"\b(ACTIONS_JSON|ACTION_JSON|SUGGESTED_ACTIONS)\s*:")


class GenerationError(AssistantError):
    """The model answered but the answer could not be used."""

    reason_code = "generation_failed"


class TaskSuggestion(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str
    description: str = ""
    priority: str = "medium"


class WorkstreamSuggestion(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    description: str = ""


class TranscribedNote(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str
    content: str


_TASKS = TypeAdapter(list[TaskSuggestion])
_WORKSTREAMS = TypeAdapter(list[WorkstreamSuggestion])


@dataclass(frozen=True)
class ProjectBrief:
    name: str
    client: str | None = None
    description: str | None = None
    status: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    existing_tasks: Sequence[str] = field(default_factory=tuple)
    existing_workstreams: Sequence[str] = field(default_factory=tuple)


@dataclass(frozen=True)
class ConnectionCheck:
    success: bool
    provider: str
    model: str


def sanitize_for_prompt(value: str | None) -> str:
    """Neutralize user text before it is embedded in a prompt."""

    if not value:
        return ""
    cleaned = _CONTROL_CHARS.sub("", value)
    cleaned = _ACTION_MARKERS.sub(lambda match: f"{match.group(1)} -", cleaned)
    return cleaned.strip()[:MAX_PROMPT_FIELD_CHARS]


def strip_code_fence(text: str) -> str:
    stripped = text.strip()
    if stripped.startswith("```"):
        newline = stripped.find("\n")
        stripped = stripped[newline + 1 :] if newline != -1 else stripped[3:]
    if stripped.endswith("```"):
        stripped = stripped[:-3]
    return stripped.strip()


def _lines(*parts: str | None) -> str:
    return "\n".join(part for part in parts if part is not None)


def generate_text(
    service: AssistantService,
    user_id: str,
    prompt: str,
    system_prompt: str = DEFAULT_SYSTEM_PROMPT,
    options: GenerationOptions | None = None,
) -> GenerationResult:
    return service.complete(
        user_id,
        system_prompt,
        [{"role": "user", "content": prompt}],
        options or GenerationOptions.for_generation(),
    )


def generate_project_description(
    service: AssistantService, user_id: str, brief: ProjectBrief
) -> str:
    system_prompt = (
        "You are a professional project manager assistant. Generate clear, concise project "
        "descriptions that help teams understand the project scope and goals. Keep descriptions "
        "between 2-4 paragraphs."
    )
    timeline: str | None = None
    if brief.start_date:
        end = sanitize_for_prompt(brief.end_date) or "ongoing"
        timeline = f"Timeline: {sanitize_for_prompt(brief.start_date)} to {end}"
    prompt = _lines(
        "Generate a professional project description for:",
        f"Project Name: {sanitize_for_prompt(brief.name)}",
        f"Client: {sanitize_for_prompt(brief.client) or 'Internal'}",
        timeline,
        (
            f"Additional context: {sanitize_for_prompt(brief.description)}"
            if brief.description
            else None
        ),
        "",
        "Please write a clear project description that:",
        "1. Summarizes the project purpose",
        "2. Identifies key objectives",
        "3. Outlines expected deliverables",
    )
    return generate_text(service, user_id, prompt, system_prompt).text


def _decode_json(text: str, failure: str) -> object:
    try:
        return json.loads(strip_code_fence(text))
    except json.JSONDecodeError as exc:
        raise GenerationError(failure, reason_code="generation_unparseable") from exc


def generate_tasks(
    service: AssistantService, user_id: str, brief: ProjectBrief, count: int = 5
) -> list[TaskSuggestion]:
    system_prompt = (
        "You are a project management expert. Generate practical, actionable tasks for projects. "
        "Each task should be specific and achievable. Return your response as a JSON array."
    )
    existing = ", ".join(sanitize_for_prompt(title) for title in brief.existing_tasks)
    workstreams = ", ".join(sanitize_for_prompt(name) for name in brief.existing_workstreams)
    prompt = _lines(
        f"Generate {count} new tasks for this project:",
        f"Project: {sanitize_for_prompt(brief.name)}",
        f"Description: {sanitize_for_prompt(brief.description)}" if brief.description else None,
        f"Client: {sanitize_for_prompt(brief.client) or 'Internal'}",
        f"Status: {sanitize_for_prompt(brief.status) or 'active'}",
        f"Existing tasks (avoid duplicates): {existing}" if existing else None,
        f"Workstreams to consider: {workstreams}" if workstreams else None,
        "",
        f"Return a JSON array with exactly {count} tasks in this format:",
        '[{"title": "Task title", "description": "Brief description", "priority": "high" | "medium" | "low"}]',
        "",
        "Only return the JSON array, no other text.",
    )
    result = generate_text(
        service, user_id, prompt, system_prompt, GenerationOptions.for_generation(temperature=0.8)
    )
    failure = "Failed to parse AI response as tasks"
    try:
        return _TASKS.validate_python(_decode_json(result.text, failure))
    except ValidationError as exc:
        raise GenerationError(failure, reason_code="generation_unparseable") from exc


def generate_workstreams(
    service: AssistantService, user_id: str, brief: ProjectBrief, count: int = 4
) -> list[WorkstreamSuggestion]:
    system_prompt = (
        "You are a project management expert. Generate logical workstream/milestone groupings "
        "for projects. Return your response as a JSON array."
    )
    prompt = _lines(
        f"Suggest {count} workstreams/phases for this project:",
        f"Project: {sanitize_for_prompt(brief.name)}",
        f"Description: {sanitize_for_prompt(brief.description)}" if brief.description else None,
        f"Client: {sanitize_for_prompt(brief.client) or 'Internal'}",
        "",
        f"Return a JSON array with exactly {count} workstreams in this format:",
        '[{"name": "Workstream name", "description": "Brief description of this phase"}]',
        "",
        "Only return the JSON array, no other text.",
    )
    result = generate_text(
        service, user_id, prompt, system_prompt, GenerationOptions.for_generation(temperature=0.7)
    )
    failure = "Failed to parse AI response as workstreams"
    try:
        return _WORKSTREAMS.validate_python(_decode_json(result.text, failure))
    except ValidationError as exc:
        raise GenerationError(failure, reason_code="generation_unparseable") from exc


def summarize_notes(
    service: AssistantService, user_id: str, notes: Sequence[tuple[str, str]]
) -> str:
    system_prompt = (
        "You are a professional assistant that summarizes meeting notes and project updates. "
        "Create clear, actionable summaries."
    )
    notes_text = "\n\n".join(
        f"## {sanitize_for_prompt(title)}\n{sanitize_for_prompt(content)}"
        for title, content in notes
    )
    prompt = _lines(
        "Please summarize these project notes into key points and action items:",
        "",
        notes_text,
        "",
        "Provide:",
        "1. A brief overall summary (2-3 sentences)",
        "2. Key decisions or updates",
        "3. Action items (if any)",
        "4. Important dates or deadlines mentioned",
    )
    return generate_text(service, user_id, prompt, system_prompt).text


def enhance_transcription(
    service: AssistantService,
    user_id: str,
    transcription: str,
    *,
    project_name: str | None = None,
    meeting_type: str | None = None,
) -> TranscribedNote:
    system_prompt = (
        "You are an assistant that formats voice transcriptions into well-structured notes. "
        "Clean up filler words, organize thoughts, and add appropriate formatting."
    )
    prompt = _lines(
        "Format this voice transcription into a clean note:",
        f"Project: {sanitize_for_prompt(project_name)}" if project_name else None,
        f"Meeting type: {sanitize_for_prompt(meeting_type)}" if meeting_type else None,
        "",
        "Transcription:",
        sanitize_for_prompt(transcription),
        "",
        'Return a JSON object with: {"title": "A concise title", "content": "The formatted note content"}',
        "",
        "Only return the JSON object, no other text.",
    )
    result = generate_text(
        service, user_id, prompt, system_prompt, GenerationOptions.for_generation(temperature=0.3)
    )
    failure = "Failed to parse AI response"
    try:
        return TranscribedNote.model_validate(_decode_json(result.text, failure))
    except ValidationError as exc:
        raise GenerationError(failure, reason_code="generation_unparseable") from exc


def enhance_note_content(
    service: AssistantService,
    user_id: str,
    content: str,
    *,
    title: str | None = None,
    project_name: str | None = None,
    note_type: Literal["general", "meeting"] = "general",
) -> str:
    trimmed = content.strip()
    if len(trimmed) < NOTE_MIN_CHARS:
        raise GenerationError(
            "Content is too short to enhance. Please add more text.",
            reason_code="content_too_short",
        )
    if len(trimmed) > NOTE_MAX_CHARS:
        raise GenerationError(
            "Content is too long. Please reduce the text length.", reason_code="content_too_long"
        )

    system_prompt = (
        "You are a professional note-writing assistant. Transform rough notes into well-written, "
        "professional documentation while preserving all the original information: names, dates, "
        "deadlines, amounts and decisions. Structure with clear sections and output clean HTML "
        "using <p>, <strong>, <ul>/<li>, <ol>/<li>, <h3> tags. Do NOT use markdown."
    )
    meeting_hint = (
        "This is a meeting note - structure with: Attendees (if mentioned), Discussion Topics, "
        "Key Decisions, Action Items, and Next Steps."
        if note_type == "meeting"
        else None
    )
    prompt = _lines(
        "Transform these rough notes into professional, well-written documentation. "
        "Keep ALL original details but expand and improve the writing:",
        "",
        f"Title: {sanitize_for_prompt(title)}" if title else None,
        f"Project: {sanitize_for_prompt(project_name)}" if project_name else None,
        meeting_hint,
        "",
        "ROUGH NOTES:",
        '"""',
        sanitize_for_prompt(content),
        '"""',
        "",
        "Return the enhanced HTML content.",
    )
    result = generate_text(
        service, user_id, prompt, system_prompt, GenerationOptions.for_generation(temperature=0.4)
    )
    return strip_code_fence(result.text)


def generate_task_description(
    service: AssistantService,
    user_id: str,
    task_name: str,
    *,
    project_name: str | None = None,
    priority: str | None = None,
    status: str | None = None,
    existing_description: str | None = None,
) -> str:
    html_rule = (
        "Output clean HTML using <p>, <strong>, <ul>/<li>, <ol>/<li> tags. Do NOT use markdown."
    )
    header = (
        f"Task: {sanitize_for_prompt(task_name)}",
        f"Project: {sanitize_for_prompt(project_name)}" if project_name else None,
        f"Priority: {sanitize_for_prompt(priority)}" if priority else None,
    )
    if existing_description and existing_description.strip():
        system_prompt = (
            "You are a project management assistant. Improve and expand the given task "
            f"description while keeping the original intent. {html_rule}"
        )
        prompt = _lines(
            "Improve this task description:",
            *header,
            "",
            "Current description:",
            '"""',
            sanitize_for_prompt(existing_description),
            '"""',
            "",
            "Enhance the description to be clearer and more actionable while preserving the "
            "original intent. Return HTML.",
        )
    else:
        system_prompt = (
            "You are a project management assistant. Generate clear, actionable task descriptions "
            f"that help team members understand what needs to be done. {html_rule}"
        )
        prompt = _lines(
            "Generate a task description for:",
            *header,
            f"Status: {sanitize_for_prompt(status)}" if status else None,
            "",
            "Write a focused description that:",
            "1. Clarifies the objective",
            "2. Lists key steps or acceptance criteria",
            "3. Notes any dependencies or considerations",
            "",
            "Return HTML.",
        )
    result = generate_text(
        service, user_id, prompt, system_prompt, GenerationOptions.for_generation(temperature=0.5)
    )
    return strip_code_fence(result.text)


def generate_workstream_description(
    service: AssistantService,
    user_id: str,
    workstream_name: str,
    *,
    project_name: str | None = None,
) -> str:
    system_prompt = (
        "You are a project management assistant. Generate concise workstream descriptions that "
        "explain the purpose and scope of a project phase. Output clean HTML using <p>, <strong>, "
        "<ul>/<li> tags. Do NOT use markdown."
    )
    prompt = _lines(
        "Generate a workstream description for:",
        f"Workstream: {sanitize_for_prompt(workstream_name)}",
        f"Project: {sanitize_for_prompt(project_name)}" if project_name else None,
        "",
        "Write a brief description (1-2 paragraphs) that explains the purpose, outlines the scope "
        "of work and mentions expected outcomes.",
        "",
        "Return HTML.",
    )
    result = generate_text(
        service, user_id, prompt, system_prompt, GenerationOptions.for_generation(temperature=0.5)
    )
    return strip_code_fence(result.text)


def generate_client_notes(
    service: AssistantService,
    user_id: str,
    client_name: str,
    **details: str | None,
) -> str:
    """``details`` may carry industry, status, contact_name, contact_email, location, website."""

    system_prompt = (
        "You are a professional account manager assistant. Generate brief client notes that "
        "capture key context about a client relationship. Output plain text (NOT HTML). Keep it "
        "concise: 3-5 short paragraphs."
    )
    labels = {
        "industry": "Industry",
        "status": "Status",
        "contact_name": "Primary contact",
        "contact_email": "Contact email",
        "location": "Location",
        "website": "Website",
    }
    prompt = _lines(
        "Generate client notes for:",
        f"Client: {sanitize_for_prompt(client_name)}",
        *(
            f"{label}: {sanitize_for_prompt(details.get(key))}"
            for key, label in labels.items()
            if details.get(key)
        ),
        "",
        "Write a brief client summary covering the relationship context, key focus areas or "
        "expectations, and any relevant notes for the team.",
        "",
        "Return plain text only. No HTML or markdown.",
    )
    result = generate_text(
        service, user_id, prompt, system_prompt, GenerationOptions.for_generation(temperature=0.5)
    )
    return strip_code_fence(result.text)


def generate_file_description(
    service: AssistantService,
    user_id: str,
    file_name: str,
    *,
    project_name: str | None = None,
) -> str:
    system_prompt = (
        "You are a project management assistant. Generate short, descriptive asset descriptions. "
        "Output clean HTML using <p> tags. Keep it to 1-2 sentences. Do NOT use markdown."
    )
    prompt = _lines(
        "Generate a short description for this project asset:",
        f"Asset name: {sanitize_for_prompt(file_name)}",
        f"Project: {sanitize_for_prompt(project_name)}" if project_name else None,
        "",
        "Write 1-2 sentences describing what this asset likely contains and its purpose in the "
        "project. Return HTML.",
    )
    result = generate_text(
        service, user_id, prompt, system_prompt, GenerationOptions.for_generation(temperature=0.4)
    )
    return strip_code_fence(result.text)


def check_connection(service: AssistantService, user_id: str) -> ConnectionCheck:
    result = generate_text(
        service,
        user_id,
        CONNECTION_TEST_PROMPT,
        CONNECTION_TEST_SYSTEM_PROMPT,
        GenerationOptions.for_generation(max_tokens=50),
    )
    return ConnectionCheck(
        success="connection successful" in result.text.lower(),
        provider=result.provider,
        model=result.model,
    )
