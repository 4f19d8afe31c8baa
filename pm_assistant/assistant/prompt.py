"""Deterministic system prompt built from a ChatContext snapshot."""

from __future__ import annotations

import json
from collections.abc import Sequence

from pm_assistant.assistant.actions import ACTION_SPECS
from pm_assistant.assistant.models import AppData, ChatContext, Member, WorkloadInsights

MEMBER_LIMIT = 10
PROJECT_LIMIT = 20
USER_TASK_LIMIT = 15
INBOX_LIMIT = 5
REFERENCE_TASK_LIMIT = 30
ATTACHMENT_CHAR_LIMIT = 5000

EMPTY = "None"

PLACEHOLDER_HELP = {
    "$NEW_PROJECT_ID": "project",
    "$NEW_WORKSTREAM_ID": "workstream",
    "$NEW_TASK_ID": "task",
    "$NEW_CLIENT_ID": "client",
}

GUIDANCE = """## Your Personality & Approach
You're a friendly, proactive project management assistant. Think of yourself as a helpful colleague who genuinely cares about helping the user succeed.

**How to communicate:**
- Be warm and conversational, not robotic or formal
- Show you understand the context before jumping to solutions
- Keep responses focused and concise
- When you can help with an action, offer it naturally as part of your response

**Your capabilities:**
1. Answer questions about ANY data in the application
2. Provide insights, summaries, and analysis across projects, tasks, clients
3. Help find information, compare data, identify patterns
4. Proactively suggest and execute helpful actions

## When to Suggest Actions
- User mentions being overwhelmed or behind: offer to help prioritize or reschedule tasks
- User discusses a new initiative: offer to create the project structure
- User asks about status or progress: show a summary and offer relevant next steps
- User mentions a problem or blocker: suggest concrete solutions with actions
- User has overdue tasks: gently mention them and offer to help reschedule

## When NOT to Suggest Actions
- User is asking a simple question (just answer it)
- User is thinking out loud or brainstorming early ideas
- User explicitly says they're not ready to create anything yet
- The conversation is casual or a greeting

## How to Propose Actions
1. First, respond naturally to what the user said
2. Then, offer what you can do to help
3. Frame it as an offer ("Would you like me to..." or "I can...")
4. Include the action at the END of your message"""

ACTION_RULES_HEAD = """## Action Rules

**MULTIPLE ACTIONS SUPPORTED**: You can propose multiple actions at once. The system will execute them in order.

**PLACEHOLDER REFERENCES**: When creating entities and then using them in subsequent actions, use these placeholders:"""

ACTION_RULES_TAIL = """The system replaces these placeholders with the actual IDs after each action completes.

**Example multi-action request**: "Create a project, add a workstream, and add tasks"
ACTIONS_JSON: [
  {"type": "create_project", "data": {"name": "Project Name"}},
  {"type": "create_workstream", "data": {"name": "Phase 1", "projectId": "$NEW_PROJECT_ID"}},
  {"type": "create_task", "data": {"title": "Task 1", "projectId": "$NEW_PROJECT_ID", "workstreamId": "$NEW_WORKSTREAM_ID"}},
  {"type": "create_task", "data": {"title": "Task 2", "projectId": "$NEW_PROJECT_ID", "workstreamId": "$NEW_WORKSTREAM_ID"}}
]

For existing entities, ALWAYS use real IDs from the reference data below.

When proposing actions, include at the END of your response:
- For single action: ACTION_JSON: {"type": "...", "data": {...}}
- For multiple actions: ACTIONS_JSON: [{"type": "...", "data": {...}}, ...]"""

TASK_ASSIGNMENT_RULE = """## CRITICAL: Task Assignment Best Practice
When creating multiple tasks that need to be assigned, **ALWAYS include the assigneeId directly in create_task**.
Do NOT use separate assign_task actions for newly created tasks because $NEW_TASK_ID only holds the LAST created task ID.

**CORRECT** - assign during creation:
ACTIONS_JSON: [
  {"type": "create_task", "data": {"title": "Task 1", "projectId": "$NEW_PROJECT_ID", "assigneeId": "user-id"}},
  {"type": "create_task", "data": {"title": "Task 2", "projectId": "$NEW_PROJECT_ID", "assigneeId": "user-id"}}
]

**WRONG** - separate assign actions will only assign the last task:
ACTIONS_JSON: [
  {"type": "create_task", "data": {"title": "Task 1", "projectId": "$NEW_PROJECT_ID"}},
  {"type": "create_task", "data": {"title": "Task 2", "projectId": "$NEW_PROJECT_ID"}},
  {"type": "assign_task", "data": {"taskId": "$NEW_TASK_ID", "assigneeId": "user-id"}},
  {"type": "assign_task", "data": {"taskId": "$NEW_TASK_ID", "assigneeId": "user-id"}}
]"""

SUGGESTIONS_HELP = """## Suggesting Follow-up Actions
After answering a question or providing information, you may suggest 2-3 relevant follow-up actions. These appear as clickable chips.

**Format:** Add at the END of your response (after any ACTION_JSON/ACTIONS_JSON):
SUGGESTED_ACTIONS: [{"label": "Short label", "prompt": "Full prompt to send"}]

**Rules:**
- Maximum 2-3 suggestions
- Keep labels short (2-4 words)
- Don't suggest for simple greetings or when you're proposing actions

## Final Reminders
- Be conversational and helpful, not robotic
- Proactively suggest actions when they'd genuinely help
- NEVER guess or make up IDs - use exact IDs from reference data above
- When uncertain about user intent, ask a clarifying question"""


def _truncated(lines: Sequence[str], *, limit: int, more: str) -> list[str]:
    shown = list(lines[:limit])
    if len(lines) > limit:
        shown.append(f"...and {len(lines) - limit} {more}".rstrip())
    return shown


def _block(lines: Sequence[str]) -> str:
    return "\n".join(lines) if lines else EMPTY


def _inline(items: Sequence[str]) -> str:
    return ", ".join(items) if items else EMPTY


def _with_role(name: str, role: str) -> str:
    return f"{name} ({role})" if role else name


def _members_line(members: Sequence[Member]) -> str:
    if not members:
        return EMPTY
    shown = ", ".join(_with_role(m.name, m.role) for m in members[:MEMBER_LIMIT])
    if len(members) > MEMBER_LIMIT:
        shown += f" ...and {len(members) - MEMBER_LIMIT} more"
    return shown


def current_user_id(members: Sequence[Member]) -> str:
    """First admin, else first member, else "unknown"."""

    for member in members:
        if member.role == "admin":
            return member.id
    return members[0].id if members else "unknown"


def _overview(context: ChatContext) -> list[str]:
    data = context.app_data
    sections = [
        "You are a project management AI assistant with FULL ACCESS to the user's application data.",
    ]

    current = [f"- Page: {context.page_type.replace('_', ' ')}"]
    if context.filters:
        current.append(f"- Filters: {json.dumps(context.filters, sort_keys=True, default=str)}")
    sections.append("## Current Context\n" + "\n".join(current))

    sections.append(
        "\n".join(
            [
                "## Organization",
                f"- Name: {data.organization.name}",
                f"- Members ({len(data.members)}): {_members_line(data.members)}",
                f"- Teams ({len(data.teams)}): {_inline([t.name for t in data.teams])}",
            ]
        )
    )

    project_lines = []
    for project in data.projects:
        line = f"- {project.name} [{project.status}]"
        if project.client_name:
            line += f" - Client: {project.client_name}"
        if project.due_date:
            line += f" - Due: {project.due_date}"
        project_lines.append(line)
    sections.append(
        f"## Projects ({len(data.projects)})\n"
        + _block(_truncated(project_lines, limit=PROJECT_LIMIT, more="more projects"))
    )

    client_lines = [
        f"- {c.name} [{c.status}] ({c.project_count} projects)" for c in data.clients
    ]
    sections.append(f"## Clients ({len(data.clients)})\n" + _block(client_lines))

    task_lines = []
    for task in data.user_tasks:
        line = f"- {task.title} [{task.status}] ({task.priority}) - {task.project_name}"
        if task.due_date:
            line += f" - Due: {task.due_date}"
        task_lines.append(line)
    sections.append(
        f"## Your Tasks ({len(data.user_tasks)})\n"
        + _block(_truncated(task_lines, limit=USER_TASK_LIMIT, more="more tasks"))
    )

    unread = sum(1 for item in data.inbox if not item.read)
    inbox_lines = [
        f"- {item.title} [{item.type}]{'' if item.read else ' *NEW*'}"
        for item in data.inbox[:INBOX_LIMIT]
    ]
    sections.append(f"## Inbox ({unread} unread)\n" + _block(inbox_lines))
    return sections


def _workload(insights: WorkloadInsights) -> str:
    overdue = f"- Overdue: {insights.overdue_tasks}"
    if insights.has_urgent_overdue and insights.oldest_overdue_days is not None:
        overdue += f" (some are {insights.oldest_overdue_days}+ days overdue)"
    high = f"- High priority: {insights.high_priority_tasks}"
    if insights.urgent_tasks > 0:
        high += f" ({insights.urgent_tasks} urgent)"
    lines = [
        "## User's Workload Summary",
        f"- Total tasks: {insights.total_tasks} ({insights.completed_tasks} completed, "
        f"{insights.in_progress_tasks} in progress)",
        overdue,
        f"- Due today: {insights.due_today}",
        f"- Due this week: {insights.due_this_week}",
        high,
    ]
    if insights.is_overloaded:
        active = insights.total_tasks - insights.completed_tasks
        lines.append(
            f"Note: user appears overloaded with {active} active tasks; "
            "consider offering to help prioritize or reschedule"
        )
    if insights.overdue_tasks > 0:
        lines.append(
            "Note: user has overdue tasks; gently offer to help reschedule if they seem stressed"
        )
    return "\n".join(lines)


def _current_project(data: AppData) -> str | None:
    project = data.current_project
    if project is None:
        return None
    lines = [f"## Current Project Detail: {project.name}", f"Status: {project.status}"]
    if project.description:
        lines.append(f"Description: {project.description}")
    lines.extend(
        [
            f"Members: {_inline([_with_role(m.name, m.role) for m in project.members])}",
            f"Workstreams: {_inline([w.name for w in project.workstreams])}",
            f"Files: {_inline([f.name for f in project.files])}",
            f"Notes: {_inline([n.title for n in project.notes])}",
            "",
            f"Tasks ({len(project.tasks)}):",
        ]
    )
    task_lines = [
        f"- {t.title} [{t.status}] ({t.priority})" + (f" - {t.assignee}" if t.assignee else "")
        for t in project.tasks
    ]
    lines.append(_block(task_lines))
    return "\n".join(lines)


def _current_client(data: AppData) -> str | None:
    client = data.current_client
    if client is None:
        return None
    lines = [f"## Current Client Detail: {client.name}", f"Status: {client.status}"]
    if client.email:
        lines.append(f"Email: {client.email}")
    if client.phone:
        lines.append(f"Phone: {client.phone}")
    lines.append(f"Projects: {_inline([f'{p.name} [{p.status}]' for p in client.projects])}")
    return "\n".join(lines)


def _attachments(context: ChatContext) -> str | None:
    if not context.attachments:
        return None
    rendered = []
    for attachment in context.attachments:
        body = attachment.content[:ATTACHMENT_CHAR_LIMIT]
        if len(attachment.content) > ATTACHMENT_CHAR_LIMIT:
            body += "\n[truncated]"
        rendered.append(f"--- {attachment.name} ---\n{body}")
    return "## Attached Documents\n" + "\n\n".join(rendered)


def render_action_table() -> str:
    rows = [
        "| Action | Required Fields | Optional Fields | Notes |",
        "|--------|----------------|-----------------|-------|",
    ]
    for spec in ACTION_SPECS.values():
        rows.append(
            f"| {spec.action_type} | {', '.join(spec.required)} | "
            f"{', '.join(spec.optional)} | {spec.note} |"
        )
    return "## Available Actions\n\n" + "\n".join(rows)


def _action_rules() -> str:
    placeholders = [
        f"- `{token}` - References the ID of a {kind} created in the same request"
        for token, kind in PLACEHOLDER_HELP.items()
    ]
    return "\n".join([ACTION_RULES_HEAD, *placeholders, "", ACTION_RULES_TAIL])


def _reference_data(data: AppData) -> str:
    task_ids = [
        f'- "{t.title}" [{t.status}]: {t.id}' for t in data.user_tasks[:REFERENCE_TASK_LIMIT]
    ]
    lines = [
        "## Reference Data",
        f"Organization ID: {data.organization.id or 'unknown'}",
        f"Current User ID: {current_user_id(data.members)}",
        "",
        "Project IDs (use these exact IDs for existing projects):",
        _block([f'- "{p.name}": {p.id}' for p in data.projects]),
        "",
        "Team Member IDs (for task assignment):",
        _block([f'- "{m.name}": {m.id}' for m in data.members]),
        "",
        "Task IDs (use these exact IDs for existing tasks):",
        _block(task_ids),
    ]
    project = data.current_project
    if project is not None and project.tasks:
        lines.extend(["", "Current Project Tasks:"])
        lines.extend(f'- "{t.title}" [{t.status}]: {t.id}' for t in project.tasks)
    workstreams = project.workstreams if project is not None else ()
    lines.extend(
        [
            "",
            "Workstream IDs (use these exact IDs for existing workstreams):",
            _block([f'- "{w.name}": {w.id}' for w in workstreams]),
        ]
    )
    return "\n".join(lines)


def build_system_prompt(context: ChatContext) -> str:
    """Render the full model-facing instructions for one chat turn.

    Pure: the same context always yields the same text.
    """

    data = context.app_data
    sections = _overview(context)
    if data.workload_insights is not None:
        sections.append(_workload(data.workload_insights))
    for optional in (_current_project(data), _current_client(data), _attachments(context)):
        if optional is not None:
            sections.append(optional)
    sections.extend(
        [
            "---",
            GUIDANCE,
            _action_rules(),
            render_action_table(),
            TASK_ASSIGNMENT_RULE,
            _reference_data(data),
            SUGGESTIONS_HELP,
        ]
    )
    return "\n\n".join(sections)
