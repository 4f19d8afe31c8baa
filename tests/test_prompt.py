from __future__ import annotations

from typing import Any

from pm_assistant.assistant.models import ChatContext
from pm_assistant.assistant.prompt import build_system_prompt, current_user_id


def _context(**app_data: Any) -> ChatContext:
    return ChatContext.model_validate(
        {
            "pageType": "project_detail",
            "appData": {"organization": {"id": "org-1", "name": "Acme"}, **app_data},
        }
    )


def _section(prompt: str, heading: str) -> str:
    start = prompt.index(heading)
    end = prompt.find("\n## ", start + 1)
    return prompt[start:] if end == -1 else prompt[start:end]


def test_empty_members_render_none() -> None:
    prompt = build_system_prompt(_context(members=[]))

    assert "- Members (0): None" in prompt
    assert "undefined" not in prompt
    assert "- Teams (0): None" in prompt


def test_minimal_context_renders_without_app_data() -> None:
    prompt = build_system_prompt(ChatContext.model_validate({"pageType": "my_tasks"}))

    assert "- Page: my tasks" in prompt
    assert "- Name: Unknown" in prompt
    assert "## Projects (0)\nNone" in prompt
    assert "## Inbox (0 unread)\nNone" in prompt
    assert "Current User ID: unknown" in prompt


def test_build_is_deterministic() -> None:
    context = _context(
        members=[{"id": "u1", "name": "Ana", "role": "admin"}],
        projects=[{"id": "p1", "name": "Site", "status": "active"}],
    )
    context_with_filters = context.model_copy(update={"filters": {"b": 1, "a": [2, 3]}})

    assert build_system_prompt(context) == build_system_prompt(context)
    assert build_system_prompt(context_with_filters) == build_system_prompt(context_with_filters)
    assert '- Filters: {"a": [2, 3], "b": 1}' in build_system_prompt(context_with_filters)


def test_members_are_truncated_after_ten() -> None:
    members = [{"id": f"u{i}", "name": f"Member {i}", "role": "member"} for i in range(13)]

    prompt = build_system_prompt(_context(members=members))

    line = next(row for row in prompt.splitlines() if row.startswith("- Members (13):"))
    assert "Member 9 (member)" in line
    assert "Member 10" not in line
    assert line.endswith("...and 3 more")


def test_projects_and_tasks_are_truncated() -> None:
    projects = [{"id": f"p{i}", "name": f"Project {i}", "status": "active"} for i in range(23)]
    tasks = [
        {"id": f"t{i}", "title": f"Task {i}", "projectName": "Site", "status": "todo", "priority": "low"}
        for i in range(40)
    ]

    prompt = build_system_prompt(_context(projects=projects, userTasks=tasks))

    projects_section = _section(prompt, "## Projects (23)")
    assert "- Project 19 [active]" in projects_section
    assert "Project 20 " not in projects_section
    assert "...and 3 more projects" in projects_section

    tasks_section = _section(prompt, "## Your Tasks (40)")
    assert "- Task 14 [todo] (low) - Site" in tasks_section
    assert "Task 15 " not in tasks_section
    assert "...and 25 more tasks" in tasks_section

    reference = _section(prompt, "## Reference Data")
    assert '- "Task 29" [todo]: t29' in reference
    assert "t30" not in reference


def test_inbox_shows_five_items_and_unread_count() -> None:
    inbox = [{"id": f"n{i}", "title": f"Note {i}", "type": "mention", "read": i % 2 == 0} for i in range(8)]

    prompt = build_system_prompt(_context(inbox=inbox))

    section = _section(prompt, "## Inbox")
    assert section.startswith("## Inbox (4 unread)")
    assert "- Note 1 [mention] *NEW*" in section
    assert "- Note 0 [mention]\n" in section
    assert "Note 5" not in section


def test_attachments_are_truncated() -> None:
    context = ChatContext.model_validate(
        {"attachments": [{"name": "spec.txt", "content": "x" * 6000}, {"name": "short.md", "content": "tiny"}]}
    )

    prompt = build_system_prompt(context)

    assert "--- spec.txt ---\n" + "x" * 5000 + "\n[truncated]" in prompt
    assert "x" * 5001 not in prompt
    assert "--- short.md ---\ntiny" in prompt


def test_optional_sections_appear_only_when_present() -> None:
    bare = build_system_prompt(_context())
    assert "## User's Workload Summary" not in bare
    assert "## Current Project Detail" not in bare
    assert "## Current Client Detail" not in bare
    assert "## Attached Documents" not in bare

    full = build_system_prompt(
        _context(
            workloadInsights={"totalTasks": 12, "completedTasks": 2, "overdueTasks": 3, "urgentTasks": 1, "isOverloaded": True},
            currentProject={
                "id": "p1",
                "name": "Site",
                "status": "active",
                "workstreams": [{"id": "w1", "name": "Design"}],
                "tasks": [{"id": "t1", "title": "Logo", "status": "todo", "priority": "high", "assignee": "Ana"}],
            },
            currentClient={"id": "c1", "name": "Globex", "status": "active", "email": "hi@globex.test"},
        )
    )
    assert "- Total tasks: 12 (2 completed, 0 in progress)" in full
    assert "(1 urgent)" in full
    assert "overloaded with 10 active tasks" in full
    assert "## Current Project Detail: Site" in full
    assert "- Logo [todo] (high) - Ana" in full
    assert "Files: None" in full
    assert "Email: hi@globex.test" in full
    assert "Phone:" not in full
    reference = _section(full, "## Reference Data")
    assert 'Current Project Tasks:\n- "Logo" [todo]: t1' in reference
    assert '- "Design": w1' in reference


def test_closing_section_lists_actions_and_placeholders() -> None:
    prompt = build_system_prompt(_context())

    assert "| create_task | title, projectId | workstreamId, assigneeId, priority, description |" in prompt
    assert "| change_theme | theme |  |" in prompt
    for token in ("$NEW_PROJECT_ID", "$NEW_WORKSTREAM_ID", "$NEW_TASK_ID", "$NEW_CLIENT_ID"):
        assert f"`{token}`" in prompt
    assert "$NEW_TASK_ID only holds the LAST created task ID" in prompt
    assert 'SUGGESTED_ACTIONS: [{"label": "Short label", "prompt": "Full prompt to send"}]' in prompt
    assert "Organization ID: org-1" in prompt


def test_current_user_prefers_first_admin() -> None:
    context = _context(
        members=[
            {"id": "u1", "name": "Bo", "role": "member"},
            {"id": "u2", "name": "Cy", "role": "admin"},
        ]
    )
    assert current_user_id(context.app_data.members) == "u2"
    assert current_user_id(context.app_data.members[:1]) == "u1"
    assert current_user_id(()) == "unknown"


def test_snapshot_accepts_nulls_for_optional_collections() -> None:
    context = ChatContext.model_validate(
        {"pageType": "inbox", "filters": None, "appData": {"members": None, "workloadInsights": None}}
    )

    assert context.app_data.members == ()
    assert context.filters is None
    assert "- Members (0): None" in build_system_prompt(context)
