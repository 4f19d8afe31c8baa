from __future__ import annotations

import pytest

from pm_assistant.assistant.actions import CreateTaskData, ProposedAction
from pm_assistant.assistant.boundary import DomainResult, InMemoryDomainBoundary
from pm_assistant.assistant.executor import ActionBatch, ActionExecutor
from pm_assistant.assistant.parser import parse_chat_response
from pm_assistant.assistant.placeholders import (
    MissingPlaceholderError,
    PlaceholderBindings,
    find_placeholders,
    resolve_placeholders,
)


def _action(action_type: str, **data: object) -> ProposedAction:
    return ProposedAction(type=action_type, data=dict(data))


def test_project_then_workstream_resolves_real_project_id() -> None:
    reply = parse_chat_response(
        'ACTIONS_JSON: [{"type":"create_project","data":{"name":"Q1"}},'
        '{"type":"create_workstream","data":{"name":"Phase 1","projectId":"$NEW_PROJECT_ID"}}]'
    )
    boundary = InMemoryDomainBoundary()

    outcomes = ActionExecutor(boundary).execute(ActionBatch.of(reply.actions))

    assert [outcome.status for outcome in outcomes] == ["succeeded", "succeeded"]
    project_id = outcomes[0].entity_id
    assert project_id == "project-1"
    assert outcomes[1].resolved_data == {"name": "Phase 1", "projectId": project_id}
    assert boundary.workstreams["workstream-1"]["projectId"] == project_id


def test_full_chain_project_workstream_tasks() -> None:
    boundary = InMemoryDomainBoundary()
    batch = ActionBatch.of(
        [
            _action("create_project", name="Website"),
            _action("create_workstream", name="Design", projectId="$NEW_PROJECT_ID"),
            _action("create_task", title="Wireframes", projectId="$NEW_PROJECT_ID", workstreamId="$NEW_WORKSTREAM_ID"),
            _action("create_note", title="Kickoff", projectId="$NEW_PROJECT_ID"),
        ]
    )

    outcomes = ActionExecutor(boundary).execute(batch)

    assert all(outcome.succeeded for outcome in outcomes)
    assert boundary.tasks["task-1"]["workstreamId"] == "workstream-1"
    assert boundary.notes["note-1"]["projectId"] == "project-1"
    assert batch.bindings.as_dict() == {
        "$NEW_PROJECT_ID": "project-1",
        "$NEW_TASK_ID": "task-1",
        "$NEW_WORKSTREAM_ID": "workstream-1",
    }


def test_unbound_placeholder_fails_without_boundary_call() -> None:
    boundary = InMemoryDomainBoundary()
    batch = ActionBatch.of([_action("create_task", title="Orphan", projectId="$NEW_PROJECT_ID")])

    outcomes = ActionExecutor(boundary).execute(batch)

    assert outcomes[0].status == "failed"
    assert outcomes[0].error_code == "missing_placeholder"
    assert outcomes[0].dispatched is False
    assert "$NEW_PROJECT_ID" in (outcomes[0].error or "")
    assert boundary.calls == []


def test_failure_does_not_abort_the_batch() -> None:
    boundary = InMemoryDomainBoundary()
    batch = ActionBatch.of(
        [
            _action("update_task", taskId="does-not-exist", status="done"),
            _action("launch_rocket"),
            _action("create_client", name=""),
            _action("create_client", name="Acme"),
            _action("create_project", name="Acme site", clientId="$NEW_CLIENT_ID"),
        ]
    )

    outcomes = ActionExecutor(boundary).execute(batch)

    assert [outcome.index for outcome in outcomes] == [0, 1, 2, 3, 4]
    assert [outcome.status for outcome in outcomes] == ["failed", "failed", "failed", "succeeded", "succeeded"]
    assert outcomes[0].error_code == "dispatch_failed"
    assert outcomes[0].dispatched is True
    assert outcomes[0].error == "not_found: Task not found: does-not-exist"
    assert outcomes[1].error_code == "unknown_action_type"
    assert outcomes[2].error_code == "invalid_action_payload"
    assert outcomes[2].dispatched is False
    assert boundary.projects["project-1"]["clientId"] == "client-1"


def test_failed_create_leaves_dependent_action_unbound() -> None:
    boundary = InMemoryDomainBoundary(denied_operations={"create_project"})
    batch = ActionBatch.of(
        [
            _action("create_project", name="Blocked"),
            _action("create_workstream", name="Phase", projectId="$NEW_PROJECT_ID"),
        ]
    )

    outcomes = ActionExecutor(boundary).execute(batch)

    assert outcomes[0].error_code == "dispatch_failed"
    assert outcomes[1].error_code == "missing_placeholder"


class FlakyStorageBoundary(InMemoryDomainBoundary):
    def create_task(self, data: CreateTaskData) -> DomainResult:
        raise ConnectionError("db connection reset")


class SilentFailureBoundary(InMemoryDomainBoundary):
    def create_task(self, data: CreateTaskData) -> DomainResult:
        raise KeyError


def test_unexpected_boundary_exception_becomes_failed_outcome() -> None:
    boundary = FlakyStorageBoundary()
    batch = ActionBatch.of(
        [
            _action("create_project", name="Site"),
            _action("create_task", title="Copy", projectId="$NEW_PROJECT_ID"),
            _action("create_client", name="Globex"),
        ]
    )

    outcomes = ActionExecutor(boundary).execute(batch)

    assert [outcome.status for outcome in outcomes] == ["succeeded", "failed", "succeeded"]
    assert outcomes[0].entity_id == "project-1"
    assert outcomes[1].dispatched is True
    assert outcomes[1].error_code == "dispatch_failed"
    assert outcomes[1].error == "db connection reset"
    assert outcomes[1].resolved_data == {"title": "Copy", "projectId": "project-1"}
    assert "client-1" in boundary.clients


def test_unexpected_exception_without_message_gets_generic_error() -> None:
    outcomes = ActionExecutor(SilentFailureBoundary()).execute(
        ActionBatch.of([_action("create_task", title="Copy", projectId="p1")])
    )

    assert outcomes[0].error == "An unexpected error occurred"


def test_org_id_is_injected_for_org_scoped_creates_only() -> None:
    boundary = InMemoryDomainBoundary()
    batch = ActionBatch.of(
        [
            _action("create_project", name="P"),
            _action("create_client", name="C", orgId="explicit-org"),
            _action("create_workstream", name="W", projectId="$NEW_PROJECT_ID"),
        ]
    )

    outcomes = ActionExecutor(boundary, org_id="org-1").execute(batch)

    assert outcomes[0].resolved_data == {"name": "P", "orgId": "org-1"}
    assert outcomes[1].resolved_data == {"name": "C", "orgId": "explicit-org"}
    assert "orgId" not in (outcomes[2].resolved_data or {})


def test_most_recent_create_wins_for_repeated_kind() -> None:
    """$NEW_TASK_ID always names the LAST created task.

    Two creates followed by two assign_task actions assign the second task
    twice; the first task stays unassigned. Callers must put assigneeId on
    create_task instead.
    """

    boundary = InMemoryDomainBoundary()
    batch = ActionBatch.of(
        [
            _action("create_project", name="P"),
            _action("create_task", title="First", projectId="$NEW_PROJECT_ID"),
            _action("create_task", title="Second", projectId="$NEW_PROJECT_ID"),
            _action("assign_task", taskId="$NEW_TASK_ID", assigneeId="u1"),
            _action("assign_task", taskId="$NEW_TASK_ID", assigneeId="u2"),
        ]
    )

    outcomes = ActionExecutor(boundary).execute(batch)

    assert all(outcome.succeeded for outcome in outcomes)
    assert outcomes[3].resolved_data == {"taskId": "task-2", "assigneeId": "u1"}
    assert outcomes[4].resolved_data == {"taskId": "task-2", "assigneeId": "u2"}
    assert "assigneeId" not in boundary.tasks["task-1"]
    assert boundary.tasks["task-2"]["assigneeId"] == "u2"
    assert [(event.kind, event.entity_id) for event in batch.bindings.history] == [
        ("project", "project-1"),
        ("task", "task-1"),
        ("task", "task-2"),
    ]


def test_assign_task_null_unassigns() -> None:
    boundary = InMemoryDomainBoundary()
    batch = ActionBatch.of(
        [
            _action("create_project", name="P"),
            _action("create_task", title="T", projectId="$NEW_PROJECT_ID", assigneeId="u1"),
            _action("assign_task", taskId="$NEW_TASK_ID", assigneeId=None),
        ]
    )

    outcomes = ActionExecutor(boundary).execute(batch)

    assert outcomes[2].succeeded
    assert boundary.tasks["task-1"]["assigneeId"] is None


def test_project_member_role_is_checked_by_boundary() -> None:
    boundary = InMemoryDomainBoundary()
    batch = ActionBatch.of(
        [
            _action("create_project", name="P"),
            _action("add_project_member", projectId="$NEW_PROJECT_ID", userId="u1", role="pic"),
            _action("add_project_member", projectId="$NEW_PROJECT_ID", userId="u2", role="boss"),
        ]
    )

    outcomes = ActionExecutor(boundary).execute(batch)

    assert outcomes[1].succeeded
    assert outcomes[2].error == "invalid_role: Invalid project role: boss"
    assert boundary.project_members == {"project-1": {"u1": "pic"}}


def test_resolve_placeholders_recurses_and_does_not_mutate() -> None:
    bindings = PlaceholderBindings()
    bindings.bind("project", "p-9")
    data = {"projectId": "$NEW_PROJECT_ID", "links": ["see $NEW_PROJECT_ID", {"ref": "$NEW_PROJECT_ID"}], "n": 3}

    resolved = resolve_placeholders(data, bindings)

    assert resolved == {"projectId": "p-9", "links": ["see p-9", {"ref": "p-9"}], "n": 3}
    assert data["projectId"] == "$NEW_PROJECT_ID"


def test_resolve_placeholders_raises_for_unbound_token() -> None:
    with pytest.raises(MissingPlaceholderError, match=r"missing_placeholder:\$NEW_CLIENT_ID"):
        resolve_placeholders({"clientId": "$NEW_CLIENT_ID"}, PlaceholderBindings())


def test_find_placeholders_lists_each_token_once() -> None:
    assert find_placeholders({"a": "$NEW_TASK_ID", "b": ["$NEW_TASK_ID", "$NEW_PROJECT_ID"]}) == [
        "$NEW_TASK_ID",
        "$NEW_PROJECT_ID",
    ]
