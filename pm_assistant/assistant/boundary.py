"""Domain boundary contract plus an in-memory implementation for tests and the CLI."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from pm_assistant.assistant.actions import (
    AddProjectMemberData,
    AddTeamMemberData,
    AssignTaskData,
    ChangeThemeData,
    CreateClientData,
    CreateNoteData,
    CreateProjectData,
    CreateTaskData,
    CreateWorkstreamData,
    DeleteTaskData,
    UpdateClientData,
    UpdateProjectData,
    UpdateTaskData,
    UpdateWorkstreamData,
)
from pm_assistant.assistant.models import ChatContext

PROJECT_MEMBER_ROLES = frozenset({"owner", "pic", "member", "viewer"})


@dataclass(frozen=True)
class DomainResult:
    entity_id: str | None = None
    name: str | None = None


class DomainError(RuntimeError):
    """Rejection raised by a domain operation (validation, authorization, not found)."""

    def __init__(self, reason_code: str, message: str) -> None:
        self.reason_code = reason_code
        self.message = message
        super().__init__(message)

    def as_dict(self) -> dict[str, str]:
        return {"reason_code": self.reason_code, "message": self.message}


class DomainBoundary(Protocol):
    def create_task(self, data: CreateTaskData) -> DomainResult: ...

    def update_task(self, data: UpdateTaskData) -> DomainResult: ...

    def delete_task(self, data: DeleteTaskData) -> DomainResult: ...

    def assign_task(self, data: AssignTaskData) -> DomainResult: ...

    def create_project(self, data: CreateProjectData) -> DomainResult: ...

    def update_project(self, data: UpdateProjectData) -> DomainResult: ...

    def create_workstream(self, data: CreateWorkstreamData) -> DomainResult: ...

    def update_workstream(self, data: UpdateWorkstreamData) -> DomainResult: ...

    def create_client(self, data: CreateClientData) -> DomainResult: ...

    def update_client(self, data: UpdateClientData) -> DomainResult: ...

    def create_note(self, data: CreateNoteData) -> DomainResult: ...

    def add_project_member(self, data: AddProjectMemberData) -> DomainResult: ...

    def add_team_member(self, data: AddTeamMemberData) -> DomainResult: ...

    def change_theme(self, data: ChangeThemeData) -> DomainResult: ...


class InMemoryDomainBoundary:
    """Deterministic boundary; ids are ``<kind>-<n>`` in creation order."""

    def __init__(self, denied_operations: set[str] | None = None) -> None:
        self.denied_operations = denied_operations or set()
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.projects: dict[str, dict[str, Any]] = {}
        self.workstreams: dict[str, dict[str, Any]] = {}
        self.tasks: dict[str, dict[str, Any]] = {}
        self.clients: dict[str, dict[str, Any]] = {}
        self.notes: dict[str, dict[str, Any]] = {}
        self.users: set[str] = set()
        self.teams: dict[str, set[str]] = {}
        self.project_members: dict[str, dict[str, str]] = {}
        self.theme = "system"
        self._counters: dict[str, int] = {}

    @classmethod
    def from_context(cls, context: ChatContext) -> InMemoryDomainBoundary:
        """Seed with the entities visible in a chat snapshot."""

        boundary = cls()
        data = context.app_data
        boundary.users.update(member.id for member in data.members)
        for team in data.teams:
            boundary.teams[team.id] = set()
        for project in data.projects:
            boundary.projects[project.id] = {"id": project.id, "name": project.name}
        for client in data.clients:
            boundary.clients[client.id] = {"id": client.id, "name": client.name}
        for task in data.user_tasks:
            boundary.tasks[task.id] = {"id": task.id, "title": task.title}
        current = data.current_project
        if current is not None:
            boundary.projects.setdefault(current.id, {"id": current.id, "name": current.name})
            for workstream in current.workstreams:
                boundary.workstreams[workstream.id] = {
                    "id": workstream.id,
                    "name": workstream.name,
                    "projectId": current.id,
                }
            for task in current.tasks:
                boundary.tasks.setdefault(task.id, {"id": task.id, "title": task.title})
        return boundary

    def _record(self, operation: str, data: Any) -> dict[str, Any]:
        if operation in self.denied_operations:
            raise DomainError("operation_denied", f"Operation not permitted: {operation}")
        payload = data.provided()
        self.calls.append((operation, payload))
        return payload

    def _next_id(self, kind: str) -> str:
        self._counters[kind] = self._counters.get(kind, 0) + 1
        return f"{kind}-{self._counters[kind]}"

    def _require(self, table: dict[str, Any], entity_id: str, kind: str) -> dict[str, Any]:
        row = table.get(entity_id)
        if row is None:
            raise DomainError("not_found", f"{kind.capitalize()} not found: {entity_id}")
        return row

    def _require_user(self, user_id: str) -> None:
        if self.users and user_id not in self.users:
            raise DomainError("not_found", f"User not found: {user_id}")

    def create_task(self, data: CreateTaskData) -> DomainResult:
        payload = self._record("create_task", data)
        self._require(self.projects, data.project_id, "project")
        if data.workstream_id:
            self._require(self.workstreams, data.workstream_id, "workstream")
        if data.assignee_id:
            self._require_user(data.assignee_id)
        task_id = self._next_id("task")
        self.tasks[task_id] = {"id": task_id, **payload}
        return DomainResult(entity_id=task_id, name=data.title)

    def update_task(self, data: UpdateTaskData) -> DomainResult:
        payload = self._record("update_task", data)
        task = self._require(self.tasks, data.task_id, "task")
        task.update(payload)
        return DomainResult(entity_id=data.task_id, name=task.get("title"))

    def delete_task(self, data: DeleteTaskData) -> DomainResult:
        self._record("delete_task", data)
        task = self._require(self.tasks, data.task_id, "task")
        del self.tasks[data.task_id]
        return DomainResult(entity_id=data.task_id, name=task.get("title"))

    def assign_task(self, data: AssignTaskData) -> DomainResult:
        self._record("assign_task", data)
        task = self._require(self.tasks, data.task_id, "task")
        if data.assignee_id is not None:
            self._require_user(data.assignee_id)
        task["assigneeId"] = data.assignee_id
        return DomainResult(entity_id=data.task_id, name=task.get("title"))

    def create_project(self, data: CreateProjectData) -> DomainResult:
        payload = self._record("create_project", data)
        if data.client_id:
            self._require(self.clients, data.client_id, "client")
        project_id = self._next_id("project")
        self.projects[project_id] = {"id": project_id, **payload}
        return DomainResult(entity_id=project_id, name=data.name)

    def update_project(self, data: UpdateProjectData) -> DomainResult:
        payload = self._record("update_project", data)
        project = self._require(self.projects, data.project_id, "project")
        project.update(payload)
        return DomainResult(entity_id=data.project_id, name=project.get("name"))

    def create_workstream(self, data: CreateWorkstreamData) -> DomainResult:
        payload = self._record("create_workstream", data)
        self._require(self.projects, data.project_id, "project")
        workstream_id = self._next_id("workstream")
        self.workstreams[workstream_id] = {"id": workstream_id, **payload}
        return DomainResult(entity_id=workstream_id, name=data.name)

    def update_workstream(self, data: UpdateWorkstreamData) -> DomainResult:
        payload = self._record("update_workstream", data)
        workstream = self._require(self.workstreams, data.workstream_id, "workstream")
        workstream.update(payload)
        return DomainResult(entity_id=data.workstream_id, name=workstream.get("name"))

    def create_client(self, data: CreateClientData) -> DomainResult:
        payload = self._record("create_client", data)
        client_id = self._next_id("client")
        self.clients[client_id] = {"id": client_id, **payload}
        return DomainResult(entity_id=client_id, name=data.name)

    def update_client(self, data: UpdateClientData) -> DomainResult:
        payload = self._record("update_client", data)
        client = self._require(self.clients, data.client_id, "client")
        client.update(payload)
        return DomainResult(entity_id=data.client_id, name=client.get("name"))

    def create_note(self, data: CreateNoteData) -> DomainResult:
        payload = self._record("create_note", data)
        self._require(self.projects, data.project_id, "project")
        note_id = self._next_id("note")
        self.notes[note_id] = {"id": note_id, **payload}
        return DomainResult(entity_id=note_id, name=data.title)

    def add_project_member(self, data: AddProjectMemberData) -> DomainResult:
        self._record("add_project_member", data)
        if data.role not in PROJECT_MEMBER_ROLES:
            raise DomainError("invalid_role", f"Invalid project role: {data.role}")
        self._require(self.projects, data.project_id, "project")
        self._require_user(data.user_id)
        self.project_members.setdefault(data.project_id, {})[data.user_id] = data.role
        return DomainResult(entity_id=data.user_id)

    def add_team_member(self, data: AddTeamMemberData) -> DomainResult:
        self._record("add_team_member", data)
        members = self._require(self.teams, data.team_id, "team")
        self._require_user(data.user_id)
        members.add(data.user_id)
        return DomainResult(entity_id=data.user_id)

    def change_theme(self, data: ChangeThemeData) -> DomainResult:
        self._record("change_theme", data)
        self.theme = data.theme
        return DomainResult(name=data.theme)
