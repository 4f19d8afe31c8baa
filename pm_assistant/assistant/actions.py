"""Closed action-type enumeration with one validated payload model per type."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

EntityKind = Literal["project", "workstream", "task", "client", "note"]


@dataclass(frozen=True)
class ProposedAction:
    """One action as emitted by the model; not yet validated."""

    type: str
    data: dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        return {"type": self.type, "data": dict(self.data)}


class ActionPayload(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    def provided(self) -> dict[str, Any]:
        """Fields the model actually sent, keyed by wire name."""

        return self.model_dump(by_alias=True, exclude_unset=True)


class CreateTaskData(ActionPayload):
    title: str = Field(min_length=1)
    project_id: str = Field(min_length=1)
    workstream_id: str | None = None
    assignee_id: str | None = None
    priority: str | None = None
    description: str | None = None


class UpdateTaskData(ActionPayload):
    task_id: str = Field(min_length=1)
    title: str | None = None
    status: str | None = None
    priority: str | None = None
    assignee_id: str | None = None


class DeleteTaskData(ActionPayload):
    task_id: str = Field(min_length=1)


class AssignTaskData(ActionPayload):
    task_id: str = Field(min_length=1)
    # Required key; null unassigns.
    assignee_id: str | None


class CreateProjectData(ActionPayload):
    name: str = Field(min_length=1)
    description: str | None = None
    client_id: str | None = None
    org_id: str | None = None


class UpdateProjectData(ActionPayload):
    project_id: str = Field(min_length=1)
    name: str | None = None
    status: str | None = None
    description: str | None = None


class CreateWorkstreamData(ActionPayload):
    name: str = Field(min_length=1)
    project_id: str = Field(min_length=1)
    description: str | None = None


class UpdateWorkstreamData(ActionPayload):
    workstream_id: str = Field(min_length=1)
    name: str | None = None
    description: str | None = None


class CreateClientData(ActionPayload):
    name: str = Field(min_length=1)
    email: str | None = None
    phone: str | None = None
    org_id: str | None = None


class UpdateClientData(ActionPayload):
    client_id: str = Field(min_length=1)
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    status: str | None = None


class CreateNoteData(ActionPayload):
    title: str = Field(min_length=1)
    project_id: str = Field(min_length=1)
    content: str | None = None


class AddProjectMemberData(ActionPayload):
    project_id: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    role: str = Field(min_length=1)


class AddTeamMemberData(ActionPayload):
    team_id: str = Field(min_length=1)
    user_id: str = Field(min_length=1)


class ChangeThemeData(ActionPayload):
    theme: Literal["light", "dark", "system"]


@dataclass(frozen=True)
class ActionSpec:
    action_type: str
    payload_model: type[ActionPayload]
    boundary_method: str
    required: tuple[str, ...]
    optional: tuple[str, ...] = ()
    creates: EntityKind | None = None
    note: str = ""


ACTION_SPECS: dict[str, ActionSpec] = {
    spec.action_type: spec
    for spec in (
        ActionSpec(
            "create_task",
            CreateTaskData,
            "create_task",
            required=("title", "projectId"),
            optional=("workstreamId", "assigneeId", "priority", "description"),
            creates="task",
            note="**IMPORTANT: Include assigneeId here to assign at creation**",
        ),
        ActionSpec(
            "update_task",
            UpdateTaskData,
            "update_task",
            required=("taskId",),
            optional=("title", "status", "priority", "assigneeId"),
        ),
        ActionSpec("delete_task", DeleteTaskData, "delete_task", required=("taskId",)),
        ActionSpec(
            "assign_task",
            AssignTaskData,
            "assign_task",
            required=("taskId", "assigneeId"),
            note="Only for existing tasks. assigneeId can be null to unassign",
        ),
        ActionSpec(
            "create_project",
            CreateProjectData,
            "create_project",
            required=("name",),
            optional=("description", "clientId"),
            creates="project",
            note="orgId auto-injected by system",
        ),
        ActionSpec(
            "update_project",
            UpdateProjectData,
            "update_project",
            required=("projectId",),
            optional=("name", "status", "description"),
        ),
        ActionSpec(
            "create_workstream",
            CreateWorkstreamData,
            "create_workstream",
            required=("name", "projectId"),
            optional=("description",),
            creates="workstream",
            note="Use $NEW_PROJECT_ID or real UUID",
        ),
        ActionSpec(
            "update_workstream",
            UpdateWorkstreamData,
            "update_workstream",
            required=("workstreamId",),
            optional=("name", "description"),
        ),
        ActionSpec(
            "create_client",
            CreateClientData,
            "create_client",
            required=("name",),
            optional=("email", "phone"),
            creates="client",
            note="orgId auto-injected by system",
        ),
        ActionSpec(
            "update_client",
            UpdateClientData,
            "update_client",
            required=("clientId",),
            optional=("name", "email", "phone", "status"),
        ),
        ActionSpec(
            "create_note",
            CreateNoteData,
            "create_note",
            required=("title", "projectId"),
            optional=("content",),
            creates="note",
            note="Use $NEW_PROJECT_ID or real UUID",
        ),
        ActionSpec(
            "add_project_member",
            AddProjectMemberData,
            "add_project_member",
            required=("projectId", "userId", "role"),
        ),
        ActionSpec(
            "add_team_member",
            AddTeamMemberData,
            "add_team_member",
            required=("teamId", "userId"),
        ),
        ActionSpec(
            "change_theme",
            ChangeThemeData,
            "change_theme",
            required=("theme",),
            note='theme must be "light", "dark", or "system"',
        ),
    )
}

ORG_SCOPED_ACTIONS = frozenset({"create_project", "create_client"})


class ActionValidationError(ValueError):
    """Raised when an action type is unknown or its payload breaks the schema."""

    def __init__(self, action_type: str, *, code: str, errors: list[dict[str, str]]) -> None:
        self.action_type = action_type
        self.code = code
        self.errors = errors
        super().__init__(f"{code}:{action_type or '-'}")

    def summary(self) -> str:
        if not self.errors:
            return str(self)
        return "; ".join(f"{row['path']}: {row['message']}" for row in self.errors)


def get_action_spec(action_type: str) -> ActionSpec:
    spec = ACTION_SPECS.get(action_type)
    if spec is None:
        raise ActionValidationError(
            action_type,
            code="unknown_action_type",
            errors=[
                {
                    "code": "ACTION_TYPE_UNKNOWN",
                    "path": "$.type",
                    "message": f"Unknown action type: {action_type}",
                }
            ],
        )
    return spec


def _error_rows(exc: ValidationError) -> list[dict[str, str]]:
    rows: list[dict[str, str]] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        rows.append(
            {
                "code": "SCHEMA_REQUIRED" if error.get("type") == "missing" else "SCHEMA_INVALID",
                "path": f"$.data.{location}" if location else "$.data",
                "message": str(error.get("msg", "invalid value")),
            }
        )
    return sorted(rows, key=lambda row: (row["code"], row["path"], row["message"]))


def decode_action(action: ProposedAction) -> tuple[ActionSpec, ActionPayload]:
    """Decode an action's free-form data into its typed payload."""

    spec = get_action_spec(action.type)
    try:
        payload = spec.payload_model.model_validate(action.data)
    except ValidationError as exc:
        raise ActionValidationError(
            action.type, code="invalid_action_payload", errors=_error_rows(exc)
        ) from exc
    return spec, payload
