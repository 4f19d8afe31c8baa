"""Pydantic contracts for the read-only application snapshot sent with a chat request."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

PageType = Literal[
    "projects_list",
    "project_detail",
    "my_tasks",
    "clients_list",
    "client_detail",
    "settings",
    "inbox",
    "other",
]


class SnapshotModel(BaseModel):
    """Immutable, camelCase-tolerant base; explicit nulls mean "absent"."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class Organization(SnapshotModel):
    id: str = ""
    name: str = "Unknown"


class Member(SnapshotModel):
    id: str
    name: str
    email: str = ""
    role: str = ""


class Team(SnapshotModel):
    id: str
    name: str
    member_count: int = 0


class ProjectSummary(SnapshotModel):
    id: str
    name: str
    status: str = ""
    client_name: str | None = None
    due_date: str | None = None


class ClientSummary(SnapshotModel):
    id: str
    name: str
    status: str = ""
    project_count: int = 0


class UserTask(SnapshotModel):
    id: str
    title: str
    project_name: str = ""
    status: str = ""
    priority: str = ""
    due_date: str | None = None


class InboxItem(SnapshotModel):
    id: str
    title: str
    type: str = ""
    read: bool = False
    created_at: str = ""


class WorkloadInsights(SnapshotModel):
    total_tasks: int = 0
    completed_tasks: int = 0
    in_progress_tasks: int = 0
    overdue_tasks: int = 0
    due_today: int = 0
    due_this_week: int = 0
    high_priority_tasks: int = 0
    urgent_tasks: int = 0
    has_urgent_overdue: bool = False
    is_overloaded: bool = False
    oldest_overdue_days: int | None = None


class WorkstreamRef(SnapshotModel):
    id: str
    name: str


class ProjectTask(SnapshotModel):
    id: str
    title: str
    status: str = ""
    priority: str = ""
    assignee: str | None = None


class ProjectNote(SnapshotModel):
    id: str
    title: str
    content: str | None = None


class ProjectFile(SnapshotModel):
    id: str
    name: str
    type: str = ""


class ProjectMember(SnapshotModel):
    id: str
    name: str
    role: str = ""


class CurrentProject(SnapshotModel):
    id: str
    name: str
    description: str | None = None
    status: str = ""
    workstreams: tuple[WorkstreamRef, ...] = ()
    tasks: tuple[ProjectTask, ...] = ()
    notes: tuple[ProjectNote, ...] = ()
    files: tuple[ProjectFile, ...] = ()
    members: tuple[ProjectMember, ...] = ()


class ClientProject(SnapshotModel):
    id: str
    name: str
    status: str = ""


class CurrentClient(SnapshotModel):
    id: str
    name: str
    email: str | None = None
    phone: str | None = None
    status: str = ""
    projects: tuple[ClientProject, ...] = ()


class AppData(SnapshotModel):
    organization: Organization = Field(default_factory=Organization)
    members: tuple[Member, ...] = ()
    teams: tuple[Team, ...] = ()
    projects: tuple[ProjectSummary, ...] = ()
    clients: tuple[ClientSummary, ...] = ()
    user_tasks: tuple[UserTask, ...] = ()
    inbox: tuple[InboxItem, ...] = ()
    workload_insights: WorkloadInsights | None = None
    current_project: CurrentProject | None = None
    current_client: CurrentClient | None = None


class Attachment(SnapshotModel):
    name: str
    content: str = ""


class ChatContext(SnapshotModel):
    """Per-request snapshot; never mutated during orchestration."""

    page_type: PageType = "other"
    project_id: str | None = None
    client_id: str | None = None
    filters: dict[str, Any] | None = None
    app_data: AppData = Field(default_factory=AppData)
    attachments: tuple[Attachment, ...] = ()
