"""
Wire normalization: stored rows <-> sync documents.

Stored rows carry timezone-aware timestamps and raw author ids; documents
carry epoch-millisecond integers and embedded ``{id, name, image}`` author
summaries. Conversion is exact at millisecond precision in both directions.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional, Sequence

from pydantic import BaseModel

from taskboard_api.models.label import Label
from taskboard_api.models.project import Project
from taskboard_api.models.task import Task
from taskboard_api.models.user import UserProfile
from taskboard_shared.schemas.labels import LabelDocument, LabelFields
from taskboard_shared.schemas.projects import ProjectDocument, ProjectFields
from taskboard_shared.schemas.tasks import TaskDocument, TaskFields

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)

# Document fields that are JSON arrays of nested models on tasks
_TASK_JSON_FIELDS = ("acceptance_criteria", "checklist", "ref_urls", "labels_tags", "attachments")


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------


def to_epoch_ms(value: datetime) -> int:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - EPOCH) // _ONE_MS


def from_epoch_ms(value: int) -> datetime:
    return EPOCH + timedelta(milliseconds=value)


def optional_epoch_ms(value: Optional[datetime]) -> Optional[int]:
    return None if value is None else to_epoch_ms(value)


def optional_datetime(value: Optional[int]) -> Optional[datetime]:
    return None if value is None else from_epoch_ms(value)


# ---------------------------------------------------------------------------
# Authors
# ---------------------------------------------------------------------------


def author_summary(user_id: str, profile: Optional[UserProfile]) -> dict[str, Any]:
    """Build the embedded summary for a user id; unknown users keep their id."""
    if profile is None:
        return {"id": user_id, "name": ""}
    summary: dict[str, Any] = {"id": user_id, "name": profile.full_name}
    image = profile.avatar or profile.profile_image
    if image:
        summary["image"] = image
    return summary


def _field_values(state: BaseModel, fields: type[BaseModel], exclude: Iterable[str] = ()) -> dict[str, Any]:
    skip = set(exclude)
    return {name: getattr(state, name) for name in fields.model_fields if name not in skip}


# ---------------------------------------------------------------------------
# Labels
# ---------------------------------------------------------------------------


def label_document(
    label: Label,
    creator: Optional[UserProfile],
    updater: Optional[UserProfile],
) -> LabelDocument:
    """Normalize a stored label to its wire document (validates the result)."""
    return LabelDocument.model_validate(
        {
            "id": label.id,
            "project_id": label.project_id,
            "type": label.type,
            "name": label.name,
            "color": label.color,
            "order": label.order,
            "description": label.description,
            "created_at": to_epoch_ms(label.created_at),
            "updated_at": to_epoch_ms(label.updated_at),
            "created_by": author_summary(label.created_by, creator),
            "updated_by": author_summary(label.updated_by, updater),
        }
    )


def label_values(state: LabelFields) -> dict[str, Any]:
    """Column values a change row may write; authors and timestamps are stamped by the caller."""
    values = _field_values(state, LabelFields)
    values["type"] = state.type.value
    return values


def label_from_document(document: LabelDocument) -> Label:
    return Label(
        **label_values(document),
        created_at=from_epoch_ms(document.created_at),
        updated_at=from_epoch_ms(document.updated_at),
        created_by=document.created_by.id,
        updated_by=document.updated_by.id,
    )


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


def project_document(
    project: Project,
    creator: Optional[UserProfile],
    updater: Optional[UserProfile],
) -> ProjectDocument:
    return ProjectDocument.model_validate(
        {
            "id": project.id,
            "name": project.name,
            "org_id": project.org_id,
            "description": project.description,
            "company": project.company,
            "logo": project.logo,
            "status": project.status,
            "budget": project.budget_estimate,
            "start_date": optional_epoch_ms(project.start_date),
            "end_date": optional_epoch_ms(project.end_date),
            "created_at": to_epoch_ms(project.created_at),
            "updated_at": to_epoch_ms(project.updated_at),
            "created_by": author_summary(project.created_by, creator),
            "updated_by": author_summary(project.updated_by, updater),
        }
    )


def project_values(state: ProjectFields) -> dict[str, Any]:
    values = _field_values(state, ProjectFields, exclude=("budget", "start_date", "end_date"))
    values["status"] = state.status.value
    values["budget_estimate"] = state.budget
    values["start_date"] = optional_datetime(state.start_date)
    values["end_date"] = optional_datetime(state.end_date)
    return values


def project_from_document(document: ProjectDocument) -> Project:
    return Project(
        **project_values(document),
        created_at=from_epoch_ms(document.created_at),
        updated_at=from_epoch_ms(document.updated_at),
        created_by=document.created_by.id,
        updated_by=document.updated_by.id,
    )


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


def task_document(
    task: Task,
    creator: Optional[UserProfile],
    updater: Optional[UserProfile],
    assignees: Sequence[tuple[str, Optional[UserProfile]]] = (),
) -> TaskDocument:
    """Normalize a stored task; ``assignees`` are (user_id, profile) pairs."""
    return TaskDocument.model_validate(
        {
            "id": task.id,
            "project_id": task.project_id,
            "name": task.name,
            "status_id": task.status_id,
            "priority_id": task.priority_id,
            "parent_task_id": task.parent_task_id,
            "is_subtask": task.is_subtask,
            "task_order": task.task_order,
            "start_date": optional_epoch_ms(task.start_date),
            "end_date": optional_epoch_ms(task.end_date),
            "description": task.description,
            "acceptance_criteria": task.acceptance_criteria or [],
            "checklist": task.checklist or [],
            "completed": task.completed,
            "ref_urls": task.ref_urls or [],
            "labels_tags": task.labels_tags or [],
            "attachments": task.attachments or [],
            "assigned_to": [author_summary(user_id, profile) for user_id, profile in assignees],
            "created_at": to_epoch_ms(task.created_at),
            "updated_at": to_epoch_ms(task.updated_at),
            "created_by": author_summary(task.created_by, creator),
            "updated_by": author_summary(task.updated_by, updater),
        }
    )


def task_values(state: TaskFields) -> dict[str, Any]:
    """Task column values; assignments live in their own table and are excluded."""
    values = _field_values(
        state, TaskFields, exclude=("assigned_to", "start_date", "end_date", *_TASK_JSON_FIELDS)
    )
    values["start_date"] = optional_datetime(state.start_date)
    values["end_date"] = optional_datetime(state.end_date)
    for name in _TASK_JSON_FIELDS:
        values[name] = [item.model_dump(mode="json", by_alias=True) for item in getattr(state, name)]
    return values


def task_from_document(document: TaskDocument) -> Task:
    return Task(
        **task_values(document),
        created_at=from_epoch_ms(document.created_at),
        updated_at=from_epoch_ms(document.updated_at),
        created_by=document.created_by.id,
        updated_by=document.updated_by.id,
    )
