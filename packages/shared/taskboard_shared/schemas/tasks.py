"""Task documents as exchanged by the tasks pull/push endpoints."""

from __future__ import annotations

from typing import List, Optional

from pydantic import Field

from .common import (
    Attachment,
    ChecklistItem,
    DocumentId,
    EpochMillis,
    LabelTag,
    RefUrl,
    UserSummary,
    WireModel,
)
from .sync import Checkpoint


class TaskFields(WireModel):
    id: DocumentId
    project_id: DocumentId
    name: str = Field(max_length=500)
    status_id: DocumentId
    priority_id: DocumentId

    parent_task_id: Optional[str] = Field(default=None, max_length=100)
    is_subtask: bool = False
    task_order: int = Field(default=0, ge=0)

    start_date: Optional[EpochMillis] = None
    end_date: Optional[EpochMillis] = None

    description: str = Field(default="", max_length=2000)
    acceptance_criteria: List[ChecklistItem] = Field(default_factory=list)
    checklist: List[ChecklistItem] = Field(default_factory=list)
    completed: bool = False
    ref_urls: List[RefUrl] = Field(default_factory=list)
    labels_tags: List[LabelTag] = Field(default_factory=list)
    attachments: List[Attachment] = Field(default_factory=list)
    assigned_to: List[UserSummary] = Field(default_factory=list)


class TaskState(TaskFields):
    """A task as submitted in a change row.

    ``assignedTo`` only replaces the stored assignments when the key is
    present in the submitted document.
    """
    created_at: EpochMillis
    updated_at: EpochMillis
    created_by: Optional[UserSummary] = None
    updated_by: Optional[UserSummary] = None


class TaskDocument(TaskState):
    created_by: UserSummary
    updated_by: UserSummary


class TaskPullResponse(WireModel):
    documents: List[TaskDocument] = Field(default_factory=list)
    checkpoint: Checkpoint
