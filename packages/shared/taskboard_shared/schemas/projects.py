"""Project documents as exchanged by the projects pull/push endpoints."""

from __future__ import annotations

from typing import List, Optional

from pydantic import Field

from .common import DocumentId, EpochMillis, ProjectStatus, UserSummary, WireModel
from .sync import Checkpoint


class ProjectFields(WireModel):
    id: DocumentId
    name: str = Field(max_length=200)
    org_id: DocumentId
    description: Optional[str] = None
    company: Optional[str] = None
    logo: Optional[str] = None
    status: ProjectStatus = ProjectStatus.TODO
    budget: Optional[int] = None
    start_date: Optional[EpochMillis] = None
    end_date: Optional[EpochMillis] = None


class ProjectState(ProjectFields):
    created_at: EpochMillis
    updated_at: EpochMillis
    created_by: Optional[UserSummary] = None
    updated_by: Optional[UserSummary] = None


class ProjectDocument(ProjectState):
    created_by: UserSummary
    updated_by: UserSummary


class ProjectPullResponse(WireModel):
    documents: List[ProjectDocument] = Field(default_factory=list)
    checkpoint: Checkpoint
