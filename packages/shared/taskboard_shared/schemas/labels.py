"""Label documents as exchanged by the labels pull/push endpoints."""

from __future__ import annotations

from typing import List, Optional

from pydantic import Field

from .common import DocumentId, EpochMillis, LabelType, UserSummary, WireModel
from .sync import Checkpoint


class LabelFields(WireModel):
    id: DocumentId
    project_id: DocumentId
    type: LabelType
    name: str = Field(max_length=200)
    color: str = Field(max_length=50)
    order: int = Field(default=0, ge=0)
    description: Optional[str] = Field(default="", max_length=500)


class LabelState(LabelFields):
    """A label as submitted in a change row. Author summaries are ignored on input."""
    created_at: EpochMillis
    updated_at: EpochMillis
    created_by: Optional[UserSummary] = None
    updated_by: Optional[UserSummary] = None


class LabelDocument(LabelState):
    created_by: UserSummary
    updated_by: UserSummary


class LabelPullResponse(WireModel):
    documents: List[LabelDocument] = Field(default_factory=list)
    checkpoint: Checkpoint
