"""Task model and its user assignments."""

from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import AuthorMixin, JSONType, TimestampMixin


class Task(TimestampMixin, AuthorMixin, SQLModel, table=True):
    __tablename__ = "tasks"

    id: str = Field(primary_key=True, max_length=100)
    project_id: str = Field(foreign_key="projects.id", nullable=False, index=True, max_length=100)
    name: str = Field(nullable=False)
    status_id: str = Field(foreign_key="labels.id", nullable=False, max_length=100)
    priority_id: str = Field(foreign_key="labels.id", nullable=False, max_length=100)
    parent_task_id: Optional[str] = Field(default=None, max_length=100)
    is_subtask: bool = Field(default=False, nullable=False)
    task_order: int = Field(default=0, nullable=False)
    start_date: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    end_date: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    description: str = Field(default="", nullable=False)
    completed: bool = Field(default=False, nullable=False)
    # nested client structures, stored in their wire (camelCase) form
    acceptance_criteria: list = Field(default_factory=list, sa_type=JSONType)
    checklist: list = Field(default_factory=list, sa_type=JSONType)
    ref_urls: list = Field(default_factory=list, sa_type=JSONType)
    labels_tags: list = Field(default_factory=list, sa_type=JSONType)
    attachments: list = Field(default_factory=list, sa_type=JSONType)


class TaskAssignment(SQLModel, table=True):
    __tablename__ = "task_assignments"

    task_id: str = Field(foreign_key="tasks.id", primary_key=True, max_length=100)
    user_id: str = Field(primary_key=True, index=True, max_length=100)
