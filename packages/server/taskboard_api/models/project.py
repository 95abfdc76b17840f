"""Project and project membership models."""

from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import AuthorMixin, TimestampMixin


class Project(TimestampMixin, AuthorMixin, SQLModel, table=True):
    __tablename__ = "projects"

    id: str = Field(primary_key=True, max_length=100)
    org_id: str = Field(nullable=False, index=True, max_length=100)
    name: str = Field(nullable=False)
    description: Optional[str] = None
    company: Optional[str] = None
    logo: Optional[str] = None
    status: str = Field(default="todo", nullable=False)  # todo | started | on_hold | cancelled | completed | archived
    budget_estimate: Optional[int] = None
    start_date: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    end_date: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))


class ProjectMember(TimestampMixin, AuthorMixin, SQLModel, table=True):
    __tablename__ = "project_members"

    project_id: str = Field(foreign_key="projects.id", primary_key=True, max_length=100)
    user_id: str = Field(primary_key=True, index=True, max_length=100)
    role: str = Field(nullable=False, default="member")  # owner | member
    is_owner: bool = Field(default=False, nullable=False)
