"""Label model: per-project task statuses and priorities."""

from typing import Optional

from sqlmodel import Field, SQLModel

from .base import AuthorMixin, TimestampMixin


class Label(TimestampMixin, AuthorMixin, SQLModel, table=True):
    __tablename__ = "labels"

    id: str = Field(primary_key=True, max_length=100)
    project_id: str = Field(foreign_key="projects.id", nullable=False, index=True, max_length=100)
    type: str = Field(nullable=False)  # status | priority
    name: str = Field(nullable=False)
    color: str = Field(nullable=False)
    order: int = Field(default=0, nullable=False)
    description: Optional[str] = Field(default="")
