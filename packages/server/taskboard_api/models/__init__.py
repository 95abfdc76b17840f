# SQLModel definitions, imported here so the metadata is populated for create_all.
from .base import AuthorMixin, TimestampMixin  # noqa: F401
from .user import UserProfile  # noqa: F401
from .project import Project, ProjectMember  # noqa: F401
from .label import Label  # noqa: F401
from .task import Task, TaskAssignment  # noqa: F401
