from .common import (  # noqa: F401
    MAX_EPOCH_MS,
    LabelType,
    ProjectStatus,
    UserSummary,
)
from .labels import LabelDocument, LabelPullResponse, LabelState  # noqa: F401
from .projects import ProjectDocument, ProjectPullResponse, ProjectState  # noqa: F401
from .sync import Checkpoint, PushRequest, RawChangeRow, SyncConflict  # noqa: F401
from .tasks import TaskDocument, TaskPullResponse, TaskState  # noqa: F401
