from enum import Enum
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, model_serializer
from pydantic.alias_generators import to_camel

# Largest epoch-ms value that still maps onto a datetime (9999-12-31T23:59:59.999Z)
MAX_EPOCH_MS = 253402300799999

EpochMillis = Annotated[int, Field(ge=0, le=MAX_EPOCH_MS)]
DocumentId = Annotated[str, Field(min_length=1, max_length=100)]


class WireModel(BaseModel):
    """Base for everything that crosses the sync wire: camelCase on the outside."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LabelType(str, Enum):
    STATUS = "status"
    PRIORITY = "priority"


class ProjectStatus(str, Enum):
    TODO = "todo"
    STARTED = "started"
    ON_HOLD = "on_hold"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class RefUrlType(str, Enum):
    FIGMA = "figma"
    TASK = "task"
    EXTERNAL = "external"


class UserSummary(WireModel):
    """Denormalized author/assignee embedded in documents instead of a raw user id."""

    id: DocumentId
    name: str = Field(max_length=200)
    image: Optional[str] = Field(default=None, max_length=500)

    @model_serializer(mode="wrap")
    def _omit_missing_image(self, handler):
        data = handler(self)
        if data.get("image") is None:
            data.pop("image", None)
        return data


class ChecklistItem(WireModel):
    # same shape for checklist and acceptance criteria
    id: str = Field(max_length=100)
    text: str = Field(max_length=500)
    checked: bool = False
    order: int = Field(default=0, ge=0)


class RefUrl(WireModel):
    id: str = Field(max_length=100)
    url: str = Field(max_length=1000)
    title: Optional[str] = Field(default=None, max_length=255)
    type: RefUrlType
    task_id: Optional[str] = Field(default=None, max_length=100)


class LabelTag(WireModel):
    value: str = Field(max_length=200)
    label: str = Field(max_length=200)
    color: str = Field(max_length=100)


class Attachment(WireModel):
    id: str = Field(max_length=100)
    name: str = Field(max_length=255)
    url: str = Field(max_length=1000)
    size: str = Field(max_length=50)
    type: Optional[str] = Field(default=None, max_length=100)
