"""
Intents the assistant may ask for.

Each intent is a closed variant keyed on its ``action`` field and carries only
the fields its effect needs. Parsing happens before dispatch, so the executor
never sees a half-formed intent.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

from .entities import NotificationType, TaskPriority, TaskStatus


class IntentBase(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)


class CreateTask(IntentBase):
    action: Literal["create_task"]
    title: str = Field(min_length=1)
    description: Optional[str] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[str] = None
    team_id: Optional[str] = None


class CreateNote(IntentBase):
    action: Literal["create_note"]
    content: str = Field(min_length=1)
    title: Optional[str] = None
    is_important: bool = False


class PushNotification(IntentBase):
    action: Literal["push_notification"]
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    type: NotificationType = NotificationType.INFO


class TaskUpdates(IntentBase):
    """Task fields an update intent is allowed to touch"""
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[str] = None

    @field_validator("title", "status", "priority", mode="before")
    @classmethod
    def _not_null(cls, value):
        if value is None:
            raise ValueError("field cannot be cleared")
        return value

    @model_validator(mode="after")
    def _require_one_field(self):
        if not self.model_fields_set:
            raise ValueError("updates must change at least one field")
        return self

    def as_values(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_unset=True)


class UpdateTask(IntentBase):
    action: Literal["update_task"]
    id: str = Field(min_length=1)
    updates: TaskUpdates

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        return str(value) if isinstance(value, int) else value


class DeleteTask(IntentBase):
    action: Literal["delete_task"]
    id: str = Field(min_length=1)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        return str(value) if isinstance(value, int) else value


class CreateTeam(IntentBase):
    action: Literal["create_team"]
    name: str = Field(min_length=1)


Intent = Annotated[
    Union[CreateTask, CreateNote, PushNotification, UpdateTask, DeleteTask, CreateTeam],
    Field(discriminator="action"),
]

intent_adapter: TypeAdapter = TypeAdapter(Intent)

INTENT_KINDS: List[str] = [
    "create_task",
    "create_note",
    "push_notification",
    "update_task",
    "delete_task",
    "create_team",
]
