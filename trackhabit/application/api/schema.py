from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from trackhabit.domain.models.entities import TaskPriority


class ChatRequest(BaseModel):
    """Inbound chat turn: text, an audio data URI, or both"""
    message: Optional[str] = Field(None, description="User message text")
    audio: Optional[str] = Field(None, description="Audio as a base64 data URI")


class ChatResponseBody(BaseModel):
    message: str
    actions: List[Dict[str, Any]] = Field(default_factory=list)


class ImportResponse(BaseModel):
    text: str
    filename: str


class TaskCreateRequest(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[str] = None
    team_id: Optional[str] = None


class TeamCreateRequest(BaseModel):
    name: str = Field(min_length=1)


class InviteResponse(BaseModel):
    team_id: str
    code: str
    join_path: str


class JoinResponse(BaseModel):
    team_id: str
    team_name: str
