from typing import Dict, Any, Optional
from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from enum import Enum


class TaskStatus(str, Enum):
    """Task completion status"""
    TODO = "todo"
    DONE = "done"


class TaskPriority(str, Enum):
    """Task priority levels"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class NotificationType(str, Enum):
    TASK_CREATED = "task_created"
    TASK_COMPLETED = "task_completed"
    TEAM_UPDATE = "team_update"
    INFO = "info"
    ALERT = "alert"


class MemberRole(str, Enum):
    """Role of a user inside a team"""
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


class ChatRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class Record(BaseModel):
    """Base for rows read back from the data store"""
    model_config = ConfigDict(extra="ignore", use_enum_values=False)

    @classmethod
    def from_row(cls, row: Dict[str, Any]):
        return cls.model_validate(row)


class SessionContext(BaseModel):
    """Authenticated caller, threaded explicitly into every core call"""
    user_id: str = Field(description="Authenticated user identifier")
    email: Optional[str] = Field(None, description="User email, when known")
    access_token: Optional[str] = Field(None, description="Token the session was resolved from")


class Task(Record):
    """A user's task"""
    id: str = Field(description="Unique task identifier")
    title: str = Field(description="Task title")
    description: Optional[str] = Field(None, description="Task description")
    status: TaskStatus = Field(default=TaskStatus.TODO)
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM)
    due_date: Optional[str] = Field(None, description="Due timestamp (ISO 8601)")
    user_id: str = Field(description="Owning user")
    team_id: Optional[str] = Field(None, description="Owning team, if shared")
    created_at: Optional[datetime] = None


class Note(Record):
    id: str
    title: Optional[str] = None
    content: str
    is_important: bool = False
    user_id: str
    created_at: Optional[datetime] = None


class Notification(Record):
    id: str
    title: str
    description: str
    type: NotificationType = Field(default=NotificationType.INFO)
    read: bool = False
    user_id: str
    created_at: Optional[datetime] = None


class Team(Record):
    id: str
    name: str
    created_by: str
    created_at: Optional[datetime] = None


class Membership(Record):
    """Links a user to a team"""
    id: str
    team_id: str
    user_id: str
    role: MemberRole = Field(default=MemberRole.MEMBER)
    created_at: Optional[datetime] = None
    team: Optional[Team] = Field(None, description="Joined team row, when loaded")


class TeamInvite(Record):
    id: str
    team_id: str
    code: str
    created_at: Optional[datetime] = None


class ChatMessage(Record):
    """One entry of the append-only chat log"""
    id: Optional[str] = None
    role: ChatRole
    content: str
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None
