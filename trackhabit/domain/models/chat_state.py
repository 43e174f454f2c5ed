from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from datetime import datetime, timezone
import re

from trackhabit.domain.errors import InvalidRequestError

# data:audio/webm;base64,<payload>  (codec parameters are tolerated)
AUDIO_DATA_URI = re.compile(
    r"^data:audio/(?P<format>[\w.+-]+)(?:;[\w=.+-]+)*;base64,(?P<data>[A-Za-z0-9+/=\s]+)$"
)


class Fragment(BaseModel):
    """One independently fetched slice of the context bundle"""
    name: str = Field(description="Fragment name (tasks, notes, teams, history)")
    ok: bool = Field(default=True, description="False when the read failed")
    items: List[Any] = Field(default_factory=list)
    error: Optional[str] = Field(None, description="Failure reason when ok is False")

    @classmethod
    def failed(cls, name: str, error: str) -> "Fragment":
        return cls(name=name, ok=False, items=[], error=error)


class ContextBundle(BaseModel):
    """Snapshot of a user's workspace assembled before each model call"""
    tasks: Fragment
    notes: Fragment
    teams: Fragment
    history: Fragment
    assembled_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def fragments(self) -> List[Fragment]:
        return [self.tasks, self.notes, self.teams, self.history]

    def failed_fragments(self) -> List[str]:
        return [fragment.name for fragment in self.fragments() if not fragment.ok]


class UserTurn(BaseModel):
    """What the user sent in one chat turn"""
    text: Optional[str] = None
    audio_data: Optional[str] = Field(None, description="Base64 audio payload")
    audio_format: Optional[str] = Field(None, description="Audio subtype, e.g. webm or wav")

    @classmethod
    def from_request(cls, message: Optional[str], audio: Optional[str]) -> "UserTurn":
        """Build a turn from the raw request fields, rejecting empty turns"""

        text = message.strip() if isinstance(message, str) else None
        if not text and not audio:
            raise InvalidRequestError("Message required")

        if not audio:
            return cls(text=text)

        match = AUDIO_DATA_URI.match(audio.strip())
        if not match:
            raise InvalidRequestError("Audio must be a base64 data URI")

        # Line-wrapped base64 is accepted, but sent upstream unwrapped
        audio_data = re.sub(r"\s+", "", match.group("data"))
        return cls(text=text or None, audio_data=audio_data, audio_format=match.group("format"))

    @property
    def has_audio(self) -> bool:
        return bool(self.audio_data)

    def history_text(self) -> str:
        """Text stored in the chat log for this turn"""
        if self.text:
            return self.text
        return "[voice message]"


class AppliedAction(BaseModel):
    """One side effect actually performed during a chat turn"""
    type: str = Field(description="Tagged kind of effect, e.g. task_created")
    data: Dict[str, Any] = Field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        return {"type": self.type, **self.data}


class ChatResponse(BaseModel):
    """Result of one chat turn"""
    message: str
    actions: List[Dict[str, Any]] = Field(default_factory=list)
