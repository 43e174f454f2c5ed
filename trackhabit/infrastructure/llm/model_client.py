from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field
import time

import httpx
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

from trackhabit.domain.models.chat_state import UserTurn
from trackhabit.infrastructure.config import Settings
from trackhabit.infrastructure.observability.langfuse_tracing import traced
from trackhabit.infrastructure.observability.logging import assistant_logger, metrics

ROLE_BY_TYPE = {
    "system": "system",
    "human": "user",
    "ai": "assistant",
}


@dataclass
class ModelReply:
    """Single reply from the completion API"""
    text: str = ""
    tool_calls: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.text and not self.tool_calls


def build_user_message(turn: UserTurn) -> HumanMessage:
    """Build the user message, embedding audio as a multi-part payload"""

    if not turn.has_audio:
        return HumanMessage(content=turn.text or "")

    parts: List[Dict[str, Any]] = []
    if turn.text:
        parts.append({"type": "text", "text": turn.text})
    parts.append({
        "type": "input_audio",
        "input_audio": {"data": turn.audio_data, "format": turn.audio_format or "wav"}
    })
    return HumanMessage(content=parts)


def to_wire_messages(messages: List[BaseMessage]) -> List[Dict[str, Any]]:
    """Convert LangChain messages to the chat-completions wire format"""

    wire = []
    for message in messages:
        role = ROLE_BY_TYPE.get(message.type)
        if role is None:
            continue
        wire.append({"role": role, "content": message.content})
    return wire


def _content_text(content: Any) -> str:
    # Some providers return content as a list of parts
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(part.get("text", "") for part in content if isinstance(part, dict))
    return ""


class ModelClient:
    """Client for an OpenAI-compatible chat completion endpoint"""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self.model = settings.model_name
        self._http = httpx.AsyncClient(
            base_url=settings.model_base_url.rstrip("/"),
            timeout=settings.model_timeout_seconds,
            transport=transport,
        )
        self.complete = traced("model_call", as_type="generation")(self.complete)

    def build_payload(
        self,
        system: SystemMessage,
        history: List[BaseMessage],
        user_turn: UserTurn,
        tools: Optional[List[Dict[str, Any]]] = None
    ) -> Dict[str, Any]:
        """Build the request body for one user turn"""

        messages = [system, *history, build_user_message(user_turn)]
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": to_wire_messages(messages),
            "max_tokens": self.settings.model_max_tokens,
            "temperature": self.settings.model_temperature,
        }
        if tools:
            payload["tools"] = tools
        return payload

    async def complete(
        self,
        system: SystemMessage,
        history: List[BaseMessage],
        user_turn: UserTurn,
        tools: Optional[List[Dict[str, Any]]] = None
    ) -> ModelReply:
        """Send one request and return the reply; failures degrade to an empty reply"""

        payload = self.build_payload(system, history, user_turn, tools)
        headers = {"Authorization": f"Bearer {self.settings.model_api_key}"}
        started = time.perf_counter()

        try:
            response = await self._http.post("/chat/completions", json=payload, headers=headers)
        except httpx.HTTPError as e:
            self._record(started, success=False, error=f"{type(e).__name__}: {e}")
            return ModelReply()

        if response.status_code // 100 != 2:
            self._record(started, success=False, status_code=response.status_code, error=response.text[:200])
            return ModelReply()

        try:
            data = response.json()
            message = data["choices"][0].get("message") or {}
        except (ValueError, KeyError, IndexError, TypeError, AttributeError) as e:
            self._record(started, success=False, status_code=response.status_code, error=f"malformed response: {e}")
            return ModelReply()

        reply = ModelReply(
            text=_content_text(message.get("content")),
            tool_calls=message.get("tool_calls") or [],
        )
        self._record(started, success=True, status_code=response.status_code, reply_length=len(reply.text))
        return reply

    def _record(
        self,
        started: float,
        success: bool,
        status_code: Optional[int] = None,
        reply_length: int = 0,
        error: Optional[str] = None
    ):
        duration_ms = (time.perf_counter() - started) * 1000
        metrics.record_latency("model_call", duration_ms, tags={"model": self.model})
        if not success:
            metrics.increment_counter("model_call.failed")
        assistant_logger.log_model_call(
            model=self.model,
            duration_ms=duration_ms,
            success=success,
            status_code=status_code,
            reply_length=reply_length,
            error=error
        )

    async def aclose(self):
        await self._http.aclose()
