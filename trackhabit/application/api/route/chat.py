from typing import Annotated, List

from fastapi import APIRouter, Depends, Query

from trackhabit.application.api.dependencies import (
    get_app_settings, get_orchestrator, get_session_context, get_store
)
from trackhabit.application.api.schema import ChatRequest, ChatResponseBody
from trackhabit.domain.errors import ConfigurationError
from trackhabit.domain.models.chat_state import UserTurn
from trackhabit.domain.models.entities import ChatMessage, SessionContext
from trackhabit.domain.orchestration.chat_orchestrator import ChatOrchestrator
from trackhabit.domain.services.workspace import ChatHistoryService
from trackhabit.infrastructure.config import Settings
from trackhabit.infrastructure.persistence.base import DataStore

router = APIRouter(prefix="/api/chat", tags=["chat"])


# One chat turn: reply text plus the actions that were applied
@router.post("", response_model=ChatResponseBody)
async def chat_endpoint(
    request: ChatRequest,
    session: Annotated[SessionContext, Depends(get_session_context)],
    settings: Annotated[Settings, Depends(get_app_settings)],
    orchestrator: Annotated[ChatOrchestrator, Depends(get_orchestrator)]
):
    if not settings.model_api_key:
        raise ConfigurationError("Model API key is not configured")

    user_turn = UserTurn.from_request(request.message, request.audio)
    response = await orchestrator.process_turn(session, user_turn)
    return ChatResponseBody(message=response.message, actions=response.actions)


@router.get("/history", response_model=List[ChatMessage])
async def chat_history(
    session: Annotated[SessionContext, Depends(get_session_context)],
    store: Annotated[DataStore, Depends(get_store)],
    limit: int = Query(20, ge=1, le=100)
):
    return await ChatHistoryService(store).recent(session, limit=limit)
