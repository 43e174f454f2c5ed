from typing import Optional

import structlog
from fastapi import Header, Request

from trackhabit.domain.models.entities import SessionContext
from trackhabit.domain.orchestration.chat_orchestrator import ChatOrchestrator
from trackhabit.infrastructure.config import Settings
from trackhabit.infrastructure.persistence.base import DataStore
from trackhabit.infrastructure.security.session_validator import extract_token, verify_session


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> DataStore:
    return request.app.state.store


def get_orchestrator(request: Request) -> ChatOrchestrator:
    return request.app.state.orchestrator


async def get_session_context(
    request: Request,
    authorization: Optional[str] = Header(None)
) -> SessionContext:
    """Resolve the caller's session from the auth cookie or bearer token"""

    settings: Settings = request.app.state.settings
    token = extract_token(request.cookies.get(settings.session_cookie_name), authorization)
    session = await verify_session(token, request.app.state.store)

    structlog.contextvars.bind_contextvars(user_id=session.user_id)
    return session
