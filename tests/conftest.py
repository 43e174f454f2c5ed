from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from trackhabit.application.api.api_server import create_app
from trackhabit.domain.models.entities import SessionContext
from trackhabit.domain.orchestration.chat_orchestrator import ChatOrchestrator
from trackhabit.infrastructure.config import Settings
from trackhabit.infrastructure.llm.model_client import ModelReply
from trackhabit.infrastructure.persistence.memory_store import InMemoryStore

ALICE_TOKEN = "token-alice"
BOB_TOKEN = "token-bob"


class FakeModelClient:
    """Completion client returning scripted replies"""

    def __init__(self):
        self.replies: List[ModelReply] = []
        self.calls: List[Dict[str, Any]] = []

    def queue(self, text: str = "", tool_calls: Optional[List[Dict[str, Any]]] = None):
        self.replies.append(ModelReply(text=text, tool_calls=tool_calls or []))

    async def complete(self, system, history, user_turn, tools=None) -> ModelReply:
        self.calls.append({"system": system, "history": history, "user_turn": user_turn, "tools": tools})
        return self.replies.pop(0) if self.replies else ModelReply()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        model_api_key="test-key",
        data_store="memory",
        log_format="console",
        log_level="WARNING",
    )


@pytest.fixture
def store() -> InMemoryStore:
    store = InMemoryStore()
    store.add_session(ALICE_TOKEN, "user-alice", "alice@example.com")
    store.add_session(BOB_TOKEN, "user-bob", "bob@example.com")
    return store


@pytest.fixture
def alice() -> SessionContext:
    return SessionContext(user_id="user-alice", email="alice@example.com", access_token=ALICE_TOKEN)


@pytest.fixture
def bob() -> SessionContext:
    return SessionContext(user_id="user-bob", email="bob@example.com", access_token=BOB_TOKEN)


@pytest.fixture
def model_client() -> FakeModelClient:
    return FakeModelClient()


@pytest.fixture
def orchestrator(store, model_client, settings) -> ChatOrchestrator:
    return ChatOrchestrator(store, model_client, settings)


@pytest.fixture
def app(settings, store, model_client):
    return create_app(settings=settings, store=store, model_client=model_client)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)
