from datetime import datetime, timedelta

import pytest

from trackhabit.domain.errors import AuthenticationError, ConfigurationError, DataStoreError
from trackhabit.domain.models.chat_state import ContextBundle, Fragment, UserTurn
from trackhabit.infrastructure.config import Settings
from trackhabit.infrastructure.persistence import DuplicateRowError, InMemoryStore, build_store
from trackhabit.infrastructure.persistence.base import MEMBERSHIPS, TASKS
from trackhabit.infrastructure.security.session_validator import extract_token, verify_session


def test_cookie_wins_over_bearer_header():
    assert extract_token("cookie-token", "Bearer header-token") == "cookie-token"
    assert extract_token(None, "Bearer header-token") == "header-token"
    assert extract_token(None, "Basic abc") is None
    assert extract_token(None, "Bearer   ") is None


async def test_verify_session(store):
    session = await verify_session("token-alice", store)

    assert session.user_id == "user-alice"
    assert session.email == "alice@example.com"

    with pytest.raises(AuthenticationError):
        await verify_session("token-mallory", store)
    with pytest.raises(AuthenticationError):
        await verify_session(None, store)


async def test_memory_store_filters_order_and_limit():
    store = InMemoryStore()
    await store.insert(TASKS, [{"user_id": "a", "title": str(index)} for index in range(5)])
    await store.insert(TASKS, [{"user_id": "b", "title": "other"}])

    rows = await store.select(TASKS, filters={"user_id": "a"}, order_by="created_at", descending=True, limit=2)

    assert [row["title"] for row in rows] == ["4", "3"]
    assert all("_seq" not in row for row in rows)

    picked = await store.select(TASKS, filters={"title": ["1", "other"]})
    assert sorted(row["title"] for row in picked) == ["1", "other"]


async def test_memory_store_unique_membership():
    store = InMemoryStore()
    await store.insert(MEMBERSHIPS, [{"team_id": "t", "user_id": "u", "role": "owner"}])

    with pytest.raises(DuplicateRowError):
        await store.insert(MEMBERSHIPS, [{"team_id": "t", "user_id": "u", "role": "member"}])


async def test_memory_store_failure_injection():
    store = InMemoryStore()
    store.inject_failure("select", TASKS)

    with pytest.raises(DataStoreError):
        await store.select(TASKS)

    store.clear_failures()
    assert await store.select(TASKS) == []


def test_settings_from_env(monkeypatch):
    monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("ACTION_EXTRACTION_MODE", "LENIENT")
    monkeypatch.setenv("ASSISTANT_TOOL_CALLS", "yes")
    monkeypatch.setenv("DATA_STORE", "memory")
    monkeypatch.setenv("CORS_ORIGINS", "http://localhost:3000, https://app.example.com")

    settings = Settings.from_env()

    assert settings.model_api_key == "sk-test"
    assert settings.action_extraction_mode == "lenient"
    assert settings.assistant_tool_calls is True
    assert settings.cors_origins == ["http://localhost:3000", "https://app.example.com"]
    assert isinstance(build_store(settings), InMemoryStore)


def test_build_store_rejects_unknown_backend():
    with pytest.raises(ConfigurationError):
        build_store(Settings(data_store="sqlite"))


def test_supabase_store_requires_credentials():
    with pytest.raises(ConfigurationError):
        build_store(Settings(data_store="supabase"))


async def test_memory_store_timestamps_are_utc():
    store = InMemoryStore()

    row = (await store.insert(TASKS, [{"user_id": "a", "title": "x"}]))[0]

    assert datetime.fromisoformat(row["created_at"]).utcoffset() == timedelta(0)
    assert ContextBundle(
        tasks=Fragment(name="tasks"), notes=Fragment(name="notes"),
        teams=Fragment(name="teams"), history=Fragment(name="history"),
    ).assembled_at.utcoffset() == timedelta(0)


def test_audio_payload_is_unwrapped():
    turn = UserTurn.from_request(None, "data:audio/wav;base64,UklG\r\nRg==")

    assert turn.audio_data == "UklGRg=="
    assert turn.audio_format == "wav"
