from datetime import date

from trackhabit.domain.models.chat_state import UserTurn
from trackhabit.domain.orchestration.chat_orchestrator import ChatOrchestrator
from trackhabit.domain.services.workspace import TaskService
from trackhabit.infrastructure.persistence.base import CHAT_HISTORY, NOTES, NOTIFICATIONS, TASKS

TODAY = date(2024, 1, 1)


async def test_plain_reply_only_records_history(orchestrator, model_client, store, alice):
    model_client.queue("Drink some water and take a short walk.")

    response = await orchestrator.process_turn(alice, UserTurn(text="I'm tired"), today=TODAY)

    assert response.message == "Drink some water and take a short walk."
    assert response.actions == []
    assert store.rows(TASKS) == []
    history = store.rows(CHAT_HISTORY)
    assert [(row["role"], row["content"]) for row in history] == [
        ("user", "I'm tired"),
        ("assistant", "Drink some water and take a short walk."),
    ]


async def test_create_task_turn(orchestrator, model_client, store, alice):
    reply = '```json\n{"action": "create_task", "title": "Buy milk", "due_date": "2024-01-02"}\n```\nAdded!'
    model_client.queue(reply)

    response = await orchestrator.process_turn(alice, UserTurn(text="remind me to buy milk tomorrow"), today=TODAY)

    rows = store.rows(TASKS)
    assert len(rows) == 1
    assert rows[0]["due_date"] == "2024-01-02"
    assert response.message == reply
    assert len(response.actions) == 1
    assert response.actions[0]["type"] == "task_created"
    assert response.actions[0]["task"]["id"] == rows[0]["id"]


async def test_prompt_carries_date_context_and_history(orchestrator, model_client, store, alice):
    await TaskService(store).create_task(alice, title="Quarterly report")
    model_client.queue("first")
    await orchestrator.process_turn(alice, UserTurn(text="hello"), today=TODAY)

    model_client.queue("second")
    await orchestrator.process_turn(alice, UserTurn(text="again"), today=TODAY)

    call = model_client.calls[-1]
    assert "Today is lundi 2024-01-01." in call["system"].content
    assert '"Quarterly report"' in call["system"].content
    assert [message.content for message in call["history"]] == ["hello", "first"]
    assert call["user_turn"].text == "again"
    assert call["tools"] is None


async def test_batch_applies_in_order(orchestrator, model_client, store, alice):
    model_client.queue(
        "Done!\n```json\n"
        '[{"action": "create_note", "content": "x"},'
        ' {"action": "push_notification", "title": "t", "description": "d"}]\n```'
    )

    response = await orchestrator.process_turn(alice, UserTurn(text="note and remind"), today=TODAY)

    assert [action["type"] for action in response.actions] == ["note_created", "notification_pushed"]
    assert len(store.rows(NOTES)) == 1
    assert len(store.rows(NOTIFICATIONS)) == 1


async def test_cross_user_update_is_dropped(orchestrator, model_client, store, alice, bob):
    bobs_task = await TaskService(store).create_task(bob, title="Bob's task")
    model_client.queue(
        f'```json\n{{"action": "update_task", "id": "{bobs_task.id}", "updates": {{"status": "done"}}}}\n```'
    )

    response = await orchestrator.process_turn(alice, UserTurn(text="finish it"), today=TODAY)

    assert response.actions == []
    assert store.rows(TASKS)[0]["status"] == "todo"


async def test_malformed_action_json_keeps_reply(orchestrator, model_client, store, alice):
    reply = '```json\n{"action": "create_task", "title": \n```\nOops.'
    model_client.queue(reply)

    response = await orchestrator.process_turn(alice, UserTurn(text="add a task"), today=TODAY)

    assert response.message == reply
    assert response.actions == []
    assert store.rows(TASKS) == []


async def test_empty_model_reply(orchestrator, store, alice):
    response = await orchestrator.process_turn(alice, UserTurn(text="hello?"), today=TODAY)

    assert response.message == ""
    assert response.actions == []
    assert [row["content"] for row in store.rows(CHAT_HISTORY)] == ["hello?", ""]


async def test_failed_context_fragment_still_answers(orchestrator, model_client, store, alice):
    store.inject_failure("select", NOTES)
    model_client.queue("Here you go.")

    response = await orchestrator.process_turn(alice, UserTurn(text="what are my notes?"), today=TODAY)

    assert response.message == "Here you go."
    assert "Notes:\n- unavailable" in model_client.calls[0]["system"].content


async def test_history_failure_does_not_fail_turn(orchestrator, model_client, store, alice):
    store.inject_failure("insert", CHAT_HISTORY)
    model_client.queue("Still here.")

    response = await orchestrator.process_turn(alice, UserTurn(text="hi"), today=TODAY)

    assert response.message == "Still here."


async def test_voice_turn_is_logged_as_placeholder(orchestrator, model_client, store, alice):
    model_client.queue("Heard you.")
    turn = UserTurn.from_request(None, "data:audio/wav;base64,UklGRg==")

    await orchestrator.process_turn(alice, turn, today=TODAY)

    assert store.rows(CHAT_HISTORY)[0]["content"] == "[voice message]"
    assert model_client.calls[0]["user_turn"].audio_format == "wav"


async def test_tool_call_channel(store, model_client, settings, alice):
    settings.assistant_tool_calls = True
    orchestrator = ChatOrchestrator(store, model_client, settings)
    model_client.queue("", tool_calls=[{
        "id": "call_1", "type": "function",
        "function": {"name": "create_team", "arguments": '{"name": "Marketing"}'},
    }])

    response = await orchestrator.process_turn(alice, UserTurn(text="create a marketing team"), today=TODAY)

    assert [action["type"] for action in response.actions] == ["team_created"]
    assert {tool["function"]["name"] for tool in model_client.calls[0]["tools"]} >= {"create_team", "create_task"}
    assert "```json" not in model_client.calls[0]["system"].content


async def test_unexpected_store_error_is_isolated(orchestrator, model_client, store, alice, monkeypatch):
    real_insert = store.insert

    async def flaky_insert(table, rows):
        if table == NOTES:
            raise RuntimeError("connection reset")
        return await real_insert(table, rows)

    monkeypatch.setattr(store, "insert", flaky_insert)
    model_client.queue(
        "```json\n["
        '{"action": "create_note", "content": "lost"},'
        '{"action": "create_task", "title": "after"}'
        "]\n```"
    )

    response = await orchestrator.process_turn(alice, UserTurn(text="note then task"), today=TODAY)

    assert [action["type"] for action in response.actions] == ["task_created"]
    assert [row["title"] for row in store.rows(TASKS)] == ["after"]
    assert len(store.rows(CHAT_HISTORY)) == 2


async def test_unexpected_context_error_degrades_fragment(orchestrator, model_client, store, alice, monkeypatch):
    real_select = store.select

    async def flaky_select(table, *args, **kwargs):
        if table == NOTES:
            raise RuntimeError("connection reset")
        return await real_select(table, *args, **kwargs)

    monkeypatch.setattr(store, "select", flaky_select)
    model_client.queue("Fine.")

    response = await orchestrator.process_turn(alice, UserTurn(text="hi"), today=TODAY)

    assert response.message == "Fine."
    assert "Notes:\n- unavailable" in model_client.calls[0]["system"].content
