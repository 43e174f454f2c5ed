import pytest

from trackhabit.domain.action.action_executor import ActionExecutor
from trackhabit.domain.errors import DataStoreError
from trackhabit.domain.models.intents import intent_adapter
from trackhabit.domain.services.team_service import TeamService
from trackhabit.domain.services.workspace import TaskService
from trackhabit.infrastructure.persistence.base import MEMBERSHIPS, NOTES, NOTIFICATIONS, TASKS, TEAMS


def intent(**fields):
    return intent_adapter.validate_python(fields)


@pytest.fixture
def executor(store):
    return ActionExecutor(store)


async def test_create_task_defaults(executor, store, alice):
    applied = await executor.execute_batch([intent(action="create_task", title="Buy milk")], alice)

    rows = store.rows(TASKS)
    assert len(rows) == 1
    assert rows[0]["title"] == "Buy milk"
    assert rows[0]["priority"] == "medium"
    assert rows[0]["status"] == "todo"
    assert rows[0]["user_id"] == "user-alice"
    assert [action.type for action in applied] == ["task_created"]
    assert applied[0].data["task"]["id"] == rows[0]["id"]


async def test_batch_runs_in_order(executor, store, alice):
    applied = await executor.execute_batch([
        intent(action="create_note", content="x"),
        intent(action="push_notification", title="t", description="d"),
    ], alice)

    assert [action.type for action in applied] == ["note_created", "notification_pushed"]
    assert store.rows(NOTES)[0]["is_important"] is False
    assert store.rows(NOTIFICATIONS)[0]["type"] == "info"


async def test_update_and_delete_respect_ownership(executor, store, alice, bob):
    bobs_task = await TaskService(store).create_task(bob, title="Bob's task")

    applied = await executor.execute_batch([
        intent(action="update_task", id=bobs_task.id, updates={"status": "done"}),
        intent(action="delete_task", id=bobs_task.id),
    ], alice)

    assert applied == []
    rows = store.rows(TASKS)
    assert len(rows) == 1
    assert rows[0]["status"] == "todo"


async def test_update_own_task(executor, store, alice):
    task = await TaskService(store).create_task(alice, title="Report")

    applied = await executor.execute_batch([
        intent(action="update_task", id=task.id, updates={"priority": "high", "status": "done"}),
    ], alice)

    assert [action.type for action in applied] == ["task_updated"]
    assert store.rows(TASKS)[0]["priority"] == "high"
    assert store.rows(TASKS)[0]["status"] == "done"


async def test_delete_own_task(executor, store, alice):
    task = await TaskService(store).create_task(alice, title="Report")

    applied = await executor.execute_batch([intent(action="delete_task", id=task.id)], alice)

    assert [action.type for action in applied] == ["task_deleted"]
    assert store.rows(TASKS) == []


async def test_create_team_enrolls_creator_as_owner(executor, store, alice):
    applied = await executor.execute_batch([intent(action="create_team", name="Marketing")], alice)

    memberships = await TeamService(store).list_memberships(alice)
    assert len(memberships) == 1
    assert memberships[0].role.value == "owner"
    assert memberships[0].team.name == "Marketing"
    assert applied[0].type == "team_created"
    assert applied[0].data["team"]["created_by"] == "user-alice"


async def test_failed_membership_insert_removes_team(executor, store, alice):
    store.inject_failure("insert", MEMBERSHIPS)

    applied = await executor.execute_batch([
        intent(action="create_team", name="Marketing"),
        intent(action="create_note", content="still applied"),
    ], alice)

    assert store.rows(TEAMS) == []
    assert [action.type for action in applied] == ["note_created"]


async def test_team_service_reraises_after_compensation(store, alice):
    store.inject_failure("insert", MEMBERSHIPS)

    with pytest.raises(DataStoreError):
        await TeamService(store).create_team(alice, "Marketing")

    assert store.rows(TEAMS) == []


async def test_persistence_failure_does_not_abort_batch(executor, store, alice):
    store.inject_failure("insert", TASKS)

    applied = await executor.execute_batch([
        intent(action="create_task", title="Lost"),
        intent(action="push_notification", title="t", description="d"),
    ], alice)

    assert [action.type for action in applied] == ["notification_pushed"]


async def test_replaying_an_intent_creates_two_tasks(executor, store, alice):
    create = intent(action="create_task", title="Buy milk")

    await executor.execute_batch([create], alice)
    await executor.execute_batch([create], alice)

    assert [row["title"] for row in store.rows(TASKS)] == ["Buy milk", "Buy milk"]


async def test_team_task_requires_membership(executor, store, alice, bob):
    team = await TeamService(store).create_team(bob, "Bob's team")

    applied = await executor.execute_batch([
        intent(action="create_task", title="Sneaky", team_id=team.id),
    ], alice)

    assert applied == []
    assert store.rows(TASKS) == []
