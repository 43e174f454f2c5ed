from typing import Any, Awaitable, Callable, Dict, List, Optional, Type
from dataclasses import dataclass

from pydantic import ValidationError

from trackhabit.domain.errors import TrackHabitError
from trackhabit.domain.models.chat_state import AppliedAction
from trackhabit.domain.models.entities import SessionContext
from trackhabit.domain.models.intents import (
    CreateNote, CreateTask, CreateTeam, DeleteTask, Intent, PushNotification, UpdateTask
)
from trackhabit.domain.services.team_service import TeamService
from trackhabit.domain.services.workspace import NoteService, NotificationService, TaskService
from trackhabit.infrastructure.observability.logging import assistant_logger, metrics
from trackhabit.infrastructure.persistence.base import DataStore


@dataclass
class ActionResult:
    success: bool
    applied: Optional[AppliedAction] = None
    error: Optional[str] = None


class ActionExecutor:
    """Applies validated intents against the data store, one at a time"""

    def __init__(self, store: DataStore):
        self.tasks = TaskService(store)
        self.notes = NoteService(store)
        self.notifications = NotificationService(store)
        self.teams = TeamService(store)
        self._handlers: Dict[Type, Callable[[Any, SessionContext], Awaitable[Optional[AppliedAction]]]] = {
            CreateTask: self._create_task,
            CreateNote: self._create_note,
            PushNotification: self._push_notification,
            UpdateTask: self._update_task,
            DeleteTask: self._delete_task,
            CreateTeam: self._create_team,
        }

    async def execute_intent(self, intent: Intent, session: SessionContext) -> ActionResult:
        """Apply one intent; persistence failures are reported, not raised"""

        handler = self._handlers.get(type(intent))
        if handler is None:
            return ActionResult(success=False, error=f"no handler for {intent.action}")

        try:
            applied = await handler(intent, session)
        except (TrackHabitError, ValidationError) as e:
            error = e.message if isinstance(e, TrackHabitError) else str(e)
            return self._failed(intent, session, error)
        except Exception as e:
            return self._failed(intent, session, f"{type(e).__name__}: {e}")

        if applied is None:
            assistant_logger.log_action_applied(
                session.user_id, intent.action, success=False, error="no matching row"
            )
            return ActionResult(success=False, error="no matching row")

        assistant_logger.log_action_applied(session.user_id, intent.action, output_data=applied.data)
        metrics.increment_counter("actions.applied", tags={"action": intent.action})
        return ActionResult(success=True, applied=applied)

    def _failed(self, intent: Intent, session: SessionContext, error: str) -> ActionResult:
        assistant_logger.log_action_applied(session.user_id, intent.action, success=False, error=error)
        metrics.increment_counter("actions.failed", tags={"action": intent.action})
        return ActionResult(success=False, error=error)

    async def execute_batch(self, intents: List[Intent], session: SessionContext) -> List[AppliedAction]:
        """Apply intents in order and return the log of effects that happened"""

        applied = []
        for intent in intents:
            result = await self.execute_intent(intent, session)
            if result.success and result.applied:
                applied.append(result.applied)
        return applied

    async def _create_task(self, intent: CreateTask, session: SessionContext) -> AppliedAction:
        task = await self.tasks.create_task(
            session,
            title=intent.title,
            description=intent.description,
            priority=intent.priority,
            due_date=intent.due_date,
            team_id=intent.team_id
        )
        return AppliedAction(type="task_created", data={"task": task.model_dump(mode="json")})

    async def _create_note(self, intent: CreateNote, session: SessionContext) -> AppliedAction:
        await self.notes.create_note(
            session, content=intent.content, title=intent.title, is_important=intent.is_important
        )
        return AppliedAction(type="note_created")

    async def _push_notification(self, intent: PushNotification, session: SessionContext) -> AppliedAction:
        await self.notifications.push(session, title=intent.title, description=intent.description, type=intent.type)
        return AppliedAction(type="notification_pushed")

    async def _update_task(self, intent: UpdateTask, session: SessionContext) -> Optional[AppliedAction]:
        rows = await self.tasks.update_task(session, intent.id, intent.updates.as_values())
        return AppliedAction(type="task_updated") if rows else None

    async def _delete_task(self, intent: DeleteTask, session: SessionContext) -> Optional[AppliedAction]:
        rows = await self.tasks.delete_task(session, intent.id)
        return AppliedAction(type="task_deleted") if rows else None

    async def _create_team(self, intent: CreateTeam, session: SessionContext) -> AppliedAction:
        team = await self.teams.create_team(session, intent.name)
        return AppliedAction(type="team_created", data={"team": team.model_dump(mode="json")})
