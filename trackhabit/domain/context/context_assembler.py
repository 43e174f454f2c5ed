from typing import Any, Awaitable, Dict, List
import asyncio

import structlog
from pydantic import ValidationError

from trackhabit.domain.errors import TrackHabitError
from trackhabit.domain.models.chat_state import ContextBundle, Fragment
from trackhabit.domain.models.entities import SessionContext
from trackhabit.domain.services.team_service import TeamService
from trackhabit.domain.services.workspace import ChatHistoryService, NoteService, TaskService
from trackhabit.infrastructure.observability.logging import assistant_logger
from trackhabit.infrastructure.persistence.base import DataStore

logger = structlog.get_logger(__name__)

TASK_LIMIT = 20
NOTE_LIMIT = 5
HISTORY_LIMIT = 6


class ContextAssembler:
    """Assembles the context bundle for one chat turn"""

    def __init__(
        self,
        store: DataStore,
        task_limit: int = TASK_LIMIT,
        note_limit: int = NOTE_LIMIT,
        history_limit: int = HISTORY_LIMIT
    ):
        self.tasks = TaskService(store)
        self.notes = NoteService(store)
        self.teams = TeamService(store)
        self.history = ChatHistoryService(store)
        self.task_limit = task_limit
        self.note_limit = note_limit
        self.history_limit = history_limit

    async def assemble(self, session: SessionContext) -> ContextBundle:
        """Read every fragment concurrently; a failed read leaves only its fragment empty"""

        logger.info("Assembling context", user_id=session.user_id)

        tasks, notes, teams, history = await asyncio.gather(
            self._fetch("tasks", session, self.tasks.list_tasks(session, limit=self.task_limit)),
            self._fetch("notes", session, self.notes.list_notes(session, limit=self.note_limit)),
            self._fetch("teams", session, self.teams.list_memberships(session)),
            self._fetch("history", session, self.history.recent(session, limit=self.history_limit)),
        )

        return ContextBundle(tasks=tasks, notes=notes, teams=teams, history=history)

    async def _fetch(self, name: str, session: SessionContext, read: Awaitable[List[Any]]) -> Fragment:
        try:
            items = await read
        except (TrackHabitError, ValidationError) as e:
            assistant_logger.log_context_fragment(session.user_id, name, ok=False, error=str(e))
            return Fragment.failed(name, str(e))
        except Exception as e:
            error = f"{type(e).__name__}: {e}"
            assistant_logger.log_context_fragment(session.user_id, name, ok=False, error=error)
            return Fragment.failed(name, error)

        assistant_logger.log_context_fragment(session.user_id, name, ok=True, item_count=len(items))
        return Fragment(name=name, items=items)

    def summarize(self, bundle: ContextBundle) -> Dict[str, Any]:
        """Counts per fragment, for logging and debugging"""

        return {
            fragment.name: len(fragment.items) if fragment.ok else "failed"
            for fragment in bundle.fragments()
        }
