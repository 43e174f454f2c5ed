"""User-scoped operations on tasks, notes, notifications and chat history.

Every read and write filters on the session's ``user_id``.
"""

from typing import Any, Dict, List, Optional

from trackhabit.domain.errors import NotFoundError, PermissionDeniedError
from trackhabit.domain.models.entities import (
    ChatMessage, ChatRole, Note, Notification, NotificationType, SessionContext, Task, TaskPriority, TaskStatus
)
from trackhabit.infrastructure.persistence.base import (
    CHAT_HISTORY, DataStore, MEMBERSHIPS, NOTES, NOTIFICATIONS, TASKS
)


class TaskService:
    def __init__(self, store: DataStore):
        self.store = store

    async def list_tasks(self, session: SessionContext, limit: Optional[int] = None) -> List[Task]:
        rows = await self.store.select(
            TASKS,
            filters={"user_id": session.user_id},
            order_by="created_at",
            descending=True,
            limit=limit
        )
        return [Task.from_row(row) for row in rows]

    async def create_task(
        self,
        session: SessionContext,
        title: str,
        description: Optional[str] = None,
        priority: TaskPriority = TaskPriority.MEDIUM,
        due_date: Optional[str] = None,
        team_id: Optional[str] = None
    ) -> Task:
        """Insert a task in the todo state"""

        if team_id:
            memberships = await self.store.select(
                MEMBERSHIPS, filters={"team_id": team_id, "user_id": session.user_id}, limit=1
            )
            if not memberships:
                raise PermissionDeniedError("Not a member of this team")

        rows = await self.store.insert(TASKS, [{
            "user_id": session.user_id,
            "title": title,
            "description": description or None,
            "priority": TaskPriority(priority).value,
            "status": TaskStatus.TODO.value,
            "due_date": due_date or None,
            "team_id": team_id or None,
        }])
        return Task.from_row(rows[0])

    async def update_task(self, session: SessionContext, task_id: str, values: Dict[str, Any]) -> List[Task]:
        """Update a task owned by the session user; returns the rows touched"""

        rows = await self.store.update(TASKS, values, match={"id": task_id, "user_id": session.user_id})
        return [Task.from_row(row) for row in rows]

    async def delete_task(self, session: SessionContext, task_id: str) -> List[Task]:
        rows = await self.store.delete(TASKS, match={"id": task_id, "user_id": session.user_id})
        return [Task.from_row(row) for row in rows]

    async def toggle_status(self, session: SessionContext, task_id: str) -> Task:
        """Flip a task between todo and done"""

        rows = await self.store.select(TASKS, filters={"id": task_id, "user_id": session.user_id}, limit=1)
        if not rows:
            raise NotFoundError("Task not found")

        task = Task.from_row(rows[0])
        new_status = TaskStatus.TODO if task.status == TaskStatus.DONE else TaskStatus.DONE
        updated = await self.update_task(session, task_id, {"status": new_status.value})
        if not updated:
            raise NotFoundError("Task not found")
        return updated[0]


class NoteService:
    def __init__(self, store: DataStore):
        self.store = store

    async def list_notes(self, session: SessionContext, limit: Optional[int] = None) -> List[Note]:
        rows = await self.store.select(
            NOTES,
            filters={"user_id": session.user_id},
            order_by="created_at",
            descending=True,
            limit=limit
        )
        return [Note.from_row(row) for row in rows]

    async def create_note(
        self,
        session: SessionContext,
        content: str,
        title: Optional[str] = None,
        is_important: bool = False
    ) -> Note:
        rows = await self.store.insert(NOTES, [{
            "user_id": session.user_id,
            "title": title or None,
            "content": content,
            "is_important": is_important,
        }])
        return Note.from_row(rows[0])


class NotificationService:
    def __init__(self, store: DataStore):
        self.store = store

    async def list_notifications(self, session: SessionContext, limit: Optional[int] = 50) -> List[Notification]:
        rows = await self.store.select(
            NOTIFICATIONS,
            filters={"user_id": session.user_id},
            order_by="created_at",
            descending=True,
            limit=limit
        )
        return [Notification.from_row(row) for row in rows]

    async def push(
        self,
        session: SessionContext,
        title: str,
        description: str,
        type: NotificationType = NotificationType.INFO
    ) -> Notification:
        rows = await self.store.insert(NOTIFICATIONS, [{
            "user_id": session.user_id,
            "title": title,
            "description": description,
            "type": NotificationType(type).value,
            "read": False,
        }])
        return Notification.from_row(rows[0])

    async def mark_read(self, session: SessionContext, notification_id: str) -> Notification:
        rows = await self.store.update(
            NOTIFICATIONS,
            {"read": True},
            match={"id": notification_id, "user_id": session.user_id}
        )
        if not rows:
            raise NotFoundError("Notification not found")
        return Notification.from_row(rows[0])


class ChatHistoryService:
    """Append-only chat log"""

    def __init__(self, store: DataStore):
        self.store = store

    async def recent(self, session: SessionContext, limit: int) -> List[ChatMessage]:
        """Most recent messages, returned oldest first"""

        rows = await self.store.select(
            CHAT_HISTORY,
            filters={"user_id": session.user_id},
            order_by="created_at",
            descending=True,
            limit=limit
        )
        return [ChatMessage.from_row(row) for row in reversed(rows)]

    async def append_turn(self, session: SessionContext, user_content: str, assistant_content: str) -> None:
        await self.store.insert(CHAT_HISTORY, [
            {"user_id": session.user_id, "role": ChatRole.USER.value, "content": user_content},
            {"user_id": session.user_id, "role": ChatRole.ASSISTANT.value, "content": assistant_content},
        ])
