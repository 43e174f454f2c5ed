from typing import Annotated, List

from fastapi import APIRouter, Depends, status

from trackhabit.application.api.dependencies import get_session_context, get_store
from trackhabit.application.api.schema import TaskCreateRequest
from trackhabit.domain.errors import NotFoundError
from trackhabit.domain.models.entities import Notification, SessionContext, Task
from trackhabit.domain.services.workspace import NotificationService, TaskService
from trackhabit.infrastructure.persistence.base import DataStore

router = APIRouter(prefix="/api", tags=["workspace"])

Session = Annotated[SessionContext, Depends(get_session_context)]
Store = Annotated[DataStore, Depends(get_store)]


@router.get("/tasks", response_model=List[Task])
async def list_tasks(session: Session, store: Store):
    return await TaskService(store).list_tasks(session)


@router.post("/tasks", response_model=Task, status_code=status.HTTP_201_CREATED)
async def create_task(request: TaskCreateRequest, session: Session, store: Store):
    return await TaskService(store).create_task(
        session,
        title=request.title,
        description=request.description,
        priority=request.priority,
        due_date=request.due_date,
        team_id=request.team_id
    )


@router.post("/tasks/{task_id}/toggle", response_model=Task)
async def toggle_task(task_id: str, session: Session, store: Store):
    return await TaskService(store).toggle_status(session, task_id)


@router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(task_id: str, session: Session, store: Store):
    deleted = await TaskService(store).delete_task(session, task_id)
    if not deleted:
        raise NotFoundError("Task not found")


@router.get("/notifications", response_model=List[Notification])
async def list_notifications(session: Session, store: Store):
    return await NotificationService(store).list_notifications(session)


@router.post("/notifications/{notification_id}/read", response_model=Notification)
async def mark_notification_read(notification_id: str, session: Session, store: Store):
    return await NotificationService(store).mark_read(session, notification_id)
