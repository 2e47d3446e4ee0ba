from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from pydantic import BaseModel

from ...database import get_db
from ...core.auth import get_current_user
from ...models.user import User
from ...services.activity_service import TaskActivityDTO
from ...services.sprint_service import TaskSummary
from ...services.task_service import TaskService, TaskInput, ExternalTaskStatus

router = APIRouter()


class TaskStatusRequest(BaseModel):
    status: ExternalTaskStatus


@router.get("/projects/{project_id}/tasks", response_model=List[TaskSummary])
async def get_project_tasks(
    project_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    task_service = TaskService(db)
    return await task_service.list_project_tasks(project_id, current_user)


@router.get("/projects/{project_id}/tasks/me", response_model=List[TaskSummary])
async def get_my_project_tasks(
    project_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Tasks of the project assigned to the current user"""

    task_service = TaskService(db)
    return await task_service.list_my_tasks(project_id, current_user)


@router.post("/projects/{project_id}/tasks", response_model=TaskSummary, status_code=201)
async def create_task(
    project_id: int,
    request: TaskInput,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    task_service = TaskService(db)
    return await task_service.create_task(project_id, request, current_user)


@router.get("/tasks/{task_id}", response_model=TaskSummary)
async def get_task(
    task_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    task_service = TaskService(db)
    return await task_service.get_task_details(task_id, current_user)


@router.put("/tasks/{task_id}", response_model=TaskSummary)
async def update_task(
    task_id: int,
    request: TaskInput,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Replace a task's fields; status and assignee changes are recorded in its activity log"""

    task_service = TaskService(db)
    return await task_service.update_task(task_id, request, current_user)


@router.patch("/tasks/{task_id}/status", response_model=TaskSummary)
async def update_task_status(
    task_id: int,
    request: TaskStatusRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Update task status (for Kanban board drag-and-drop)"""

    task_service = TaskService(db)
    return await task_service.update_task_status(task_id, request.status, current_user)


@router.delete("/tasks/{task_id}", status_code=204)
async def delete_task(
    task_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    task_service = TaskService(db)
    await task_service.delete_task(task_id, current_user)
    return Response(status_code=204)


@router.get("/tasks/{task_id}/activities", response_model=List[TaskActivityDTO])
async def get_task_activities(
    task_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    task_service = TaskService(db)
    return await task_service.get_task_activities(task_id, current_user)
