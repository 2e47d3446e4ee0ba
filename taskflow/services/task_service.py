from typing import Annotated, Any, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from pydantic import BaseModel, BeforeValidator

from ..core.errors import InvalidStateError, NotFoundError
from ..core.permissions import Action
from ..models.enums import ActivityAction, TaskPriority, TaskStatus
from ..models.sprint import Sprint
from ..models.task import Task
from ..models.user import User
from ..utils.logging import get_logger
from .activity_service import ActivityRecorder, TaskImage, to_activity_dto, TaskActivityDTO
from .project_service import ProjectService
from .sprint_service import TaskSummary, to_task_summary

logger = get_logger(__name__)


def parse_task_status(value: Any) -> Any:
    """Accept legacy and lower-case spellings such as completed or in-progress"""
    if isinstance(value, str):
        parsed = TaskStatus.from_external(value)
        if parsed is not None:
            return parsed
    return value


ExternalTaskStatus = Annotated[TaskStatus, BeforeValidator(parse_task_status)]


class TaskInput(BaseModel):
    """Fields a client may set on a task"""
    title: str
    description: Optional[str] = None
    status: ExternalTaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    assignee_id: Optional[int] = None
    sprint_id: Optional[int] = None


class TaskService:
    """Task mutations; every status or assignee transition is audited"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.projects = ProjectService(db)
        self.recorder = ActivityRecorder(db)

    async def create_task(self, project_id: int, data: TaskInput, actor: User) -> TaskSummary:
        project = await self.projects.get_authorized_project(project_id, actor, Action.MANAGE_TASKS)

        task = Task(
            title=data.title,
            description=data.description,
            status=data.status.value,
            priority=data.priority.value,
            project=project,
            reporter=actor,
            assignee=await self._resolve_assignee(data.assignee_id),
            sprint=await self._resolve_sprint(data.sprint_id, project_id),
        )
        self.db.add(task)
        await self.db.flush()

        self.recorder.record(task, actor, ActivityAction.TASK_CREATED, None, task.title)
        await self.db.commit()

        logger.info(f"Created task {task.id} in project {project_id}")
        return to_task_summary(task)

    async def update_task(
        self,
        task_id: int,
        data: TaskInput,
        actor: Optional[User]
    ) -> TaskSummary:
        """Replace the editable fields of a task and audit what changed"""

        task = await self.get_task(task_id)
        if actor is not None:
            await self.projects.get_authorized_project(task.project_id, actor, Action.MANAGE_TASKS)

        before = TaskImage.of(task)

        assignee = await self._resolve_assignee(data.assignee_id)
        sprint = await self._resolve_sprint(data.sprint_id, task.project_id)

        task.title = data.title
        task.description = data.description
        task.status = data.status.value
        task.priority = data.priority.value
        task.assignee = assignee
        task.sprint = sprint

        self.recorder.record_changes(task, actor, before, TaskImage.of(task, assignee))
        await self.db.commit()

        return to_task_summary(task)

    async def update_task_status(
        self,
        task_id: int,
        status: TaskStatus,
        actor: Optional[User]
    ) -> TaskSummary:
        """Status-only update used by the board's drag-and-drop"""

        task = await self.get_task(task_id)
        if actor is not None:
            await self.projects.get_authorized_project(task.project_id, actor, Action.MANAGE_TASKS)

        before = TaskImage.of(task)
        task.status = status.value
        self.recorder.record_changes(task, actor, before, TaskImage.of(task))
        await self.db.commit()

        return to_task_summary(task)

    async def delete_task(self, task_id: int, actor: User) -> None:
        """Delete a task together with its activity log"""

        task = await self.get_task(task_id)
        project_id = task.project_id
        await self.projects.get_authorized_project(project_id, actor, Action.MANAGE_TASKS)

        await self.db.delete(task)
        await self.db.commit()

        logger.info(f"Deleted task {task_id} from project {project_id}")

    async def get_task(self, task_id: int) -> Task:
        stmt = select(Task).where(Task.id == task_id)
        result = await self.db.execute(stmt)
        task = result.scalar_one_or_none()

        if task is None:
            raise NotFoundError("Task", task_id)

        return task

    async def get_task_details(self, task_id: int, actor: User) -> TaskSummary:
        task = await self.get_task(task_id)
        await self.projects.get_authorized_project(task.project_id, actor, Action.VIEW_PROJECT)
        return to_task_summary(task)

    async def list_project_tasks(
        self,
        project_id: int,
        actor: User,
        assignee_id: Optional[int] = None
    ) -> List[TaskSummary]:
        await self.projects.get_authorized_project(project_id, actor, Action.VIEW_PROJECT)

        stmt = select(Task).where(Task.project_id == project_id)
        if assignee_id is not None:
            stmt = stmt.where(Task.assignee_id == assignee_id)
        stmt = stmt.order_by(Task.id)

        result = await self.db.execute(stmt)
        return [to_task_summary(task) for task in result.scalars().all()]

    async def list_my_tasks(self, project_id: int, actor: User) -> List[TaskSummary]:
        return await self.list_project_tasks(project_id, actor, assignee_id=actor.id)

    async def get_task_activities(self, task_id: int, actor: User) -> List[TaskActivityDTO]:
        task = await self.get_task(task_id)
        await self.projects.get_authorized_project(task.project_id, actor, Action.VIEW_PROJECT)
        activities = await self.recorder.list_for_task(task_id)
        return [to_activity_dto(activity) for activity in activities]

    # Private methods

    async def _resolve_assignee(self, assignee_id: Optional[int]) -> Optional[User]:
        if assignee_id is None:
            return None
        user = await self.db.get(User, assignee_id)
        if user is None:
            raise NotFoundError("User", assignee_id)
        return user

    async def _resolve_sprint(self, sprint_id: Optional[int], project_id: int) -> Optional[Sprint]:
        if sprint_id is None:
            return None
        sprint = await self.db.get(Sprint, sprint_id)
        if sprint is None:
            raise NotFoundError("Sprint", sprint_id)
        if sprint.project_id != project_id:
            raise InvalidStateError(f"Sprint {sprint_id} belongs to another project")
        return sprint
