from __future__ import annotations

from typing import (
    Iterable,
    List,
    Optional,
    Sequence,
)
from datetime import date, datetime
import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from pydantic import BaseModel, Field

from ..core.errors import NotFoundError, SprintValidationError
from ..core.permissions import Action
from ..models.enums import SprintStatus, TaskStatus
from ..models.sprint import Sprint
from ..models.task import Task
from ..models.user import User, Project
from .project_service import ProjectService

# Type aliases
ProjectId = int
SprintId = int


# Pydantic models
class TaskSummary(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    status: str
    priority: str
    project_id: Optional[int] = None
    project_name: Optional[str] = None
    sprint_id: Optional[int] = None
    sprint_name: Optional[str] = None
    assignee_id: Optional[int] = None
    assignee_name: Optional[str] = None
    reporter_id: Optional[int] = None
    reporter_name: Optional[str] = None
    created_at: Optional[datetime] = None


class SprintDTO(BaseModel):
    id: Optional[SprintId] = None
    name: str
    goal: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: SprintStatus
    project_id: Optional[ProjectId] = None
    project_name: Optional[str] = None
    task_count: int = 0
    progress: float = 0.0
    tasks: List[TaskSummary] = Field(default_factory=list)


# Derived values

def is_task_done(task: Task) -> bool:
    status = TaskStatus.from_external(task.status)
    return status is not None and status.is_done


def is_task_blocked(task: Task) -> bool:
    status = TaskStatus.from_external(task.status)
    return status is not None and status.is_blocked


def completion_percentage(tasks: Sequence[Task]) -> float:
    """Share of done tasks in ``tasks`` as a percentage, 0 for an empty set."""
    if not tasks:
        return 0.0
    done = sum(1 for task in tasks if is_task_done(task))
    return done / len(tasks) * 100


def derive_sprint_status(sprint: Sprint, today: date) -> SprintStatus:
    """COMPLETED after the end date, ACTIVE from the start date on, PLANNED before."""
    if sprint.end_date is not None and today > sprint.end_date:
        return SprintStatus.COMPLETED
    if sprint.start_date is not None and today >= sprint.start_date:
        return SprintStatus.ACTIVE
    return SprintStatus.PLANNED


def to_task_summary(task: Task) -> TaskSummary:
    return TaskSummary(
        id=task.id,
        title=task.title,
        description=task.description,
        status=task.status,
        priority=task.priority,
        project_id=task.project_id,
        project_name=task.project.name if task.project else None,
        sprint_id=task.sprint_id,
        sprint_name=task.sprint.name if task.sprint else None,
        assignee_id=task.assignee_id,
        assignee_name=task.assignee.full_name if task.assignee else None,
        reporter_id=task.reporter_id,
        reporter_name=task.reporter.full_name if task.reporter else None,
        created_at=task.created_at,
    )


def to_sprint_dto(
    sprint: Sprint,
    today: date,
    tasks: Optional[Sequence[Task]] = None,
    project: Optional[Project] = None
) -> SprintDTO:
    """Summarize a sprint; task count and progress are filled when ``tasks`` is given."""
    dto = SprintDTO(
        id=sprint.id,
        name=sprint.name,
        goal=sprint.goal,
        start_date=sprint.start_date,
        end_date=sprint.end_date,
        status=derive_sprint_status(sprint, today),
        project_id=sprint.project_id,
        project_name=project.name if project is not None else None,
    )
    if tasks is not None:
        dto.task_count = len(tasks)
        dto.progress = completion_percentage(tasks)
        dto.tasks = [to_task_summary(task) for task in tasks]
    return dto


# Scheduling rules

def validate_and_prepare(
    candidate: Sprint,
    project: Project,
    siblings: Iterable[Sprint]
) -> Sprint:
    """
    Check a sprint's date range against its project and sibling sprints.

    Returns the candidate unchanged when every rule holds, otherwise raises
    SprintValidationError for the first violated rule. The candidate itself
    is skipped among ``siblings`` (matched by identity or primary key).
    """

    if candidate.start_date is None or candidate.end_date is None:
        raise SprintValidationError(
            SprintValidationError.DATES_MISSING,
            "Sprint start and end dates are required"
        )

    if candidate.end_date < candidate.start_date:
        raise SprintValidationError(
            SprintValidationError.END_BEFORE_START,
            "Sprint end date cannot be before its start date"
        )

    if project.start_date is not None and candidate.start_date < project.start_date:
        raise SprintValidationError(
            SprintValidationError.BEFORE_PROJECT_START,
            f"Sprint cannot start before the project start date ({project.start_date.isoformat()})"
        )

    for sibling in siblings:
        if sibling is candidate:
            continue
        if candidate.id is not None and sibling.id == candidate.id:
            continue
        if sibling.start_date is None or sibling.end_date is None:
            continue
        if candidate.start_date < sibling.end_date and candidate.end_date > sibling.start_date:
            raise SprintValidationError(
                SprintValidationError.OVERLAP,
                f"Sprint dates overlap with existing sprint: {sibling.name}",
                conflicting_sprint=sibling.name
            )

    return candidate


class SprintService:
    """
    Sprint scheduling backed by the database.

    Every write runs the date-range rules in ``validate_and_prepare`` before
    it is committed. Concurrent writers creating overlapping sprints for the
    same project are not serialized here.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.projects = ProjectService(db)
        self._logger = logging.getLogger(__name__)

    async def create_sprint(
        self,
        project_id: ProjectId,
        name: str,
        start_date: Optional[date],
        end_date: Optional[date],
        actor: User,
        goal: Optional[str] = None,
        today: Optional[date] = None
    ) -> SprintDTO:
        """Create a new sprint with validation."""

        project = await self.projects.get_authorized_project(
            project_id, actor, Action.MANAGE_SPRINTS
        )
        siblings = await self._get_project_sprints(project_id)

        sprint = Sprint(
            name=name,
            goal=goal,
            start_date=start_date,
            end_date=end_date,
            project_id=project.id,
        )

        try:
            validate_and_prepare(sprint, project, siblings)
        except SprintValidationError as e:
            self._logger.warning("Rejected sprint '%s' for project %d: %s", name, project_id, e.rule)
            raise

        self.db.add(sprint)
        await self.db.commit()

        self._logger.info("Created sprint %d in project %d", sprint.id, project_id)
        return to_sprint_dto(sprint, today or date.today(), tasks=[], project=project)

    async def update_sprint(
        self,
        sprint_id: SprintId,
        actor: User,
        name: Optional[str] = None,
        goal: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        today: Optional[date] = None
    ) -> SprintDTO:
        """Update sprint fields, re-validating the date range against its siblings."""

        sprint = await self.get_sprint(sprint_id)
        project = await self.projects.get_authorized_project(
            sprint.project_id, actor, Action.MANAGE_SPRINTS
        )
        siblings = await self._get_project_sprints(sprint.project_id)

        if name is not None:
            sprint.name = name
        if goal is not None:
            sprint.goal = goal
        if start_date is not None:
            sprint.start_date = start_date
        if end_date is not None:
            sprint.end_date = end_date

        try:
            validate_and_prepare(sprint, project, siblings)
        except SprintValidationError as e:
            await self.db.rollback()
            self._logger.warning("Rejected update of sprint %d: %s", sprint_id, e.rule)
            raise

        await self.db.commit()
        tasks = await self._get_sprint_tasks(sprint_id)

        self._logger.info("Updated sprint %d", sprint_id)
        return to_sprint_dto(sprint, today or date.today(), tasks=tasks, project=project)

    async def delete_sprint(self, sprint_id: SprintId, actor: User) -> None:
        """Delete a sprint; its tasks move back to the backlog."""

        sprint = await self.get_sprint(sprint_id)
        await self.projects.get_authorized_project(
            sprint.project_id, actor, Action.MANAGE_SPRINTS
        )

        await self.db.execute(
            update(Task).where(Task.sprint_id == sprint_id).values(sprint_id=None)
        )
        await self.db.delete(sprint)
        await self.db.commit()

        self._logger.info("Deleted sprint %d", sprint_id)

    async def get_sprint(self, sprint_id: SprintId) -> Sprint:
        """Get sprint by ID."""

        stmt = select(Sprint).where(Sprint.id == sprint_id)
        result = await self.db.execute(stmt)
        sprint = result.scalar_one_or_none()

        if sprint is None:
            raise NotFoundError("Sprint", sprint_id)

        return sprint

    async def get_sprint_details(
        self,
        sprint_id: SprintId,
        actor: User,
        today: Optional[date] = None
    ) -> SprintDTO:
        sprint = await self.get_sprint(sprint_id)
        project = await self.projects.get_authorized_project(
            sprint.project_id, actor, Action.VIEW_PROJECT
        )
        tasks = await self._get_sprint_tasks(sprint_id)
        return to_sprint_dto(sprint, today or date.today(), tasks=tasks, project=project)

    async def list_project_sprints(
        self,
        project_id: ProjectId,
        actor: User,
        today: Optional[date] = None
    ) -> List[SprintDTO]:
        """Get sprints for a project with their task counts and progress."""

        project = await self.projects.get_authorized_project(
            project_id, actor, Action.VIEW_PROJECT
        )
        sprints = await self._get_project_sprints(project_id)

        stmt = select(Task).where(Task.project_id == project_id, Task.sprint_id.isnot(None))
        result = await self.db.execute(stmt)
        tasks_by_sprint: dict = {}
        for task in result.scalars().all():
            tasks_by_sprint.setdefault(task.sprint_id, []).append(task)

        current = today or date.today()
        return [
            to_sprint_dto(sprint, current, tasks=tasks_by_sprint.get(sprint.id, []), project=project)
            for sprint in sprints
        ]

    # Private methods

    async def _get_project_sprints(self, project_id: ProjectId) -> List[Sprint]:
        stmt = select(Sprint).where(Sprint.project_id == project_id).order_by(Sprint.id)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def _get_sprint_tasks(self, sprint_id: SprintId) -> List[Task]:
        stmt = select(Task).where(Task.sprint_id == sprint_id).order_by(Task.id)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
