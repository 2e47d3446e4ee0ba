"""
Project dashboard aggregation.

``compute_dashboard`` is a pure function over a snapshot of a project's tasks
and sprints; ``DashboardService`` loads that snapshot from the database.
"""
from __future__ import annotations

from typing import Dict, List, Optional, Sequence
from datetime import date, datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from pydantic import BaseModel, Field

from ..core.permissions import Action
from ..models.enums import SprintStatus
from ..models.sprint import Sprint
from ..models.task import Task
from ..models.user import User, Project
from ..utils.logging import get_logger
from .activity_service import status_token
from .project_service import ProjectService
from .sprint_service import (
    SprintDTO,
    completion_percentage,
    derive_sprint_status,
    is_task_blocked,
    is_task_done,
    to_sprint_dto,
)

logger = get_logger(__name__)


class DashboardSnapshot(BaseModel):
    project_id: int
    project_name: str
    overall_progress: float = 0.0
    total_tasks: int = 0
    task_distribution: Dict[str, int] = Field(default_factory=dict)
    blocked_tasks_count: int = 0
    overdue_tasks_count: int = 0
    active_sprint: Optional[SprintDTO] = None
    all_sprints: List[SprintDTO] = Field(default_factory=list)
    generated_at: datetime


def status_key(task: Task) -> str:
    """Distribution key: the canonical value when recognised, the raw string otherwise."""
    return status_token(task.status)


def is_task_overdue(task: Task, sprints_by_id: Dict[int, Sprint], today: date) -> bool:
    if task.sprint_id is None:
        return False
    sprint = sprints_by_id.get(task.sprint_id)
    if sprint is None or sprint.end_date is None:
        return False
    return sprint.end_date < today and not is_task_done(task)


def select_active_sprint(sprints: Sequence[Sprint], today: date) -> Optional[Sprint]:
    """
    Pick the sprint to feature on the dashboard.

    First the earliest-starting sprint whose range contains ``today``; failing
    that, the earliest upcoming sprint. Completed sprints never qualify.
    """

    current = [
        sprint for sprint in sprints
        if sprint.start_date is not None and sprint.end_date is not None
        and sprint.start_date <= today <= sprint.end_date
        and derive_sprint_status(sprint, today) != SprintStatus.COMPLETED
    ]
    if current:
        return min(current, key=lambda s: s.start_date)

    upcoming = [
        sprint for sprint in sprints
        if sprint.start_date is not None and sprint.start_date > today
        and derive_sprint_status(sprint, today) != SprintStatus.COMPLETED
    ]
    if upcoming:
        return min(upcoming, key=lambda s: s.start_date)

    return None


def compute_dashboard(
    project: Project,
    tasks: Sequence[Task],
    sprints: Sequence[Sprint],
    today: date
) -> DashboardSnapshot:
    """Derive project health metrics from the current task and sprint snapshot."""

    distribution: Dict[str, int] = {}
    for task in tasks:
        key = status_key(task)
        distribution[key] = distribution.get(key, 0) + 1

    sprints_by_id = {sprint.id: sprint for sprint in sprints}

    snapshot = DashboardSnapshot(
        project_id=project.id,
        project_name=project.name,
        overall_progress=completion_percentage(tasks),
        total_tasks=len(tasks),
        task_distribution=distribution,
        blocked_tasks_count=sum(1 for task in tasks if is_task_blocked(task)),
        overdue_tasks_count=sum(1 for task in tasks if is_task_overdue(task, sprints_by_id, today)),
        all_sprints=[to_sprint_dto(sprint, today, project=project) for sprint in sprints],
        generated_at=datetime.now(timezone.utc),
    )

    active = select_active_sprint(sprints, today)
    if active is not None:
        sprint_tasks = [task for task in tasks if task.sprint_id == active.id]
        snapshot.active_sprint = to_sprint_dto(active, today, tasks=sprint_tasks, project=project)

    return snapshot


class DashboardService:
    """Loads a project's snapshot and aggregates it"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.projects = ProjectService(db)

    async def get_dashboard(
        self,
        project_id: int,
        actor: User,
        today: Optional[date] = None
    ) -> DashboardSnapshot:
        project = await self.projects.get_authorized_project(
            project_id, actor, Action.VIEW_PROJECT
        )

        task_result = await self.db.execute(
            select(Task).where(Task.project_id == project_id).order_by(Task.id)
        )
        tasks = list(task_result.scalars().all())

        sprint_result = await self.db.execute(
            select(Sprint).where(Sprint.project_id == project_id).order_by(Sprint.id)
        )
        sprints = list(sprint_result.scalars().all())

        snapshot = compute_dashboard(project, tasks, sprints, today or date.today())
        logger.info(
            f"Dashboard for project {project_id}: {len(tasks)} tasks, "
            f"{len(sprints)} sprints, progress {snapshot.overall_progress:.1f}%"
        )
        return snapshot
