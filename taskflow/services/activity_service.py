from typing import List, Optional
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from pydantic import BaseModel

from ..models.enums import ActivityAction, TaskStatus
from ..models.task import Task, TaskActivity
from ..models.user import User
from ..utils.logging import get_logger

logger = get_logger(__name__)

UNASSIGNED = "Unassigned"


class TaskActivityDTO(BaseModel):
    id: int
    task_id: int
    user_id: int
    user_name: Optional[str] = None
    action: ActivityAction
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    created_at: Optional[datetime] = None


def to_activity_dto(activity: TaskActivity) -> TaskActivityDTO:
    return TaskActivityDTO(
        id=activity.id,
        task_id=activity.task_id,
        user_id=activity.user_id,
        user_name=activity.user.full_name if activity.user else None,
        action=ActivityAction(activity.action),
        old_value=activity.old_value,
        new_value=activity.new_value,
        created_at=activity.created_at,
    )


@dataclass(frozen=True)
class TaskImage:
    """The fields of a task whose transitions are audited"""
    status: Optional[str]
    assignee_name: str

    @classmethod
    def of(cls, task: Task, assignee: Optional[User] = None) -> "TaskImage":
        assignee = assignee if assignee is not None else task.assignee
        return cls(
            status=task.status,
            assignee_name=assignee.full_name if assignee is not None else UNASSIGNED,
        )


def status_token(value: Optional[str]) -> Optional[str]:
    """Canonical status for comparison; unrecognised values compare as stored"""
    status = TaskStatus.from_external(value)
    return status.value if status is not None else value


def detect_changes(before: TaskImage, after: TaskImage) -> List[tuple]:
    """(action, old, new) for every audited field that differs between two images"""
    changes = []
    if status_token(before.status) != status_token(after.status):
        changes.append((ActivityAction.STATUS_CHANGE, before.status, after.status))
    if before.assignee_name != after.assignee_name:
        changes.append((ActivityAction.ASSIGNEE_CHANGE, before.assignee_name, after.assignee_name))
    return changes


class ActivityRecorder:
    """Append-only writer for the task audit trail"""

    def __init__(self, db: AsyncSession):
        self.db = db

    def record(
        self,
        task: Task,
        actor: Optional[User],
        action: ActivityAction,
        old_value: Optional[str] = None,
        new_value: Optional[str] = None
    ) -> Optional[TaskActivity]:
        """
        Stage one activity row in the current transaction.

        Returns ``None`` without writing when there is no acting user, so
        system-triggered changes are never attributed to anyone.
        """
        if actor is None:
            logger.debug(f"Skipping {action.value} on task {task.id}: no acting user")
            return None

        activity = TaskActivity(
            task=task,
            user=actor,
            action=action.value,
            old_value=old_value,
            new_value=new_value,
        )
        self.db.add(activity)
        logger.info(f"Task {task.id}: {action.value} {old_value!r} -> {new_value!r} by user {actor.id}")
        return activity

    def record_changes(
        self,
        task: Task,
        actor: Optional[User],
        before: TaskImage,
        after: TaskImage
    ) -> List[TaskActivity]:
        recorded = []
        for action, old_value, new_value in detect_changes(before, after):
            activity = self.record(task, actor, action, old_value, new_value)
            if activity is not None:
                recorded.append(activity)
        return recorded

    async def list_for_task(self, task_id: int) -> List[TaskActivity]:
        """Activities of a task, newest first"""
        stmt = (
            select(TaskActivity)
            .where(TaskActivity.task_id == task_id)
            .order_by(TaskActivity.created_at.desc(), TaskActivity.id.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
