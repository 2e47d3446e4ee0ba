"""
Closed status vocabularies.

Statuses are stored as plain strings; these enums are the only values the
services compare against. External strings are converted with
``from_external`` at the API and persistence edges.
"""
from enum import Enum
from typing import Optional


class RoleType(str, Enum):
    FOUNDER = "FOUNDER"
    EMPLOYEE = "EMPLOYEE"

    @classmethod
    def lowest(cls) -> "RoleType":
        return cls.EMPLOYEE


class ProjectStatus(str, Enum):
    PLANNED = "PLANNED"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"

    @classmethod
    def from_external(cls, value: Optional[str]) -> Optional["ProjectStatus"]:
        if value is None:
            return None
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None


class TaskStatus(str, Enum):
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"
    BLOCKED = "BLOCKED"

    @classmethod
    def from_external(cls, value: Optional[str]) -> Optional["TaskStatus"]:
        """Parse a client or legacy status string, ``None`` when unrecognised."""
        if value is None:
            return None
        key = value.strip().upper().replace("-", "_").replace(" ", "_")
        key = _TASK_STATUS_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            return None

    @property
    def is_done(self) -> bool:
        return self is TaskStatus.DONE

    @property
    def is_blocked(self) -> bool:
        return self is TaskStatus.BLOCKED


_TASK_STATUS_ALIASES = {
    "PLANNED": "TODO",
    "TO_DO": "TODO",
    "COMPLETED": "DONE",
    "INPROGRESS": "IN_PROGRESS",
}


class SprintStatus(str, Enum):
    PLANNED = "PLANNED"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


class InvitationStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"

    @property
    def is_terminal(self) -> bool:
        return self is not InvitationStatus.PENDING


class ActivityAction(str, Enum):
    TASK_CREATED = "TASK_CREATED"
    STATUS_CHANGE = "STATUS_CHANGE"
    ASSIGNEE_CHANGE = "ASSIGNEE_CHANGE"


class TaskPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"
