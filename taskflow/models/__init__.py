"""
ORM entities.

Importing this package registers every mapped class on ``Base.metadata`` so
string-based relationships resolve.
"""

from .base import Base, BaseModel
from .user import User, Project, ProjectMember
from .sprint import Sprint
from .task import Task, TaskActivity
from .invitation import ProjectInvitation

__all__ = [
    "Base",
    "BaseModel",
    "User",
    "Project",
    "ProjectMember",
    "Sprint",
    "Task",
    "TaskActivity",
    "ProjectInvitation",
]
