"""
Direct project membership management for founders.

Invitation acceptance is the usual way in; these operations let the founder
list, add, re-role and remove members by hand. A (user, project) pair is a
member at most once, enforced by the composite primary key.
"""
from typing import List, Optional
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from pydantic import BaseModel

from ..config import settings
from ..core.errors import ConflictError, InvalidStateError, NotFoundError
from ..core.permissions import Action
from ..models.user import User, Project, ProjectMember
from ..utils.logging import get_logger
from .project_service import ProjectService

logger = get_logger(__name__)


class ProjectMemberDTO(BaseModel):
    user_id: int
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    project_id: int
    project_name: Optional[str] = None
    role_in_project: str
    joined_at: Optional[datetime] = None


def to_member_dto(member: ProjectMember, project: Project) -> ProjectMemberDTO:
    return ProjectMemberDTO(
        user_id=member.user_id,
        user_name=member.user.full_name if member.user else None,
        user_email=member.user.email if member.user else None,
        project_id=member.project_id,
        project_name=project.name,
        role_in_project=member.role_in_project,
        joined_at=member.created_at,
    )


class ProjectMemberService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.projects = ProjectService(db)

    async def list_members(self, project_id: int, actor: User) -> List[ProjectMemberDTO]:
        project = await self.projects.get_authorized_project(project_id, actor, Action.VIEW_PROJECT)

        stmt = (
            select(ProjectMember)
            .where(ProjectMember.project_id == project_id)
            .order_by(ProjectMember.created_at, ProjectMember.user_id)
        )
        result = await self.db.execute(stmt)
        return [to_member_dto(member, project) for member in result.scalars().all()]

    async def add_member(
        self,
        project_id: int,
        user_id: int,
        actor: User,
        role_in_project: Optional[str] = None
    ) -> ProjectMemberDTO:
        """Add ``user_id`` to the project; ConflictError when already a member"""

        project = await self.projects.get_authorized_project(project_id, actor, Action.MANAGE_MEMBERS)

        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        if user_id == project.founder_id:
            raise InvalidStateError("The founder already owns the project")
        if await self.db.get(ProjectMember, (user_id, project_id)) is not None:
            raise ConflictError(f"User {user_id} is already a member of project {project_id}")

        member = ProjectMember(
            user=user,
            project_id=project_id,
            role_in_project=role_in_project or settings.default_member_role,
        )
        self.db.add(member)
        try:
            await self.db.commit()
        except IntegrityError:
            # Joined concurrently, e.g. through an accepted invitation
            await self.db.rollback()
            raise ConflictError(f"User {user_id} is already a member of project {project_id}")

        logger.info(f"Added user {user_id} to project {project_id} as {member.role_in_project}")
        return to_member_dto(member, project)

    async def update_role(
        self,
        project_id: int,
        user_id: int,
        role_in_project: str,
        actor: User
    ) -> ProjectMemberDTO:
        project = await self.projects.get_authorized_project(project_id, actor, Action.MANAGE_MEMBERS)
        member = await self._get_member(project_id, user_id)

        member.role_in_project = role_in_project
        await self.db.commit()

        logger.info(f"User {user_id} in project {project_id} is now {role_in_project}")
        return to_member_dto(member, project)

    async def remove_member(self, project_id: int, user_id: int, actor: User) -> None:
        await self.projects.get_authorized_project(project_id, actor, Action.MANAGE_MEMBERS)
        member = await self._get_member(project_id, user_id)

        await self.db.delete(member)
        await self.db.commit()

        logger.info(f"Removed user {user_id} from project {project_id}")

    async def _get_member(self, project_id: int, user_id: int) -> ProjectMember:
        member = await self.db.get(ProjectMember, (user_id, project_id))
        if member is None:
            raise NotFoundError("Project member", f"{user_id} in project {project_id}")
        return member
