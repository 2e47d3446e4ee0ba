from typing import List, Optional
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from pydantic import BaseModel

from ..core.errors import NotFoundError
from ..core.permissions import Action, authorize
from ..models.enums import ProjectStatus
from ..models.user import User, Project, ProjectMember
from ..utils.logging import get_logger

logger = get_logger(__name__)


class ProjectDTO(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    priority: Optional[str] = None
    status: str
    start_date: Optional[date] = None
    founder_id: int
    founder_name: Optional[str] = None


def to_project_dto(project: Project) -> ProjectDTO:
    return ProjectDTO(
        id=project.id,
        name=project.name,
        description=project.description,
        priority=project.priority,
        status=project.status,
        start_date=project.start_date,
        founder_id=project.founder_id,
        founder_name=project.founder.full_name if project.founder else None,
    )


class ProjectService:
    """Project lookup and membership checks shared by the workflow services"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_project(
        self,
        founder: User,
        name: str,
        description: Optional[str] = None,
        priority: Optional[str] = None,
        status: ProjectStatus = ProjectStatus.PLANNED,
        start_date: Optional[date] = None
    ) -> Project:
        authorize(founder, Action.CREATE_PROJECT)

        project = Project(
            name=name,
            description=description,
            priority=priority,
            status=status.value,
            start_date=start_date,
            founder=founder,
        )
        self.db.add(project)
        await self.db.commit()

        logger.info(f"Created project {project.id} for founder {founder.id}")
        return project

    async def get_project(self, project_id: int) -> Project:
        """Get project by ID or raise NotFoundError"""

        stmt = select(Project).where(Project.id == project_id)
        result = await self.db.execute(stmt)
        project = result.scalar_one_or_none()

        if project is None:
            raise NotFoundError("Project", project_id)

        return project

    async def list_projects_for(self, user: User) -> List[Project]:
        """Projects the user founded or belongs to"""

        member_project_ids = select(ProjectMember.project_id).where(
            ProjectMember.user_id == user.id
        )
        stmt = (
            select(Project)
            .where(or_(Project.founder_id == user.id, Project.id.in_(member_project_ids)))
            .order_by(Project.id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def is_member(self, user_id: int, project_id: int) -> bool:
        stmt = select(ProjectMember).where(
            ProjectMember.user_id == user_id,
            ProjectMember.project_id == project_id
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def get_authorized_project(
        self,
        project_id: int,
        principal: User,
        action: Action
    ) -> Project:
        """Load the project and run the capability check for ``principal``"""

        project = await self.get_project(project_id)
        is_member = False
        if project.founder_id != principal.id:
            is_member = await self.is_member(principal.id, project_id)
        authorize(principal, action, project, is_member)
        return project
