from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Annotated, Any, List, Optional
from datetime import date
from pydantic import BaseModel, BeforeValidator

from ...database import get_db
from ...core.auth import get_current_user
from ...core.permissions import Action
from ...models.enums import ProjectStatus
from ...models.user import User
from ...services.dashboard_service import DashboardService, DashboardSnapshot
from ...services.project_service import ProjectService, ProjectDTO, to_project_dto

router = APIRouter()


def parse_project_status(value: Any) -> Any:
    if isinstance(value, str):
        return ProjectStatus.from_external(value) or value
    return value


class ProjectCreateRequest(BaseModel):
    name: str
    description: Optional[str] = None
    priority: Optional[str] = None
    status: Annotated[ProjectStatus, BeforeValidator(parse_project_status)] = ProjectStatus.PLANNED
    start_date: Optional[date] = None


@router.post("", response_model=ProjectDTO, status_code=201)
async def create_project(
    request: ProjectCreateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Create a project founded by the current user"""

    project_service = ProjectService(db)
    project = await project_service.create_project(
        founder=current_user,
        name=request.name,
        description=request.description,
        priority=request.priority,
        status=request.status,
        start_date=request.start_date
    )
    return to_project_dto(project)


@router.get("", response_model=List[ProjectDTO])
async def list_projects(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Projects the current user founded or is a member of"""

    project_service = ProjectService(db)
    projects = await project_service.list_projects_for(current_user)
    return [to_project_dto(project) for project in projects]


@router.get("/{project_id}", response_model=ProjectDTO)
async def get_project(
    project_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    project_service = ProjectService(db)
    project = await project_service.get_authorized_project(
        project_id, current_user, Action.VIEW_PROJECT
    )
    return to_project_dto(project)


@router.get("/{project_id}/dashboard", response_model=DashboardSnapshot)
async def get_project_dashboard(
    project_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Progress, status distribution, blocked/overdue counts and the featured sprint"""

    dashboard_service = DashboardService(db)
    return await dashboard_service.get_dashboard(project_id, current_user)
