from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from datetime import date
from pydantic import BaseModel

from ...database import get_db
from ...core.auth import get_current_user
from ...models.user import User
from ...services.sprint_service import SprintService, SprintDTO

router = APIRouter()


class SprintCreateRequest(BaseModel):
    name: str
    goal: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class SprintUpdateRequest(BaseModel):
    name: Optional[str] = None
    goal: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


@router.get("/projects/{project_id}/sprints", response_model=List[SprintDTO])
async def get_project_sprints(
    project_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Get all sprints of a project with derived status and progress"""

    sprint_service = SprintService(db)
    return await sprint_service.list_project_sprints(project_id, current_user)


@router.post("/projects/{project_id}/sprints", response_model=SprintDTO, status_code=201)
async def create_sprint(
    project_id: int,
    request: SprintCreateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Create a sprint after checking its dates against the project and its other sprints"""

    sprint_service = SprintService(db)
    return await sprint_service.create_sprint(
        project_id=project_id,
        name=request.name,
        goal=request.goal,
        start_date=request.start_date,
        end_date=request.end_date,
        actor=current_user
    )


@router.get("/sprints/{sprint_id}", response_model=SprintDTO)
async def get_sprint(
    sprint_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Get sprint details"""

    sprint_service = SprintService(db)
    return await sprint_service.get_sprint_details(sprint_id, current_user)


@router.put("/sprints/{sprint_id}", response_model=SprintDTO)
async def update_sprint(
    sprint_id: int,
    request: SprintUpdateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    sprint_service = SprintService(db)
    return await sprint_service.update_sprint(
        sprint_id,
        current_user,
        name=request.name,
        goal=request.goal,
        start_date=request.start_date,
        end_date=request.end_date
    )


@router.delete("/sprints/{sprint_id}", status_code=204)
async def delete_sprint(
    sprint_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    sprint_service = SprintService(db)
    await sprint_service.delete_sprint(sprint_id, current_user)
    return Response(status_code=204)
