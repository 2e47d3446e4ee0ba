from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from pydantic import BaseModel

from ...database import get_db
from ...core.auth import get_current_user
from ...models.user import User
from ...services.member_service import ProjectMemberService, ProjectMemberDTO

router = APIRouter()


class AddMemberRequest(BaseModel):
    user_id: int
    role_in_project: Optional[str] = None


class UpdateMemberRoleRequest(BaseModel):
    role_in_project: str


@router.get("/projects/{project_id}/members", response_model=List[ProjectMemberDTO])
async def list_members(
    project_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    member_service = ProjectMemberService(db)
    return await member_service.list_members(project_id, current_user)


@router.post("/projects/{project_id}/members", response_model=ProjectMemberDTO, status_code=201)
async def add_member(
    project_id: int,
    request: AddMemberRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Add an existing user to the project (founder only)"""

    member_service = ProjectMemberService(db)
    return await member_service.add_member(
        project_id, request.user_id, current_user, request.role_in_project
    )


@router.put("/projects/{project_id}/members/{user_id}", response_model=ProjectMemberDTO)
async def update_member_role(
    project_id: int,
    user_id: int,
    request: UpdateMemberRoleRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    member_service = ProjectMemberService(db)
    return await member_service.update_role(project_id, user_id, request.role_in_project, current_user)


@router.delete("/projects/{project_id}/members/{user_id}", status_code=204)
async def remove_member(
    project_id: int,
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    member_service = ProjectMemberService(db)
    await member_service.remove_member(project_id, user_id, current_user)
    return Response(status_code=204)
