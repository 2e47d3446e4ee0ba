from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from pydantic import BaseModel

from ...database import get_db
from ...core.auth import get_current_user
from ...models.user import User
from ...services.invitation_service import InvitationService, ProjectInvitationDTO
from ...services.notification_service import Notifier, get_notifier

router = APIRouter()


class InviteUserRequest(BaseModel):
    user_id: int


class InviteEmailRequest(BaseModel):
    email: str


def get_invitation_service(
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier)
) -> InvitationService:
    return InvitationService(db, notifier)


@router.post("/projects/{project_id}/invitations", response_model=ProjectInvitationDTO, status_code=201)
async def send_invitation(
    project_id: int,
    request: InviteUserRequest,
    invitation_service: InvitationService = Depends(get_invitation_service),
    current_user: User = Depends(get_current_user)
):
    """Invite an existing user to the project"""

    return await invitation_service.send_invitation(project_id, request.user_id, current_user)


@router.post("/projects/{project_id}/invitations/email", response_model=ProjectInvitationDTO, status_code=201)
async def send_invitation_by_email(
    project_id: int,
    request: InviteEmailRequest,
    invitation_service: InvitationService = Depends(get_invitation_service),
    current_user: User = Depends(get_current_user)
):
    """Invite by email address, creating an account for unknown addresses"""

    email = request.email.strip()
    if not email or "@" not in email:
        raise HTTPException(status_code=400, detail="A valid email address is required")

    return await invitation_service.send_invitation_by_email(project_id, email, current_user)


@router.get("/projects/{project_id}/invitations", response_model=List[ProjectInvitationDTO])
async def get_project_invitations(
    project_id: int,
    invitation_service: InvitationService = Depends(get_invitation_service),
    current_user: User = Depends(get_current_user)
):
    return await invitation_service.list_project_invitations(project_id, current_user)


@router.get("/invitations/my-invitations", response_model=List[ProjectInvitationDTO])
async def get_my_invitations(
    invitation_service: InvitationService = Depends(get_invitation_service),
    current_user: User = Depends(get_current_user)
):
    """Pending invitations addressed to the current user"""

    return await invitation_service.list_my_invitations(current_user)


@router.get("/invitations/sent", response_model=List[ProjectInvitationDTO])
async def get_sent_invitations(
    invitation_service: InvitationService = Depends(get_invitation_service),
    current_user: User = Depends(get_current_user)
):
    return await invitation_service.list_sent_invitations(current_user)


@router.post("/invitations/{invitation_id}/accept", response_model=ProjectInvitationDTO)
async def accept_invitation(
    invitation_id: int,
    invitation_service: InvitationService = Depends(get_invitation_service),
    current_user: User = Depends(get_current_user)
):
    return await invitation_service.accept_invitation(invitation_id, current_user)


@router.post("/invitations/{invitation_id}/reject", response_model=ProjectInvitationDTO)
async def reject_invitation(
    invitation_id: int,
    invitation_service: InvitationService = Depends(get_invitation_service),
    current_user: User = Depends(get_current_user)
):
    return await invitation_service.reject_invitation(invitation_id, current_user)
