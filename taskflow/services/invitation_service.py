"""
Project invitation workflow.

An invitation starts PENDING and moves exactly once to ACCEPTED or REJECTED.
Accepting adds the invited user to the project unless they already belong
to it. The PENDING check and the transition are a single conditional UPDATE,
so two concurrent responses to the same invitation cannot both succeed.
"""
from typing import List, Optional
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError
from pydantic import BaseModel

from ..config import settings
from ..core.errors import ConflictError, InvalidStateError, NotFoundError, UnauthorizedError
from ..core.permissions import Action, authorize
from ..models.enums import InvitationStatus, RoleType
from ..models.invitation import ProjectInvitation
from ..models.user import User, Project, ProjectMember
from ..utils.logging import get_logger
from .notification_service import Notifier
from .project_service import ProjectService

logger = get_logger(__name__)


class ProjectInvitationDTO(BaseModel):
    id: int
    project_id: int
    project_name: Optional[str] = None
    invited_user_id: int
    invited_user_name: Optional[str] = None
    invited_by_id: int
    invited_by_name: Optional[str] = None
    status: InvitationStatus
    created_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None


def to_invitation_dto(invitation: ProjectInvitation) -> ProjectInvitationDTO:
    return ProjectInvitationDTO(
        id=invitation.id,
        project_id=invitation.project_id,
        project_name=invitation.project.name if invitation.project else None,
        invited_user_id=invitation.invited_user_id,
        invited_user_name=invitation.invited_user.full_name if invitation.invited_user else None,
        invited_by_id=invitation.invited_by_id,
        invited_by_name=invitation.invited_by.full_name if invitation.invited_by else None,
        status=InvitationStatus(invitation.status),
        created_at=invitation.created_at,
        responded_at=invitation.responded_at,
    )


class InvitationService:
    """Send, accept and reject project invitations"""

    def __init__(self, db: AsyncSession, notifier: Optional[Notifier] = None):
        self.db = db
        self.notifier = notifier
        self.projects = ProjectService(db)

    async def send_invitation(
        self,
        project_id: int,
        invited_user_id: int,
        inviter: User
    ) -> ProjectInvitationDTO:
        project = await self.projects.get_authorized_project(
            project_id, inviter, Action.MANAGE_INVITATIONS
        )

        invited_user = await self.db.get(User, invited_user_id)
        if invited_user is None:
            raise NotFoundError("User", invited_user_id)

        return await self._create_invitation(project, invited_user, inviter)

    async def send_invitation_by_email(
        self,
        project_id: int,
        email: str,
        inviter: User
    ) -> ProjectInvitationDTO:
        """Invite by address, provisioning a disabled EMPLOYEE account for unknown addresses"""

        project = await self.projects.get_authorized_project(
            project_id, inviter, Action.MANAGE_INVITATIONS
        )
        invited_user = await self._get_or_provision_user(email)
        return await self._create_invitation(project, invited_user, inviter)

    async def accept_invitation(self, invitation_id: int, actor: User) -> ProjectInvitationDTO:
        invitation = await self._get_pending_for(invitation_id, actor)

        await self._transition(invitation, InvitationStatus.ACCEPTED)

        membership = await self.db.get(ProjectMember, (actor.id, invitation.project_id))
        if membership is None:
            self.db.add(ProjectMember(
                user_id=actor.id,
                project_id=invitation.project_id,
                role_in_project=settings.default_member_role,
            ))
        else:
            logger.info(f"User {actor.id} already a member of project {invitation.project_id}")

        await self.db.commit()
        await self.db.refresh(invitation, attribute_names=["status", "responded_at"])

        logger.info(f"Invitation {invitation_id} accepted by user {actor.id}")
        return to_invitation_dto(invitation)

    async def reject_invitation(self, invitation_id: int, actor: User) -> ProjectInvitationDTO:
        invitation = await self._get_pending_for(invitation_id, actor)

        await self._transition(invitation, InvitationStatus.REJECTED)

        await self.db.commit()
        await self.db.refresh(invitation, attribute_names=["status", "responded_at"])

        logger.info(f"Invitation {invitation_id} rejected by user {actor.id}")
        return to_invitation_dto(invitation)

    async def list_my_invitations(self, user: User) -> List[ProjectInvitationDTO]:
        """PENDING invitations addressed to ``user``"""

        stmt = (
            select(ProjectInvitation)
            .where(
                ProjectInvitation.invited_user_id == user.id,
                ProjectInvitation.status == InvitationStatus.PENDING.value
            )
            .order_by(ProjectInvitation.created_at.desc(), ProjectInvitation.id.desc())
        )
        result = await self.db.execute(stmt)
        return [to_invitation_dto(invitation) for invitation in result.scalars().all()]

    async def list_sent_invitations(self, inviter: User) -> List[ProjectInvitationDTO]:
        authorize(inviter, Action.MANAGE_INVITATIONS)

        stmt = (
            select(ProjectInvitation)
            .where(ProjectInvitation.invited_by_id == inviter.id)
            .order_by(ProjectInvitation.created_at.desc(), ProjectInvitation.id.desc())
        )
        result = await self.db.execute(stmt)
        return [to_invitation_dto(invitation) for invitation in result.scalars().all()]

    async def list_project_invitations(self, project_id: int, actor: User) -> List[ProjectInvitationDTO]:
        """Every invitation of a project regardless of status, for its founder"""

        await self.projects.get_authorized_project(project_id, actor, Action.MANAGE_INVITATIONS)

        stmt = (
            select(ProjectInvitation)
            .where(ProjectInvitation.project_id == project_id)
            .order_by(ProjectInvitation.created_at.desc(), ProjectInvitation.id.desc())
        )
        result = await self.db.execute(stmt)
        return [to_invitation_dto(invitation) for invitation in result.scalars().all()]

    # Private methods

    async def _create_invitation(
        self,
        project: Project,
        invited_user: User,
        inviter: User
    ) -> ProjectInvitationDTO:
        if await self._find_pending(project.id, invited_user.id) is not None:
            raise ConflictError("Invitation already sent")

        invitation = ProjectInvitation(
            project=project,
            invited_user=invited_user,
            invited_by=inviter,
            status=InvitationStatus.PENDING.value,
            created_at=datetime.now(timezone.utc),
            responded_at=None,
        )
        self.db.add(invitation)

        try:
            await self.db.commit()
        except IntegrityError:
            # Another request created the PENDING invitation first
            await self.db.rollback()
            raise ConflictError("Invitation already sent")

        logger.info(
            f"Invitation {invitation.id} sent to user {invited_user.id} "
            f"for project {project.id} by user {inviter.id}"
        )
        await self._notify(invitation)
        return to_invitation_dto(invitation)

    async def _find_pending(self, project_id: int, user_id: int) -> Optional[ProjectInvitation]:
        stmt = select(ProjectInvitation).where(
            ProjectInvitation.project_id == project_id,
            ProjectInvitation.invited_user_id == user_id,
            ProjectInvitation.status == InvitationStatus.PENDING.value
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def _get_or_provision_user(self, email: str) -> User:
        address = email.strip().lower()

        existing = await self._find_user_by_email(address)
        if existing is not None:
            return existing

        user = User(
            email=address,
            full_name=address.split("@", 1)[0],
            role_type=RoleType.lowest().value,
            enabled=False,
        )
        self.db.add(user)
        try:
            await self.db.flush()
        except IntegrityError:
            # Provisioned concurrently; the existing account is left untouched
            await self.db.rollback()
            raise ConflictError(f"An account for {address} was created concurrently, retry the invitation")

        logger.info(f"Provisioned user {user.id} for invited address {address}")
        return user

    async def _find_user_by_email(self, address: str) -> Optional[User]:
        stmt = select(User).where(func.lower(User.email) == address)
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def _get_pending_for(self, invitation_id: int, actor: User) -> ProjectInvitation:
        """Load an invitation and check the caller may respond to it"""

        invitation = await self.db.get(ProjectInvitation, invitation_id)
        if invitation is None:
            raise NotFoundError("Invitation", invitation_id)

        authorize(actor, Action.RESPOND_INVITATION)
        if invitation.invited_user_id != actor.id:
            raise UnauthorizedError("Invitation is addressed to another user")

        if InvitationStatus(invitation.status).is_terminal:
            raise InvalidStateError(
                f"Invitation already responded to ({invitation.status})"
            )

        return invitation

    async def _transition(self, invitation: ProjectInvitation, target: InvitationStatus) -> None:
        """Move a PENDING invitation to ``target``; fails if it was answered meanwhile"""

        invitation_id = invitation.id
        result = await self.db.execute(
            update(ProjectInvitation)
            .where(
                ProjectInvitation.id == invitation_id,
                ProjectInvitation.status == InvitationStatus.PENDING.value
            )
            .values(status=target.value, responded_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await self.db.rollback()
            logger.warning(f"Invitation {invitation_id} was answered concurrently")
            raise InvalidStateError("Invitation already responded to")

    async def _notify(self, invitation: ProjectInvitation) -> None:
        if self.notifier is None:
            return

        project_name = invitation.project.name
        inviter_name = invitation.invited_by.full_name
        try:
            await self.notifier.send(
                invitation.invited_user.email,
                f"You have been invited to {project_name}",
                f"Hello {invitation.invited_user.full_name},\n\n"
                f"{inviter_name} invited you to join the project \"{project_name}\".\n"
                f"Sign in at {settings.app_url} to accept or reject the invitation.\n"
            )
        except Exception as e:
            logger.warning(f"Failed to send invitation {invitation.id} email: {e}")
