from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Index, text
from sqlalchemy.orm import relationship
from .base import BaseModel
from .enums import InvitationStatus


class ProjectInvitation(BaseModel):
    __tablename__ = "project_invitations"
    __table_args__ = (
        # At most one PENDING invitation per (project, invited user)
        Index(
            "uq_project_invitations_pending",
            "project_id",
            "invited_user_id",
            unique=True,
            postgresql_where=text("status = 'PENDING'"),
            sqlite_where=text("status = 'PENDING'"),
        ),
    )

    status = Column(String, nullable=False, default=InvitationStatus.PENDING.value)  # PENDING, ACCEPTED, REJECTED
    responded_at = Column(DateTime(timezone=True), nullable=True)

    # Foreign keys
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    invited_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    invited_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    # Relationships
    project = relationship("Project", lazy="selectin")
    invited_user = relationship("User", foreign_keys=[invited_user_id], lazy="selectin")
    invited_by = relationship("User", foreign_keys=[invited_by_id], lazy="selectin")
