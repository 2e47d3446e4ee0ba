from sqlalchemy import Column, String, Boolean, ForeignKey, Text, Integer, Date, DateTime
from sqlalchemy.orm import relationship
from .base import Base, BaseModel, utcnow
from .enums import RoleType, ProjectStatus


class User(BaseModel):
    __tablename__ = "users"

    email = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=False)
    role_type = Column(String, nullable=False, default=RoleType.EMPLOYEE.value)  # FOUNDER, EMPLOYEE
    enabled = Column(Boolean, default=False)

    # Relationships
    founded_projects = relationship("Project", back_populates="founder")
    project_memberships = relationship("ProjectMember", back_populates="user")


class Project(BaseModel):
    __tablename__ = "projects"

    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    priority = Column(String, nullable=True)
    status = Column(String, nullable=False, default=ProjectStatus.PLANNED.value)  # PLANNED, ACTIVE, COMPLETED
    start_date = Column(Date, nullable=True)

    founder_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    # Relationships
    founder = relationship("User", back_populates="founded_projects", lazy="selectin")
    members = relationship("ProjectMember", back_populates="project", cascade="all, delete-orphan")
    sprints = relationship("Sprint", back_populates="project", cascade="all, delete-orphan")
    tasks = relationship("Task", back_populates="project", cascade="all, delete-orphan")


class ProjectMember(Base):
    __tablename__ = "project_members"

    user_id = Column(Integer, ForeignKey("users.id"), primary_key=True)
    project_id = Column(Integer, ForeignKey("projects.id"), primary_key=True)
    role_in_project = Column(String, nullable=False, default="MEMBER")
    created_at = Column(DateTime(timezone=True), default=utcnow)

    # Relationships
    user = relationship("User", back_populates="project_memberships", lazy="selectin")
    project = relationship("Project", back_populates="members")
