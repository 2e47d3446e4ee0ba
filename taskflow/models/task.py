from sqlalchemy import Column, String, Integer, Text, ForeignKey
from sqlalchemy.orm import relationship
from .base import BaseModel
from .enums import TaskStatus, TaskPriority


class Task(BaseModel):
    __tablename__ = "tasks"

    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String, nullable=False, default=TaskStatus.TODO.value)  # TODO, IN_PROGRESS, DONE, BLOCKED
    priority = Column(String, nullable=False, default=TaskPriority.MEDIUM.value)

    # Foreign keys
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    sprint_id = Column(Integer, ForeignKey("sprints.id"), nullable=True, index=True)
    assignee_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    reporter_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    # Relationships
    project = relationship("Project", back_populates="tasks", lazy="selectin")
    sprint = relationship("Sprint", back_populates="tasks", lazy="selectin")
    assignee = relationship("User", foreign_keys=[assignee_id], lazy="selectin")
    reporter = relationship("User", foreign_keys=[reporter_id], lazy="selectin")
    activities = relationship("TaskActivity", back_populates="task", cascade="all, delete-orphan")


class TaskActivity(BaseModel):
    """Append-only audit row for a task field transition."""
    __tablename__ = "task_activities"

    action = Column(String, nullable=False)  # TASK_CREATED, STATUS_CHANGE, ASSIGNEE_CHANGE
    old_value = Column(String, nullable=True)
    new_value = Column(String, nullable=True)

    # Foreign keys
    task_id = Column(Integer, ForeignKey("tasks.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    # Relationships
    task = relationship("Task", back_populates="activities")
    user = relationship("User", lazy="selectin")
