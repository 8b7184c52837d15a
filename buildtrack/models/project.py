"""SQLAlchemy models for construction projects and the tasks inside them."""

from __future__ import annotations

from sqlalchemy import Boolean, Column, Float, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from ..db.mixins import TimestampMixin
from ..db.session import Base


class Project(TimestampMixin, Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(Text, nullable=True)
    end_date = Column(Text, nullable=True)
    budget = Column(Float, nullable=True)
    status = Column(Text, nullable=False, default="PLANNED")
    owner_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    owner = relationship("User")
    tasks = relationship("Task", back_populates="project", cascade="all, delete-orphan")


class Task(TimestampMixin, Base):
    """A unit of work on a project, optionally assigned to a user."""

    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    assigned_user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    start_date = Column(Text, nullable=True)
    end_date = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default="TODO")
    priority = Column(Text, nullable=False, default="MEDIUM")
    milestone = Column(Boolean, nullable=False, default=False)

    project = relationship("Project", back_populates="tasks")
    assignee = relationship("User")


__all__ = ["Project", "Task"]
