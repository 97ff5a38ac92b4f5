"""
Momentum - Database Models
==========================

SQLAlchemy models for all entities.
Projects, notes, settings and AI context belong to a user directly;
tasks belong to a user through their project.
"""

import enum
from datetime import date, datetime
from typing import Any, Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from momentum.core.database import Base


# ==========================================================================
# Enums
# ==========================================================================

class TaskStatus(str, enum.Enum):
    """Task lifecycle: pending -> in_progress -> completed / cancelled."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ProjectType(str, enum.Enum):
    """Kind of engagement a project represents."""
    RETAINER = "retainer"
    MVP = "mvp"
    LANDING_PAGE = "landing_page"
    WEBSITE = "website"
    CONTENT_CREATION = "content_creation"
    CONTENT_STRATEGY = "content_strategy"
    OTHER = "other"


class Complexity(str, enum.Enum):
    """Perceived project complexity."""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class Currency(str, enum.Enum):
    """Currencies a project budget can be expressed in."""
    USD = "USD"
    INR = "INR"
    GBP = "GBP"


class DocumentCategory(str, enum.Enum):
    """Category of an uploaded project document."""
    REQUIREMENTS = "requirements"
    DESIGN = "design"
    CONTRACTS = "contracts"
    MEETING_NOTES = "meeting_notes"
    SUPPORTING_MATERIALS = "supporting_materials"
    CUSTOM = "custom"


class AutoTagCategory(str, enum.Enum):
    """Tags the note tagger is allowed to assign."""
    TODO = "to-do"
    IDEA = "idea"
    MEETING_NOTES = "meeting-notes"
    REFERENCE = "reference"
    PRIORITY_CONTEXT = "priority-context"
    FEEDBACK = "feedback"
    RESEARCH = "research"


# Priority contribution (0-100) of each project type
PROJECT_TYPE_PRIORITIES: dict[str, int] = {
    ProjectType.RETAINER.value: 80,
    ProjectType.MVP.value: 90,
    ProjectType.WEBSITE.value: 70,
    ProjectType.LANDING_PAGE.value: 60,
    ProjectType.CONTENT_CREATION.value: 50,
    ProjectType.CONTENT_STRATEGY.value: 65,
    ProjectType.OTHER.value: 50,
}

# Priority contribution (0-100) of each complexity level
COMPLEXITY_VALUES: dict[str, int] = {
    Complexity.EASY.value: 30,
    Complexity.MEDIUM.value: 60,
    Complexity.HARD.value: 90,
}


# ==========================================================================
# Mixins
# ==========================================================================

class TimestampMixin:
    """Mixin that adds created_at and updated_at timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


# ==========================================================================
# Models
# ==========================================================================

class User(Base, TimestampMixin):
    """User account model."""

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )
    last_login: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Daily login streak
    streak_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    last_login_date: Mapped[Optional[date]] = mapped_column(
        Date,
        nullable=True,
    )

    # Relationships
    projects: Mapped[list["Project"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
    )
    notes: Mapped[list["Note"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<User {self.email}>"


class RefreshToken(Base, TimestampMixin):
    """Refresh token storage for JWT authentication."""

    __tablename__ = "refresh_tokens"

    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    token_hash: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    revoked: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<RefreshToken {self.id}>"


class Project(Base, TimestampMixin):
    """
    A client or personal project.

    `documentation` holds inline text docs ({title, content});
    `documents` holds metadata of uploaded files (see ProjectDocument schema).
    """

    __tablename__ = "projects"

    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Basic info
    name: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
    )
    client_name: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )
    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    # Timeline
    start_date: Mapped[Optional[date]] = mapped_column(
        Date,
        nullable=True,
    )
    end_date: Mapped[Optional[date]] = mapped_column(
        Date,
        nullable=True,
    )
    is_recurring: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    # Value
    budget: Mapped[Optional[float]] = mapped_column(
        Float,
        nullable=True,
    )
    currency: Mapped[Optional[Currency]] = mapped_column(
        Enum(Currency),
        nullable=True,
    )

    # Classification
    project_type: Mapped[Optional[ProjectType]] = mapped_column(
        Enum(ProjectType),
        nullable=True,
    )
    project_type_other: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )
    user_priority: Mapped[int] = mapped_column(
        Integer,
        default=3,
        nullable=False,
    )  # 1-5
    complexity: Mapped[Complexity] = mapped_column(
        Enum(Complexity),
        default=Complexity.MEDIUM,
        nullable=False,
    )
    priority_score: Mapped[float] = mapped_column(
        Float,
        default=0,
        nullable=False,
    )  # 0-100, computed

    # Attached material
    documentation: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON,
        default=list,
        nullable=False,
    )
    documents: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON,
        default=list,
        nullable=False,
    )

    # Relationships
    user: Mapped["User"] = relationship(back_populates="projects")
    tasks: Mapped[list["Task"]] = relationship(
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Project {self.name}>"


class Task(Base, TimestampMixin):
    """A unit of work inside a project."""

    __tablename__ = "tasks"

    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
    )
    project_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    estimated_time: Mapped[float] = mapped_column(
        Float,
        nullable=False,
    )  # hours
    due_date: Mapped[Optional[date]] = mapped_column(
        Date,
        nullable=True,
    )
    status: Mapped[TaskStatus] = mapped_column(
        Enum(TaskStatus),
        default=TaskStatus.PENDING,
        nullable=False,
        index=True,
    )
    priority_score: Mapped[float] = mapped_column(
        Float,
        default=0,
        nullable=False,
    )
    stage: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )

    # Time tracking
    actual_time: Mapped[Optional[float]] = mapped_column(
        Float,
        nullable=True,
    )  # hours
    started_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    project: Mapped["Project"] = relationship(back_populates="tasks")

    def __repr__(self) -> str:
        return f"<Task {self.description[:30]}>"


class Note(Base, TimestampMixin):
    """Free-form note, optionally attached to a project."""

    __tablename__ = "notes"

    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    project_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    title: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )
    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    tags: Mapped[list[str]] = mapped_column(
        JSON,
        default=list,
        nullable=False,
    )

    user: Mapped["User"] = relationship(back_populates="notes")
    embedding: Mapped[Optional["NoteEmbedding"]] = relationship(
        back_populates="note",
        cascade="all, delete-orphan",
        passive_deletes=True,
        uselist=False,
    )

    def __repr__(self) -> str:
        return f"<Note {self.id}>"


class NoteEmbedding(Base, TimestampMixin):
    """Embedding vector of a note's content, one row per note."""

    __tablename__ = "notes_embeddings"

    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
    )
    note_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("notes.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    embedding: Mapped[list[float]] = mapped_column(
        JSON,
        nullable=False,
    )

    note: Mapped["Note"] = relationship(back_populates="embedding")


class UserSettings(Base, TimestampMixin):
    """
    Per-user preferences.

    `workflow` keeps the client's camelCase keys:
    displayName, maxDailyHours, workDays, goals, stages, preferredCurrency.
    """

    __tablename__ = "user_settings"

    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    skills: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON,
        default=list,
        nullable=False,
    )
    time_estimates: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        default=dict,
        nullable=False,
    )
    workflow: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        default=dict,
        nullable=False,
    )


class AIContext(Base):
    """Summarized snapshot of a user used to prime LLM prompts."""

    __tablename__ = "ai_context"

    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    context_summary: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
