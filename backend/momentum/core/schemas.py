"""
Momentum - Pydantic Schemas
===========================

Request and response schemas for API validation.
"""

from datetime import date, datetime
from typing import Any, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from momentum.core.models import (
    AutoTagCategory,
    Complexity,
    Currency,
    DocumentCategory,
    ProjectType,
    TaskStatus,
)


# ==========================================================================
# Base Schemas
# ==========================================================================

class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class TimestampSchema(BaseSchema):
    """Schema with timestamp fields."""

    created_at: datetime
    updated_at: datetime


def reject_null(v: Any) -> Any:
    """Partial updates may omit a required field but not clear it."""
    if v is None:
        raise ValueError("Field cannot be null")
    return v


# ==========================================================================
# Auth Schemas
# ==========================================================================

class UserCreate(BaseSchema):
    """Schema for user registration."""

    email: EmailStr
    password: str = Field(min_length=8, max_length=100)
    name: str = Field(min_length=1, max_length=255)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        """Validate password strength."""
        if not any(c.isupper() for c in v):
            raise ValueError("Password must contain at least one uppercase letter")
        if not any(c.islower() for c in v):
            raise ValueError("Password must contain at least one lowercase letter")
        if not any(c.isdigit() for c in v):
            raise ValueError("Password must contain at least one digit")
        return v


class UserLogin(BaseSchema):
    """Schema for user login."""

    email: EmailStr
    password: str


class UserResponse(TimestampSchema):
    """Schema for user in responses (no password)."""

    id: UUID
    email: EmailStr
    name: str
    is_active: bool
    last_login: Optional[datetime] = None
    streak_count: int = 0


class UserUpdate(BaseSchema):
    """Schema for updating user profile."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None


class TokenResponse(BaseSchema):
    """Schema for authentication tokens."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds until access token expires


class RefreshTokenRequest(BaseSchema):
    """Schema for token refresh."""

    refresh_token: str


class StreakResponse(BaseSchema):
    """Daily login streak."""

    streak_count: int
    last_login_date: Optional[date] = None


# ==========================================================================
# Document Schemas
# ==========================================================================

class DocumentationEntry(BaseSchema):
    """Inline text documentation attached to a project."""

    title: str = Field(min_length=1, max_length=255)
    content: str = ""


class ProjectDocument(BaseSchema):
    """Uploaded file metadata, stored inside Project.documents."""

    id: str
    title: str
    description: Optional[str] = None
    file_name: str
    file_url: str
    file_type: str
    file_size: int
    category: DocumentCategory
    custom_category: Optional[str] = None
    uploaded_at: datetime
    version: int = 1
    tags: list[str] = Field(default_factory=list)


class DocumentUpdate(BaseSchema):
    """Schema for updating document metadata."""

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[DocumentCategory] = None
    custom_category: Optional[str] = Field(None, max_length=255)
    tags: Optional[list[str]] = None


class DocumentInsights(BaseSchema):
    """Analysis payload of a single document."""

    key_topics: list[str] = Field(default_factory=list)
    suggested_tags: list[str] = Field(default_factory=list)
    sentiment: str = "neutral"
    related_documents: list[ProjectDocument] = Field(default_factory=list)


class DocumentAnalysis(BaseSchema):
    """Response of the document analysis endpoint."""

    document_id: str
    title: str
    category: DocumentCategory
    insights: DocumentInsights


# ==========================================================================
# Project Schemas
# ==========================================================================

class ProjectCreate(BaseSchema):
    """Schema for creating a project."""

    name: str = Field(min_length=1, max_length=500)
    client_name: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_recurring: bool = False
    budget: Optional[float] = Field(None, ge=0)
    currency: Optional[Currency] = None
    project_type: Optional[ProjectType] = None
    project_type_other: Optional[str] = Field(None, max_length=255)
    user_priority: int = Field(3, ge=1, le=5)
    complexity: Complexity = Complexity.MEDIUM
    documentation: list[DocumentationEntry] = Field(default_factory=list)


class ProjectUpdate(BaseSchema):
    """Schema for updating a project."""

    name: Optional[str] = Field(None, min_length=1, max_length=500)
    client_name: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_recurring: Optional[bool] = None
    budget: Optional[float] = Field(None, ge=0)
    currency: Optional[Currency] = None
    project_type: Optional[ProjectType] = None
    project_type_other: Optional[str] = Field(None, max_length=255)
    user_priority: Optional[int] = Field(None, ge=1, le=5)
    complexity: Optional[Complexity] = None
    documentation: Optional[list[DocumentationEntry]] = None

    @field_validator("name", "is_recurring", "user_priority", "complexity")
    @classmethod
    def not_null(cls, v: Any) -> Any:
        return reject_null(v)


class ProjectResponse(TimestampSchema):
    """Schema for project in responses."""

    id: UUID
    user_id: UUID
    name: str
    client_name: Optional[str]
    description: Optional[str]
    start_date: Optional[date]
    end_date: Optional[date]
    is_recurring: bool
    budget: Optional[float]
    currency: Optional[Currency]
    project_type: Optional[ProjectType]
    project_type_other: Optional[str]
    user_priority: int
    complexity: Complexity
    priority_score: float
    documentation: list[DocumentationEntry]
    documents: list[ProjectDocument]


# ==========================================================================
# Task Schemas
# ==========================================================================

class TaskCreate(BaseSchema):
    """Schema for creating a task."""

    project_id: UUID
    description: str = Field(min_length=1)
    estimated_time: float = Field(gt=0)
    due_date: Optional[date] = None
    status: TaskStatus = TaskStatus.PENDING
    priority_score: float = Field(0, ge=0)
    stage: Optional[str] = Field(None, max_length=255)


class TaskUpdate(BaseSchema):
    """Schema for updating a task."""

    project_id: Optional[UUID] = None
    description: Optional[str] = Field(None, min_length=1)
    estimated_time: Optional[float] = Field(None, gt=0)
    due_date: Optional[date] = None
    status: Optional[TaskStatus] = None
    priority_score: Optional[float] = Field(None, ge=0)
    stage: Optional[str] = Field(None, max_length=255)
    actual_time: Optional[float] = Field(None, gt=0)

    @field_validator("project_id", "description", "estimated_time", "priority_score")
    @classmethod
    def not_null(cls, v: Any) -> Any:
        return reject_null(v)


class TaskResponse(TimestampSchema):
    """Schema for task in responses."""

    id: UUID
    project_id: UUID
    description: str
    estimated_time: float
    due_date: Optional[date]
    status: TaskStatus
    priority_score: float
    stage: Optional[str]
    actual_time: Optional[float]
    started_at: Optional[datetime]
    completed_at: Optional[datetime]


class TaskStatusUpdate(BaseSchema):
    """Schema for changing task status."""

    status: TaskStatus


class TaskActualTimeUpdate(BaseSchema):
    """Schema for recording time spent on a task."""

    actual_time: float = Field(gt=0)


class TaskBatchCreate(BaseSchema):
    """Schema for saving several tasks at once."""

    tasks: list[TaskCreate] = Field(min_length=1)


class TaskBatchDelete(BaseSchema):
    """Schema for deleting several tasks at once."""

    task_ids: list[UUID] = Field(min_length=1)


class TaskAggregate(BaseSchema):
    """
    Merge several tasks into one.

    Fields left unset are derived from the selected tasks.
    """

    task_ids: list[UUID] = Field(min_length=2)
    description: Optional[str] = Field(None, min_length=1)
    estimated_time: Optional[float] = Field(None, gt=0)
    due_date: Optional[date] = None
    project_id: Optional[UUID] = None
    stage: Optional[str] = Field(None, max_length=255)
    priority_score: Optional[float] = Field(None, ge=0)

    @field_validator("task_ids")
    @classmethod
    def validate_unique(cls, v: list[UUID]) -> list[UUID]:
        if len(set(v)) != len(v):
            raise ValueError("Task ids must be unique")
        return v


class TaskDraft(BaseSchema):
    """Unsaved task proposed by the assistant."""

    description: str
    estimated_time: float
    priority: int = 5
    due_date: Optional[date] = None
    stage: Optional[str] = None
    project_id: Optional[UUID] = None


# ==========================================================================
# Note Schemas
# ==========================================================================

class NoteCreate(BaseSchema):
    """Schema for creating a note."""

    project_id: Optional[UUID] = None
    title: Optional[str] = Field(None, max_length=255)
    content: str = Field(min_length=1)
    tags: list[AutoTagCategory] = Field(default_factory=list)


class NoteUpdate(BaseSchema):
    """Schema for updating a note."""

    project_id: Optional[UUID] = None
    title: Optional[str] = Field(None, max_length=255)
    content: Optional[str] = Field(None, min_length=1)
    tags: Optional[list[AutoTagCategory]] = None

    @field_validator("content")
    @classmethod
    def not_null(cls, v: Any) -> Any:
        return reject_null(v)


class NoteResponse(TimestampSchema):
    """Schema for note in responses."""

    id: UUID
    user_id: UUID
    project_id: Optional[UUID]
    title: Optional[str]
    content: str
    tags: list[str]


class NoteTags(BaseSchema):
    """Tags suggested for a note."""

    tags: list[AutoTagCategory] = Field(default_factory=list)
    confidence: float = Field(0, ge=0, le=1)


class TagRelevance(BaseSchema):
    """How well one tag fits a note."""

    tag: AutoTagCategory
    relevance: float = Field(ge=0, le=1)


# ==========================================================================
# Settings Schemas
# ==========================================================================

class Skill(BaseSchema):
    """A skill with self-assessed proficiency."""

    name: str = Field(min_length=1, max_length=255)
    proficiency: int = Field(3, ge=1, le=5)


class Goal(BaseSchema):
    """A personal goal."""

    description: str = Field(min_length=1)
    timeframe: Literal["short-term", "long-term"] = "short-term"


class WorkflowStage(BaseSchema):
    """A user-defined task stage."""

    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None


class WorkflowSettings(BaseSchema):
    """Workflow preferences. Serialized with camelCase keys."""

    display_name: Optional[str] = Field(None, alias="displayName")
    max_daily_hours: Optional[float] = Field(None, gt=0, le=24, alias="maxDailyHours")
    work_days: list[int] = Field(default_factory=list, alias="workDays")  # 0 = Sunday
    goals: list[Goal] = Field(default_factory=list)
    stages: list[WorkflowStage] = Field(default_factory=list)
    preferred_currency: Optional[Currency] = Field(None, alias="preferredCurrency")

    @field_validator("work_days")
    @classmethod
    def validate_work_days(cls, v: list[int]) -> list[int]:
        if any(day < 0 or day > 6 for day in v):
            raise ValueError("Work days must be between 0 (Sunday) and 6 (Saturday)")
        return sorted(set(v))


class UserSettingsUpdate(BaseSchema):
    """Schema for upserting user settings."""

    skills: list[Skill] = Field(default_factory=list)
    time_estimates: dict[str, Any] = Field(default_factory=dict)
    workflow: WorkflowSettings = Field(default_factory=WorkflowSettings)


class UserSettingsResponse(TimestampSchema):
    """Schema for user settings in responses."""

    id: UUID
    user_id: UUID
    skills: list[Skill]
    time_estimates: dict[str, Any]
    workflow: WorkflowSettings


class AIContextUpdate(BaseSchema):
    """Schema for replacing the AI context summary."""

    context_summary: Optional[str] = None


class AIContextResponse(BaseSchema):
    """Schema for AI context in responses."""

    id: UUID
    user_id: UUID
    context_summary: Optional[str]
    last_updated: datetime


# ==========================================================================
# Insight Schemas
# ==========================================================================

class TimeEstimateAccuracyResponse(BaseSchema):
    project_type: str
    accuracy: float
    avg_estimated: float
    avg_actual: float
    task_count: int


class ProjectTypeEfficiencyResponse(BaseSchema):
    project_type: str
    task_count: int
    completed_count: int
    completion_rate: float
    avg_time_ratio: float


class DayProductivityResponse(BaseSchema):
    day: str
    task_count: int
    completed_count: int
    avg_time: float


class UserInsightsResponse(BaseSchema):
    completion_rate: float
    avg_time_ratio: float
    avg_accuracy: float
    most_productive_day: Optional[str]
    most_efficient_project_type: Optional[str]
    project_balance_score: float
    total_completed: int
    total_time_tracked: float


class InsightsReport(BaseSchema):
    """Everything the insights dashboard shows."""

    has_enough_data: bool
    user_insights: Optional[UserInsightsResponse] = None
    time_estimate_accuracy: list[TimeEstimateAccuracyResponse]
    estimation_style: str
    project_type_efficiency: list[ProjectTypeEfficiencyResponse]
    productivity_by_day: list[DayProductivityResponse]


# ==========================================================================
# AI Schemas
# ==========================================================================

class GenerateTasksRequest(BaseSchema):
    """Schema for generating task drafts."""

    project_id: Optional[UUID] = None
    context: str = ""
    num_tasks: int = Field(5, ge=1, le=20)
    timespan: Optional[str] = Field(None, max_length=100)
    timespan_unit: Literal["day", "week", "month"] = "week"
    timespan_value: int = Field(1, ge=1, le=52)


class GenerateTasksResponse(BaseSchema):
    tasks: list[TaskDraft]
    fallback: bool = False


class BreakdownTaskRequest(BaseSchema):
    task_id: UUID


class DailySequenceRequest(BaseSchema):
    """Tasks to order for today. Defaults to all open tasks."""

    task_ids: Optional[list[UUID]] = None


class DailySequenceResponse(BaseSchema):
    tasks: list[TaskResponse]
    fallback: bool = False


class LearnFromCompletionRequest(BaseSchema):
    task_id: UUID
    actual_time: float = Field(gt=0)


class ChatTurn(BaseSchema):
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseSchema):
    message: str = Field(min_length=1)
    history: list[ChatTurn] = Field(default_factory=list)


class ChatResponse(BaseSchema):
    reply: str
    mentioned_projects: list[UUID] = Field(default_factory=list)
    mentioned_notes: list[UUID] = Field(default_factory=list)
    failed: bool = False


# ==========================================================================
# Common Response Schemas
# ==========================================================================

class MessageResponse(BaseSchema):
    """Generic message response."""

    message: str
    success: bool = True


class ErrorResponse(BaseSchema):
    """Error response schema."""

    error: str
    detail: Optional[str] = None
    code: Optional[str] = None


class HealthResponse(BaseSchema):
    """Health check response."""

    status: str
    version: str
    environment: str
    database: str
    openai: str
