"""
Momentum - AI API
=================

LLM-backed helpers: task generation and breakdown, daily sequencing,
completion learning and the assistant chat.

Generation endpoints return drafts; saving them goes through
POST /tasks/batch.
"""

from uuid import UUID

import structlog
from fastapi import APIRouter
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from momentum.api.deps import CurrentUser, DbSession, OpenAI, openai_http_error
from momentum.api.projects import get_project_or_404, list_user_projects
from momentum.api.settings import get_user_settings
from momentum.api.tasks import get_task_or_404, get_tasks_or_404, owned_tasks
from momentum.core.ai.assistant import chat
from momentum.core.ai.openai_client import OpenAIError
from momentum.core.ai.task_generation import breakdown_task, gather_context, generate_tasks
from momentum.core.ai.task_sequence import generate_daily_sequence, learn_from_completion
from momentum.core.models import Note, Project, Task, TaskStatus
from momentum.core.schemas import (
    BreakdownTaskRequest,
    ChatRequest,
    ChatResponse,
    DailySequenceRequest,
    DailySequenceResponse,
    GenerateTasksRequest,
    GenerateTasksResponse,
    LearnFromCompletionRequest,
    TaskResponse,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/ai", tags=["AI"])


async def projects_by_id(user_id: UUID, db: AsyncSession) -> dict[UUID, Project]:
    return {project.id: project for project in await list_user_projects(user_id, db)}


# ==========================================================================
# Task Generation
# ==========================================================================

@router.post(
    "/generate-tasks",
    response_model=GenerateTasksResponse,
    summary="Generate task drafts",
    responses={
        200: {"description": "Drafts; `fallback` is set when templates were used"},
        401: {"description": "Not authenticated"},
        404: {"description": "Project not found"},
        503: {"description": "OpenAI not configured"},
    },
)
async def generate_task_drafts(
    data: GenerateTasksRequest,
    current_user: CurrentUser,
    db: DbSession,
    client: OpenAI,
) -> GenerateTasksResponse:
    """
    Propose tasks for a project, or balanced across all projects.

    Prompts draw on recent notes, project documentation and the user's
    goals, skills and workflow stages.
    """
    project = None
    if data.project_id is not None:
        project = await get_project_or_404(data.project_id, current_user.id, db)

    user_settings = await get_user_settings(current_user.id, db)
    ctx = await gather_context(db, current_user.id, project=project, user_settings=user_settings)

    try:
        drafts, fallback = await generate_tasks(
            client,
            ctx,
            extra_context=data.context,
            num_tasks=data.num_tasks,
            timespan=data.timespan,
            unit=data.timespan_unit,
            value=data.timespan_value,
        )
    except OpenAIError as e:
        raise openai_http_error(e) from e

    return GenerateTasksResponse(tasks=drafts, fallback=fallback)


@router.post(
    "/breakdown",
    response_model=GenerateTasksResponse,
    summary="Break a task into subtasks",
    responses={
        200: {"description": "Subtask drafts"},
        401: {"description": "Not authenticated"},
        404: {"description": "Task not found"},
        503: {"description": "OpenAI not configured"},
    },
)
async def break_down_task(
    data: BreakdownTaskRequest,
    current_user: CurrentUser,
    db: DbSession,
    client: OpenAI,
) -> GenerateTasksResponse:
    task = await get_task_or_404(data.task_id, current_user.id, db)

    try:
        drafts, fallback = await breakdown_task(client, task)
    except OpenAIError as e:
        raise openai_http_error(e) from e

    return GenerateTasksResponse(tasks=drafts, fallback=fallback)


# ==========================================================================
# Sequencing / Learning
# ==========================================================================

@router.post(
    "/daily-sequence",
    response_model=DailySequenceResponse,
    summary="Order tasks for today",
    responses={
        200: {"description": "Tasks in suggested order"},
        401: {"description": "Not authenticated"},
        404: {"description": "Task not found"},
        503: {"description": "OpenAI not configured"},
    },
)
async def daily_sequence(
    data: DailySequenceRequest,
    current_user: CurrentUser,
    db: DbSession,
    client: OpenAI,
) -> DailySequenceResponse:
    """Sequence the given tasks, or every pending and in-progress task."""
    if data.task_ids is not None:
        tasks = await get_tasks_or_404(list(dict.fromkeys(data.task_ids)), current_user.id, db)
    else:
        result = await db.execute(
            owned_tasks(current_user.id)
            .where(Task.status.in_([TaskStatus.PENDING, TaskStatus.IN_PROGRESS]))
            .order_by(Task.created_at.asc())
        )
        tasks = list(result.scalars().all())

    projects = await projects_by_id(current_user.id, db)
    user_settings = await get_user_settings(current_user.id, db)

    try:
        ordered, fallback = await generate_daily_sequence(client, tasks, projects, user_settings)
    except OpenAIError as e:
        raise openai_http_error(e) from e

    return DailySequenceResponse(
        tasks=[TaskResponse.model_validate(task) for task in ordered],
        fallback=fallback,
    )


@router.post(
    "/learn",
    response_model=TaskResponse,
    summary="Record actual time for learning",
    responses={
        200: {"description": "Task with its recorded time"},
        401: {"description": "Not authenticated"},
        404: {"description": "Task not found"},
    },
)
async def learn(
    data: LearnFromCompletionRequest,
    current_user: CurrentUser,
    db: DbSession,
) -> TaskResponse:
    task = await get_task_or_404(data.task_id, current_user.id, db)

    await learn_from_completion(db, task, data.actual_time)
    await db.refresh(task)

    return TaskResponse.model_validate(task)


# ==========================================================================
# Assistant
# ==========================================================================

@router.post(
    "/chat",
    response_model=ChatResponse,
    summary="Ask the assistant",
    responses={
        200: {"description": "Assistant reply; `failed` is set on upstream errors"},
        401: {"description": "Not authenticated"},
        503: {"description": "OpenAI not configured"},
    },
)
async def assistant_chat(
    data: ChatRequest,
    current_user: CurrentUser,
    db: DbSession,
    client: OpenAI,
) -> ChatResponse:
    """Answer a message; `@Name` mentions pull projects and notes into context."""
    projects = await list_user_projects(current_user.id, db)
    notes = list(
        (await db.execute(select(Note).where(Note.user_id == current_user.id))).scalars().all()
    )

    try:
        result = await chat(
            client,
            data.message,
            [turn.model_dump() for turn in data.history],
            projects,
            notes,
        )
    except OpenAIError as e:
        raise openai_http_error(e) from e

    return ChatResponse(
        reply=result.reply,
        mentioned_projects=[project.id for project in result.mentions.projects],
        mentioned_notes=[note.id for note in result.mentions.notes],
        failed=result.failed,
    )
