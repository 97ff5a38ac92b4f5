"""
Momentum - Settings API
=======================

User preferences and the AI context summary that primes prompts.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

import structlog
from fastapi import APIRouter, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from momentum.api.deps import CurrentUser, DbSession
from momentum.api.projects import list_user_projects
from momentum.api.tasks import owned_tasks
from momentum.core.analytics import get_ai_user_context, render_context_summary
from momentum.core.models import AIContext, Note, UserSettings
from momentum.core.schemas import (
    AIContextResponse,
    AIContextUpdate,
    UserSettingsResponse,
    UserSettingsUpdate,
)

logger = structlog.get_logger()

router = APIRouter(tags=["Settings"])


# ==========================================================================
# Helper Functions
# ==========================================================================

async def get_user_settings(user_id: UUID, db: AsyncSession) -> Optional[UserSettings]:
    result = await db.execute(select(UserSettings).where(UserSettings.user_id == user_id))
    return result.scalar_one_or_none()


async def get_ai_context(user_id: UUID, db: AsyncSession) -> Optional[AIContext]:
    result = await db.execute(select(AIContext).where(AIContext.user_id == user_id))
    return result.scalar_one_or_none()


async def save_ai_context(user_id: UUID, summary: Optional[str], db: AsyncSession) -> AIContext:
    """Insert or replace the user's single AI context row."""
    context = await get_ai_context(user_id, db)
    if context is None:
        context = AIContext(user_id=user_id)
        db.add(context)

    context.context_summary = summary
    context.last_updated = datetime.now(timezone.utc)
    await db.commit()
    await db.refresh(context)
    return context


# ==========================================================================
# User Settings
# ==========================================================================

@router.get(
    "/settings",
    response_model=Optional[UserSettingsResponse],
    summary="Get settings",
    responses={
        200: {"description": "User settings, null when never saved"},
        401: {"description": "Not authenticated"},
    },
)
async def read_settings(
    current_user: CurrentUser,
    db: DbSession,
) -> Optional[UserSettingsResponse]:
    user_settings = await get_user_settings(current_user.id, db)
    if user_settings is None:
        return None
    return UserSettingsResponse.model_validate(user_settings)


@router.put(
    "/settings",
    response_model=UserSettingsResponse,
    summary="Save settings",
    responses={
        200: {"description": "Settings saved"},
        401: {"description": "Not authenticated"},
        422: {"description": "Validation error"},
    },
)
async def save_settings(
    data: UserSettingsUpdate,
    current_user: CurrentUser,
    db: DbSession,
) -> UserSettingsResponse:
    """Create the settings row on first save, replace it afterwards."""
    user_settings = await get_user_settings(current_user.id, db)
    if user_settings is None:
        user_settings = UserSettings(user_id=current_user.id)
        db.add(user_settings)

    user_settings.skills = [skill.model_dump(mode="json") for skill in data.skills]
    user_settings.time_estimates = data.time_estimates
    user_settings.workflow = data.workflow.model_dump(mode="json", by_alias=True)

    await db.commit()
    await db.refresh(user_settings)

    logger.info("user_settings_saved", user_id=str(current_user.id))
    return UserSettingsResponse.model_validate(user_settings)


# ==========================================================================
# AI Context
# ==========================================================================

@router.get(
    "/ai-context",
    response_model=Optional[AIContextResponse],
    summary="Get AI context",
    responses={
        200: {"description": "AI context, null when never saved"},
        401: {"description": "Not authenticated"},
    },
)
async def read_ai_context(
    current_user: CurrentUser,
    db: DbSession,
) -> Optional[AIContextResponse]:
    context = await get_ai_context(current_user.id, db)
    if context is None:
        return None
    return AIContextResponse.model_validate(context)


@router.put(
    "/ai-context",
    response_model=AIContextResponse,
    summary="Update AI context",
    responses={
        200: {"description": "AI context saved"},
        401: {"description": "Not authenticated"},
    },
)
async def update_ai_context(
    data: AIContextUpdate,
    current_user: CurrentUser,
    db: DbSession,
) -> AIContextResponse:
    context = await save_ai_context(current_user.id, data.context_summary, db)
    return AIContextResponse.model_validate(context)


@router.post(
    "/ai-context/refresh",
    response_model=AIContextResponse,
    status_code=status.HTTP_200_OK,
    summary="Rebuild AI context",
    responses={
        200: {"description": "Summary regenerated from current data"},
        401: {"description": "Not authenticated"},
    },
)
async def refresh_ai_context(
    current_user: CurrentUser,
    db: DbSession,
) -> AIContextResponse:
    """Summarize skills, work patterns, projects, tasks and notes as text."""
    user_settings = await get_user_settings(current_user.id, db)
    projects = await list_user_projects(current_user.id, db)
    tasks = list((await db.execute(owned_tasks(current_user.id))).scalars().all())
    notes = list(
        (await db.execute(select(Note).where(Note.user_id == current_user.id))).scalars().all()
    )

    summary = render_context_summary(get_ai_user_context(user_settings, tasks, projects, notes))
    context = await save_ai_context(current_user.id, summary, db)

    logger.info("ai_context_refreshed", user_id=str(current_user.id), length=len(summary))
    return AIContextResponse.model_validate(context)
