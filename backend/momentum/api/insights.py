"""
Momentum - Insights API
=======================

Productivity analytics over the current user's tasks and projects.
"""

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter
from sqlalchemy import select

from momentum.api.deps import CurrentUser, DbSession
from momentum.api.projects import list_user_projects
from momentum.api.settings import get_user_settings
from momentum.api.tasks import owned_tasks
from momentum.core.analytics import build_insights, get_ai_user_context
from momentum.core.models import Note
from momentum.core.schemas import InsightsReport

router = APIRouter(prefix="/insights", tags=["Insights"])


@router.get(
    "",
    response_model=InsightsReport,
    summary="Insights report",
    responses={
        200: {"description": "Estimation accuracy, efficiency and productivity"},
        401: {"description": "Not authenticated"},
    },
)
async def get_insights(
    current_user: CurrentUser,
    db: DbSession,
) -> InsightsReport:
    """
    Full insights report.

    Sections that need more history come back empty (or null) rather
    than failing; `has_enough_data` tells the client whether to show
    them at all.
    """
    projects = await list_user_projects(current_user.id, db)
    tasks = list((await db.execute(owned_tasks(current_user.id))).scalars().all())

    bundle = build_insights(tasks, {project.id: project for project in projects})
    return InsightsReport.model_validate(asdict(bundle))


@router.get(
    "/context",
    response_model=dict[str, Any],
    summary="AI user context",
    responses={
        200: {"description": "Structured summary used to prime the assistant"},
        401: {"description": "Not authenticated"},
    },
)
async def get_insights_context(
    current_user: CurrentUser,
    db: DbSession,
) -> dict[str, Any]:
    user_settings = await get_user_settings(current_user.id, db)
    projects = await list_user_projects(current_user.id, db)
    tasks = list((await db.execute(owned_tasks(current_user.id))).scalars().all())
    notes = list(
        (await db.execute(select(Note).where(Note.user_id == current_user.id))).scalars().all()
    )

    return get_ai_user_context(user_settings, tasks, projects, notes)
