"""
Momentum - Projects API
=======================

Project CRUD. Priority scores are recomputed on every write.
"""

from uuid import UUID

import structlog
from fastapi import APIRouter, HTTPException, status
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from momentum.api.deps import CurrentUser, DbSession
from momentum.core.models import Note, NoteEmbedding, Project, Task
from momentum.core.priority import calculate_priority_score
from momentum.core.schemas import (
    MessageResponse,
    ProjectCreate,
    ProjectResponse,
    ProjectUpdate,
    TaskResponse,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/projects", tags=["Projects"])


# ==========================================================================
# Helper Functions
# ==========================================================================

async def get_project_or_404(
    project_id: UUID,
    current_user_id: UUID,
    db: AsyncSession,
) -> Project:
    """Get project by ID or raise 404."""
    result = await db.execute(
        select(Project).where(
            Project.id == project_id,
            Project.user_id == current_user_id,
        )
    )
    project = result.scalar_one_or_none()

    if not project:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Project not found",
        )

    return project


async def list_user_projects(user_id: UUID, db: AsyncSession) -> list[Project]:
    result = await db.execute(
        select(Project)
        .where(Project.user_id == user_id)
        .order_by(Project.created_at.desc())
    )
    return list(result.scalars().all())


# ==========================================================================
# Project CRUD
# ==========================================================================

@router.get(
    "",
    response_model=list[ProjectResponse],
    summary="List projects",
    responses={
        200: {"description": "Projects, newest first"},
        401: {"description": "Not authenticated"},
    },
)
async def list_projects(
    current_user: CurrentUser,
    db: DbSession,
) -> list[ProjectResponse]:
    projects = await list_user_projects(current_user.id, db)
    return [ProjectResponse.model_validate(p) for p in projects]


@router.get(
    "/{project_id}",
    response_model=ProjectResponse,
    summary="Get project",
    responses={
        200: {"description": "Project details"},
        401: {"description": "Not authenticated"},
        404: {"description": "Project not found"},
    },
)
async def get_project(
    project_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> ProjectResponse:
    project = await get_project_or_404(project_id, current_user.id, db)
    return ProjectResponse.model_validate(project)


@router.get(
    "/{project_id}/tasks",
    response_model=list[TaskResponse],
    summary="List project tasks",
    responses={
        200: {"description": "Tasks by due date, undated last"},
        401: {"description": "Not authenticated"},
        404: {"description": "Project not found"},
    },
)
async def list_project_tasks(
    project_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> list[TaskResponse]:
    project = await get_project_or_404(project_id, current_user.id, db)

    result = await db.execute(
        select(Task)
        .where(Task.project_id == project.id)
        .order_by(Task.due_date.asc().nulls_last(), Task.created_at.asc())
    )
    return [TaskResponse.model_validate(t) for t in result.scalars().all()]


@router.post(
    "",
    response_model=ProjectResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create project",
    responses={
        201: {"description": "Project created"},
        401: {"description": "Not authenticated"},
        422: {"description": "Validation error"},
    },
)
async def create_project(
    data: ProjectCreate,
    current_user: CurrentUser,
    db: DbSession,
) -> ProjectResponse:
    """Create a project with its priority score computed from the fields."""
    project = Project(
        user_id=current_user.id,
        **data.model_dump(exclude={"documentation"}),
        documentation=[entry.model_dump() for entry in data.documentation],
        documents=[],
        priority_score=calculate_priority_score(data),
    )

    db.add(project)
    await db.commit()
    await db.refresh(project)

    logger.info("project_created", project_id=str(project.id), priority=project.priority_score)
    return ProjectResponse.model_validate(project)


@router.patch(
    "/{project_id}",
    response_model=ProjectResponse,
    summary="Update project",
    responses={
        200: {"description": "Project updated"},
        401: {"description": "Not authenticated"},
        404: {"description": "Project not found"},
    },
)
async def update_project(
    project_id: UUID,
    data: ProjectUpdate,
    current_user: CurrentUser,
    db: DbSession,
) -> ProjectResponse:
    """Partial update; the priority score is recomputed from the merged fields."""
    project = await get_project_or_404(project_id, current_user.id, db)

    update_data = data.model_dump(exclude_unset=True)
    if "documentation" in update_data:
        update_data["documentation"] = [
            entry.model_dump() for entry in data.documentation or []
        ]

    for field, value in update_data.items():
        setattr(project, field, value)

    project.priority_score = calculate_priority_score(project)

    await db.commit()
    await db.refresh(project)

    return ProjectResponse.model_validate(project)


@router.delete(
    "/{project_id}",
    response_model=MessageResponse,
    summary="Delete project",
    responses={
        200: {"description": "Project deleted"},
        401: {"description": "Not authenticated"},
        404: {"description": "Project not found"},
    },
)
async def delete_project(
    project_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> MessageResponse:
    """Delete a project together with its tasks and notes."""
    project = await get_project_or_404(project_id, current_user.id, db)

    note_ids = select(Note.id).where(Note.project_id == project.id)
    await db.execute(delete(NoteEmbedding).where(NoteEmbedding.note_id.in_(note_ids)))
    await db.execute(delete(Note).where(Note.project_id == project.id))
    await db.execute(delete(Task).where(Task.project_id == project.id))
    await db.delete(project)
    await db.commit()

    logger.info("project_deleted", project_id=str(project_id))
    return MessageResponse(message="Project deleted successfully", success=True)
