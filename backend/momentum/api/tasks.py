"""
Momentum - Tasks API
====================

Task CRUD, status transitions, time tracking, batch operations and
aggregation of several tasks into one.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

import structlog
from fastapi import APIRouter, HTTPException, Query, status
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from momentum.api.deps import CurrentUser, DbSession
from momentum.api.projects import get_project_or_404
from momentum.core.models import Project, Task, TaskStatus
from momentum.core.schemas import (
    MessageResponse,
    TaskActualTimeUpdate,
    TaskAggregate,
    TaskBatchCreate,
    TaskBatchDelete,
    TaskCreate,
    TaskResponse,
    TaskStatusUpdate,
    TaskUpdate,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/tasks", tags=["Tasks"])


# ==========================================================================
# Helper Functions
# ==========================================================================

def owned_tasks(user_id: UUID):
    """Select tasks whose project belongs to the user."""
    return select(Task).join(Project, Project.id == Task.project_id).where(Project.user_id == user_id)


async def get_task_or_404(
    task_id: UUID,
    current_user_id: UUID,
    db: AsyncSession,
) -> Task:
    """Get task by ID or raise 404."""
    result = await db.execute(owned_tasks(current_user_id).where(Task.id == task_id))
    task = result.scalar_one_or_none()

    if not task:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found",
        )

    return task


async def get_tasks_or_404(
    task_ids: list[UUID],
    current_user_id: UUID,
    db: AsyncSession,
) -> list[Task]:
    """All requested tasks, in request order; 404 if any is missing."""
    result = await db.execute(owned_tasks(current_user_id).where(Task.id.in_(task_ids)))
    found = {task.id: task for task in result.scalars().all()}

    missing = [str(task_id) for task_id in task_ids if task_id not in found]
    if missing:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Tasks not found: {', '.join(missing)}",
        )

    return [found[task_id] for task_id in task_ids]


def apply_status(task: Task, new_status: TaskStatus, now: Optional[datetime] = None) -> None:
    """Set status, stamping start/completion times the first time they apply."""
    now = now or datetime.now(timezone.utc)
    task.status = new_status
    if new_status == TaskStatus.IN_PROGRESS and task.started_at is None:
        task.started_at = now
    elif new_status == TaskStatus.COMPLETED and task.completed_at is None:
        task.completed_at = now


def build_task(data: TaskCreate) -> Task:
    task = Task(**data.model_dump(exclude={"status"}))
    apply_status(task, data.status)
    return task


# ==========================================================================
# Task CRUD
# ==========================================================================

@router.get(
    "",
    response_model=list[TaskResponse],
    summary="List tasks",
    responses={
        200: {"description": "Tasks, highest priority first"},
        401: {"description": "Not authenticated"},
    },
)
async def list_tasks(
    current_user: CurrentUser,
    db: DbSession,
    project_id: Optional[UUID] = Query(None, description="Filter by project"),
    status_filter: Optional[TaskStatus] = Query(
        None, alias="status", description="Filter by status"
    ),
) -> list[TaskResponse]:
    query = owned_tasks(current_user.id)
    if project_id:
        query = query.where(Task.project_id == project_id)
    if status_filter:
        query = query.where(Task.status == status_filter)
    query = query.order_by(Task.priority_score.desc(), Task.created_at.desc())

    result = await db.execute(query)
    return [TaskResponse.model_validate(t) for t in result.scalars().all()]


@router.get(
    "/{task_id}",
    response_model=TaskResponse,
    summary="Get task",
    responses={
        200: {"description": "Task details"},
        401: {"description": "Not authenticated"},
        404: {"description": "Task not found"},
    },
)
async def get_task(
    task_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> TaskResponse:
    task = await get_task_or_404(task_id, current_user.id, db)
    return TaskResponse.model_validate(task)


@router.post(
    "",
    response_model=TaskResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create task",
    responses={
        201: {"description": "Task created"},
        401: {"description": "Not authenticated"},
        404: {"description": "Project not found"},
    },
)
async def create_task(
    data: TaskCreate,
    current_user: CurrentUser,
    db: DbSession,
) -> TaskResponse:
    await get_project_or_404(data.project_id, current_user.id, db)

    task = build_task(data)
    db.add(task)
    await db.commit()
    await db.refresh(task)

    return TaskResponse.model_validate(task)


@router.post(
    "/batch",
    response_model=list[TaskResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create several tasks",
    responses={
        201: {"description": "Tasks created"},
        401: {"description": "Not authenticated"},
        404: {"description": "Project not found"},
    },
)
async def create_tasks(
    data: TaskBatchCreate,
    current_user: CurrentUser,
    db: DbSession,
) -> list[TaskResponse]:
    """Save a set of tasks, typically accepted AI drafts. All or nothing."""
    for project_id in {item.project_id for item in data.tasks}:
        await get_project_or_404(project_id, current_user.id, db)

    tasks = [build_task(item) for item in data.tasks]
    db.add_all(tasks)
    await db.commit()
    for task in tasks:
        await db.refresh(task)

    logger.info("tasks_batch_created", count=len(tasks))
    return [TaskResponse.model_validate(t) for t in tasks]


@router.patch(
    "/{task_id}",
    response_model=TaskResponse,
    summary="Update task",
    responses={
        200: {"description": "Task updated"},
        401: {"description": "Not authenticated"},
        404: {"description": "Task or project not found"},
    },
)
async def update_task(
    task_id: UUID,
    data: TaskUpdate,
    current_user: CurrentUser,
    db: DbSession,
) -> TaskResponse:
    task = await get_task_or_404(task_id, current_user.id, db)

    update_data = data.model_dump(exclude_unset=True)
    if update_data.get("project_id") is not None:
        await get_project_or_404(update_data["project_id"], current_user.id, db)

    new_status = update_data.pop("status", None)
    for field, value in update_data.items():
        setattr(task, field, value)
    if new_status is not None:
        apply_status(task, new_status)

    await db.commit()
    await db.refresh(task)

    return TaskResponse.model_validate(task)


@router.patch(
    "/{task_id}/status",
    response_model=TaskResponse,
    summary="Change task status",
    responses={
        200: {"description": "Status updated"},
        401: {"description": "Not authenticated"},
        404: {"description": "Task not found"},
    },
)
async def update_task_status(
    task_id: UUID,
    data: TaskStatusUpdate,
    current_user: CurrentUser,
    db: DbSession,
) -> TaskResponse:
    """
    Move a task to a new status.

    Entering in_progress stamps started_at, entering completed stamps
    completed_at; existing stamps are kept.
    """
    task = await get_task_or_404(task_id, current_user.id, db)
    old_status = task.status

    apply_status(task, data.status)
    await db.commit()
    await db.refresh(task)

    logger.info(
        "task_status_changed",
        task_id=str(task.id),
        from_status=old_status.value,
        to_status=task.status.value,
    )
    return TaskResponse.model_validate(task)


@router.put(
    "/{task_id}/actual-time",
    response_model=TaskResponse,
    summary="Record actual time",
    responses={
        200: {"description": "Time recorded"},
        401: {"description": "Not authenticated"},
        404: {"description": "Task not found"},
    },
)
async def record_actual_time(
    task_id: UUID,
    data: TaskActualTimeUpdate,
    current_user: CurrentUser,
    db: DbSession,
) -> TaskResponse:
    task = await get_task_or_404(task_id, current_user.id, db)

    task.actual_time = data.actual_time
    await db.commit()
    await db.refresh(task)

    return TaskResponse.model_validate(task)


@router.delete(
    "/{task_id}",
    response_model=MessageResponse,
    summary="Delete task",
    responses={
        200: {"description": "Task deleted"},
        401: {"description": "Not authenticated"},
        404: {"description": "Task not found"},
    },
)
async def delete_task(
    task_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> MessageResponse:
    task = await get_task_or_404(task_id, current_user.id, db)

    await db.delete(task)
    await db.commit()

    return MessageResponse(message="Task deleted successfully", success=True)


@router.post(
    "/batch-delete",
    response_model=MessageResponse,
    summary="Delete several tasks",
    responses={
        200: {"description": "Tasks deleted"},
        401: {"description": "Not authenticated"},
        404: {"description": "One or more tasks not found"},
    },
)
async def delete_tasks(
    data: TaskBatchDelete,
    current_user: CurrentUser,
    db: DbSession,
) -> MessageResponse:
    tasks = await get_tasks_or_404(list(dict.fromkeys(data.task_ids)), current_user.id, db)

    await db.execute(delete(Task).where(Task.id.in_([t.id for t in tasks])))
    await db.commit()

    return MessageResponse(message=f"Deleted {len(tasks)} tasks", success=True)


# ==========================================================================
# Aggregation
# ==========================================================================

def aggregate_defaults(tasks: list[Task]) -> dict:
    """
    Values of the merged task when the caller doesn't override them.

    Description is a bullet list of the originals, time is summed, the
    earliest due date wins, project and stage come from the first task
    and priority is the highest (5 when none is set).
    """
    due_dates = [t.due_date for t in tasks if t.due_date]
    highest = max((t.priority_score or 0) for t in tasks)
    return {
        "description": "\n".join(f"• {t.description}" for t in tasks),
        "estimated_time": sum(t.estimated_time for t in tasks),
        "due_date": min(due_dates) if due_dates else None,
        "project_id": tasks[0].project_id,
        "stage": tasks[0].stage,
        "priority_score": highest if highest > 0 else 5,
    }


@router.post(
    "/aggregate",
    response_model=TaskResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Merge tasks into one",
    responses={
        201: {"description": "Merged task created, originals deleted"},
        401: {"description": "Not authenticated"},
        404: {"description": "Task or project not found"},
    },
)
async def aggregate_tasks(
    data: TaskAggregate,
    current_user: CurrentUser,
    db: DbSession,
) -> TaskResponse:
    """Create one pending task from the selected ones and delete the originals."""
    tasks = await get_tasks_or_404(data.task_ids, current_user.id, db)

    values = aggregate_defaults(tasks)
    values.update(data.model_dump(exclude={"task_ids"}, exclude_none=True))
    if data.project_id is not None:
        await get_project_or_404(data.project_id, current_user.id, db)

    merged = Task(status=TaskStatus.PENDING, **values)
    db.add(merged)
    await db.execute(delete(Task).where(Task.id.in_(data.task_ids)))
    await db.commit()
    await db.refresh(merged)

    logger.info("tasks_aggregated", task_id=str(merged.id), merged_count=len(tasks))
    return TaskResponse.model_validate(merged)
