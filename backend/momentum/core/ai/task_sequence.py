"""
Momentum - Daily Task Sequencing
================================

Orders today's tasks with the chat model, balancing projects, deadlines
and priorities. Falls back to a priority/deadline sort.
"""

import json
from datetime import date
from typing import Any, Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from momentum.core.ai.openai_client import OpenAIClient, OpenAIError, OpenAINotConfiguredError
from momentum.core.analytics.metrics import DAY_NAMES
from momentum.core.config import settings
from momentum.core.models import Project, Task, UserSettings

logger = structlog.get_logger()


SEQUENCE_SYSTEM_PROMPT = "You are an AI assistant that helps with task prioritization and sequencing."


def _compact(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), default=str)


def _number(value: float) -> str:
    """2.0 -> '2', 2.5 -> '2.5'."""
    return f"{value:g}"


def build_projects_context(tasks: list[Task], projects: dict[Any, Project]) -> str:
    seen: list[Any] = []
    for task in tasks:
        if task.project_id not in seen:
            seen.append(task.project_id)
    relevant = [projects[pid] for pid in seen if pid in projects]
    if not relevant:
        return ""

    lines = ["Projects information:"]
    for i, project in enumerate(relevant, start=1):
        line = f'Project {i}: "{project.name}"'
        if project.description:
            line += f" - {project.description}"
        if project.end_date:
            line += f", due on {project.end_date}"
        line += f", priority: {_number(project.priority_score or 5)}/10"
        lines.append(line)
    return "\n".join(lines) + "\n"


def build_user_context(user_settings: Optional[UserSettings]) -> str:
    if user_settings is None:
        return ""

    workflow = user_settings.workflow or {}
    lines = ["User preferences:"]
    if workflow.get("displayName"):
        lines.append(f"Name: {workflow['displayName']}")
    if workflow.get("maxDailyHours"):
        lines.append(f"Maximum daily work hours: {workflow['maxDailyHours']}")
    if isinstance(workflow.get("workDays"), list):
        lines.append(f"Work days: {', '.join(DAY_NAMES[d] for d in workflow['workDays'])}")
    if isinstance(user_settings.skills, list):
        lines.append(f"Skills: {_compact(user_settings.skills)}")
    if isinstance(workflow.get("goals"), list):
        lines.append(f"Goals: {_compact(workflow['goals'])}")
    if isinstance(workflow.get("stages"), list):
        lines.append(f"Workflow stages: {_compact(workflow['stages'])}")
    return "\n".join(lines) + "\n"


def build_history_context(tasks: list[Task]) -> str:
    """Estimated vs actual time of tasks that have a recorded time."""
    timed = [task for task in tasks if task.actual_time is not None]
    if not timed:
        return ""

    lines = ["Historical time data for learning:"]
    for task in timed:
        ratio = task.actual_time / task.estimated_time
        lines.append(
            f'Task "{task.description}" was estimated at {_number(task.estimated_time)} hours, '
            f"but actually took {_number(task.actual_time)} hours ({ratio:.2f}x ratio)."
        )
    lines.append("")
    lines.append("Please use this historical data to improve your estimates for similar tasks.")
    return "\n".join(lines) + "\n"


def task_payload(task: Task, projects: dict[Any, Project]) -> dict[str, Any]:
    project = projects.get(task.project_id)
    return {
        "id": str(task.id),
        "description": task.description,
        "project": project.name if project is not None else "Unknown",
        "estimated_time": task.estimated_time,
        "priority_score": task.priority_score or 5,
        "due_date": task.due_date.isoformat() if task.due_date else "No deadline",
        "stage": task.stage or "No stage",
        "actual_time": task.actual_time,
    }


def build_sequence_prompt(
    tasks: list[Task],
    projects: dict[Any, Project],
    user_settings: Optional[UserSettings] = None,
) -> str:
    workflow = (user_settings.workflow or {}) if user_settings is not None else {}
    max_hours = workflow.get("maxDailyHours") or 8
    tasks_json = json.dumps([task_payload(task, projects) for task in tasks], indent=2)

    return f"""
I need help sequencing the following tasks for a balanced and productive day. Please create an optimal sequence that:
1. Balances work across different projects (no single project should dominate)
2. Prioritizes urgent items with upcoming deadlines
3. Considers task priority scores
4. Creates a realistic daily plan (maximum {max_hours} hours total unless absolutely necessary)
5. Groups similar tasks when it makes sense for flow
6. Considers the workflow stages, preferring to batch tasks from the same stage together

{build_projects_context(tasks, projects)}

{build_user_context(user_settings)}

{build_history_context(tasks)}

Here are the tasks to sequence:
{tasks_json}

Return a JSON object with a single "sequence" property containing an array of task IDs in the optimal order for today.
Example format: {{"sequence": ["task-id-1", "task-id-2", "task-id-3"]}}
"""


def apply_sequence(tasks: list[Task], sequence: list[Any]) -> list[Task]:
    """
    Reorder tasks by id.

    Unknown or repeated ids are dropped; tasks the model left out are
    appended in their original order.
    """
    by_id = {str(task.id): task for task in tasks}
    ordered: list[Task] = []
    placed: set[str] = set()
    for task_id in sequence:
        key = str(task_id)
        if key in by_id and key not in placed:
            ordered.append(by_id[key])
            placed.add(key)
    ordered.extend(task for task in tasks if str(task.id) not in placed)
    return ordered


def fallback_sequence(tasks: list[Task]) -> list[Task]:
    """Priority descending, then due date ascending with dated tasks first."""
    def key(task: Task) -> tuple[float, int, date]:
        due = task.due_date
        return (-(task.priority_score or 0), 0 if due else 1, due or date.max)

    return sorted(tasks, key=key)


def parse_sequence(content: str) -> list[Any]:
    parsed = json.loads(content)
    if not isinstance(parsed, dict):
        raise ValueError("Sequence response is not an object")
    sequence = parsed.get("sequence") or []
    if not isinstance(sequence, list):
        raise ValueError("'sequence' is not a list")
    return sequence


async def generate_daily_sequence(
    client: OpenAIClient,
    tasks: list[Task],
    projects: dict[Any, Project],
    user_settings: Optional[UserSettings] = None,
) -> tuple[list[Task], bool]:
    """Returns (ordered tasks, used_fallback)."""
    if not client.enabled:
        raise OpenAINotConfiguredError("OpenAI API key is not set. Cannot generate task sequence.")
    if not tasks:
        return [], False

    try:
        content = await client.chat_completion(
            [
                {"role": "system", "content": SEQUENCE_SYSTEM_PROMPT},
                {"role": "user", "content": build_sequence_prompt(tasks, projects, user_settings)},
            ],
            model=settings.OPENAI_TASK_MODEL,
            temperature=0.3,
            max_tokens=500,
            json_mode=True,
        )
        sequence = parse_sequence(content)
    except (OpenAIError, ValueError) as e:
        logger.warning("task_sequence_fallback", reason=str(e), task_count=len(tasks))
        return fallback_sequence(tasks), True

    return apply_sequence(tasks, sequence), False


async def learn_from_completion(db: AsyncSession, task: Task, actual_time: float) -> bool:
    """
    Record how long a task really took.

    Later prompts read these times back as estimation history.
    Failures are logged and rolled back, never raised.
    """
    task_id = task.id
    try:
        task.actual_time = actual_time
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("task_learning_failed", task_id=str(task_id), error=str(e))
        return False

    logger.info("task_learning_recorded", task_id=str(task_id), actual_time=actual_time)
    return True
