"""
Momentum - Task Generation
==========================

Builds context-rich prompts from projects, notes, documentation and
user settings, asks the chat model for task drafts, and falls back to
fixed templates when the model can't be used.

Drafts are never saved here; the caller decides what to keep.
"""

import calendar
import json
import random
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Literal, Optional
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from momentum.core.ai.openai_client import OpenAIClient, OpenAIError, OpenAINotConfiguredError
from momentum.core.config import settings
from momentum.core.models import Note, Project, Task, UserSettings
from momentum.core.schemas import TaskDraft

logger = structlog.get_logger()

TimespanUnit = Literal["day", "week", "month"]


TASK_SYSTEM_PROMPT = (
    "You are an AI assistant that helps with task generation and project management. "
    "Generate specific, actionable tasks with realistic time estimates. Your primary focus "
    "is to create highly detailed, concrete tasks that incorporate all relevant context, "
    "without requiring users to refer back to original source materials."
)

BREAKDOWN_SYSTEM_PROMPT = (
    "You are an AI assistant that helps break down tasks into smaller, specific, and "
    "actionable subtasks. Create subtasks that are concrete, with clear deliverables, "
    "and require no additional context to understand."
)

FALLBACK_TEMPLATES = [
    "Research and gather requirements",
    "Create initial design",
    "Implement core functionality",
    "Test and fix issues",
    "Prepare documentation",
    "Review and finalize",
    "Present to stakeholders",
    "Gather feedback",
    "Make revisions",
    "Deploy to production",
]

CONTEXT_INSTRUCTIONS = """

IMPORTANT: I'll provide you with relevant documentation and notes below. DO NOT simply reference them in your tasks (e.g., DO NOT create tasks like "Review feedback from Note 1"). Instead:
1. Carefully read and understand the content of each document/note
2. Extract specific, actionable items mentioned in them
3. Create detailed, concrete tasks based on the actual content
4. Convert vague ideas into specific deliverables
5. Make each task self-contained with all necessary context (don't require the user to refer back to the original notes)"""

TASK_REQUIREMENTS = """

Task Requirements:
1. Each task must be SPECIFIC and ACTIONABLE - it should be clear what needs to be done without needing additional context
2. Use concrete verbs and clear deliverables (e.g., "Create user flow diagram for checkout process" NOT "Think about checkout")
3. Include enough context within each task description (e.g., "Implement feedback form with 5 questions about UI experience" NOT "Implement feedback form")
4. Break down vague requests into concrete steps
5. If notes mention feedback or requests, extract the SPECIFIC items rather than just saying "address feedback"
6. Avoid references to source notes/documents in task descriptions - incorporate the relevant details directly

For each task, provide:
1. A clear, actionable description as described above
2. An estimated time in hours (realistic, between 0.5 and 8 hours)
3. A priority score (1-10, where 10 is highest priority)
4. A due date (relative to today, within the specified {timespan} timespan)
5. A workflow stage (from the user's workflow stages, if available)

Format your response as a JSON object with a "tasks" array of task objects with these properties:
- description (string)
- estimated_time (number)
- priority_score (number)
- due_date (string in YYYY-MM-DD format)
- stage (string, matching one of the user's workflow stages if provided)
"""


# ==========================================================================
# Context
# ==========================================================================

@dataclass
class GenerationContext:
    """Material the prompt draws on."""

    project: Optional[Project] = None
    notes: list[Note] = field(default_factory=list)
    documentation: list[dict[str, Any]] = field(default_factory=list)
    user_settings: Optional[UserSettings] = None


async def gather_context(
    db: AsyncSession,
    user_id: UUID,
    project: Optional[Project] = None,
    user_settings: Optional[UserSettings] = None,
    note_limit: int = 5,
) -> GenerationContext:
    """
    Recent notes plus documentation.

    Scoped to one project when given, otherwise across all of the
    user's projects.
    """
    query = select(Note).where(Note.user_id == user_id)
    if project is not None:
        query = query.where(Note.project_id == project.id)
    query = query.order_by(Note.created_at.desc()).limit(note_limit)
    notes = list((await db.execute(query)).scalars().all())

    if project is not None:
        documentation = list(project.documentation or [])
    else:
        result = await db.execute(
            select(Project.documentation)
            .where(Project.user_id == user_id)
            .order_by(Project.created_at.desc())
        )
        documentation = [doc for docs in result.scalars().all() for doc in (docs or [])]

    return GenerationContext(
        project=project,
        notes=notes,
        documentation=documentation,
        user_settings=user_settings,
    )


# ==========================================================================
# Timespan
# ==========================================================================

def add_months(value: datetime, months: int) -> datetime:
    """Calendar month arithmetic, clamping to the last day of the month."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def timespan_end(now: datetime, unit: TimespanUnit, value: int) -> datetime:
    if unit == "day":
        return now + timedelta(days=value)
    if unit == "week":
        return now + timedelta(weeks=value)
    return add_months(now, value)


def timespan_days(unit: TimespanUnit, value: int) -> int:
    """Approximate length of a timespan in days (a month counts as 30)."""
    if unit == "day":
        return value
    if unit == "week":
        return value * 7
    return value * 30


def timespan_label(unit: TimespanUnit, value: int) -> str:
    return f"{value} {unit}" if value == 1 else f"{value} {unit}s"


# ==========================================================================
# Prompt
# ==========================================================================

def build_generation_prompt(
    ctx: GenerationContext,
    timespan: str,
    start: datetime,
    end: datetime,
    extra_context: str = "",
) -> str:
    project = ctx.project
    prompt = "Generate specific, actionable tasks"

    if project is not None:
        prompt += f' for the project "{project.name}"'
        if project.description:
            prompt += f' which is described as: "{project.description}"'
        if project.start_date and project.end_date:
            prompt += f" with timeline from {project.start_date} to {project.end_date}"
        elif project.start_date:
            prompt += f" which started on {project.start_date}"
        elif project.end_date:
            prompt += f" which is due on {project.end_date}"
    else:
        prompt += " balanced across multiple projects"

    prompt += f" for a timespan of {timespan}."

    if extra_context:
        prompt += f" Additional context: {extra_context}"

    if ctx.documentation or ctx.notes:
        prompt += CONTEXT_INSTRUCTIONS
        prompt += "\n\nRelevant project documentation for context:\n"
        for doc in ctx.documentation[:3]:
            prompt += f'Documentation "{doc.get("title", "")}": {(doc.get("content") or "")[:500]}\n\n'

    if ctx.notes:
        prompt += "\n\nRelevant notes for context (extract actionable items from these):\n"
        for note in ctx.notes:
            prompt += f'Note titled "{note.title or "Untitled"}": {note.content[:500]}\n\n'

    user_settings = ctx.user_settings
    if user_settings is not None:
        workflow = user_settings.workflow or {}

        goals = workflow.get("goals")
        if isinstance(goals, list):
            prompt += "\n\nUser goals:\n"
            short_term = [g for g in goals if g.get("timeframe") == "short-term"]
            long_term = [g for g in goals if g.get("timeframe") == "long-term"]
            if short_term:
                prompt += "Short-term goals:\n"
                prompt += "".join(f"- {g.get('description')}\n" for g in short_term)
            if long_term:
                prompt += "Long-term goals:\n"
                prompt += "".join(f"- {g.get('description')}\n" for g in long_term)

        if isinstance(user_settings.skills, list):
            prompt += "\n\nUser skills:\n"
            for skill in user_settings.skills:
                prompt += f"- {skill.get('name')}: Proficiency level {skill.get('proficiency')}/5\n"

        stages = workflow.get("stages")
        if isinstance(stages, list):
            prompt += "\n\nUser workflow stages:\n"
            for i, stage in enumerate(stages, start=1):
                description = f": {stage['description']}" if stage.get("description") else ""
                prompt += f"{i}. {stage.get('name')}{description}\n"
            prompt += (
                "\nPlease assign an appropriate workflow stage to each task based on "
                "the user's workflow stages listed above."
            )

    prompt += (
        f"\n\nThe tasks should be spread appropriately over the specified timespan of {timespan}. "
        "Ensure due dates are reasonable and evenly distributed within this period "
        f"(starting from today: {start.date().isoformat()} to {end.date().isoformat()})."
    )
    prompt += TASK_REQUIREMENTS.format(timespan=timespan)
    return prompt


def build_breakdown_prompt(task: Task) -> str:
    priority = int(task.priority_score) if task.priority_score else 5
    return f"""Break down this task into 2-4 smaller, more specific subtasks: "{task.description}"

Each subtask should be:
1. Concrete and actionable - even more specific than the original task
2. Self-contained with clear outcomes/deliverables
3. A logical step towards completing the original task
4. Have realistic time estimates that sum up to approximately {task.estimated_time} hours
5. Be part of the same workflow stage ({task.stage or 'no stage specified'})

IMPORTANT: Avoid vague subtasks like "review" or "think about". Instead, create specific actionable items with clear deliverables.

Format your response as a JSON object with a "subtasks" array of subtask objects with these properties:
- description (string)
- estimated_time (number)
- priority_score (number, similar to the original task's priority of {priority})
- due_date (string in YYYY-MM-DD format, should be on or before the original task's due date of {task.due_date or 'not specified'})
- stage (string, should be "{task.stage or ''}")
"""


# ==========================================================================
# Parsing
# ==========================================================================

def _float_or(value: Any, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def _int_or(value: Any, default: int) -> int:
    try:
        number = int(float(value))
    except (TypeError, ValueError):
        return default
    return number or default


def _date_or_none(value: Any) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def extract_items(content: str, key: str) -> list[dict[str, Any]]:
    """
    Pull the list of objects out of a model reply.

    Accepts {key: [...]} or a bare [...]. Raises ValueError on
    anything that isn't JSON.
    """
    parsed = json.loads(content)
    items: Any = []
    if isinstance(parsed, dict):
        items = parsed.get(key) or []
    elif isinstance(parsed, list):
        items = parsed
    if not isinstance(items, list):
        raise ValueError(f"'{key}' is not a list")
    return [item for item in items if isinstance(item, dict)]


def parse_task_drafts(content: str, project_id: Optional[UUID] = None) -> list[TaskDraft]:
    drafts = []
    for item in extract_items(content, "tasks"):
        drafts.append(TaskDraft(
            description=str(item.get("description") or "New task"),
            estimated_time=_float_or(item.get("estimated_time"), 1.0),
            priority=_int_or(item.get("priority_score", item.get("priority")), 5),
            due_date=_date_or_none(item.get("due_date")),
            stage=item.get("stage") or None,
            project_id=project_id,
        ))
    return drafts


def parse_subtasks(content: str, task: Task) -> list[TaskDraft]:
    items = extract_items(content, "subtasks")
    if not items:
        raise ValueError("No subtasks in response")

    priority = int(task.priority_score or 0)
    share = task.estimated_time / len(items)
    return [
        TaskDraft(
            description=str(item.get("description") or f"Subtask of {task.description}"),
            estimated_time=_float_or(item.get("estimated_time"), share),
            priority=_int_or(item.get("priority_score"), priority),
            due_date=_date_or_none(item.get("due_date")) or task.due_date,
            stage=item.get("stage") or task.stage,
            project_id=task.project_id,
        )
        for item in items
    ]


# ==========================================================================
# Fallbacks
# ==========================================================================

def fallback_tasks(
    project: Optional[Project] = None,
    num_tasks: int = 5,
    unit: TimespanUnit = "week",
    value: int = 1,
    user_settings: Optional[UserSettings] = None,
    rng: Optional[random.Random] = None,
    today: Optional[date] = None,
) -> list[TaskDraft]:
    """Template tasks used when the model is unavailable or unusable."""
    rng = rng or random.Random()
    today = today or datetime.now(timezone.utc).date()
    days = max(1, timespan_days(unit, value))

    workflow = (user_settings.workflow or {}) if user_settings is not None else {}
    stages = [stage.get("name") for stage in workflow.get("stages") or []]

    drafts = []
    for i, template in enumerate(FALLBACK_TEMPLATES[:min(num_tasks or 5, len(FALLBACK_TEMPLATES))]):
        drafts.append(TaskDraft(
            description=f"{template} for {project.name}" if project is not None else template,
            estimated_time=float(rng.randint(1, 4)),
            priority=10 - i,
            due_date=today + timedelta(days=rng.randrange(days) + 1),
            stage=stages[i % len(stages)] if stages else None,
            project_id=project.id if project is not None else None,
        ))
    return drafts


def fallback_breakdown(task: Task) -> list[TaskDraft]:
    """Plan / implement / review split of the original estimate."""
    priority = int(task.priority_score or 0)
    return [
        TaskDraft(
            description=f"{prefix} {task.description}",
            estimated_time=task.estimated_time * share,
            priority=priority,
            due_date=task.due_date,
            stage=task.stage,
            project_id=task.project_id,
        )
        for prefix, share in (
            ("Plan for:", 0.3),
            ("Implement:", 0.5),
            ("Review and finalize:", 0.2),
        )
    ]


# ==========================================================================
# Operations
# ==========================================================================

async def generate_tasks(
    client: OpenAIClient,
    ctx: GenerationContext,
    extra_context: str = "",
    num_tasks: int = 5,
    timespan: Optional[str] = None,
    unit: TimespanUnit = "week",
    value: int = 1,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> tuple[list[TaskDraft], bool]:
    """
    Generate task drafts.

    Returns (drafts, used_fallback). Raises OpenAINotConfiguredError
    without an API key; every other failure falls back to templates.
    """
    if not client.enabled:
        raise OpenAINotConfiguredError("OpenAI API key is not set. Cannot generate tasks.")

    now = now or datetime.now(timezone.utc)
    label = timespan or timespan_label(unit, value)
    prompt = build_generation_prompt(ctx, label, now, timespan_end(now, unit, value), extra_context)
    project_id = ctx.project.id if ctx.project is not None else None

    try:
        content = await client.chat_completion(
            [
                {"role": "system", "content": TASK_SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            model=settings.OPENAI_TASK_MODEL,
            temperature=0.7,
            max_tokens=1500,
            json_mode=True,
        )
        drafts = parse_task_drafts(content, project_id)
    except (OpenAIError, ValueError) as e:
        logger.warning("task_generation_fallback", reason=str(e))
        return fallback_tasks(
            ctx.project, num_tasks, unit, value, ctx.user_settings, rng=rng, today=now.date()
        ), True

    logger.info("tasks_generated", count=len(drafts), project_id=str(project_id) if project_id else None)
    return drafts, False


async def breakdown_task(client: OpenAIClient, task: Task) -> tuple[list[TaskDraft], bool]:
    """Split a task into 2-4 subtask drafts. Returns (drafts, used_fallback)."""
    if not client.enabled:
        raise OpenAINotConfiguredError("OpenAI API key is not set. Cannot break down task.")

    try:
        content = await client.chat_completion(
            [
                {"role": "system", "content": BREAKDOWN_SYSTEM_PROMPT},
                {"role": "user", "content": build_breakdown_prompt(task)},
            ],
            model=settings.OPENAI_TASK_MODEL,
            temperature=0.5,
            max_tokens=1000,
            json_mode=True,
        )
        subtasks = parse_subtasks(content, task)
    except (OpenAIError, ValueError) as e:
        logger.warning("task_breakdown_fallback", task_id=str(task.id), reason=str(e))
        return fallback_breakdown(task), True

    return subtasks, False
