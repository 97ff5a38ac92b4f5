"""
Momentum - AI User Context
==========================

Builds the profile of a user that primes LLM prompts and the
AI context summary: skills, work patterns, portfolio, task habits
and note-taking style.
"""

import math
import re
from dataclasses import asdict
from datetime import datetime
from typing import Any, Optional

from momentum.core.analytics.metrics import is_completed
from momentum.core.analytics.productivity import format_work_days, get_upcoming_deadlines
from momentum.core.analytics.project_types import (
    get_project_priority_range,
    get_project_type_distribution,
)
from momentum.core.analytics.time_estimates import get_estimation_style
from momentum.core.models import TaskStatus


SKILL_LEVELS = {
    1: "Beginner",
    2: "Basic",
    3: "Intermediate",
    4: "Advanced",
    5: "Expert",
}

DETAIL_MARKERS = ("because", "therefore", "however", "additionally", "specifically")

_NUMBER_RE = re.compile(r"\d+([.,%]\d+)?")
_LIST_RE = re.compile(r"(\n- |\n\d+\. )")


def skill_level_description(level: Any) -> str:
    return SKILL_LEVELS.get(level, "Unknown")


def average_note_length(notes: list[Any]) -> str:
    if not notes:
        return "No notes"

    words = [len(note.content.split()) for note in notes]
    avg = math.floor(sum(words) / len(notes) + 0.5)

    if avg < 30:
        return "Brief notes (average less than 30 words)"
    if avg < 100:
        return "Medium-length notes (average 30-100 words)"
    return "Detailed notes (average more than 100 words)"


def note_detail_level(notes: list[Any]) -> str:
    if len(notes) < 3:
        return "Not enough notes to determine"

    score = 0
    for note in notes:
        content = note.content.lower()
        score += sum(1 for marker in DETAIL_MARKERS if marker in content)
        if _NUMBER_RE.search(content):
            score += 1
        if _LIST_RE.search(content):
            score += 2

    average = score / len(notes)
    if average < 0.5:
        return "High-level notes (few specific details)"
    if average < 1.5:
        return "Balanced notes (mix of high-level and detailed)"
    return "Detailed notes (rich with specifics)"


def get_ai_user_context(
    user_settings: Optional[Any],
    tasks: list[Any],
    projects: list[Any],
    notes: list[Any],
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """
    Summarize a user for the assistant.

    `skills`, `work_patterns`, `projects` and `insights` are always
    present (empty without data); `notes` only when there are notes.
    """
    context: dict[str, Any] = {
        "skills": [],
        "work_patterns": {},
        "projects": {},
        "insights": {},
    }

    if user_settings is not None:
        for skill in user_settings.skills or []:
            context["skills"].append({
                "name": skill.get("name"),
                "proficiency": skill.get("proficiency"),
                "description": skill_level_description(skill.get("proficiency")),
            })

        workflow = user_settings.workflow
        if workflow is not None:
            work_days = workflow.get("workDays")
            context["work_patterns"] = {
                "max_daily_hours": workflow.get("maxDailyHours") or 8,
                "work_days": format_work_days([1, 2, 3, 4, 5] if work_days is None else work_days),
                "stages": workflow.get("stages") or [],
                "preferred_currency": workflow.get("preferredCurrency") or "USD",
            }

    if projects:
        context["projects"] = {
            "count": len(projects),
            "types": get_project_type_distribution(projects),
            "priority_range": asdict(get_project_priority_range(projects)),
        }

    if tasks:
        completed = [task for task in tasks if is_completed(task)]
        pending = [task for task in tasks if task.status == TaskStatus.PENDING]
        context["insights"] = {
            "completion_rate": (
                f"{math.floor(len(completed) / len(tasks) * 100 + 0.5)}%" if completed else "No data"
            ),
            "estimation_style": get_estimation_style(tasks),
            "task_count": len(tasks),
            "upcoming_deadlines": asdict(get_upcoming_deadlines(pending, now=now)),
        }

    if notes:
        context["notes"] = {
            "count": len(notes),
            "average_length": average_note_length(notes),
            "detail_level": note_detail_level(notes),
        }

    return context


def render_context_summary(context: dict[str, Any]) -> str:
    """Plain-text version of the context, stored as the AI context summary."""
    lines: list[str] = []

    if context.get("skills"):
        skills = ", ".join(f"{s['name']} ({s['description']})" for s in context["skills"])
        lines.append(f"Skills: {skills}")

    patterns = context.get("work_patterns")
    if patterns:
        lines.append(
            f"Works {patterns['work_days']}, up to {patterns['max_daily_hours']:g} hours a day, "
            f"prefers {patterns['preferred_currency']}"
        )
        stages = [stage.get("name") for stage in patterns["stages"] if stage.get("name")]
        if stages:
            lines.append(f"Workflow stages: {' -> '.join(stages)}")

    projects = context.get("projects")
    if projects:
        types = ", ".join(f"{key} x{count}" for key, count in projects["types"].items())
        priority = projects["priority_range"]
        lines.append(f"Projects: {projects['count']} ({types})")
        lines.append(
            f"Project priority: {priority['min']:.0f}-{priority['max']:.0f}, "
            f"average {priority['avg']:.0f}"
        )

    insights = context.get("insights")
    if insights:
        lines.append(f"Tasks: {insights['task_count']}, completion rate {insights['completion_rate']}")
        lines.append(f"Estimation style: {insights['estimation_style']}")
        deadlines = insights["upcoming_deadlines"]
        if deadlines["count"]:
            lines.append(f"Upcoming deadlines: {deadlines['count']}, nearest {deadlines['nearest']}")

    notes = context.get("notes")
    if notes:
        lines.append(f"Notes: {notes['count']}, {notes['average_length']}, {notes['detail_level']}")

    return "\n".join(lines)
