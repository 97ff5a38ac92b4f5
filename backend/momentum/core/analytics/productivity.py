"""
Momentum - Productivity Analysis
================================

Weekday patterns, work-day formatting and deadline summaries.
"""

import math
from dataclasses import dataclass
from datetime import datetime, time, timezone
from typing import Any, Optional

from momentum.core.analytics.metrics import (
    DAY_NAMES,
    WEEK_ORDER,
    day_name,
    is_completed,
    mean,
    utcnow,
)


@dataclass
class DayProductivity:
    day: str
    task_count: int
    completed_count: int
    avg_time: float  # hours per task with recorded time


@dataclass
class UpcomingDeadlines:
    count: int
    nearest: Optional[str] = None


def get_productivity_by_day(tasks: list[Any], min_tasks: int = 5) -> list[DayProductivity]:
    """
    Completed work bucketed by the UTC weekday of `completed_at`.

    Days without completions are omitted; Monday comes first.
    """
    completed = [task for task in tasks if is_completed(task) and task.completed_at]
    if len(completed) < min_tasks:
        return []

    by_day: dict[str, list[Any]] = {day: [] for day in WEEK_ORDER}
    for task in completed:
        by_day[day_name(task.completed_at)].append(task)

    results = []
    for day in WEEK_ORDER:
        group = by_day[day]
        if not group:
            continue
        timed = [task.actual_time for task in group if task.actual_time and task.actual_time > 0]
        results.append(DayProductivity(
            day=day,
            task_count=len(group),
            completed_count=len(group),
            avg_time=mean(timed),
        ))
    return results


def format_work_days(days: Optional[list[int]]) -> str:
    """[1, 3] -> 'Monday, Wednesday' (0 is Sunday)."""
    if not days:
        return "None set"
    return ", ".join(DAY_NAMES[day] for day in sorted(days))


def get_upcoming_deadlines(tasks: list[Any], now: Optional[datetime] = None) -> UpcomingDeadlines:
    due = [task.due_date for task in tasks if task.due_date]
    if not due:
        return UpcomingDeadlines(count=0)

    nearest = datetime.combine(min(due), time.min, tzinfo=timezone.utc)
    days_until = math.ceil((nearest - utcnow(now)).total_seconds() / 86400)

    return UpcomingDeadlines(
        count=len(due),
        nearest="Today" if days_until <= 0 else f"In {days_until} days",
    )
