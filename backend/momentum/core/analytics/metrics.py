"""
Momentum - Task Metrics
=======================

Small helpers shared by the insight calculators.
"""

from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from momentum.core.models import TaskStatus


DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]
WEEK_ORDER = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def is_completed(task: Any) -> bool:
    return task.status == TaskStatus.COMPLETED


def has_time_data(task: Any) -> bool:
    """Completed, with an estimate and a positive recorded time."""
    return (
        is_completed(task)
        and bool(task.estimated_time)
        and task.actual_time is not None
        and task.actual_time > 0
    )


def time_ratio(task: Any) -> float:
    """actual / estimated; >1 means the task ran over."""
    return (task.actual_time or 0) / task.estimated_time


def ratio_accuracy(ratio: float) -> float:
    """100 at a perfect estimate, 0 at ratio 0 or 3."""
    return max(0.0, 100 - abs(ratio - 1) * 50)


def mean(values: Iterable[float]) -> float:
    values = list(values)
    return sum(values) / len(values) if values else 0.0


def project_type_key(project: Any, missing: str = "unknown") -> str:
    value = getattr(project, "project_type", None) if project is not None else None
    if not value:
        return missing
    return getattr(value, "value", value)


def display_type(key: str) -> str:
    """`landing_page` -> `Landing Page`."""
    return " ".join(word[:1].upper() + word[1:] for word in key.split("_"))


def group_by_project_type(tasks: Iterable[Any], projects: dict[Any, Any]) -> dict[str, list[Any]]:
    """Group tasks by their project's type, keeping first-seen order."""
    groups: dict[str, list[Any]] = {}
    for task in tasks:
        key = project_type_key(projects.get(task.project_id))
        groups.setdefault(key, []).append(task)
    return groups


def as_utc(value: datetime) -> datetime:
    """Aware UTC datetime. Naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def day_name(value: datetime) -> str:
    return WEEK_ORDER[as_utc(value).weekday()]


def utcnow(now: Optional[datetime] = None) -> datetime:
    return as_utc(now) if now else datetime.now(timezone.utc)
