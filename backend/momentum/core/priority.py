"""
Momentum - Project Priority
===========================

Weighted 0-100 priority score of a project:

    cost 25% + timeline 20% + user priority 25% + project type 15% + complexity 15%
"""

import math
from datetime import date, datetime, time, timezone
from typing import Any, Optional

from momentum.core.models import COMPLEXITY_VALUES, PROJECT_TYPE_PRIORITIES


WEIGHTS = {
    "cost": 0.25,
    "timeline": 0.20,
    "user_priority": 0.25,
    "project_type": 0.15,
    "complexity": 0.15,
}

_DAY_SECONDS = 86400


def _field(project: Any, name: str) -> Any:
    if isinstance(project, dict):
        return project.get(name)
    return getattr(project, name, None)


def _enum_value(value: Any) -> Optional[str]:
    if value is None:
        return None
    return getattr(value, "value", value)


def _midnight(value: date) -> datetime:
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def cost_score(budget: Optional[float]) -> int:
    if not budget:
        return 0
    if budget >= 20000:
        return 100
    if budget >= 10000:
        return 80
    if budget >= 5000:
        return 60
    if budget >= 1000:
        return 40
    return 20


def timeline_score(
    end_date: Optional[date],
    start_date: Optional[date],
    is_recurring: bool = False,
    now: Optional[datetime] = None,
) -> int:
    """Urgency from the deadline, or from project age when there is none."""
    now = now or datetime.now(timezone.utc)

    if end_date:
        seconds = (_midnight(end_date) - now).total_seconds()
        days_remaining = max(0, math.ceil(seconds / _DAY_SECONDS))
        if days_remaining <= 7:
            score = 100
        elif days_remaining <= 14:
            score = 85
        elif days_remaining <= 30:
            score = 70
        elif days_remaining <= 60:
            score = 50
        elif days_remaining <= 90:
            score = 30
        else:
            score = 15
        if is_recurring:
            score = max(15, score - 15)
        return score

    if start_date:
        seconds = (now - _midnight(start_date)).total_seconds()
        days_since_start = max(0, math.ceil(seconds / _DAY_SECONDS))
        if days_since_start <= 7:
            return 65
        if days_since_start <= 30:
            return 50
        if days_since_start <= 90:
            return 40
        return 30

    return 0


def calculate_priority_score(project: Any, now: Optional[datetime] = None) -> int:
    """
    Calculate project priority in 0..100.

    Accepts a Project model, a schema instance or a plain dict of fields.
    """
    user_priority = _field(project, "user_priority")
    project_type = _enum_value(_field(project, "project_type"))
    complexity = _enum_value(_field(project, "complexity"))

    scores = {
        "cost": cost_score(_field(project, "budget")),
        "timeline": timeline_score(
            _field(project, "end_date"),
            _field(project, "start_date"),
            bool(_field(project, "is_recurring")),
            now=now,
        ),
        "user_priority": user_priority * 20 if user_priority else 60,
        "project_type": PROJECT_TYPE_PRIORITIES.get(project_type, 50) if project_type else 50,
        "complexity": COMPLEXITY_VALUES.get(complexity, 60) if complexity else 60,
    }

    weighted = sum(scores[key] * weight for key, weight in WEIGHTS.items())
    # half-up rounding
    return min(100, max(0, math.floor(weighted + 0.5)))
