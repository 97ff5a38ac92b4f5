"""
Momentum - User Insights
========================

Headline productivity numbers for the insights dashboard.
"""

from dataclasses import dataclass
from typing import Any, Optional

from momentum.core.analytics.metrics import (
    DAY_NAMES,
    day_name,
    has_time_data,
    is_completed,
    mean,
    ratio_accuracy,
    time_ratio,
)
from momentum.core.analytics.productivity import DayProductivity, get_productivity_by_day
from momentum.core.analytics.project_types import (
    ProjectTypeEfficiency,
    get_project_type_efficiency,
)
from momentum.core.analytics.time_estimates import (
    TimeEstimateAccuracy,
    get_estimation_style,
    get_time_estimate_accuracy,
)
from momentum.core.config import settings


@dataclass
class UserInsights:
    completion_rate: float  # percent
    avg_time_ratio: float
    avg_accuracy: float
    most_productive_day: Optional[str]
    most_efficient_project_type: Optional[str]
    project_balance_score: float
    total_completed: int
    total_time_tracked: float


@dataclass
class InsightsBundle:
    has_enough_data: bool
    user_insights: Optional[UserInsights]
    time_estimate_accuracy: list[TimeEstimateAccuracy]
    estimation_style: str
    project_type_efficiency: list[ProjectTypeEfficiency]
    productivity_by_day: list[DayProductivity]


def project_balance_score(tasks: list[Any]) -> float:
    """
    How evenly tasks spread over projects.

    100 is a perfectly even spread (or a single project), 0 is every
    task in one project.
    """
    counts: dict[Any, int] = {}
    for task in tasks:
        counts[task.project_id] = counts.get(task.project_id, 0) + 1

    n = len(counts)
    if n <= 1:
        return 100.0

    total = sum(counts.values())
    ideal = 1 / n
    avg_deviation = mean(abs(count / total - ideal) for count in counts.values())
    max_deviation = (n - 1) / n
    return max(0.0, 100 * (1 - avg_deviation / max_deviation))


def most_productive_day(tasks: list[Any]) -> Optional[str]:
    """Weekday with most completions; ties go to the earliest day from Sunday."""
    stamped = [task for task in tasks if is_completed(task) and task.completed_at]
    if not stamped:
        return None

    counts = {day: 0 for day in DAY_NAMES}
    for task in stamped:
        counts[day_name(task.completed_at)] += 1
    return max(DAY_NAMES, key=lambda day: counts[day])


def get_user_insights(
    tasks: list[Any],
    projects: dict[Any, Any],
    min_tasks: Optional[int] = None,
) -> Optional[UserInsights]:
    min_tasks = settings.INSIGHTS_MIN_TASKS if min_tasks is None else min_tasks
    if len(tasks) < min_tasks:
        return None

    completed = [task for task in tasks if is_completed(task)]
    timed = [task for task in completed if has_time_data(task)]
    ratios = [time_ratio(task) for task in timed]

    efficiency = get_project_type_efficiency(tasks, projects)

    return UserInsights(
        completion_rate=len(completed) / len(tasks) * 100,
        avg_time_ratio=mean(ratios),
        avg_accuracy=mean(ratio_accuracy(r) for r in ratios),
        most_productive_day=most_productive_day(completed),
        most_efficient_project_type=efficiency[0].project_type if efficiency else None,
        project_balance_score=project_balance_score(tasks),
        total_completed=len(completed),
        total_time_tracked=sum(task.actual_time for task in timed),
    )


def has_enough_data(tasks: list[Any]) -> bool:
    """Minimum activity before insights are worth showing."""
    completed = [task for task in tasks if is_completed(task)]
    if len(tasks) < settings.INSIGHTS_MIN_TASKS or len(completed) < settings.INSIGHTS_MIN_COMPLETED:
        return False
    return sum(1 for task in completed if has_time_data(task)) >= settings.INSIGHTS_MIN_TIMED


def build_insights(tasks: list[Any], projects: dict[Any, Any]) -> InsightsBundle:
    """Everything the insights report shows, in one pass over fetched rows."""
    return InsightsBundle(
        has_enough_data=has_enough_data(tasks),
        user_insights=get_user_insights(tasks, projects),
        time_estimate_accuracy=get_time_estimate_accuracy(tasks, projects),
        estimation_style=get_estimation_style(tasks),
        project_type_efficiency=get_project_type_efficiency(tasks, projects),
        productivity_by_day=get_productivity_by_day(tasks),
    )
