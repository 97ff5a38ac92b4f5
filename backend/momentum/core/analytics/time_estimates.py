"""
Momentum - Time Estimate Analysis
=================================

How well a user's estimates match the time tasks actually took.
"""

from dataclasses import dataclass
from typing import Any

from momentum.core.analytics.metrics import (
    display_type,
    group_by_project_type,
    has_time_data,
    mean,
    ratio_accuracy,
    time_ratio,
)


NOT_ENOUGH_DATA = "Not enough data"
OVERESTIMATOR = "Overestimator (you finish faster than estimated)"
UNDERESTIMATOR = "Underestimator (tasks take longer than estimated)"
BALANCED_ESTIMATOR = "Balanced estimator (your estimates are quite accurate)"


@dataclass
class TimeEstimateAccuracy:
    project_type: str
    accuracy: float
    avg_estimated: float
    avg_actual: float
    task_count: int


def get_time_estimate_accuracy(
    tasks: list[Any],
    projects: dict[Any, Any],
    min_tasks: int = 3,
    min_group: int = 2,
) -> list[TimeEstimateAccuracy]:
    """
    Estimate accuracy grouped by project type.

    Only completed tasks with time data count. Types with fewer than
    `min_group` such tasks are left out; largest groups come first.
    """
    timed = [task for task in tasks if has_time_data(task)]
    if len(timed) < min_tasks:
        return []

    results = []
    for key, group in group_by_project_type(timed, projects).items():
        if len(group) < min_group:
            continue
        results.append(TimeEstimateAccuracy(
            project_type=display_type(key),
            accuracy=mean(ratio_accuracy(time_ratio(task)) for task in group),
            avg_estimated=mean(task.estimated_time for task in group),
            avg_actual=mean(task.actual_time or 0 for task in group),
            task_count=len(group),
        ))

    results.sort(key=lambda r: r.task_count, reverse=True)
    return results


def get_estimation_style(tasks: list[Any], min_tasks: int = 5) -> str:
    timed = [task for task in tasks if has_time_data(task)]
    if len(timed) < min_tasks:
        return NOT_ENOUGH_DATA

    avg_ratio = mean(time_ratio(task) for task in timed)
    if avg_ratio < 0.8:
        return OVERESTIMATOR
    if avg_ratio > 1.2:
        return UNDERESTIMATOR
    return BALANCED_ESTIMATOR
