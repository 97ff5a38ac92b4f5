"""
Momentum - Project Type Analysis
================================

Completion and time metrics per project type, plus portfolio summaries.
"""

from dataclasses import dataclass
from typing import Any

from momentum.core.analytics.metrics import (
    display_type,
    group_by_project_type,
    has_time_data,
    is_completed,
    mean,
    project_type_key,
    time_ratio,
)


@dataclass
class ProjectTypeEfficiency:
    project_type: str
    task_count: int
    completed_count: int
    completion_rate: float  # percent
    avg_time_ratio: float


@dataclass
class PriorityRange:
    min: float
    max: float
    avg: float


def get_project_type_efficiency(
    tasks: list[Any],
    projects: dict[Any, Any],
    min_tasks: int = 5,
    min_group: int = 3,
) -> list[ProjectTypeEfficiency]:
    """Per-type completion metrics, best completion rate first."""
    if len(tasks) < min_tasks:
        return []

    results = []
    for key, group in group_by_project_type(tasks, projects).items():
        if len(group) < min_group:
            continue
        completed = sum(1 for task in group if is_completed(task))
        timed = [task for task in group if has_time_data(task)]
        results.append(ProjectTypeEfficiency(
            project_type=display_type(key),
            task_count=len(group),
            completed_count=completed,
            completion_rate=completed / len(group) * 100,
            avg_time_ratio=mean(time_ratio(task) for task in timed) if timed else 1.0,
        ))

    results.sort(key=lambda r: r.completion_rate, reverse=True)
    return results


def get_project_type_distribution(projects: list[Any]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for project in projects:
        key = project_type_key(project, missing="unspecified")
        counts[key] = counts.get(key, 0) + 1
    return counts


def get_project_priority_range(projects: list[Any]) -> PriorityRange:
    """Range of positive priority scores; zeros when none are set."""
    scores = [p.priority_score for p in projects if (p.priority_score or 0) > 0]
    if not scores:
        return PriorityRange(min=0, max=0, avg=0)
    return PriorityRange(min=min(scores), max=max(scores), avg=mean(scores))
