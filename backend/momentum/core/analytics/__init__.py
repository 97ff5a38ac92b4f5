"""
Momentum - Analytics
====================

Pure insight calculations over rows already loaded from the database.
"""

from momentum.core.analytics.context import get_ai_user_context, render_context_summary
from momentum.core.analytics.insights import (
    build_insights,
    get_user_insights,
    has_enough_data,
    project_balance_score,
)
from momentum.core.analytics.productivity import (
    format_work_days,
    get_productivity_by_day,
    get_upcoming_deadlines,
)
from momentum.core.analytics.project_types import (
    get_project_priority_range,
    get_project_type_distribution,
    get_project_type_efficiency,
)
from momentum.core.analytics.time_estimates import (
    get_estimation_style,
    get_time_estimate_accuracy,
)

__all__ = [
    "build_insights",
    "format_work_days",
    "get_ai_user_context",
    "get_estimation_style",
    "get_productivity_by_day",
    "get_project_priority_range",
    "get_project_type_distribution",
    "get_project_type_efficiency",
    "get_time_estimate_accuracy",
    "get_upcoming_deadlines",
    "get_user_insights",
    "has_enough_data",
    "project_balance_score",
    "render_context_summary",
]
