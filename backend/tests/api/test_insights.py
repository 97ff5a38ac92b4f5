"""
Momentum - Insights Tests
=========================

Insights report thresholds and the AI user context endpoint.
"""

from datetime import datetime, timezone

import pytest
import pytest_asyncio
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from momentum.core.models import Project, Task, TaskStatus
from tests.conftest import make_task

MONDAY = datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc)
WEDNESDAY = datetime(2026, 3, 4, 16, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def tracked_tasks(db_session: AsyncSession, test_project: Project) -> list[Task]:
    """Five completed tasks (four timed) and one still pending."""
    done = TaskStatus.COMPLETED
    return [
        await make_task(db_session, test_project, description="A", estimated_time=2,
                        actual_time=2, status=done, completed_at=MONDAY),
        await make_task(db_session, test_project, description="B", estimated_time=2,
                        actual_time=3, status=done, completed_at=MONDAY),
        await make_task(db_session, test_project, description="C", estimated_time=4,
                        actual_time=2, status=done, completed_at=WEDNESDAY),
        await make_task(db_session, test_project, description="D", estimated_time=1,
                        status=done, completed_at=MONDAY),
        await make_task(db_session, test_project, description="E", estimated_time=1,
                        actual_time=1, status=done, completed_at=WEDNESDAY),
        await make_task(db_session, test_project, description="F", estimated_time=3),
    ]


class TestInsightsReport:

    async def test_not_enough_data(
        self, client: AsyncClient, auth_headers: dict, test_tasks: list[Task]
    ):
        response = await client.get("/api/v1/insights", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["has_enough_data"] is False
        assert data["user_insights"] is None
        assert data["time_estimate_accuracy"] == []
        assert data["project_type_efficiency"] == []
        assert data["productivity_by_day"] == []
        assert data["estimation_style"] == "Not enough data"

    async def test_full_report(
        self, client: AsyncClient, auth_headers: dict, tracked_tasks: list[Task]
    ):
        response = await client.get("/api/v1/insights", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["has_enough_data"] is True

        insights = data["user_insights"]
        assert insights["completion_rate"] == pytest.approx(500 / 6)
        assert insights["avg_time_ratio"] == pytest.approx(1.0)
        assert insights["avg_accuracy"] == pytest.approx(87.5)
        assert insights["most_productive_day"] == "Monday"
        assert insights["most_efficient_project_type"] == "Website"
        assert insights["project_balance_score"] == 100
        assert insights["total_completed"] == 5
        assert insights["total_time_tracked"] == 8

        [accuracy] = data["time_estimate_accuracy"]
        assert accuracy["project_type"] == "Website"
        assert accuracy["task_count"] == 4
        assert accuracy["avg_estimated"] == pytest.approx(2.25)
        assert accuracy["avg_actual"] == pytest.approx(2.0)

        [efficiency] = data["project_type_efficiency"]
        assert efficiency["task_count"] == 6
        assert efficiency["completed_count"] == 5

        days = data["productivity_by_day"]
        assert [(d["day"], d["completed_count"]) for d in days] == [("Monday", 3), ("Wednesday", 2)]
        assert days[0]["avg_time"] == pytest.approx(2.5)
        assert days[1]["avg_time"] == pytest.approx(1.5)

        # four timed tasks is below the estimation style threshold
        assert data["estimation_style"] == "Not enough data"

    async def test_report_is_per_user(
        self, client: AsyncClient, other_headers: dict, tracked_tasks: list[Task]
    ):
        response = await client.get("/api/v1/insights", headers=other_headers)

        assert response.json()["has_enough_data"] is False


class TestInsightsContext:

    async def test_context_shape(
        self, client: AsyncClient, auth_headers: dict, test_tasks: list[Task]
    ):
        response = await client.get("/api/v1/insights/context", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["skills"] == []
        assert data["work_patterns"] == {}
        assert data["projects"]["count"] == 1
        assert data["projects"]["types"] == {"website": 1}
        assert data["insights"]["task_count"] == 3
        assert data["insights"]["completion_rate"] == "No data"
        assert data["insights"]["upcoming_deadlines"]["count"] == 2
        assert "notes" not in data

    async def test_context_without_data(self, client: AsyncClient, auth_headers: dict):
        response = await client.get("/api/v1/insights/context", headers=auth_headers)

        assert response.json() == {"skills": [], "work_patterns": {}, "projects": {}, "insights": {}}
