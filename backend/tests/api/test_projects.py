"""
Momentum - Project Tests
========================

Project CRUD, computed priority score and ownership.
"""

from datetime import date, timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from momentum.core.models import Note, NoteEmbedding, Project, Task, User
from tests.conftest import make_note, make_project, make_task


class TestCreateProject:

    async def test_create_success(self, client: AsyncClient, auth_headers: dict):
        response = await client.post(
            "/api/v1/projects",
            headers=auth_headers,
            json={
                "name": "Brand Refresh",
                "client_name": "Acme",
                "budget": 12000,
                "currency": "USD",
                "project_type": "mvp",
                "user_priority": 5,
                "complexity": "hard",
                "documentation": [{"title": "Brief", "content": "Logo and colours"}],
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "Brand Refresh"
        assert data["documentation"] == [{"title": "Brief", "content": "Logo and colours"}]
        assert data["documents"] == []
        # cost 80, timeline 0, user 100, type 90, complexity 90
        assert data["priority_score"] == 72

    async def test_create_minimal(self, client: AsyncClient, auth_headers: dict):
        response = await client.post(
            "/api/v1/projects",
            headers=auth_headers,
            json={"name": "Side Quest"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["user_priority"] == 3
        assert data["complexity"] == "medium"
        assert data["is_recurring"] is False
        # user 60 * .25 + type 50 * .15 + complexity 60 * .15
        assert data["priority_score"] == 32

    async def test_create_validation(self, client: AsyncClient, auth_headers: dict):
        for payload in (
            {"name": ""},
            {"name": "X", "user_priority": 6},
            {"name": "X", "currency": "EUR"},
            {"name": "X", "budget": -1},
        ):
            response = await client.post("/api/v1/projects", headers=auth_headers, json=payload)
            assert response.status_code == 422, payload

    async def test_create_requires_auth(self, client: AsyncClient):
        response = await client.post("/api/v1/projects", json={"name": "Nope"})
        assert response.status_code == 401


class TestReadProjects:

    async def test_list_own_projects(self, client: AsyncClient, auth_headers: dict):
        for name in ("First", "Second"):
            await client.post("/api/v1/projects", headers=auth_headers, json={"name": name})

        response = await client.get("/api/v1/projects", headers=auth_headers)

        assert response.status_code == 200
        names = [p["name"] for p in response.json()]
        assert sorted(names) == ["First", "Second"]

    async def test_list_excludes_other_users(
        self,
        client: AsyncClient,
        auth_headers: dict,
        db_session: AsyncSession,
        other_user: User,
        test_project: Project,
    ):
        await make_project(db_session, other_user, name="Not Mine")

        response = await client.get("/api/v1/projects", headers=auth_headers)

        assert [p["name"] for p in response.json()] == [test_project.name]

    async def test_get_other_users_project(
        self, client: AsyncClient, other_headers: dict, test_project: Project
    ):
        response = await client.get(f"/api/v1/projects/{test_project.id}", headers=other_headers)
        assert response.status_code == 404

    async def test_project_tasks_by_due_date(
        self,
        client: AsyncClient,
        auth_headers: dict,
        db_session: AsyncSession,
        test_project: Project,
    ):
        today = date.today()
        await make_task(db_session, test_project, description="undated")
        await make_task(db_session, test_project, description="later", due_date=today + timedelta(days=9))
        await make_task(db_session, test_project, description="sooner", due_date=today + timedelta(days=1))

        response = await client.get(
            f"/api/v1/projects/{test_project.id}/tasks", headers=auth_headers
        )

        assert response.status_code == 200
        assert [t["description"] for t in response.json()] == ["sooner", "later", "undated"]


class TestUpdateProject:

    async def test_update_recomputes_priority(
        self, client: AsyncClient, auth_headers: dict, test_project: Project
    ):
        response = await client.patch(
            f"/api/v1/projects/{test_project.id}",
            headers=auth_headers,
            json={
                "budget": 25000,
                "end_date": (date.today() + timedelta(days=3)).isoformat(),
                "user_priority": 5,
                "project_type": "mvp",
                "complexity": "hard",
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == test_project.name
        assert data["priority_score"] == 97

    async def test_update_documentation(
        self, client: AsyncClient, auth_headers: dict, test_project: Project
    ):
        response = await client.patch(
            f"/api/v1/projects/{test_project.id}",
            headers=auth_headers,
            json={"documentation": [{"title": "Scope", "content": "Five pages"}]},
        )

        assert response.status_code == 200
        assert response.json()["documentation"][0]["title"] == "Scope"

    @pytest.mark.parametrize("field", ["name", "is_recurring", "user_priority", "complexity"])
    async def test_null_for_required_field_rejected(
        self, client: AsyncClient, auth_headers: dict, test_project: Project, field: str
    ):
        response = await client.patch(
            f"/api/v1/projects/{test_project.id}",
            headers=auth_headers,
            json={field: None},
        )

        assert response.status_code == 422

        response = await client.get(f"/api/v1/projects/{test_project.id}", headers=auth_headers)
        assert response.json()["name"] == test_project.name


class TestDeleteProject:

    async def test_delete_cascades(
        self,
        client: AsyncClient,
        auth_headers: dict,
        db_session: AsyncSession,
        test_user: User,
        test_project: Project,
    ):
        await make_task(db_session, test_project)
        note = await make_note(db_session, test_user, "Kickoff notes", project=test_project)
        db_session.add(NoteEmbedding(note_id=note.id, embedding=[1.0, 0.0]))
        await db_session.commit()

        response = await client.delete(f"/api/v1/projects/{test_project.id}", headers=auth_headers)
        assert response.status_code == 200

        for model in (Project, Task, Note, NoteEmbedding):
            count = await db_session.scalar(select(func.count()).select_from(model))
            assert count == 0, model.__name__

    async def test_delete_other_users_project(
        self, client: AsyncClient, other_headers: dict, test_project: Project
    ):
        response = await client.delete(f"/api/v1/projects/{test_project.id}", headers=other_headers)
        assert response.status_code == 404
