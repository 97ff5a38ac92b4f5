"""
Momentum - Note Tests
=====================

Note CRUD, embeddings on write, hybrid search and tag suggestions.
"""

from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from momentum.core.models import NoteEmbedding, Project, User
from tests.conftest import FakeOpenAI, make_note, make_project


class TestNoteCrud:

    async def test_create_without_openai(
        self,
        client: AsyncClient,
        auth_headers: dict,
        db_session: AsyncSession,
        fake_openai: FakeOpenAI,
    ):
        response = await client.post(
            "/api/v1/notes",
            headers=auth_headers,
            json={"title": "Idea", "content": "Offer a maintenance plan", "tags": ["idea"]},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["tags"] == ["idea"]
        assert data["project_id"] is None
        assert fake_openai.requests == []
        assert (await db_session.execute(select(NoteEmbedding))).scalars().all() == []

    async def test_create_stores_embedding(
        self,
        client: AsyncClient,
        auth_headers: dict,
        db_session: AsyncSession,
        fake_openai: FakeOpenAI,
        test_project: Project,
    ):
        fake_openai.configured = True
        fake_openai.embeddings = {"invoice": [1.0, 0.0, 0.0]}

        response = await client.post(
            "/api/v1/notes",
            headers=auth_headers,
            json={"project_id": str(test_project.id), "content": "  Send   the invoice  "},
        )

        assert response.status_code == 201
        rows = (await db_session.execute(select(NoteEmbedding))).scalars().all()
        assert len(rows) == 1
        assert rows[0].embedding == [1.0, 0.0, 0.0]
        assert fake_openai.requests[0]["body"]["input"] == "Send the invoice"

    async def test_create_survives_embedding_failure(
        self, client: AsyncClient, auth_headers: dict, fake_openai: FakeOpenAI
    ):
        fake_openai.configured = True
        fake_openai.fail = True

        response = await client.post(
            "/api/v1/notes", headers=auth_headers, json={"content": "Still saved"}
        )

        assert response.status_code == 201
        assert response.json()["content"] == "Still saved"

    async def test_create_rejects_unknown_tag(self, client: AsyncClient, auth_headers: dict):
        response = await client.post(
            "/api/v1/notes",
            headers=auth_headers,
            json={"content": "Hello", "tags": ["not-a-tag"]},
        )

        assert response.status_code == 422

    async def test_update_refreshes_embedding(
        self,
        client: AsyncClient,
        auth_headers: dict,
        db_session: AsyncSession,
        fake_openai: FakeOpenAI,
        test_user: User,
    ):
        note = await make_note(db_session, test_user, "Garden plans")
        db_session.add(NoteEmbedding(note_id=note.id, embedding=[0.0, 1.0, 0.0]))
        await db_session.commit()
        fake_openai.configured = True
        fake_openai.embeddings = {"invoice": [1.0, 0.0, 0.0]}

        response = await client.patch(
            f"/api/v1/notes/{note.id}",
            headers=auth_headers,
            json={"content": "Invoice reminder"},
        )

        assert response.status_code == 200
        assert response.json()["content"] == "Invoice reminder"
        row = (await db_session.execute(select(NoteEmbedding))).scalar_one()
        await db_session.refresh(row)
        assert row.embedding == [1.0, 0.0, 0.0]

    async def test_update_rejects_null_content(
        self,
        client: AsyncClient,
        auth_headers: dict,
        db_session: AsyncSession,
        test_user: User,
    ):
        note = await make_note(db_session, test_user, "Garden plans")

        response = await client.patch(
            f"/api/v1/notes/{note.id}",
            headers=auth_headers,
            json={"content": None},
        )

        assert response.status_code == 422

        response = await client.get(f"/api/v1/notes/{note.id}", headers=auth_headers)
        assert response.json()["content"] == "Garden plans"

    async def test_list_filters_by_project(
        self,
        client: AsyncClient,
        auth_headers: dict,
        db_session: AsyncSession,
        test_user: User,
        test_project: Project,
    ):
        await make_note(db_session, test_user, "Loose thought")
        await make_note(db_session, test_user, "Project detail", project=test_project)

        everything = await client.get("/api/v1/notes", headers=auth_headers)
        scoped = await client.get(
            "/api/v1/notes", headers=auth_headers, params={"project_id": str(test_project.id)}
        )

        assert len(everything.json()) == 2
        assert [n["content"] for n in scoped.json()] == ["Project detail"]

    async def test_delete_removes_embedding(
        self,
        client: AsyncClient,
        auth_headers: dict,
        db_session: AsyncSession,
        test_user: User,
    ):
        note = await make_note(db_session, test_user, "Temporary")
        db_session.add(NoteEmbedding(note_id=note.id, embedding=[1.0]))
        await db_session.commit()

        response = await client.delete(f"/api/v1/notes/{note.id}", headers=auth_headers)

        assert response.status_code == 200
        assert (await db_session.execute(select(NoteEmbedding))).scalars().all() == []

    async def test_other_users_note(
        self,
        client: AsyncClient,
        other_headers: dict,
        db_session: AsyncSession,
        test_user: User,
    ):
        note = await make_note(db_session, test_user, "Private")

        response = await client.get(f"/api/v1/notes/{note.id}", headers=other_headers)

        assert response.status_code == 404

    async def test_create_in_other_users_project(
        self,
        client: AsyncClient,
        auth_headers: dict,
        db_session: AsyncSession,
        other_user: User,
    ):
        foreign = await make_project(db_session, other_user, name="Foreign")

        response = await client.post(
            "/api/v1/notes",
            headers=auth_headers,
            json={"project_id": str(foreign.id), "content": "Nope"},
        )

        assert response.status_code == 404


class TestNoteSearch:

    async def test_text_search_without_openai(
        self,
        client: AsyncClient,
        auth_headers: dict,
        db_session: AsyncSession,
        test_user: User,
    ):
        await make_note(db_session, test_user, "Call the PRINTER about proofs")
        await make_note(db_session, test_user, "Buy coffee")

        response = await client.get(
            "/api/v1/notes/search", headers=auth_headers, params={"q": "printer"}
        )

        assert response.status_code == 200
        assert [n["content"] for n in response.json()] == ["Call the PRINTER about proofs"]

    async def test_semantic_matches_appended(
        self,
        client: AsyncClient,
        auth_headers: dict,
        db_session: AsyncSession,
        fake_openai: FakeOpenAI,
        test_user: User,
    ):
        text_hit = await make_note(db_session, test_user, "Billing cycle notes")
        semantic_hit = await make_note(db_session, test_user, "Send invoice to Acme")
        unrelated = await make_note(db_session, test_user, "Garden plans")
        for note, vector in (
            (text_hit, [1.0, 0.0, 0.0]),
            (semantic_hit, [0.9, 0.1, 0.0]),
            (unrelated, [0.0, 1.0, 0.0]),
        ):
            db_session.add(NoteEmbedding(note_id=note.id, embedding=vector))
        await db_session.commit()

        fake_openai.configured = True
        fake_openai.embeddings = {"billing": [1.0, 0.0, 0.0]}

        response = await client.get(
            "/api/v1/notes/search", headers=auth_headers, params={"q": "billing"}
        )

        assert [n["id"] for n in response.json()] == [str(text_hit.id), str(semantic_hit.id)]

    async def test_semantic_failure_keeps_text_results(
        self,
        client: AsyncClient,
        auth_headers: dict,
        db_session: AsyncSession,
        fake_openai: FakeOpenAI,
        test_user: User,
    ):
        note = await make_note(db_session, test_user, "Billing cycle notes")
        db_session.add(NoteEmbedding(note_id=note.id, embedding=[1.0, 0.0, 0.0]))
        await db_session.commit()
        fake_openai.configured = True
        fake_openai.fail = True

        response = await client.get(
            "/api/v1/notes/search", headers=auth_headers, params={"q": "billing"}
        )

        assert response.status_code == 200
        assert [n["id"] for n in response.json()] == [str(note.id)]


class TestNoteTags:

    async def test_suggest_tags(
        self,
        client: AsyncClient,
        auth_headers: dict,
        db_session: AsyncSession,
        fake_openai: FakeOpenAI,
        test_user: User,
    ):
        note = await make_note(db_session, test_user, "TODO: email the client about the kickoff")
        fake_openai.configured = True
        fake_openai.reply({"tags": ["to-do", "made-up", "meeting-notes"], "confidence": 1.4})

        response = await client.post(f"/api/v1/notes/{note.id}/tags", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"tags": ["to-do", "meeting-notes"], "confidence": 1.0}

        unchanged = await client.get(f"/api/v1/notes/{note.id}", headers=auth_headers)
        assert unchanged.json()["tags"] == []

    async def test_suggest_and_save_tags(
        self,
        client: AsyncClient,
        auth_headers: dict,
        db_session: AsyncSession,
        fake_openai: FakeOpenAI,
        test_user: User,
    ):
        note = await make_note(db_session, test_user, "Research competitor pricing")
        fake_openai.configured = True
        fake_openai.reply({"tags": ["research"], "confidence": 0.8})

        response = await client.post(
            f"/api/v1/notes/{note.id}/tags", headers=auth_headers, params={"save": True}
        )

        assert response.status_code == 200
        saved = await client.get(f"/api/v1/notes/{note.id}", headers=auth_headers)
        assert saved.json()["tags"] == ["research"]

    async def test_suggest_tags_without_openai(
        self,
        client: AsyncClient,
        auth_headers: dict,
        db_session: AsyncSession,
        test_user: User,
    ):
        note = await make_note(db_session, test_user, "Anything")

        response = await client.post(f"/api/v1/notes/{note.id}/tags", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"tags": [], "confidence": 0.0}

    async def test_tag_relevance(
        self,
        client: AsyncClient,
        auth_headers: dict,
        db_session: AsyncSession,
        fake_openai: FakeOpenAI,
        test_user: User,
    ):
        note = await make_note(db_session, test_user, "Client said the colours are too dark")
        fake_openai.configured = True
        fake_openai.reply("0.85")

        response = await client.get(
            f"/api/v1/notes/{note.id}/tags/feedback/relevance", headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json() == {"tag": "feedback", "relevance": 0.85}
