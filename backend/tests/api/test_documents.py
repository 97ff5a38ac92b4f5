"""
Momentum - Document Tests
=========================

PDF upload limits, metadata edits, removal, download and related documents.
"""

from httpx import AsyncClient

from momentum.core.config import settings
from momentum.core.models import Project
from momentum.core.storage import DocumentStorage

PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<<>>\nendobj\ntrailer\n<<>>\n%%EOF\n"


def documents_url(project: Project) -> str:
    return f"/api/v1/projects/{project.id}/documents"


async def upload(
    client: AsyncClient,
    headers: dict,
    project: Project,
    title: str = "Brief",
    category: str = "requirements",
    tags: str = "",
    file_name: str = "brief.pdf",
    content: bytes = PDF_BYTES,
    content_type: str = "application/pdf",
    **fields: str,
):
    return await client.post(
        documents_url(project),
        headers=headers,
        files={"file": (file_name, content, content_type)},
        data={"title": title, "category": category, "tags": tags, **fields},
    )


class TestUpload:

    async def test_upload_success(
        self,
        client: AsyncClient,
        auth_headers: dict,
        test_project: Project,
        storage: DocumentStorage,
    ):
        response = await upload(client, auth_headers, test_project, tags="scope, pricing ,")

        assert response.status_code == 201
        data = response.json()
        assert data["title"] == "Brief"
        assert data["file_name"] == "brief.pdf"
        assert data["file_type"] == "application/pdf"
        assert data["file_size"] == len(PDF_BYTES)
        assert data["version"] == 1
        assert data["tags"] == ["scope", "pricing"]
        assert data["file_url"].startswith(f"http://test/files/documents/{test_project.id}/")
        assert data["file_url"].endswith(".pdf")

        key = storage.key_from_url(test_project.id, data["file_url"])
        assert storage.path_for(key).read_bytes() == PDF_BYTES

        listed = await client.get(documents_url(test_project), headers=auth_headers)
        assert [d["id"] for d in listed.json()] == [data["id"]]

    async def test_rejects_non_pdf(
        self, client: AsyncClient, auth_headers: dict, test_project: Project
    ):
        response = await upload(
            client, auth_headers, test_project,
            file_name="notes.txt", content=b"plain", content_type="text/plain",
        )

        assert response.status_code == 415

    async def test_rejects_oversized_file(
        self, client: AsyncClient, auth_headers: dict, test_project: Project, monkeypatch
    ):
        monkeypatch.setattr(settings, "DOCUMENT_MAX_SIZE_BYTES", 16)

        response = await upload(client, auth_headers, test_project)

        assert response.status_code == 413

    async def test_requires_title(
        self, client: AsyncClient, auth_headers: dict, test_project: Project
    ):
        response = await upload(client, auth_headers, test_project, title="   ")
        assert response.status_code == 422

    async def test_custom_category_needs_name(
        self, client: AsyncClient, auth_headers: dict, test_project: Project
    ):
        missing = await upload(client, auth_headers, test_project, category="custom")
        assert missing.status_code == 422

        named = await upload(
            client, auth_headers, test_project, category="custom", custom_category="Invoices"
        )
        assert named.status_code == 201
        assert named.json()["custom_category"] == "Invoices"

    async def test_other_users_project(
        self, client: AsyncClient, other_headers: dict, test_project: Project
    ):
        response = await upload(client, other_headers, test_project)
        assert response.status_code == 404


class TestManageDocuments:

    async def test_update_metadata(
        self, client: AsyncClient, auth_headers: dict, test_project: Project
    ):
        doc = (await upload(client, auth_headers, test_project)).json()

        response = await client.patch(
            f"{documents_url(test_project)}/{doc['id']}",
            headers=auth_headers,
            json={"title": "Signed brief", "category": "contracts", "tags": ["legal"]},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "Signed brief"
        assert data["category"] == "contracts"
        assert data["tags"] == ["legal"]
        assert data["file_url"] == doc["file_url"]

        listed = (await client.get(documents_url(test_project), headers=auth_headers)).json()
        assert listed[0]["title"] == "Signed brief"

    async def test_update_unknown_document(
        self, client: AsyncClient, auth_headers: dict, test_project: Project
    ):
        response = await client.patch(
            f"{documents_url(test_project)}/missing",
            headers=auth_headers,
            json={"title": "X"},
        )

        assert response.status_code == 404

    async def test_delete_removes_file(
        self,
        client: AsyncClient,
        auth_headers: dict,
        test_project: Project,
        storage: DocumentStorage,
    ):
        doc = (await upload(client, auth_headers, test_project)).json()
        path = storage.path_for(storage.key_from_url(test_project.id, doc["file_url"]))
        assert path.exists()

        response = await client.delete(
            f"{documents_url(test_project)}/{doc['id']}", headers=auth_headers
        )

        assert response.status_code == 200
        assert not path.exists()
        assert (await client.get(documents_url(test_project), headers=auth_headers)).json() == []

    async def test_delete_tolerates_missing_file(
        self,
        client: AsyncClient,
        auth_headers: dict,
        test_project: Project,
        storage: DocumentStorage,
    ):
        doc = (await upload(client, auth_headers, test_project)).json()
        storage.path_for(storage.key_from_url(test_project.id, doc["file_url"])).unlink()

        response = await client.delete(
            f"{documents_url(test_project)}/{doc['id']}", headers=auth_headers
        )

        assert response.status_code == 200

    async def test_download(
        self, client: AsyncClient, auth_headers: dict, test_project: Project
    ):
        doc = (await upload(client, auth_headers, test_project)).json()

        response = await client.get(
            f"{documents_url(test_project)}/{doc['id']}/download", headers=auth_headers
        )

        assert response.status_code == 200
        assert response.content == PDF_BYTES
        assert response.headers["content-type"] == "application/pdf"


class TestRelatedDocuments:

    async def test_related_by_tag_or_category(
        self, client: AsyncClient, auth_headers: dict, test_project: Project
    ):
        source = (await upload(client, auth_headers, test_project, title="Spec", tags="scope")).json()
        same_tag = (
            await upload(client, auth_headers, test_project, title="Plan", category="design", tags="scope")
        ).json()
        same_category = (await upload(client, auth_headers, test_project, title="Addendum")).json()
        await upload(client, auth_headers, test_project, title="Moodboard", category="design")

        response = await client.get(
            f"{documents_url(test_project)}/{source['id']}/related", headers=auth_headers
        )

        assert response.status_code == 200
        assert [d["id"] for d in response.json()] == [same_tag["id"], same_category["id"]]

    async def test_related_unknown_document(
        self, client: AsyncClient, auth_headers: dict, test_project: Project
    ):
        response = await client.get(
            f"{documents_url(test_project)}/missing/related", headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json() == []

    async def test_analyze(
        self, client: AsyncClient, auth_headers: dict, test_project: Project
    ):
        source = (await upload(client, auth_headers, test_project, title="Spec")).json()
        other = (await upload(client, auth_headers, test_project, title="Addendum")).json()

        response = await client.post(
            f"{documents_url(test_project)}/{source['id']}/analyze", headers=auth_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["document_id"] == source["id"]
        assert data["title"] == "Spec"
        assert data["category"] == "requirements"
        assert data["insights"]["key_topics"] == []
        assert data["insights"]["suggested_tags"] == []
        assert data["insights"]["sentiment"] == "neutral"
        assert [d["id"] for d in data["insights"]["related_documents"]] == [other["id"]]
