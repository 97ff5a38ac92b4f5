"""
Momentum - Test Fixtures
========================

Shared pytest fixtures for all tests.
"""

import json
from collections.abc import AsyncGenerator
from datetime import date, timedelta
from typing import Any, Optional
from uuid import uuid4

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from passlib.hash import bcrypt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from momentum.api.deps import create_access_token, get_document_storage, get_openai_client
from momentum.api.main import app
from momentum.core.ai.openai_client import OpenAIClient
from momentum.core.database import Base, get_db
from momentum.core.models import Complexity, Note, Project, ProjectType, Task, TaskStatus, User
from momentum.core.storage import DocumentStorage


# ==========================================================================
# Test Database Setup
# ==========================================================================

# Use in-memory SQLite for tests (fast)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

test_engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


# ==========================================================================
# Fake OpenAI
# ==========================================================================

class FakeOpenAI:
    """
    Scripted stand-in for the OpenAI HTTP API, served via httpx.MockTransport.

    Chat replies are popped in order (an empty JSON object when the
    script runs out). Embeddings are picked by the first keyword found
    in the input text.
    """

    def __init__(self) -> None:
        self.configured = False
        self.fail = False
        self.chat_replies: list[str] = []
        self.embeddings: dict[str, list[float]] = {}
        self.default_embedding = [0.0, 0.0, 1.0]
        self.requests: list[dict[str, Any]] = []

    def reply(self, *contents: Any) -> None:
        for content in contents:
            self.chat_replies.append(content if isinstance(content, str) else json.dumps(content))

    def embedding_for(self, text: str) -> list[float]:
        lowered = text.lower()
        for keyword, vector in self.embeddings.items():
            if keyword in lowered:
                return vector
        return self.default_embedding

    def chat_requests(self) -> list[dict[str, Any]]:
        return [r["body"] for r in self.requests if r["path"].endswith("/chat/completions")]

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.requests.append({"path": request.url.path, "body": body})

        if self.fail:
            return httpx.Response(500, json={"error": {"message": "upstream exploded"}})

        if request.url.path.endswith("/embeddings"):
            return httpx.Response(
                200, json={"data": [{"embedding": self.embedding_for(body["input"])}]}
            )

        content = self.chat_replies.pop(0) if self.chat_replies else "{}"
        return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})

    def client(self) -> OpenAIClient:
        return OpenAIClient(
            api_key="test-key" if self.configured else "",
            api_url="https://openai.test/v1",
            transport=httpx.MockTransport(self.handler),
        )


# ==========================================================================
# Database Fixtures
# ==========================================================================

@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Provide a clean database session for each test.

    Creates all tables before test, drops after.
    """
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestingSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def fake_openai() -> FakeOpenAI:
    return FakeOpenAI()


@pytest.fixture
def storage(tmp_path) -> DocumentStorage:
    return DocumentStorage(root=tmp_path, public_base_url="http://test/files")


@pytest_asyncio.fixture(scope="function")
async def client(
    db_session: AsyncSession,
    fake_openai: FakeOpenAI,
    storage: DocumentStorage,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Provide test HTTP client with database, OpenAI and storage overrides.
    """
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    async def override_get_openai_client() -> AsyncGenerator[OpenAIClient, None]:
        openai_client = fake_openai.client()
        try:
            yield openai_client
        finally:
            await openai_client.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_openai_client] = override_get_openai_client
    app.dependency_overrides[get_document_storage] = lambda: storage

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# ==========================================================================
# User Fixtures
# ==========================================================================

async def make_user(db: AsyncSession, email: str, is_active: bool = True) -> User:
    user = User(
        id=uuid4(),
        email=email,
        password_hash=bcrypt.hash("TestPass123!"),
        name=email.split("@")[0].title(),
        is_active=is_active,
        streak_count=0,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """
    Create a test user.

    Password: TestPass123!
    """
    return await make_user(db_session, "test@example.com")


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    """A second account whose data must stay invisible to test_user."""
    return await make_user(db_session, "other@example.com")


@pytest_asyncio.fixture
async def inactive_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "inactive@example.com", is_active=False)


# ==========================================================================
# Auth Fixtures
# ==========================================================================

@pytest.fixture
def auth_headers(test_user: User) -> dict[str, str]:
    """Get authorization headers for test user."""
    token = create_access_token(test_user.id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_headers(other_user: User) -> dict[str, str]:
    token = create_access_token(other_user.id)
    return {"Authorization": f"Bearer {token}"}


# ==========================================================================
# Data Fixtures
# ==========================================================================

async def make_project(db: AsyncSession, user: User, **fields: Any) -> Project:
    values = {
        "name": "Website Redesign",
        "description": "New marketing site",
        "project_type": ProjectType.WEBSITE,
        "complexity": Complexity.MEDIUM,
        "user_priority": 3,
        "priority_score": 50,
        "documentation": [],
        "documents": [],
    }
    values.update(fields)
    project = Project(user_id=user.id, **values)
    db.add(project)
    await db.commit()
    await db.refresh(project)
    return project


async def make_task(db: AsyncSession, project: Project, **fields: Any) -> Task:
    values = {
        "description": "Draft sitemap",
        "estimated_time": 2.0,
        "status": TaskStatus.PENDING,
        "priority_score": 5,
    }
    values.update(fields)
    task = Task(project_id=project.id, **values)
    db.add(task)
    await db.commit()
    await db.refresh(task)
    return task


async def make_note(
    db: AsyncSession,
    user: User,
    content: str,
    project: Optional[Project] = None,
    **fields: Any,
) -> Note:
    note = Note(
        user_id=user.id,
        project_id=project.id if project else None,
        content=content,
        tags=[],
        **fields,
    )
    db.add(note)
    await db.commit()
    await db.refresh(note)
    return note


@pytest_asyncio.fixture
async def test_project(db_session: AsyncSession, test_user: User) -> Project:
    return await make_project(db_session, test_user)


@pytest_asyncio.fixture
async def test_tasks(db_session: AsyncSession, test_project: Project) -> list[Task]:
    """Three pending tasks with different priorities and due dates."""
    today = date.today()
    return [
        await make_task(
            db_session, test_project,
            description="Write copy", estimated_time=3, priority_score=4,
            due_date=today + timedelta(days=5), stage="Build",
        ),
        await make_task(
            db_session, test_project,
            description="Design hero", estimated_time=2, priority_score=8,
            due_date=today + timedelta(days=2), stage="Design",
        ),
        await make_task(
            db_session, test_project,
            description="Set up hosting", estimated_time=1, priority_score=6,
        ),
    ]


# ==========================================================================
# Helper Functions
# ==========================================================================

def unique_email() -> str:
    """Generate a unique email for tests."""
    return f"test_{uuid4().hex[:8]}@example.com"
