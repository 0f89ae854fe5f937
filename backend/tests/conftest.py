"""Shared test fixtures.

Tests run against a throwaway SQLite database (aiosqlite) created fresh for
every test. S3 and the completion service are replaced with mocks per test;
nothing talks to the network. The in-process job worker is disabled, so
tests drive deferred jobs explicitly through ``job_scheduler``.
"""

import os
import tempfile

# Settings are read once at import; configure them before any app import.
_DB_DIR = tempfile.mkdtemp(prefix="studynest-tests-")
os.environ["DATABASE_URL_OVERRIDE"] = f"sqlite+aiosqlite:///{_DB_DIR}/test.db"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["GOOGLE_CLIENT_ID"] = "test-client-id.apps.googleusercontent.com"
os.environ["AWS_ACCESS_KEY_ID"] = "testing"
os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
os.environ["AWS_S3_BUCKET"] = "studynest-test"
os.environ["ANTHROPIC_API_KEY"] = "test-anthropic-key"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["LOG_FORMAT"] = "text"

from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, patch
from uuid import UUID

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import create_access_token
from app.db.base import Base
from app.db.models import User
from app.db.session import AsyncSessionLocal, engine
from app.main import app
from app.services.completion_service import completion_service
from app.services.s3 import s3_service


@pytest.fixture(autouse=True)
async def _database() -> AsyncGenerator[None, None]:
    """Create every table before the test and drop them after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    # Connections are bound to this test's event loop
    await engine.dispose()


@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    """Per-test database session."""
    async with AsyncSessionLocal() as session:
        yield session


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing FastAPI endpoints."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def mock_s3():
    """Replace every S3 call with a predictable mock."""
    with (
        patch.object(
            s3_service,
            "generate_presigned_upload_url",
            AsyncMock(return_value={"url": "https://s3.test/upload", "fields": {"key": "k"}}),
        ) as upload,
        patch.object(
            s3_service,
            "generate_presigned_download_url",
            AsyncMock(return_value="https://s3.test/download"),
        ) as download_url,
        patch.object(s3_service, "download_object", AsyncMock(return_value=b"Cell biology notes")) as download,
        patch.object(s3_service, "delete_object", AsyncMock()) as delete,
    ):
        yield {
            "generate_presigned_upload_url": upload,
            "generate_presigned_download_url": download_url,
            "download_object": download,
            "delete_object": delete,
        }


@pytest.fixture
def mock_completion():
    """Completion service double; set .return_value or .side_effect per test."""
    with patch.object(completion_service, "complete", AsyncMock(return_value="Here to help!")) as complete:
        yield complete


async def create_user(db: AsyncSession, name: str = "Test User", email: str | None = None) -> User:
    user = User(name=name, email=email)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


def auth_headers(user_id: UUID) -> dict:
    """Bearer headers for a user."""
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest.fixture
async def user(db: AsyncSession) -> User:
    return await create_user(db, "Ada", "ada@example.com")


@pytest.fixture
async def other_user(db: AsyncSession) -> User:
    return await create_user(db, "Grace", "grace@example.com")


@pytest.fixture
async def third_user(db: AsyncSession) -> User:
    return await create_user(db, "Linus", "linus@example.com")
