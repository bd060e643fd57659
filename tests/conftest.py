# tests/conftest.py
import os

# Set up test environment variables BEFORE any other imports
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("DOCUMENT_STORE", "memory")
# No Gemini key: project creation uses keyword extraction
os.environ["GEMINI_API_KEY"] = ""
os.environ.setdefault("LOCAL_USERNAME", "admin")
os.environ.setdefault("LOCAL_PASSWORD", "planet")
os.environ.setdefault("LOCAL_USER_ID", "demo_user")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.core.config import Settings
from app.kanban.collection import TaskCollection
from app.kanban.gateway import SyncGateway
from app.kanban.notifications import NotificationCenter
from app.kanban.session import BoardSession
from app.main import create_app
from app.persistence.memory import InMemoryDocumentStore
from app.persistence.sql import SQLDocumentStore

TEST_UID = "demo_user"


@pytest.fixture
def test_settings():
    """Settings with short client-side delays."""
    return Settings(
        environment="testing",
        gemini_api_key="",
        autosave_delay=0.05,
        request_timeout=5.0,
    )


@pytest.fixture
def store():
    """Create a fresh in-memory document store."""
    return InMemoryDocumentStore()


@pytest_asyncio.fixture
async def sql_store(tmp_path):
    """Create a SQL document store on a throwaway SQLite file."""
    sql_store = SQLDocumentStore.from_url(f"sqlite+aiosqlite:///{tmp_path / 'documents.db'}")
    yield sql_store
    await sql_store.close()


@pytest.fixture
def app(store):
    """Create an application bound to the test store."""
    return create_app(document_store=store)


@pytest_asyncio.fixture
async def client(app):
    """Create a test client talking to the app in-process."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def gateway(client, test_settings):
    """Sync gateway wired to the in-process test client."""
    gateway = SyncGateway(client=client, config=test_settings)
    yield gateway
    await gateway.aclose()


@pytest.fixture
def notifier():
    return NotificationCenter()


@pytest.fixture
def collection():
    return TaskCollection()


@pytest_asyncio.fixture
async def session(gateway, test_settings, notifier):
    """A started board session for the local identity."""
    board_session = BoardSession(
        uid=TEST_UID, gateway=gateway, config=test_settings, notifier=notifier
    )
    await board_session.start()
    yield board_session
    await board_session.close()


@pytest_asyncio.fixture
async def test_project(store):
    """Create a project document directly in the store."""
    from app.persistence.base import PROJECTS, SERVER_TIMESTAMP

    project_id = await store.create(
        PROJECTS,
        {
            "uid": TEST_UID,
            "title": "Test Planet",
            "category": "Software",
            "scale": 5,
            "summary": "",
            "created_at": SERVER_TIMESTAMP,
        },
    )
    return await store.get(PROJECTS, project_id)
