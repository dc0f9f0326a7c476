"""Pytest configuration and fixtures."""

from typing import Any, AsyncGenerator, Dict

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from todo_assistant.api.dependencies import create_access_token
from todo_assistant.core.config import Settings, config
from todo_assistant.main import create_app
from todo_assistant.persistence.database import Database
from todo_assistant.persistence.memory import InMemoryPendingCallLedger, InMemoryTaskStore
from todo_assistant.persistence.models import User
from todo_assistant.persistence.sqlite import SQLitePendingCallLedger, SQLiteTaskStore
from todo_assistant.services.container import ServiceContainer, build_services
from tests.fakes import ScriptedLLM

BACKENDS = ["memory", "sqlite"]


def make_settings(storage: str = "memory", **assistant: Any) -> Settings:
    """Copy of the global config with test overrides for the assistant."""
    return config.model_copy(
        update={"assistant": config.assistant.model_copy(update={"storage": storage, **assistant})}
    )


@pytest.fixture
def llm() -> ScriptedLLM:
    return ScriptedLLM()


@pytest_asyncio.fixture(params=BACKENDS)
async def services(request, tmp_path, llm: ScriptedLLM) -> ServiceContainer:
    """Service container on each storage backend."""
    return await build_services(
        make_settings(storage=request.param),
        llm=llm,
        db_path=str(tmp_path / "assistant.db"),
    )


@pytest_asyncio.fixture
async def memory_services(llm: ScriptedLLM) -> ServiceContainer:
    """Service container on in-memory storage only."""
    return await build_services(make_settings(storage="memory"), llm=llm)


@pytest_asyncio.fixture(params=BACKENDS)
async def ledger(request, tmp_path):
    """Pending call ledger on each storage backend."""
    if request.param == "memory":
        return InMemoryPendingCallLedger()
    db = Database(str(tmp_path / "ledger.db"))
    await db.init_db()
    return SQLitePendingCallLedger(db)


@pytest_asyncio.fixture(params=BACKENDS)
async def task_store(request, tmp_path):
    """Task store on each storage backend."""
    if request.param == "memory":
        return InMemoryTaskStore()
    db = Database(str(tmp_path / "tasks.db"))
    await db.init_db()
    return SQLiteTaskStore(db)


@pytest_asyncio.fixture
async def user(services: ServiceContainer) -> User:
    return await services.users.create_user("alice", "password123")


@pytest_asyncio.fixture
async def other_user(services: ServiceContainer) -> User:
    return await services.users.create_user("mallory", "password456")


@pytest_asyncio.fixture
async def client(memory_services: ServiceContainer) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client."""
    app = create_app(memory_services)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def api_user(memory_services: ServiceContainer) -> User:
    return await memory_services.users.create_user("bob", "password789")


@pytest.fixture
def auth_headers(api_user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(api_user)}"}
