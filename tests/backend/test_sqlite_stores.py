"""Tests for SQLite store failure handling."""

import pytest
import pytest_asyncio

from todo_assistant.core.exceptions import DatabaseError
from todo_assistant.persistence.database import Database
from todo_assistant.persistence.models import TaskCreate
from todo_assistant.persistence.sqlite import SQLiteTaskStore, SQLiteThreadStore


class UnreadableTaskStore(SQLiteTaskStore):
    async def get_task(self, user_id, task_id):
        return None


class UnreadableThreadStore(SQLiteThreadStore):
    async def get_thread(self, thread_id):
        return None


@pytest_asyncio.fixture
async def db(tmp_path) -> Database:
    database = Database(str(tmp_path / "stores.db"))
    await database.init_db()
    return database


@pytest.mark.asyncio
async def test_created_task_must_be_readable(db):
    store = UnreadableTaskStore(db)

    with pytest.raises(DatabaseError) as exc_info:
        await store.create_task("user-1", TaskCreate(title="Buy milk"))

    assert exc_info.value.status_code == 502


@pytest.mark.asyncio
async def test_created_thread_must_be_readable(db):
    store = UnreadableThreadStore(db)

    with pytest.raises(DatabaseError):
        await store.create_thread("user-1", title="Chat")
