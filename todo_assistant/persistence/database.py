"""
Async SQLite database plumbing.

Owns the connection helper and the schema. Repository classes in
``todo_assistant.persistence.sqlite`` share one ``Database`` instance.
"""

import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Optional

import aiosqlite

from todo_assistant.core.config import config
from todo_assistant.core.exceptions import DatabaseError

logger = logging.getLogger(__name__)


def utc_now() -> str:
    """Current UTC time as ISO-8601 text (sortable as a string)."""
    return datetime.now(timezone.utc).isoformat()


SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        username TEXT UNIQUE NOT NULL,
        password_hash TEXT NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS tasks (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        title TEXT NOT NULL,
        description TEXT,
        completed INTEGER NOT NULL DEFAULT 0,
        priority TEXT NOT NULL DEFAULT 'medium',
        due_date TEXT,
        is_ai_generated INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        FOREIGN KEY(user_id) REFERENCES users(id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS threads (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        title TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS messages (
        id TEXT PRIMARY KEY,
        thread_id TEXT NOT NULL,
        role TEXT NOT NULL,
        content TEXT NOT NULL DEFAULT '',
        run_id TEXT,
        tool_calls TEXT,
        tool_call_id TEXT,
        executed_functions TEXT,
        has_pending_calls INTEGER NOT NULL DEFAULT 0,
        pending_calls_count INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        FOREIGN KEY(thread_id) REFERENCES threads(id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS pending_calls (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        thread_id TEXT NOT NULL,
        run_id TEXT NOT NULL,
        tool_call_id TEXT NOT NULL,
        function_name TEXT NOT NULL,
        function_args TEXT NOT NULL DEFAULT '{}',
        status TEXT NOT NULL DEFAULT 'pending',
        result TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        CHECK (status IN ('pending', 'approved', 'rejected'))
    )
    """,
    # Indexes
    "CREATE INDEX IF NOT EXISTS idx_tasks_user_id ON tasks(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_threads_user_id ON threads(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_messages_thread_id ON messages(thread_id)",
    "CREATE INDEX IF NOT EXISTS idx_pending_calls_user ON pending_calls(user_id, status, created_at)",
    "CREATE INDEX IF NOT EXISTS idx_pending_calls_run ON pending_calls(thread_id, run_id)",
    # One outstanding row per tool call
    """
    CREATE UNIQUE INDEX IF NOT EXISTS idx_pending_calls_open
    ON pending_calls(thread_id, tool_call_id) WHERE status = 'pending'
    """,
]


class Database:
    """
    Async SQLite database.

    Uses aiosqlite with WAL mode and a short-lived connection per operation.
    """

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path or config.database.app_db_path
        self._initialized = False

    @asynccontextmanager
    async def get_connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Async context manager for database connection."""
        conn = await aiosqlite.connect(self.db_path, timeout=30)
        await conn.execute("PRAGMA journal_mode=WAL;")
        conn.row_factory = aiosqlite.Row
        try:
            yield conn
        except aiosqlite.Error as e:
            logger.error(f"Database operation failed: {e}")
            raise DatabaseError(f"Database operation failed: {e}") from e
        finally:
            await conn.close()

    async def init_db(self) -> None:
        """Initialize database schema."""
        if self._initialized:
            return

        db_dir = os.path.dirname(self.db_path)
        if db_dir and not os.path.exists(db_dir):
            os.makedirs(db_dir, exist_ok=True)

        logger.info(f"Initializing database at: {self.db_path}")

        async with self.get_connection() as conn:
            for statement in SCHEMA:
                await conn.execute(statement)
            await conn.commit()

        self._initialized = True
        logger.info("Database initialized successfully")
