"""
SQLite-backed repositories.

Each store wraps a shared ``Database`` and maps rows onto the pydantic
models from ``todo_assistant.persistence.models``.
"""

import json
import logging
import uuid
from datetime import date, datetime
from typing import Any, List, Optional

import aiosqlite
import bcrypt

from todo_assistant.core.exceptions import DatabaseError
from todo_assistant.persistence.base import (
    PendingCallLedger,
    TaskStore,
    ThreadStore,
    UserStore,
)
from todo_assistant.persistence.database import Database, utc_now
from todo_assistant.persistence.models import (
    CallStatus,
    ChatMessage,
    ExecutedFunction,
    MessageCreate,
    PendingCallCreate,
    PendingFunctionCall,
    Task,
    TaskCreate,
    TaskFilter,
    TaskUpdate,
    Thread,
    ToolCallRecord,
    User,
)

logger = logging.getLogger(__name__)


def _to_db(value: Any) -> Any:
    """Convert Python values into SQLite-friendly scalars."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


class SQLiteUserStore(UserStore):
    """Users with bcrypt password hashes."""

    def __init__(self, db: Database):
        self.db = db

    async def create_user(self, username: str, password: str) -> Optional[User]:
        """
        Create a new user with hashed password.

        Returns None if username already exists.
        """
        hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())
        user_id = str(uuid.uuid4())

        try:
            async with self.db.get_connection() as conn:
                await conn.execute(
                    "INSERT INTO users (id, username, password_hash, created_at) VALUES (?, ?, ?, ?)",
                    (user_id, username, hashed.decode("utf-8"), utc_now()),
                )
                await conn.commit()
        except aiosqlite.IntegrityError:
            logger.warning(f"Username '{username}' already exists")
            return None

        return await self.get_user_by_id(user_id)

    async def authenticate_user(self, username: str, password: str) -> Optional[User]:
        """
        Authenticate user with username and password.

        Returns User if credentials are valid, None otherwise.
        """
        async with self.db.get_connection() as conn:
            async with conn.execute(
                "SELECT id, username, password_hash, created_at FROM users WHERE username = ?",
                (username,),
            ) as cursor:
                row = await cursor.fetchone()

        if not row:
            return None

        if bcrypt.checkpw(password.encode("utf-8"), row["password_hash"].encode("utf-8")):
            return User(id=row["id"], username=row["username"], created_at=row["created_at"])
        return None

    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        """Get user by ID."""
        async with self.db.get_connection() as conn:
            async with conn.execute(
                "SELECT id, username, created_at FROM users WHERE id = ?",
                (user_id,),
            ) as cursor:
                row = await cursor.fetchone()
                return User(**dict(row)) if row else None


class SQLiteTaskStore(TaskStore):
    """Task CRUD scoped by user_id."""

    def __init__(self, db: Database):
        self.db = db

    async def create_task(
        self, user_id: str, data: TaskCreate, is_ai_generated: bool = False
    ) -> Task:
        task_id = str(uuid.uuid4())
        now = utc_now()

        async with self.db.get_connection() as conn:
            await conn.execute(
                """
                INSERT INTO tasks (id, user_id, title, description, completed, priority,
                                   due_date, is_ai_generated, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    task_id,
                    user_id,
                    data.title,
                    data.description,
                    int(data.completed),
                    data.priority,
                    _to_db(data.due_date),
                    int(is_ai_generated),
                    now,
                    now,
                ),
            )
            await conn.commit()

        task = await self.get_task(user_id, task_id)
        if task is None:
            raise DatabaseError(f"Task {task_id} was not readable after insert")
        return task

    async def get_task(self, user_id: str, task_id: str) -> Optional[Task]:
        async with self.db.get_connection() as conn:
            async with conn.execute(
                "SELECT * FROM tasks WHERE id = ? AND user_id = ?",
                (task_id, user_id),
            ) as cursor:
                row = await cursor.fetchone()
                return Task(**dict(row)) if row else None

    async def list_tasks(
        self, user_id: str, filters: Optional[TaskFilter] = None
    ) -> List[Task]:
        clauses = ["user_id = ?"]
        values: List[Any] = [user_id]

        if filters is not None:
            if filters.priority is not None:
                clauses.append("priority = ?")
                values.append(filters.priority)
            if filters.completed is not None:
                clauses.append("completed = ?")
                values.append(int(filters.completed))
            if filters.due_before is not None:
                clauses.append("due_date IS NOT NULL AND due_date <= ?")
                values.append(_to_db(filters.due_before))
            if filters.due_after is not None:
                clauses.append("due_date IS NOT NULL AND due_date >= ?")
                values.append(_to_db(filters.due_after))
            if filters.created_after is not None:
                clauses.append("created_at >= ?")
                values.append(_to_db(filters.created_after))
            if filters.created_before is not None:
                clauses.append("created_at <= ?")
                values.append(_to_db(filters.created_before))

        query = f"SELECT * FROM tasks WHERE {' AND '.join(clauses)} ORDER BY created_at DESC, rowid DESC"

        async with self.db.get_connection() as conn:
            async with conn.execute(query, values) as cursor:
                rows = await cursor.fetchall()
                return [Task(**dict(row)) for row in rows]

    async def update_task(
        self, user_id: str, task_id: str, changes: TaskUpdate
    ) -> Optional[Task]:
        updates = []
        values: List[Any] = []

        for field, value in changes.model_dump(exclude_unset=True).items():
            # NOT NULL columns ignore explicit nulls
            if value is None and field in ("title", "priority", "completed"):
                continue
            updates.append(f"{field} = ?")
            values.append(_to_db(value))

        if not updates:
            return await self.get_task(user_id, task_id)

        updates.append("updated_at = ?")
        values.append(utc_now())
        values.extend([task_id, user_id])

        async with self.db.get_connection() as conn:
            cursor = await conn.execute(
                f"UPDATE tasks SET {', '.join(updates)} WHERE id = ? AND user_id = ?",
                values,
            )
            await conn.commit()
            if cursor.rowcount == 0:
                return None

        return await self.get_task(user_id, task_id)

    async def delete_task(self, user_id: str, task_id: str) -> bool:
        async with self.db.get_connection() as conn:
            cursor = await conn.execute(
                "DELETE FROM tasks WHERE id = ? AND user_id = ?",
                (task_id, user_id),
            )
            await conn.commit()
            return cursor.rowcount > 0

    async def delete_completed(self, user_id: str) -> int:
        async with self.db.get_connection() as conn:
            cursor = await conn.execute(
                "DELETE FROM tasks WHERE user_id = ? AND completed = 1",
                (user_id,),
            )
            await conn.commit()
            return cursor.rowcount


def _row_to_message(row: aiosqlite.Row) -> ChatMessage:
    tool_calls = json.loads(row["tool_calls"]) if row["tool_calls"] else []
    executed = json.loads(row["executed_functions"]) if row["executed_functions"] else []
    return ChatMessage(
        id=row["id"],
        thread_id=row["thread_id"],
        role=row["role"],
        content=row["content"],
        run_id=row["run_id"],
        tool_calls=[ToolCallRecord(**tc) for tc in tool_calls],
        tool_call_id=row["tool_call_id"],
        executed_functions=[ExecutedFunction(**ef) for ef in executed],
        has_pending_calls=bool(row["has_pending_calls"]),
        pending_calls_count=row["pending_calls_count"],
        timestamp=row["created_at"],
    )


class SQLiteThreadStore(ThreadStore):
    """Threads and messages; message order is the insertion (rowid) order."""

    def __init__(self, db: Database):
        self.db = db

    async def create_thread(self, user_id: str, title: Optional[str] = None) -> Thread:
        thread_id = f"thread_{uuid.uuid4().hex}"
        now = utc_now()

        async with self.db.get_connection() as conn:
            await conn.execute(
                "INSERT INTO threads (id, user_id, title, created_at, updated_at) VALUES (?, ?, ?, ?, ?)",
                (thread_id, user_id, title, now, now),
            )
            await conn.commit()

        thread = await self.get_thread(thread_id)
        if thread is None:
            raise DatabaseError(f"Thread {thread_id} was not readable after insert")
        return thread

    async def get_thread(self, thread_id: str) -> Optional[Thread]:
        async with self.db.get_connection() as conn:
            async with conn.execute(
                "SELECT * FROM threads WHERE id = ?", (thread_id,)
            ) as cursor:
                row = await cursor.fetchone()
                return Thread(**dict(row)) if row else None

    async def add_message(self, message: MessageCreate) -> ChatMessage:
        message_id = f"msg_{uuid.uuid4().hex}"
        now = utc_now()

        async with self.db.get_connection() as conn:
            await conn.execute(
                """
                INSERT INTO messages (id, thread_id, role, content, run_id, tool_calls,
                                      tool_call_id, executed_functions, has_pending_calls,
                                      pending_calls_count, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    message_id,
                    message.thread_id,
                    message.role,
                    message.content,
                    message.run_id,
                    json.dumps([tc.model_dump() for tc in message.tool_calls]),
                    message.tool_call_id,
                    json.dumps([ef.model_dump(mode="json") for ef in message.executed_functions]),
                    int(message.has_pending_calls),
                    message.pending_calls_count,
                    now,
                ),
            )
            await conn.execute(
                "UPDATE threads SET updated_at = ? WHERE id = ?",
                (now, message.thread_id),
            )
            await conn.commit()

        return ChatMessage(id=message_id, timestamp=now, **message.model_dump())

    async def list_messages(
        self, thread_id: str, limit: Optional[int] = None
    ) -> List[ChatMessage]:
        if limit is None:
            query = "SELECT * FROM messages WHERE thread_id = ? ORDER BY rowid ASC"
            params: tuple = (thread_id,)
        else:
            query = """
                SELECT * FROM (
                    SELECT rowid AS seq, * FROM messages
                    WHERE thread_id = ? ORDER BY rowid DESC LIMIT ?
                ) ORDER BY seq ASC
            """
            params = (thread_id, limit)

        async with self.db.get_connection() as conn:
            async with conn.execute(query, params) as cursor:
                rows = await cursor.fetchall()
                return [_row_to_message(row) for row in rows]

    async def find_run_request(self, thread_id: str, run_id: str) -> Optional[ChatMessage]:
        async with self.db.get_connection() as conn:
            async with conn.execute(
                """
                SELECT * FROM messages
                WHERE thread_id = ? AND run_id = ? AND role = 'assistant'
                  AND tool_calls IS NOT NULL AND tool_calls != '[]'
                ORDER BY rowid DESC LIMIT 1
                """,
                (thread_id, run_id),
            ) as cursor:
                row = await cursor.fetchone()
                return _row_to_message(row) if row else None


class SQLitePendingCallLedger(PendingCallLedger):
    """Pending call ledger with conditional-update status transitions."""

    def __init__(self, db: Database):
        self.db = db

    async def create_call(self, data: PendingCallCreate) -> PendingFunctionCall:
        call_id = f"call_{uuid.uuid4().hex}"
        now = utc_now()

        async with self.db.get_connection() as conn:
            cursor = await conn.execute(
                """
                INSERT OR IGNORE INTO pending_calls
                    (id, user_id, thread_id, run_id, tool_call_id, function_name,
                     function_args, status, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, 'pending', ?, ?)
                """,
                (
                    call_id,
                    data.user_id,
                    data.thread_id,
                    data.run_id,
                    data.tool_call_id,
                    data.function_name,
                    data.function_args,
                    now,
                    now,
                ),
            )
            await conn.commit()

            if cursor.rowcount == 0:
                logger.warning(
                    f"Pending call for tool call {data.tool_call_id} in thread {data.thread_id} already exists"
                )

            async with conn.execute(
                """
                SELECT * FROM pending_calls
                WHERE thread_id = ? AND tool_call_id = ? AND status = 'pending'
                """,
                (data.thread_id, data.tool_call_id),
            ) as cursor:
                row = await cursor.fetchone()
                return PendingFunctionCall(**dict(row))

    async def get_call(self, call_id: str) -> Optional[PendingFunctionCall]:
        async with self.db.get_connection() as conn:
            async with conn.execute(
                "SELECT * FROM pending_calls WHERE id = ?", (call_id,)
            ) as cursor:
                row = await cursor.fetchone()
                return PendingFunctionCall(**dict(row)) if row else None

    async def list_pending(self, user_id: str) -> List[PendingFunctionCall]:
        async with self.db.get_connection() as conn:
            async with conn.execute(
                """
                SELECT * FROM pending_calls
                WHERE user_id = ? AND status = 'pending'
                ORDER BY created_at ASC, rowid ASC
                """,
                (user_id,),
            ) as cursor:
                rows = await cursor.fetchall()
                return [PendingFunctionCall(**dict(row)) for row in rows]

    async def list_for_run(self, thread_id: str, run_id: str) -> List[PendingFunctionCall]:
        async with self.db.get_connection() as conn:
            async with conn.execute(
                """
                SELECT * FROM pending_calls
                WHERE thread_id = ? AND run_id = ?
                ORDER BY created_at ASC, rowid ASC
                """,
                (thread_id, run_id),
            ) as cursor:
                rows = await cursor.fetchall()
                return [PendingFunctionCall(**dict(row)) for row in rows]

    async def transition(self, call_id: str, user_id: str, status: CallStatus) -> bool:
        async with self.db.get_connection() as conn:
            cursor = await conn.execute(
                """
                UPDATE pending_calls SET status = ?, updated_at = ?
                WHERE id = ? AND user_id = ? AND status = 'pending'
                """,
                (status, utc_now(), call_id, user_id),
            )
            await conn.commit()
            return cursor.rowcount == 1

    async def set_result(self, call_id: str, result: str) -> None:
        async with self.db.get_connection() as conn:
            await conn.execute(
                "UPDATE pending_calls SET result = ? WHERE id = ?",
                (result, call_id),
            )
            await conn.commit()
