"""
In-memory repositories.

Used by the test suite and for local development without a database file
(``ASSISTANT_STORAGE=memory``). State lives on the instance, never at
module level, so every container gets its own stores.

Mutations never await between their check and their write, which gives
``InMemoryPendingCallLedger.transition`` the same exactly-once guarantee
as the SQL conditional update on a single event loop.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

import bcrypt

from todo_assistant.persistence.base import (
    PendingCallLedger,
    TaskStore,
    ThreadStore,
    UserStore,
)
from todo_assistant.persistence.models import (
    CallStatus,
    ChatMessage,
    MessageCreate,
    PendingCallCreate,
    PendingFunctionCall,
    Task,
    TaskCreate,
    TaskFilter,
    TaskUpdate,
    Thread,
    User,
)

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryUserStore(UserStore):
    def __init__(self) -> None:
        self._users: Dict[str, User] = {}
        self._hashes: Dict[str, bytes] = {}

    async def create_user(self, username: str, password: str) -> Optional[User]:
        if any(u.username == username for u in self._users.values()):
            logger.warning(f"Username '{username}' already exists")
            return None
        user = User(id=str(uuid.uuid4()), username=username, created_at=_now())
        self._users[user.id] = user
        self._hashes[user.id] = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())
        return user

    async def authenticate_user(self, username: str, password: str) -> Optional[User]:
        for user in self._users.values():
            if user.username == username:
                if bcrypt.checkpw(password.encode("utf-8"), self._hashes[user.id]):
                    return user
                return None
        return None

    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        return self._users.get(user_id)


def _matches(task: Task, filters: TaskFilter) -> bool:
    if filters.priority is not None and task.priority != filters.priority:
        return False
    if filters.completed is not None and task.completed != filters.completed:
        return False
    if filters.due_before is not None and (task.due_date is None or task.due_date > filters.due_before):
        return False
    if filters.due_after is not None and (task.due_date is None or task.due_date < filters.due_after):
        return False
    if filters.created_after is not None and task.created_at < filters.created_after:
        return False
    if filters.created_before is not None and task.created_at > filters.created_before:
        return False
    return True


class InMemoryTaskStore(TaskStore):
    def __init__(self) -> None:
        # Insertion-ordered
        self._tasks: Dict[str, Task] = {}

    async def create_task(
        self, user_id: str, data: TaskCreate, is_ai_generated: bool = False
    ) -> Task:
        now = _now()
        task = Task(
            id=str(uuid.uuid4()),
            user_id=user_id,
            title=data.title,
            description=data.description,
            completed=data.completed,
            priority=data.priority,
            due_date=data.due_date,
            is_ai_generated=is_ai_generated,
            created_at=now,
            updated_at=now,
        )
        self._tasks[task.id] = task
        return task.model_copy()

    async def get_task(self, user_id: str, task_id: str) -> Optional[Task]:
        task = self._tasks.get(task_id)
        if task is None or task.user_id != user_id:
            return None
        return task.model_copy()

    async def list_tasks(
        self, user_id: str, filters: Optional[TaskFilter] = None
    ) -> List[Task]:
        filters = filters or TaskFilter()
        owned = [t for t in self._tasks.values() if t.user_id == user_id and _matches(t, filters)]
        return [t.model_copy() for t in reversed(owned)]

    async def update_task(
        self, user_id: str, task_id: str, changes: TaskUpdate
    ) -> Optional[Task]:
        task = self._tasks.get(task_id)
        if task is None or task.user_id != user_id:
            return None

        update = {
            field: value
            for field, value in changes.model_dump(exclude_unset=True).items()
            if not (value is None and field in ("title", "priority", "completed"))
        }
        if update:
            update["updated_at"] = _now()
            task = task.model_copy(update=update)
            self._tasks[task_id] = task
        return task.model_copy()

    async def delete_task(self, user_id: str, task_id: str) -> bool:
        task = self._tasks.get(task_id)
        if task is None or task.user_id != user_id:
            return False
        del self._tasks[task_id]
        return True

    async def delete_completed(self, user_id: str) -> int:
        doomed = [t.id for t in self._tasks.values() if t.user_id == user_id and t.completed]
        for task_id in doomed:
            del self._tasks[task_id]
        return len(doomed)


class InMemoryThreadStore(ThreadStore):
    def __init__(self) -> None:
        self._threads: Dict[str, Thread] = {}
        self._messages: Dict[str, List[ChatMessage]] = {}

    async def create_thread(self, user_id: str, title: Optional[str] = None) -> Thread:
        now = _now()
        thread = Thread(
            id=f"thread_{uuid.uuid4().hex}",
            user_id=user_id,
            title=title,
            created_at=now,
            updated_at=now,
        )
        self._threads[thread.id] = thread
        self._messages[thread.id] = []
        return thread

    async def get_thread(self, thread_id: str) -> Optional[Thread]:
        return self._threads.get(thread_id)

    async def add_message(self, message: MessageCreate) -> ChatMessage:
        now = _now()
        stored = ChatMessage(id=f"msg_{uuid.uuid4().hex}", timestamp=now, **message.model_dump())
        self._messages.setdefault(message.thread_id, []).append(stored)
        thread = self._threads.get(message.thread_id)
        if thread is not None:
            self._threads[thread.id] = thread.model_copy(update={"updated_at": now})
        return stored

    async def list_messages(
        self, thread_id: str, limit: Optional[int] = None
    ) -> List[ChatMessage]:
        messages = self._messages.get(thread_id, [])
        if limit is not None:
            messages = messages[-limit:] if limit > 0 else []
        return list(messages)

    async def find_run_request(self, thread_id: str, run_id: str) -> Optional[ChatMessage]:
        for message in reversed(self._messages.get(thread_id, [])):
            if message.role == "assistant" and message.run_id == run_id and message.tool_calls:
                return message
        return None


class InMemoryPendingCallLedger(PendingCallLedger):
    def __init__(self) -> None:
        self._calls: Dict[str, PendingFunctionCall] = {}

    async def create_call(self, data: PendingCallCreate) -> PendingFunctionCall:
        for call in self._calls.values():
            if (
                call.thread_id == data.thread_id
                and call.tool_call_id == data.tool_call_id
                and call.status == "pending"
            ):
                logger.warning(
                    f"Pending call for tool call {data.tool_call_id} in thread {data.thread_id} already exists"
                )
                return call.model_copy()

        now = _now()
        call = PendingFunctionCall(
            id=f"call_{uuid.uuid4().hex}",
            status="pending",
            created_at=now,
            updated_at=now,
            **data.model_dump(),
        )
        self._calls[call.id] = call
        return call.model_copy()

    async def get_call(self, call_id: str) -> Optional[PendingFunctionCall]:
        call = self._calls.get(call_id)
        return call.model_copy() if call else None

    async def list_pending(self, user_id: str) -> List[PendingFunctionCall]:
        pending = [c for c in self._calls.values() if c.user_id == user_id and c.status == "pending"]
        return [c.model_copy() for c in sorted(pending, key=lambda c: c.created_at)]

    async def list_for_run(self, thread_id: str, run_id: str) -> List[PendingFunctionCall]:
        return [
            c.model_copy()
            for c in self._calls.values()
            if c.thread_id == thread_id and c.run_id == run_id
        ]

    async def transition(self, call_id: str, user_id: str, status: CallStatus) -> bool:
        call = self._calls.get(call_id)
        if call is None or call.user_id != user_id or call.status != "pending":
            return False
        self._calls[call_id] = call.model_copy(update={"status": status, "updated_at": _now()})
        return True

    async def set_result(self, call_id: str, result: str) -> None:
        call = self._calls.get(call_id)
        if call is not None:
            self._calls[call_id] = call.model_copy(update={"result": result})


__all__ = [
    "InMemoryUserStore",
    "InMemoryTaskStore",
    "InMemoryThreadStore",
    "InMemoryPendingCallLedger",
]
