"""Abstract repository interfaces injected into the services."""

from abc import ABC, abstractmethod
from typing import List, Optional

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


class UserStore(ABC):
    """Users and credential checks."""

    @abstractmethod
    async def create_user(self, username: str, password: str) -> Optional[User]:
        """Create a user; None if the username is taken."""
        ...

    @abstractmethod
    async def authenticate_user(self, username: str, password: str) -> Optional[User]:
        """Return the user when the password matches."""
        ...

    @abstractmethod
    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        ...


class TaskStore(ABC):
    """Task records, always scoped to their owner."""

    @abstractmethod
    async def create_task(
        self, user_id: str, data: TaskCreate, is_ai_generated: bool = False
    ) -> Task:
        ...

    @abstractmethod
    async def get_task(self, user_id: str, task_id: str) -> Optional[Task]:
        ...

    @abstractmethod
    async def list_tasks(
        self, user_id: str, filters: Optional[TaskFilter] = None
    ) -> List[Task]:
        """List tasks, newest first."""
        ...

    @abstractmethod
    async def update_task(
        self, user_id: str, task_id: str, changes: TaskUpdate
    ) -> Optional[Task]:
        """Apply the explicitly set fields of ``changes``; None if not found."""
        ...

    @abstractmethod
    async def delete_task(self, user_id: str, task_id: str) -> bool:
        ...

    @abstractmethod
    async def delete_completed(self, user_id: str) -> int:
        """Delete every completed task of the user and return how many went."""
        ...


class ThreadStore(ABC):
    """Conversation threads and their ordered messages."""

    @abstractmethod
    async def create_thread(self, user_id: str, title: Optional[str] = None) -> Thread:
        ...

    @abstractmethod
    async def get_thread(self, thread_id: str) -> Optional[Thread]:
        ...

    @abstractmethod
    async def add_message(self, message: MessageCreate) -> ChatMessage:
        """Append a message; messages keep insertion order."""
        ...

    @abstractmethod
    async def list_messages(
        self, thread_id: str, limit: Optional[int] = None
    ) -> List[ChatMessage]:
        """Messages oldest first; with ``limit`` only the most recent ones."""
        ...

    @abstractmethod
    async def find_run_request(self, thread_id: str, run_id: str) -> Optional[ChatMessage]:
        """The latest assistant message of a run that carries tool calls."""
        ...


class PendingCallLedger(ABC):
    """
    Proposed function calls awaiting human approval.

    ``transition`` is the only way a status changes and must be atomic:
    it succeeds for exactly one caller per call id.
    """

    @abstractmethod
    async def create_call(self, data: PendingCallCreate) -> PendingFunctionCall:
        """
        Record a pending call.

        If a pending row already exists for the same (thread_id, tool_call_id)
        that row is returned instead of inserting a duplicate.
        """
        ...

    @abstractmethod
    async def get_call(self, call_id: str) -> Optional[PendingFunctionCall]:
        ...

    @abstractmethod
    async def list_pending(self, user_id: str) -> List[PendingFunctionCall]:
        """Pending calls of the user, oldest first."""
        ...

    @abstractmethod
    async def list_for_run(self, thread_id: str, run_id: str) -> List[PendingFunctionCall]:
        """Every call recorded for a run, any status."""
        ...

    @abstractmethod
    async def transition(self, call_id: str, user_id: str, status: CallStatus) -> bool:
        """
        Move a call from pending to ``status``.

        Returns False when the call is missing, foreign or already terminal.
        """
        ...

    @abstractmethod
    async def set_result(self, call_id: str, result: str) -> None:
        """Store the serialized outcome of a resolved call."""
        ...
