"""
Persistence package.

Repository interfaces plus SQLite and in-memory implementations for users,
tasks, conversation threads and the pending function-call ledger.
"""

from todo_assistant.persistence.base import (
    PendingCallLedger,
    TaskStore,
    ThreadStore,
    UserStore,
)
from todo_assistant.persistence.database import Database
from todo_assistant.persistence.models import (
    ChatMessage,
    PendingFunctionCall,
    Task,
    TaskCreate,
    TaskFilter,
    TaskUpdate,
    Thread,
    User,
    UserCreate,
)

__all__ = [
    "Database",
    "PendingCallLedger",
    "TaskStore",
    "ThreadStore",
    "UserStore",
    "ChatMessage",
    "PendingFunctionCall",
    "Task",
    "TaskCreate",
    "TaskFilter",
    "TaskUpdate",
    "Thread",
    "User",
    "UserCreate",
]
