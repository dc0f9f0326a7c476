"""
Service wiring.

Builds the repositories for the configured storage backend and the
services on top of them. The application keeps one container on
``app.state``; tests build their own.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from todo_assistant.core.config import Settings, config
from todo_assistant.core.llm import AssistantLLM, ChatOpenAIAssistant
from todo_assistant.core.locks import ThreadLockRegistry
from todo_assistant.functions.executor import FunctionExecutor
from todo_assistant.persistence.base import (
    PendingCallLedger,
    TaskStore,
    ThreadStore,
    UserStore,
)
from todo_assistant.persistence.database import Database
from todo_assistant.persistence.memory import (
    InMemoryPendingCallLedger,
    InMemoryTaskStore,
    InMemoryThreadStore,
    InMemoryUserStore,
)
from todo_assistant.persistence.sqlite import (
    SQLitePendingCallLedger,
    SQLiteTaskStore,
    SQLiteThreadStore,
    SQLiteUserStore,
)
from todo_assistant.services.approval_service import ApprovalService
from todo_assistant.services.assistant_service import AssistantService

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Repositories and services shared by the API."""

    users: UserStore
    tasks: TaskStore
    threads: ThreadStore
    ledger: PendingCallLedger
    executor: FunctionExecutor
    assistant: AssistantService
    approvals: ApprovalService
    database: Optional[Database] = None


async def build_services(
    settings: Optional[Settings] = None,
    llm: Optional[AssistantLLM] = None,
    db_path: Optional[str] = None,
) -> ServiceContainer:
    """
    Create repositories and services.

    Args:
        settings: Settings to use (defaults to the global config)
        llm: LLM implementation (defaults to ChatOpenAI)
        db_path: Database file, overriding the configured path

    Returns:
        A ready container; the SQLite schema is created if needed
    """
    settings = settings or config
    database: Optional[Database] = None

    if settings.assistant.storage == "memory":
        users: UserStore = InMemoryUserStore()
        tasks: TaskStore = InMemoryTaskStore()
        threads: ThreadStore = InMemoryThreadStore()
        ledger: PendingCallLedger = InMemoryPendingCallLedger()
    else:
        database = Database(db_path or settings.database.app_db_path)
        await database.init_db()
        users = SQLiteUserStore(database)
        tasks = SQLiteTaskStore(database)
        threads = SQLiteThreadStore(database)
        ledger = SQLitePendingCallLedger(database)

    executor = FunctionExecutor(tasks)
    assistant = AssistantService(
        threads=threads,
        ledger=ledger,
        executor=executor,
        llm=llm or ChatOpenAIAssistant(settings.llm),
        locks=ThreadLockRegistry(),
        settings=settings.assistant,
        llm_timeout=settings.llm.timeout_seconds,
    )
    approvals = ApprovalService(ledger=ledger, executor=executor, assistant=assistant)

    logger.info(f"Services ready ({settings.assistant.storage} storage)")
    return ServiceContainer(
        users=users,
        tasks=tasks,
        threads=threads,
        ledger=ledger,
        executor=executor,
        assistant=assistant,
        approvals=approvals,
        database=database,
    )
