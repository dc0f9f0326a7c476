"""
Function executor.

Dispatches validated function calls onto the task store. Holds no state of
its own; every side effect goes through the injected ``TaskStore``.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Union

from todo_assistant.core.exceptions import InvalidArgumentsError, NotFoundError
from todo_assistant.functions.productivity import analyze_tasks
from todo_assistant.functions.registry import FUNCTIONS, FunctionCall, parse_call
from todo_assistant.functions.schemas import (
    AnalyzeProductivityArgs,
    CreateTaskArgs,
    FunctionArgs,
    GetTasksArgs,
    TaskIdArgs,
    UpdateTaskArgs,
)
from todo_assistant.persistence.base import TaskStore
from todo_assistant.persistence.models import Task, TaskCreate, TaskFilter, TaskUpdate

logger = logging.getLogger(__name__)

Handler = Callable[[str, Any], Awaitable[Dict[str, Any]]]


def task_payload(task: Task) -> Dict[str, Any]:
    """JSON-ready task representation shared by results and the API."""
    return task.model_dump(mode="json", by_alias=True)


class FunctionExecutor:
    """Executes the assistant's functions for a user."""

    def __init__(self, task_store: TaskStore):
        self.task_store = task_store
        self._handlers: Dict[str, Handler] = {
            "create_task": self._create_task,
            "update_task": self._update_task,
            "complete_task": self._complete_task,
            "delete_task": self._delete_task,
            "delete_completed_tasks": self._delete_completed_tasks,
            "get_tasks": self._get_tasks,
            "analyze_productivity": self._analyze_productivity,
        }
        missing = set(FUNCTIONS) - set(self._handlers)
        if missing:
            raise RuntimeError(f"No handler registered for: {', '.join(sorted(missing))}")

    async def execute(
        self,
        user_id: str,
        function_name: str,
        args: Union[str, Mapping[str, Any], None],
    ) -> Dict[str, Any]:
        """
        Validate and run a function.

        Raises:
            InvalidArgumentsError: unknown function or invalid arguments
            NotFoundError: the referenced task does not exist for this user
        """
        return await self.run(user_id, parse_call(function_name, args))

    async def run(self, user_id: str, call: FunctionCall) -> Dict[str, Any]:
        """Run an already validated call."""
        handler = self._handlers.get(call.name)
        if handler is None:
            raise InvalidArgumentsError(f"Unknown function: {call.name}", function_name=call.name)

        logger.info(f"Executing {call.name} for user {user_id}")
        return await handler(user_id, call.args)

    async def _create_task(self, user_id: str, args: CreateTaskArgs) -> Dict[str, Any]:
        task = await self.task_store.create_task(
            user_id,
            TaskCreate(
                title=args.title,
                description=args.description,
                priority=args.priority or "medium",
                due_date=args.due_date,
            ),
            is_ai_generated=True,
        )
        logger.info(f"Task created with ID: {task.id}")
        return task_payload(task)

    async def _update_task(self, user_id: str, args: UpdateTaskArgs) -> Dict[str, Any]:
        changes = args.model_dump(exclude_unset=True, exclude={"task_id"})
        task = await self.task_store.update_task(user_id, args.task_id, TaskUpdate(**changes))
        return task_payload(self._require(task, args.task_id))

    async def _complete_task(self, user_id: str, args: TaskIdArgs) -> Dict[str, Any]:
        task = await self.task_store.update_task(user_id, args.task_id, TaskUpdate(completed=True))
        return task_payload(self._require(task, args.task_id))

    async def _delete_task(self, user_id: str, args: TaskIdArgs) -> Dict[str, Any]:
        deleted = await self.task_store.delete_task(user_id, args.task_id)
        if not deleted:
            raise NotFoundError(f"Task {args.task_id} not found", resource="task", resource_id=args.task_id)
        logger.info(f"Task {args.task_id} deleted")
        return {
            "success": True,
            "message": f"Task {args.task_id} deleted successfully",
            "taskId": args.task_id,
        }

    async def _delete_completed_tasks(self, user_id: str, args: FunctionArgs) -> Dict[str, Any]:
        count = await self.task_store.delete_completed(user_id)
        logger.info(f"Deleted {count} completed tasks for user {user_id}")
        return {"deletedCount": count}

    async def _get_tasks(self, user_id: str, args: GetTasksArgs) -> Dict[str, Any]:
        tasks = await self.task_store.list_tasks(
            user_id,
            TaskFilter(
                priority=args.priority,
                completed=args.completed,
                due_before=args.due_before,
                due_after=args.due_after,
            ),
        )
        return {"tasks": [task_payload(t) for t in tasks], "count": len(tasks)}

    async def _analyze_productivity(self, user_id: str, args: AnalyzeProductivityArgs) -> Dict[str, Any]:
        tasks = await self.task_store.list_tasks(user_id)
        return analyze_tasks(tasks, start_date=args.start_date, end_date=args.end_date)

    @staticmethod
    def _require(task: Optional[Task], task_id: str) -> Task:
        if task is None:
            raise NotFoundError(f"Task {task_id} not found", resource="task", resource_id=task_id)
        return task
