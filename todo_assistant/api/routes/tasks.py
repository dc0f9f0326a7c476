"""
Task routes.

Plain CRUD for the user's to-do list. Changes requested through the
assistant go through the pending call ledger instead.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, status

from todo_assistant.api.dependencies import get_current_user, get_services
from todo_assistant.core.exceptions import NotFoundError
from todo_assistant.persistence.models import (
    Task,
    TaskCreate,
    TaskFilter,
    TaskPriority,
    TaskUpdate,
    User,
)
from todo_assistant.services.container import ServiceContainer

logger = logging.getLogger(__name__)

router = APIRouter()


def _missing(task_id: str) -> NotFoundError:
    return NotFoundError("Task not found", resource="task", resource_id=task_id)


@router.get("", response_model=List[Task])
async def list_tasks(
    completed: Optional[bool] = None,
    priority: Optional[TaskPriority] = None,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    """List the user's tasks, newest first."""
    filters = TaskFilter(completed=completed, priority=priority)
    return await services.tasks.list_tasks(current_user.id, filters)


@router.post("", response_model=Task, status_code=status.HTTP_201_CREATED)
async def create_task(
    data: TaskCreate,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    """Create a task."""
    task = await services.tasks.create_task(current_user.id, data)
    logger.info(f"Task {task.id} created by user {current_user.id}")
    return task


@router.get("/{task_id}", response_model=Task)
async def get_task(
    task_id: str,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    """Get a single task."""
    task = await services.tasks.get_task(current_user.id, task_id)
    if task is None:
        raise _missing(task_id)
    return task


@router.patch("/{task_id}", response_model=Task)
async def update_task(
    task_id: str,
    changes: TaskUpdate,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    """Update the fields present in the request body."""
    task = await services.tasks.update_task(current_user.id, task_id, changes)
    if task is None:
        raise _missing(task_id)
    return task


@router.delete("/{task_id}")
async def delete_task(
    task_id: str,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    """Delete a task."""
    if not await services.tasks.delete_task(current_user.id, task_id):
        raise _missing(task_id)
    logger.info(f"Task {task_id} deleted by user {current_user.id}")
    return {"success": True, "taskId": task_id}


@router.post("/{task_id}/toggle", response_model=Task)
async def toggle_task(
    task_id: str,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    """Flip the completed flag of a task."""
    task = await services.tasks.get_task(current_user.id, task_id)
    if task is None:
        raise _missing(task_id)

    updated = await services.tasks.update_task(
        current_user.id, task_id, TaskUpdate(completed=not task.completed)
    )
    if updated is None:
        raise _missing(task_id)
    return updated
