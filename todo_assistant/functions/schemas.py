"""
Argument schemas for the assistant's callable functions.

One pydantic model per function; the LLM sees them as JSON schemas
(camelCase properties) and every call is validated against them before
it is recorded or executed.
"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from todo_assistant.persistence.models import TaskPriority


class FunctionArgs(BaseModel):
    """Base for function argument models."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )


class CreateTaskArgs(FunctionArgs):
    title: str = Field(..., min_length=1, max_length=500, description="The title of the task")
    description: Optional[str] = Field(default=None, description="Optional detailed description of the task")
    priority: Optional[TaskPriority] = Field(default=None, description="Priority level of the task")
    due_date: Optional[date] = Field(default=None, description="Due date in ISO format (YYYY-MM-DD)")


class UpdateTaskArgs(FunctionArgs):
    task_id: str = Field(..., min_length=1, description="ID of the task to update")
    title: Optional[str] = Field(default=None, min_length=1, max_length=500, description="New title for the task")
    description: Optional[str] = Field(default=None, description="New description for the task")
    priority: Optional[TaskPriority] = Field(default=None, description="New priority level")
    due_date: Optional[date] = Field(default=None, description="New due date in ISO format (YYYY-MM-DD)")
    completed: Optional[bool] = Field(default=None, description="Mark task as completed or not")


class TaskIdArgs(FunctionArgs):
    task_id: str = Field(..., min_length=1, description="ID of the task")


class NoArgs(FunctionArgs):
    pass


class GetTasksArgs(FunctionArgs):
    priority: Optional[TaskPriority] = Field(default=None, description="Filter by priority")
    completed: Optional[bool] = Field(default=None, description="Filter by completion status")
    due_before: Optional[date] = Field(default=None, description="Only tasks due on or before this date (YYYY-MM-DD)")
    due_after: Optional[date] = Field(default=None, description="Only tasks due on or after this date (YYYY-MM-DD)")


class AnalyzeProductivityArgs(FunctionArgs):
    start_date: Optional[date] = Field(default=None, description="Start of the analysis window (YYYY-MM-DD), defaults to 30 days ago")
    end_date: Optional[date] = Field(default=None, description="End of the analysis window (YYYY-MM-DD), defaults to today")
