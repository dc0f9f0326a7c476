"""
Pydantic models for the persistence layer.

These models define the data structures for users, tasks, conversation
threads and pending function calls. Fields are snake_case in Python and
camelCase on the wire.
"""

import json
from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

TaskPriority = Literal["low", "medium", "high"]
CallStatus = Literal["pending", "approved", "rejected"]
MessageRole = Literal["user", "assistant", "tool"]

TERMINAL_STATUSES = ("approved", "rejected")


class CamelModel(BaseModel):
    """Base model serialized with camelCase aliases."""

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


# --- User Models ---

class UserCreate(BaseModel):
    """Request model for user registration."""

    username: str = Field(..., min_length=3, max_length=50)
    password: str = Field(..., min_length=6)


class User(BaseModel):
    """User entity model."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    created_at: datetime


# --- Task Models ---

class TaskCreate(CamelModel):
    """Fields accepted when creating a task."""

    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    priority: TaskPriority = "medium"
    due_date: Optional[date] = None
    completed: bool = False


class TaskUpdate(CamelModel):
    """Partial update for a task; only explicitly set fields are applied."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    description: Optional[str] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[date] = None
    completed: Optional[bool] = None


class TaskFilter(CamelModel):
    """Filters for listing tasks."""

    priority: Optional[TaskPriority] = None
    completed: Optional[bool] = None
    due_before: Optional[date] = None
    due_after: Optional[date] = None
    created_after: Optional[datetime] = None
    created_before: Optional[datetime] = None


class Task(CamelModel):
    """Task entity model."""

    id: str
    user_id: str
    title: str
    description: Optional[str] = None
    completed: bool = False
    priority: TaskPriority = "medium"
    due_date: Optional[date] = None
    is_ai_generated: bool = Field(default=False, alias="isAIGenerated")
    created_at: datetime
    updated_at: datetime


# --- Conversation Models ---

class Thread(CamelModel):
    """Conversation thread owned by a user."""

    id: str
    user_id: str
    title: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ToolCallRecord(CamelModel):
    """A tool call requested by the LLM, kept so a run can be replayed."""

    id: str
    name: str
    args: Dict[str, Any] = Field(default_factory=dict)


class ExecutedFunction(CamelModel):
    """A function that actually ran in response to a message."""

    name: str
    args: Dict[str, Any] = Field(default_factory=dict)
    result: Any = None
    error: bool = False


class MessageCreate(CamelModel):
    """Fields for appending a message to a thread."""

    thread_id: str
    role: MessageRole
    content: str = ""
    run_id: Optional[str] = None
    tool_calls: List[ToolCallRecord] = Field(default_factory=list)
    tool_call_id: Optional[str] = None
    executed_functions: List[ExecutedFunction] = Field(default_factory=list)
    has_pending_calls: bool = False
    pending_calls_count: int = 0


class ChatMessage(MessageCreate):
    """Stored conversation message."""

    id: str
    timestamp: datetime


# --- Pending Function Call Models ---

class PendingCallCreate(CamelModel):
    """Fields for recording a proposed function call."""

    user_id: str
    thread_id: str
    run_id: str
    tool_call_id: str
    function_name: str
    function_args: str = "{}"


class PendingFunctionCall(PendingCallCreate):
    """A proposed function call awaiting (or past) human approval."""

    id: str
    status: CallStatus = "pending"
    result: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @computed_field(alias="formattedArgs")  # type: ignore[misc]
    @property
    def formatted_args(self) -> Dict[str, Any]:
        """Arguments parsed from JSON; empty when the payload is not an object."""
        try:
            parsed = json.loads(self.function_args or "{}")
        except json.JSONDecodeError:
            return {}
        return parsed if isinstance(parsed, dict) else {}

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
