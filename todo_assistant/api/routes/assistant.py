"""
Assistant routes.

Chat with the assistant and browse conversation threads.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import Field

from todo_assistant.api.dependencies import get_current_user, get_services
from todo_assistant.persistence.models import CamelModel, ChatMessage, User
from todo_assistant.services.assistant_service import ChatResult
from todo_assistant.services.container import ServiceContainer

logger = logging.getLogger(__name__)

router = APIRouter()

GREETING = "Hi! I can help you plan and organize your tasks. What would you like to do?"

PRODUCTIVITY_REQUEST = (
    "Analyze my productivity over the last 30 days and give me concrete recommendations."
)


class ChatRequest(CamelModel):
    """Request model for a chat message."""

    message: str = Field(..., min_length=1, max_length=8000)
    thread_id: Optional[str] = None


class GenerateTasksRequest(CamelModel):
    """Request model for task generation."""

    prompt: str = Field(..., min_length=1, max_length=4000)
    thread_id: Optional[str] = None


class ThreadResponse(CamelModel):
    """Response model for a new thread."""

    thread_id: str
    message: str


@router.post("/chat", response_model=ChatResult)
async def chat(
    request: ChatRequest,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    """
    Send a message to the assistant.

    Side-effecting actions proposed by the assistant are not executed; they
    show up in ``pendingCalls`` and wait for approval.
    """
    return await services.assistant.handle_user_message(
        current_user.id, request.message, thread_id=request.thread_id
    )


@router.post("/thread", response_model=ThreadResponse)
async def create_thread(
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    """Start a new conversation thread."""
    thread = await services.assistant.create_thread(current_user.id)
    return ThreadResponse(thread_id=thread.id, message=GREETING)


@router.get("/threads/{thread_id}/messages", response_model=List[ChatMessage])
async def get_thread_messages(
    thread_id: str,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    """Visible message history of a thread, oldest first."""
    return await services.assistant.list_messages(current_user.id, thread_id)


@router.post("/generate-tasks", response_model=ChatResult)
async def generate_tasks(
    request: GenerateTasksRequest,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    """
    Ask the assistant to break a goal down into tasks.

    The tasks arrive as pending ``create_task`` calls.
    """
    message = (
        "Create a set of concrete, actionable tasks for the following goal. "
        "Use the create_task function once per task.\n\n"
        f"Goal: {request.prompt}"
    )
    return await services.assistant.handle_user_message(
        current_user.id, message, thread_id=request.thread_id
    )


@router.get("/analyze-productivity", response_model=ChatResult)
async def analyze_productivity(
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    """Ask the assistant for a productivity analysis in a fresh thread."""
    return await services.assistant.handle_user_message(current_user.id, PRODUCTIVITY_REQUEST)
