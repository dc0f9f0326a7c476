"""
Business logic services.
"""

from todo_assistant.services.approval_service import (
    ApprovalOutcome,
    ApprovalService,
    RejectionOutcome,
)
from todo_assistant.services.assistant_service import AssistantService, ChatResult
from todo_assistant.services.container import ServiceContainer, build_services

__all__ = [
    "ApprovalOutcome",
    "ApprovalService",
    "AssistantService",
    "ChatResult",
    "RejectionOutcome",
    "ServiceContainer",
    "build_services",
]
