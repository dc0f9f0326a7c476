"""
Pending function call routes.

Human-in-the-loop approval for actions proposed by the assistant.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends

from todo_assistant.api.dependencies import get_current_user, get_services
from todo_assistant.persistence.models import PendingFunctionCall, User
from todo_assistant.services.approval_service import ApprovalOutcome, RejectionOutcome
from todo_assistant.services.container import ServiceContainer

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=List[PendingFunctionCall])
async def list_pending_calls(
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    """
    Get the user's pending function calls, oldest first.

    Clients poll this endpoint to show approval prompts.
    """
    return await services.approvals.list_pending(current_user.id)


@router.get("/{call_id}", response_model=PendingFunctionCall)
async def get_pending_call(
    call_id: str,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    """Get a single call in any status."""
    return await services.approvals.get_call(current_user.id, call_id)


@router.post("/{call_id}/approve", response_model=ApprovalOutcome)
async def approve_pending_call(
    call_id: str,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    """
    Approve and execute a pending call.

    Returns 409 when the call was already approved or rejected.
    """
    return await services.approvals.approve(current_user.id, call_id)


@router.post("/{call_id}/reject", response_model=RejectionOutcome)
async def reject_pending_call(
    call_id: str,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    """
    Reject a pending call; it is never executed.

    Returns 409 when the call was already approved or rejected.
    """
    return await services.approvals.reject(current_user.id, call_id)
