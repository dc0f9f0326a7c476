"""
Approval and rejection of pending function calls.

A call leaves ``pending`` exactly once: the ledger's conditional status
transition decides which request wins, so a call is executed at most once
even when approve requests race each other or race a reject.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from todo_assistant.core.exceptions import (
    AlreadyResolvedError,
    AssistantError,
    NotFoundError,
)
from todo_assistant.functions.executor import FunctionExecutor
from todo_assistant.persistence.base import PendingCallLedger
from todo_assistant.persistence.models import CallStatus, CamelModel, PendingFunctionCall
from todo_assistant.services.assistant_service import AssistantService, ChatResult

logger = logging.getLogger(__name__)


class ApprovalOutcome(CamelModel):
    """Response of an approve request."""

    success: bool = True
    message: str
    result: Any = None
    follow_up: Optional[ChatResult] = None


class RejectionOutcome(CamelModel):
    """Response of a reject request."""

    success: bool = True
    message: str
    follow_up: Optional[ChatResult] = None


def rejection_notice(function_name: str) -> Dict[str, Any]:
    """Tool result the assistant sees for a declined call."""
    return {
        "rejected": True,
        "message": (
            f"The user declined to run {function_name}. "
            "Do not call it again unless the user asks; offer an alternative instead."
        ),
    }


class ApprovalService:
    """Service for resolving pending function calls."""

    def __init__(
        self,
        ledger: PendingCallLedger,
        executor: FunctionExecutor,
        assistant: AssistantService,
    ):
        self.ledger = ledger
        self.executor = executor
        self.assistant = assistant

    async def list_pending(self, user_id: str) -> List[PendingFunctionCall]:
        """Pending calls of a user, oldest first."""
        return await self.ledger.list_pending(user_id)

    async def get_call(self, user_id: str, call_id: str) -> PendingFunctionCall:
        """Get a call in any status, as long as it belongs to ``user_id``."""
        call = await self.ledger.get_call(call_id)
        if call is None or call.user_id != user_id:
            raise NotFoundError("Pending function call not found", resource="pending_call", resource_id=call_id)
        return call

    async def approve(self, user_id: str, call_id: str) -> ApprovalOutcome:
        """
        Approve and execute a pending call.

        Execution failures (e.g. the task was deleted meanwhile) do not undo
        the approval: the error is recorded as the call's result and
        reported back to the assistant like any other outcome.

        Raises:
            NotFoundError: unknown call or owned by another user
            AlreadyResolvedError: the call is no longer pending
        """
        call = await self._claim(user_id, call_id, "approved")

        try:
            result = await self.executor.execute(user_id, call.function_name, call.function_args)
            message = f"Function {call.function_name} executed successfully"
        except AssistantError as e:
            logger.warning(f"Approved call {call.id} ({call.function_name}) failed: {e}")
            result = {"error": True, "message": e.message}
            message = f"Function {call.function_name} was approved but failed: {e.message}"
        except Exception as e:
            logger.exception(f"Approved call {call.id} ({call.function_name}) crashed: {e}")
            result = {"error": True, "message": "Execution failed unexpectedly"}
            message = f"Function {call.function_name} was approved but failed"

        await self.ledger.set_result(call.id, json.dumps(result, default=str))
        follow_up = await self.assistant.submit_tool_outcome(call, result)

        return ApprovalOutcome(message=message, result=result, follow_up=follow_up)

    async def reject(self, user_id: str, call_id: str) -> RejectionOutcome:
        """
        Reject a pending call without executing it.

        Raises:
            NotFoundError: unknown call or owned by another user
            AlreadyResolvedError: the call is no longer pending
        """
        call = await self._claim(user_id, call_id, "rejected")

        notice = rejection_notice(call.function_name)
        await self.ledger.set_result(call.id, json.dumps(notice))
        follow_up = await self.assistant.submit_tool_outcome(call, notice)

        return RejectionOutcome(message=f"Function call {call.function_name} rejected", follow_up=follow_up)

    async def _claim(self, user_id: str, call_id: str, status: CallStatus) -> PendingFunctionCall:
        """Move a call out of ``pending``; only one caller ever succeeds."""
        if await self.ledger.transition(call_id, user_id, status):
            call = await self.ledger.get_call(call_id)
            if call is None:
                raise NotFoundError("Pending function call not found", resource="pending_call", resource_id=call_id)
            logger.info(f"Call {call_id} ({call.function_name}) {status} by user {user_id}")
            return call

        existing = await self.get_call(user_id, call_id)
        raise AlreadyResolvedError(
            f"Function call already {existing.status}",
            call_id=call_id,
            status=existing.status,
        )
