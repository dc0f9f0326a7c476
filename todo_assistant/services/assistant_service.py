"""
Assistant orchestration.

Runs one conversation turn: appends the user's message, asks the LLM,
executes read-only functions right away and records side-effecting ones
in the pending call ledger instead of running them. Approval outcomes are
fed back through ``submit_tool_outcome``, which resumes the run once every
tool call of that run has an answer.
"""

import asyncio
import json
import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple

from pydantic import Field

from todo_assistant.core.config import AssistantSettings, config
from todo_assistant.core.exceptions import (
    AssistantError,
    InvalidArgumentsError,
    NotFoundError,
    UpstreamFailure,
)
from todo_assistant.core.llm import AssistantLLM, LLMReply, LLMToolCall
from todo_assistant.core.locks import ThreadLockRegistry
from todo_assistant.functions.executor import FunctionExecutor
from todo_assistant.functions.registry import FunctionCall, parse_call, tool_schemas
from todo_assistant.persistence.base import PendingCallLedger, ThreadStore
from todo_assistant.persistence.models import (
    CamelModel,
    ChatMessage,
    ExecutedFunction,
    MessageCreate,
    PendingCallCreate,
    PendingFunctionCall,
    Thread,
    ToolCallRecord,
)

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a helpful assistant inside a to-do list application. "
    "Help the user plan, organize and review their tasks. "
    "Use get_tasks to look up tasks (and their IDs) before updating, completing or deleting them. "
    "Functions that change tasks only run after the user approves them: when you call one, "
    "tell the user what you proposed. "
    "If a function result says the user rejected an action, acknowledge it and offer alternatives "
    "instead of repeating the same call."
)

PENDING_REPLY = "I've prepared {count} action(s) that need your approval before I can continue."
MAX_ROUNDS_REPLY = "I couldn't finish that request. Please try rephrasing it."

# Stand-in outcome for tool calls still waiting on the user
AWAITING_APPROVAL = json.dumps({"status": "awaiting_user_approval"})


class ChatResult(CamelModel):
    """Outcome of one assistant turn."""

    thread_id: str
    message: str
    executed_functions: List[ExecutedFunction] = Field(default_factory=list)
    has_pending_calls: bool = False
    pending_calls_count: int = 0
    pending_calls: List[PendingFunctionCall] = Field(default_factory=list)


def arrange_history(messages: List[ChatMessage]) -> List[ChatMessage]:
    """
    Order messages the way the chat-completions tool protocol expects.

    Each assistant message with tool calls is followed directly by one tool
    message per call. Outcomes recorded later (after an approval) are moved
    up next to their request, calls still pending get a placeholder, and
    tool messages whose request is outside ``messages`` are dropped.
    """
    outcomes = {m.tool_call_id: m for m in messages if m.role == "tool" and m.tool_call_id}
    arranged: List[ChatMessage] = []

    for message in messages:
        if message.role == "tool":
            continue
        arranged.append(message)
        if message.role != "assistant":
            continue
        for tool_call in message.tool_calls:
            outcome = outcomes.get(tool_call.id)
            if outcome is None:
                outcome = ChatMessage(
                    id=f"placeholder_{tool_call.id}",
                    thread_id=message.thread_id,
                    role="tool",
                    content=AWAITING_APPROVAL,
                    run_id=message.run_id,
                    tool_call_id=tool_call.id,
                    timestamp=message.timestamp,
                )
            arranged.append(outcome)

    return arranged


def _dump_outcome(outcome: Any) -> str:
    return json.dumps(outcome, default=str)


class AssistantService:
    """Assistant orchestrator."""

    def __init__(
        self,
        threads: ThreadStore,
        ledger: PendingCallLedger,
        executor: FunctionExecutor,
        llm: AssistantLLM,
        locks: Optional[ThreadLockRegistry] = None,
        settings: Optional[AssistantSettings] = None,
        llm_timeout: Optional[float] = None,
    ):
        self.threads = threads
        self.ledger = ledger
        self.executor = executor
        self.llm = llm
        self.locks = locks or ThreadLockRegistry()
        self.settings = settings or config.assistant
        self.llm_timeout = llm_timeout if llm_timeout is not None else config.llm.timeout_seconds
        self._tools = tool_schemas()

    # --- Threads ---

    async def create_thread(self, user_id: str, title: Optional[str] = None) -> Thread:
        """Create a new conversation thread for a user."""
        thread = await self.threads.create_thread(user_id, title=title)
        logger.info(f"Thread {thread.id} created for user {user_id}")
        return thread

    async def get_thread(self, user_id: str, thread_id: str) -> Thread:
        """Get a thread owned by ``user_id``."""
        thread = await self.threads.get_thread(thread_id)
        if thread is None or thread.user_id != user_id:
            raise NotFoundError("Thread not found", resource="thread", resource_id=thread_id)
        return thread

    async def list_messages(self, user_id: str, thread_id: str) -> List[ChatMessage]:
        """User-visible messages of a thread: the user's and the assistant's replies."""
        await self.get_thread(user_id, thread_id)
        messages = await self.threads.list_messages(thread_id)
        return [
            m for m in messages
            if m.role == "user" or (m.role == "assistant" and m.content)
        ]

    # --- Turns ---

    async def handle_user_message(
        self,
        user_id: str,
        message: str,
        thread_id: Optional[str] = None,
    ) -> ChatResult:
        """
        Process a user message and return the assistant's reply.

        Creates a thread when ``thread_id`` is None.

        Raises:
            NotFoundError: the thread does not belong to the user
            UpstreamFailure: the LLM failed or timed out; no pending calls
                were recorded, the user's message stays in the thread
        """
        if thread_id is None:
            thread = await self.create_thread(user_id, title=message[:80])
        else:
            thread = await self.get_thread(user_id, thread_id)

        async with self.locks.hold(thread.id):
            logger.info(f"Processing chat message for user {user_id} in thread {thread.id}")
            await self.threads.add_message(
                MessageCreate(thread_id=thread.id, role="user", content=message)
            )
            run_id = f"run_{uuid.uuid4().hex}"
            return await self._run(user_id, thread.id, run_id)

    async def submit_tool_outcome(
        self,
        call: PendingFunctionCall,
        outcome: Dict[str, Any],
    ) -> Optional[ChatResult]:
        """
        Feed a resolved call's outcome back into its run.

        Resumes the run once, when every tool call of its latest request
        has a recorded outcome and the run is still the latest exchange of
        the thread. A failing resumption is logged and yields None.
        """
        async with self.locks.hold(call.thread_id):
            await self.threads.add_message(
                MessageCreate(
                    thread_id=call.thread_id,
                    role="tool",
                    content=_dump_outcome(outcome),
                    run_id=call.run_id,
                    tool_call_id=call.tool_call_id,
                )
            )

            if not self.settings.resume_after_resolution:
                return None

            run_calls = await self.ledger.list_for_run(call.thread_id, call.run_id)
            if any(c.status == "pending" for c in run_calls):
                logger.debug(f"Run {call.run_id} still has pending calls")
                return None

            # Calls leave "pending" before they execute, so sibling outcomes may still be missing
            if not await self._outcomes_complete(call):
                return None

            if not await self._is_latest_exchange(call.thread_id, call.run_id):
                logger.info(f"Run {call.run_id} is stale, outcome recorded without resuming")
                return None

            try:
                return await self._run(call.user_id, call.thread_id, call.run_id)
            except UpstreamFailure as e:
                logger.warning(f"Could not resume run {call.run_id}: {e}")
                return None

    async def _outcomes_complete(self, call: PendingFunctionCall) -> bool:
        """Whether ``call`` closes the run's latest tool-call request."""
        request = await self.threads.find_run_request(call.thread_id, call.run_id)
        if request is None:
            return False
        requested = {tc.id for tc in request.tool_calls}
        if call.tool_call_id not in requested:
            logger.info(f"Run {call.run_id} already moved past tool call {call.tool_call_id}")
            return False

        messages = await self.threads.list_messages(call.thread_id)
        ids = [m.id for m in messages]
        later = messages[ids.index(request.id) + 1:] if request.id in ids else []
        if any(m.role == "assistant" and m.run_id == call.run_id for m in later):
            logger.info(f"Run {call.run_id} was already resumed")
            return False

        answered = {m.tool_call_id for m in later if m.role == "tool" and m.run_id == call.run_id}
        missing = requested - answered
        if missing:
            logger.debug(f"Run {call.run_id} waits for {len(missing)} outcome(s)")
            return False
        return True

    async def _is_latest_exchange(self, thread_id: str, run_id: str) -> bool:
        request = await self.threads.find_run_request(thread_id, run_id)
        if request is None:
            return False
        window = await self.threads.list_messages(thread_id, limit=self.settings.history_window)
        ids = [m.id for m in window]
        if request.id not in ids:
            return False
        later = window[ids.index(request.id) + 1:]
        return not any(m.role == "user" for m in later)

    async def _run(self, user_id: str, thread_id: str, run_id: str) -> ChatResult:
        """Run loop; the caller holds the thread lock."""
        executed: List[ExecutedFunction] = []

        for _ in range(self.settings.max_tool_rounds):
            window = await self.threads.list_messages(thread_id, limit=self.settings.history_window)
            reply = await self._call_llm(arrange_history(window))

            if not reply.wants_tools:
                await self.threads.add_message(
                    MessageCreate(
                        thread_id=thread_id,
                        role="assistant",
                        content=reply.content,
                        run_id=run_id,
                        executed_functions=executed,
                    )
                )
                return ChatResult(thread_id=thread_id, message=reply.content, executed_functions=executed)

            planned = self._plan(reply)
            approvals = [call for _, call, _ in planned if call is not None and call.requires_approval]

            # Read-only functions run now; their outcomes go back to the LLM
            outcomes: List[Tuple[LLMToolCall, Dict[str, Any]]] = []
            for tool_call, call, error in planned:
                if error is not None:
                    outcomes.append((tool_call, {"error": True, "message": error.message}))
                elif call is not None and not call.requires_approval:
                    outcomes.append((tool_call, await self._execute(user_id, call, executed)))

            content = reply.content or (PENDING_REPLY.format(count=len(approvals)) if approvals else "")
            await self.threads.add_message(
                MessageCreate(
                    thread_id=thread_id,
                    role="assistant",
                    content=content,
                    run_id=run_id,
                    tool_calls=[self._record(tc) for tc, _, _ in planned],
                    executed_functions=list(executed),
                    has_pending_calls=bool(approvals),
                    pending_calls_count=len(approvals),
                )
            )
            for tool_call, outcome in outcomes:
                await self.threads.add_message(
                    MessageCreate(
                        thread_id=thread_id,
                        role="tool",
                        content=_dump_outcome(outcome),
                        run_id=run_id,
                        tool_call_id=tool_call.id,
                    )
                )

            if approvals:
                pending = []
                for tool_call, call, _ in planned:
                    if call is None or not call.requires_approval:
                        continue
                    pending.append(
                        await self.ledger.create_call(
                            PendingCallCreate(
                                user_id=user_id,
                                thread_id=thread_id,
                                run_id=run_id,
                                tool_call_id=tool_call.id,
                                function_name=call.name,
                                function_args=call.args_json(),
                            )
                        )
                    )
                logger.info(f"Run {run_id} blocked on {len(pending)} pending call(s)")
                return ChatResult(
                    thread_id=thread_id,
                    message=content,
                    executed_functions=executed,
                    has_pending_calls=True,
                    pending_calls_count=len(pending),
                    pending_calls=pending,
                )

        logger.warning(f"Run {run_id} exhausted {self.settings.max_tool_rounds} tool rounds")
        await self.threads.add_message(
            MessageCreate(
                thread_id=thread_id,
                role="assistant",
                content=MAX_ROUNDS_REPLY,
                run_id=run_id,
                executed_functions=executed,
            )
        )
        return ChatResult(thread_id=thread_id, message=MAX_ROUNDS_REPLY, executed_functions=executed)

    async def _call_llm(self, history: List[ChatMessage]) -> LLMReply:
        try:
            reply = await asyncio.wait_for(
                self.llm.complete(SYSTEM_PROMPT, history, self._tools),
                timeout=self.llm_timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"LLM request timed out after {self.llm_timeout}s")
            raise UpstreamFailure("LLM request timed out") from e
        except UpstreamFailure:
            raise
        except Exception as e:
            logger.exception(f"LLM request failed: {e}")
            raise UpstreamFailure(f"LLM request failed: {e}") from e

        if any(not tc.id or not tc.name for tc in reply.tool_calls):
            logger.error("LLM returned a tool call without an id or name")
            raise UpstreamFailure("Malformed LLM response: tool call without id or name")
        return reply

    @staticmethod
    def _plan(
        reply: LLMReply,
    ) -> List[Tuple[LLMToolCall, Optional[FunctionCall], Optional[InvalidArgumentsError]]]:
        """Validate every tool call of a reply before anything is written."""
        planned = []
        for tool_call in reply.tool_calls:
            try:
                planned.append((tool_call, parse_call(tool_call.name, tool_call.args), None))
            except InvalidArgumentsError as e:
                logger.warning(f"Rejected tool call {tool_call.id}: {e}")
                planned.append((tool_call, None, e))
        return planned

    @staticmethod
    def _record(tool_call: LLMToolCall) -> ToolCallRecord:
        args = tool_call.args if isinstance(tool_call.args, dict) else {}
        return ToolCallRecord(id=tool_call.id, name=tool_call.name, args=args)

    async def _execute(
        self,
        user_id: str,
        call: FunctionCall,
        executed: List[ExecutedFunction],
    ) -> Dict[str, Any]:
        args = call.args.model_dump(mode="json", by_alias=True, exclude_none=True)
        try:
            result = await self.executor.run(user_id, call)
        except (NotFoundError, InvalidArgumentsError) as e:
            logger.warning(f"Function {call.name} failed: {e}")
            result = {"error": True, "message": e.message}
            executed.append(ExecutedFunction(name=call.name, args=args, result=result, error=True))
            return result
        except UpstreamFailure:
            raise
        except AssistantError as e:
            result = {"error": True, "message": e.message}
            executed.append(ExecutedFunction(name=call.name, args=args, result=result, error=True))
            return result

        executed.append(ExecutedFunction(name=call.name, args=args, result=result))
        return result
