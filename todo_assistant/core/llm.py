"""
LLM provider setup with ChatOpenAI.

Wraps ChatOpenAI behind the small ``AssistantLLM`` interface the
orchestrator depends on: conversation history plus tool schemas in, either
text or structured tool calls out.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, ToolMessage
from langchain_openai import ChatOpenAI

from todo_assistant.core.config import LLMSettings, config
from todo_assistant.persistence.models import ChatMessage

logger = logging.getLogger(__name__)


@dataclass
class LLMToolCall:
    """A function invocation requested by the model."""

    id: str
    name: str
    # Decoded mapping, or raw text when the model produced unparsable JSON
    args: Union[Dict[str, Any], str, None] = None


@dataclass
class LLMReply:
    """Parsed model response."""

    content: str = ""
    tool_calls: List[LLMToolCall] = field(default_factory=list)
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def wants_tools(self) -> bool:
        return bool(self.tool_calls)


class AssistantLLM(ABC):
    """Interface of the external language model."""

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        history: List[ChatMessage],
        tools: List[Dict[str, Any]],
    ) -> LLMReply:
        """Send the conversation and return the model's reply."""
        ...


def to_langchain_messages(system_prompt: str, history: List[ChatMessage]) -> List[BaseMessage]:
    """Convert stored thread messages into LangChain chat messages."""
    messages: List[BaseMessage] = [SystemMessage(content=system_prompt)]
    for message in history:
        if message.role == "user":
            messages.append(HumanMessage(content=message.content))
        elif message.role == "assistant":
            messages.append(
                AIMessage(
                    content=message.content,
                    tool_calls=[
                        {"id": tc.id, "name": tc.name, "args": tc.args}
                        for tc in message.tool_calls
                    ],
                )
            )
        elif message.role == "tool":
            messages.append(ToolMessage(content=message.content, tool_call_id=message.tool_call_id or ""))
    return messages


def extract_tokens_from_response(response: Any) -> tuple[int, int]:
    """
    Extract token usage from an AIMessage or similar response object.

    Modern langchain returns tokens in usage_metadata attribute.

    Args:
        response: AIMessage or similar object from LLM invocation

    Returns:
        Tuple of (input_tokens, output_tokens)
    """
    input_tokens = 0
    output_tokens = 0

    # Method 1: usage_metadata (modern langchain)
    usage = getattr(response, "usage_metadata", None)
    if usage:
        input_tokens = usage.get("input_tokens", 0) or 0
        output_tokens = usage.get("output_tokens", 0) or 0

    # Method 2: response_metadata.token_usage (OpenAI format)
    if input_tokens == 0 and output_tokens == 0:
        metadata = getattr(response, "response_metadata", None)
        if metadata:
            token_usage = metadata.get("token_usage") or {}
            input_tokens = token_usage.get("prompt_tokens", 0)
            output_tokens = token_usage.get("completion_tokens", 0)

    return input_tokens, output_tokens


def parse_ai_message(response: AIMessage) -> LLMReply:
    """Turn an AIMessage into an ``LLMReply``, keeping malformed tool calls."""
    tool_calls = [
        LLMToolCall(id=tc.get("id") or "", name=tc["name"], args=tc.get("args") or {})
        for tc in response.tool_calls
    ]
    # Calls whose arguments did not parse still need an answer in the thread
    tool_calls.extend(
        LLMToolCall(id=tc.get("id") or "", name=tc.get("name") or "", args=tc.get("args"))
        for tc in getattr(response, "invalid_tool_calls", None) or []
    )

    content = response.content
    if isinstance(content, list):
        content = "\n".join(
            part.get("text", "") if isinstance(part, dict) else str(part)
            for part in content
        )

    input_tokens, output_tokens = extract_tokens_from_response(response)
    return LLMReply(
        content=content or "",
        tool_calls=tool_calls,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
    )


class ChatOpenAIAssistant(AssistantLLM):
    """
    ``AssistantLLM`` backed by an OpenAI-compatible chat endpoint.

    The ChatOpenAI client is created lazily and reused.
    """

    def __init__(self, settings: Optional[LLMSettings] = None):
        self.settings = settings or config.llm
        self._llm: Optional[ChatOpenAI] = None

    def get_llm(self) -> ChatOpenAI:
        """Get a configured ChatOpenAI instance."""
        if self._llm is None:
            self._llm = ChatOpenAI(
                api_key=self.settings.api_key,
                base_url=self.settings.base_url,
                model=self.settings.model,
                temperature=self.settings.temperature,
                # A single attempt; callers decide whether to retry
                max_retries=0,
            )
        return self._llm

    async def complete(
        self,
        system_prompt: str,
        history: List[ChatMessage],
        tools: List[Dict[str, Any]],
    ) -> LLMReply:
        llm = self.get_llm()
        runnable = llm.bind_tools(tools) if tools else llm
        response = await runnable.ainvoke(to_langchain_messages(system_prompt, history))

        reply = parse_ai_message(response)
        total = reply.input_tokens + reply.output_tokens
        if total > 0:
            logger.info(f"Token usage: +{reply.input_tokens} in, +{reply.output_tokens} out (total: {total})")
        else:
            logger.debug("No token usage info available (LLM may not report tokens)")
        return reply
