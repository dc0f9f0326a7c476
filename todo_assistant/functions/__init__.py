"""
Assistant functions: argument schemas, the registry and the executor.
"""

from todo_assistant.functions.executor import FunctionExecutor
from todo_assistant.functions.registry import (
    FUNCTIONS,
    FunctionCall,
    FunctionSpec,
    parse_call,
    tool_schemas,
)

__all__ = [
    "FUNCTIONS",
    "FunctionCall",
    "FunctionExecutor",
    "FunctionSpec",
    "parse_call",
    "tool_schemas",
]
