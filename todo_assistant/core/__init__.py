"""
Core infrastructure package.

Provides configuration, logging, LLM setup, locking and exception handling.
"""

from todo_assistant.core.config import config, Settings
from todo_assistant.core.exceptions import (
    AssistantError,
    ConfigurationError,
    AuthenticationRequired,
    NotFoundError,
    AlreadyResolvedError,
    InvalidArgumentsError,
    UpstreamFailure,
    DatabaseError,
)

__all__ = [
    "config",
    "Settings",
    "AssistantError",
    "ConfigurationError",
    "AuthenticationRequired",
    "NotFoundError",
    "AlreadyResolvedError",
    "InvalidArgumentsError",
    "UpstreamFailure",
    "DatabaseError",
]
