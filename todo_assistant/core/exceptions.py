"""
Exception hierarchy for the assistant backend.

Every error carries a stable ``error_code`` and the HTTP status the API
layer answers with, so routes never translate errors by hand.
"""

from typing import Optional


class AssistantError(Exception):
    """Base exception for all backend errors."""

    error_code = "internal_error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(AssistantError):
    """Raised when configuration validation fails or required config is missing."""

    error_code = "configuration_error"


class AuthenticationRequired(AssistantError):
    """Raised when a bearer credential is missing, invalid or expired."""

    error_code = "authentication_required"
    status_code = 401


class NotFoundError(AssistantError):
    """Raised when a call, task or thread does not exist or belongs to someone else."""

    error_code = "not_found"
    status_code = 404

    def __init__(self, message: str, resource: Optional[str] = None, resource_id: Optional[str] = None):
        super().__init__(message)
        self.resource = resource
        self.resource_id = resource_id

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.resource:
            parts.append(f"Resource: {self.resource}")
        if self.resource_id:
            parts.append(f"ID: {self.resource_id}")
        return " | ".join(parts)


class AlreadyResolvedError(AssistantError):
    """Raised when approving or rejecting a call that is no longer pending."""

    error_code = "already_resolved"
    status_code = 409

    def __init__(self, message: str, call_id: str, status: str):
        super().__init__(message)
        self.call_id = call_id
        self.status = status

    def __str__(self) -> str:
        return f"{super().__str__()} | Call: {self.call_id} | Status: {self.status}"


class InvalidArgumentsError(AssistantError):
    """Raised when function arguments fail validation before execution."""

    error_code = "invalid_arguments"
    status_code = 422

    def __init__(self, message: str, function_name: Optional[str] = None):
        super().__init__(message)
        self.function_name = function_name

    def __str__(self) -> str:
        if self.function_name:
            return f"{super().__str__()} | Function: {self.function_name}"
        return super().__str__()


class UpstreamFailure(AssistantError):
    """Raised when the LLM service or the persistence layer fails."""

    error_code = "upstream_failure"
    status_code = 502
    public_message = "The assistant is temporarily unavailable, please try again."


class DatabaseError(UpstreamFailure):
    """Raised when database operations fail."""

    pass
