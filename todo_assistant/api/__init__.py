"""
FastAPI API package.

Contains routes and request dependencies.
"""

from todo_assistant.api.routes import api_router

__all__ = ["api_router"]
