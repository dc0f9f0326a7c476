"""
API routes package.
"""

from fastapi import APIRouter

from todo_assistant.api.routes import assistant, auth, pending_calls, tasks

# Create main router
api_router = APIRouter()

# Include sub-routers
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(tasks.router, prefix="/tasks", tags=["tasks"])
api_router.include_router(assistant.router, prefix="/assistant", tags=["assistant"])
api_router.include_router(
    pending_calls.router, prefix="/assistant/pending-calls", tags=["pending-calls"]
)

__all__ = ["api_router"]
