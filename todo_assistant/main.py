"""
FastAPI application entry point.

Main application with lifespan management for startup/shutdown.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from todo_assistant import __version__
from todo_assistant.api.routes import api_router
from todo_assistant.core.config import config
from todo_assistant.core.exceptions import AssistantError, UpstreamFailure
from todo_assistant.core.logging import setup_logging
from todo_assistant.services.container import ServiceContainer, build_services

logger = logging.getLogger(__name__)


async def assistant_error_handler(request: Request, exc: AssistantError) -> JSONResponse:
    """Render domain exceptions as ``{"error": code, "message": text}``."""
    if isinstance(exc, UpstreamFailure):
        logger.error(f"Upstream failure on {request.method} {request.url.path}: {exc}", exc_info=exc)
        message = exc.public_message
    else:
        logger.info(f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}")
        message = exc.message

    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.error_code, "message": message},
        headers=headers,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies use the same error shape as domain errors."""
    return JSONResponse(
        status_code=422,
        content={
            "error": "invalid_arguments",
            "message": "Invalid request",
            "details": jsonable_encoder(exc.errors()),
        },
    )


def create_app(services: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        services: Prebuilt container; when omitted one is built from the
            global config during startup
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting application...")

        if services is None:
            app.state.services = await build_services(config)
        else:
            app.state.services = services
        logger.info("Services initialized")

        logger.info("Application startup complete")

        yield

        logger.info("Application shutdown complete")

    setup_logging(level=config.log_level, log_file=config.log_file)

    app = FastAPI(
        title=config.app_name,
        description="To-do list API with an AI assistant whose actions need user approval",
        version=__version__,
        debug=config.debug,
        lifespan=lifespan,
    )
    if services is not None:
        app.state.services = services

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AssistantError, assistant_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    # Include API routes
    app.include_router(api_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "app": config.app_name,
            "version": __version__,
        }

    @app.get("/")
    async def root():
        """Root endpoint with API info."""
        return {
            "name": config.app_name,
            "version": __version__,
            "docs_url": "/docs",
            "openapi_url": "/openapi.json",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "todo_assistant.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
