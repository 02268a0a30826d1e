"""
FastAPI application for the office orchestrator.

Serves the office UI: agent chat (plain and streaming), a raw tool gateway
passthrough and a health check.

Usage:
    # Development server with auto-reload
    uvicorn office_orchestrator.api.main:app --reload --host 0.0.0.0 --port 3001

    # Production server
    uvicorn office_orchestrator.api.main:app --host 0.0.0.0 --port 3001 --workers 4

    # Debug mode (verbose logging)
    LOG_LEVEL=DEBUG uvicorn office_orchestrator.api.main:app --reload --port 3001
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import config
from ..tracing import init_tracing_client, shutdown_tracing
from .routes import chat, health, mcp


def configure_logging():
    """Configure logging based on the configured log level."""
    log_level = getattr(logging, config.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # Set level for our modules
    logging.getLogger("office_orchestrator").setLevel(log_level)


configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown events."""
    logger.info("Starting office orchestrator API server")

    logger.info("=" * 60)
    logger.info("MODEL")
    logger.info(f"  Provider: {config.model.provider}")
    logger.info(f"  Base URL: {config.model.base_url}")
    logger.info(f"  Model: {config.model.model}")
    logger.info(f"  Temperature: {config.model.temperature}")

    logger.info("-" * 60)
    logger.info("TOOL GATEWAY")
    logger.info(f"  URL: {config.gateway.url}")
    logger.info(f"  Auth: {'token configured' if config.gateway.token else 'NO TOKEN'}")

    logger.info("-" * 60)
    logger.info("ORCHESTRATION")
    logger.info(f"  Max iterations: {config.orchestration.max_iterations}")
    logger.info(f"  Exchange timeout: {config.orchestration.exchange_timeout}s")

    logger.info("-" * 60)
    logger.info("LANGFUSE OBSERVABILITY")
    tracing_client = init_tracing_client(
        public_key=config.langfuse.public_key,
        secret_key=config.langfuse.secret_key,
        host=config.langfuse.host,
        debug=config.langfuse.debug,
    )
    if tracing_client.enabled:
        logger.info("  Status: ENABLED")
        logger.info(f"  Host: {config.langfuse.host or 'https://cloud.langfuse.com'}")
    else:
        logger.info("  Status: DISABLED")
        if tracing_client.error:
            logger.info(f"  Reason: {tracing_client.error}")

    logger.info("=" * 60)

    yield

    logger.info("Shutting down office orchestrator API server")
    shutdown_tracing()
    logger.info("Tracing client shutdown complete")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    app = FastAPI(
        title="Office Orchestrator API",
        description=(
            "Chat proxy for virtual office agents. Forwards conversations to a "
            "hosted model and lets agents discover and run remote gateway tools."
        ),
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(health.router, tags=["Health"])
    app.include_router(chat.router, tags=["Chat"])
    app.include_router(mcp.router, tags=["Gateway"])

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Log validation errors before returning 400 response."""
        logger.warning(
            f"Validation error on {request.method} {request.url.path}: {exc.errors()}"
        )
        # Log request body for debugging (truncated to avoid log spam)
        body = await request.body()
        logger.debug(f"Request body: {body.decode('utf-8', errors='replace')[:1000]}")
        return JSONResponse(
            status_code=400,
            content={"detail": exc.errors()},
        )

    return app


# Create the application instance
app = create_app()


def run_server():
    """
    Run the server using uvicorn.

    This is the entry point for running the server programmatically.
    """
    import uvicorn

    uvicorn.run(
        "office_orchestrator.api.main:app",
        host=config.server.host,
        port=config.server.port,
        reload=config.server.reload,
        workers=1 if config.server.reload else config.server.workers,
    )


if __name__ == "__main__":
    run_server()
