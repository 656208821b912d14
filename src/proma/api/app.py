"""FastAPI application factory for the Proma chat API.

This module builds the application with its middleware, routes, error
handlers and a lifespan that starts and stops the ``ProMaRuntime``.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware

from proma import __version__
from proma.api.middleware.correlation import CorrelationIdMiddleware
from proma.api.middleware.error_handler import setup_error_handlers
from proma.api.routes.channels import router as channels_router
from proma.api.routes.chat import router as chat_router
from proma.api.routes.conversations import router as conversations_router
from proma.api.routes.health import router as health_router
from proma.config import PromaConfig, load_config_from_env
from proma.observability.logging import setup_logging
from proma.observability.metrics import get_metrics_collector
from proma.runtime import ProMaRuntime

logger = logging.getLogger(__name__)


def create_app(config: Optional[PromaConfig] = None) -> FastAPI:
    """Create and configure a FastAPI application instance.

    The application gets:
    - CORS and correlation-id middleware
    - Error handlers producing ``{code, message}`` bodies
    - Conversation, chat, channel and health routes
    - A Prometheus ``/metrics`` endpoint

    Args:
        config: Configuration to run with; read from the environment when
            omitted (at startup, not at import)

    Returns:
        Configured FastAPI application instance

    Examples:
        >>> app = create_app()
        >>> # uvicorn proma.api.app:app --reload
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Start the runtime on startup and shut it down on exit."""
        runtime_config = config or load_config_from_env()
        setup_logging(log_level=runtime_config.log_level, json_logs=runtime_config.json_logs)

        logger.info("Application startup: initializing runtime")
        runtime = ProMaRuntime(runtime_config)
        await runtime.start()
        app.state.runtime = runtime
        logger.info("Application startup complete")

        try:
            yield
        finally:
            logger.info("Application shutdown: stopping runtime")
            await runtime.shutdown()
            logger.info("Application shutdown complete")

    app = FastAPI(
        title="Proma Chat API",
        version=__version__,
        description="Multi-provider LLM chat with streaming responses",
        lifespan=lifespan,
    )

    # Local desktop client; any origin may connect
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIdMiddleware)  # type: ignore[arg-type]

    setup_error_handlers(app)

    app.include_router(conversations_router)
    app.include_router(chat_router)
    app.include_router(channels_router)
    app.include_router(health_router)

    @app.get("/metrics")
    async def metrics() -> Response:
        """Prometheus metrics endpoint.

        Examples:
            >>> GET /metrics
            >>> # TYPE chat_turns_total counter
            >>> chat_turns_total{provider="anthropic",outcome="completed"} 3.0
        """
        return Response(
            content=get_metrics_collector().generate_metrics(),
            media_type="text/plain; version=0.0.4; charset=utf-8",
        )

    return app


# Module-level app instance for uvicorn
app = create_app()
