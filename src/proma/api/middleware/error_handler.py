"""Error handling for the FastAPI application.

Domain errors become ``{code, message}`` JSON bodies with their own status
code; request validation failures become 400 responses.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from proma.errors import ChatError
from proma.providers.errors import UnsupportedProviderError

logger = logging.getLogger(__name__)


def _format_validation_errors(errors: list[dict[str, Any]]) -> JSONResponse:
    formatted = [
        {"field": ".".join(str(loc) for loc in error["loc"]), "message": error["msg"]}
        for error in errors
    ]
    return JSONResponse(
        status_code=400,
        content={
            "code": "validation_error",
            "message": "Request validation failed",
            "errors": formatted,
        },
    )


def setup_error_handlers(app: FastAPI) -> None:
    """Register exception handlers on the application.

    Args:
        app: The FastAPI application instance to configure
    """

    @app.exception_handler(ChatError)
    async def handle_chat_error(request: Request, exc: ChatError) -> JSONResponse:
        """Convert ChatError subclasses into their status code and error code."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"code": exc.code, "message": exc.message},
        )

    @app.exception_handler(UnsupportedProviderError)
    async def handle_unsupported_provider(
        request: Request, exc: UnsupportedProviderError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"code": "unsupported_provider", "message": str(exc)},
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Report body, path and query validation failures as 400."""
        return _format_validation_errors(list(exc.errors()))

    @app.exception_handler(PydanticValidationError)
    async def handle_validation_error(
        request: Request, exc: PydanticValidationError
    ) -> JSONResponse:
        """Handle model validation errors raised inside handlers."""
        return _format_validation_errors(list(exc.errors()))

    @app.exception_handler(ValueError)
    async def handle_value_error(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"code": "validation_error", "message": str(exc)},
        )

    @app.exception_handler(Exception)
    async def handle_generic_error(request: Request, exc: Exception) -> JSONResponse:
        """Log unexpected exceptions and return a generic 500."""
        logger.exception("Unexpected error occurred: %s", exc)

        return JSONResponse(
            status_code=500,
            content={"code": "internal_error", "message": "An internal server error occurred"},
        )
