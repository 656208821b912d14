"""Correlation ID middleware for request tracing.

Every request gets a correlation id (taken from ``X-Correlation-ID`` or
generated), bound to the logging context and echoed in the response.
"""

import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from proma.observability.logging import get_logger, set_correlation_id
from proma.observability.metrics import get_metrics_collector

logger = get_logger(__name__)


def _endpoint_label(request: Request) -> str:
    # Route template keeps metric label cardinality bounded
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Injects correlation IDs, logs requests and records request metrics."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
        set_correlation_id(correlation_id)
        start_time = time.time()

        logger.info("request_started", method=request.method, path=request.url.path)

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_failed",
                method=request.method,
                path=request.url.path,
                error=str(e),
                duration_ms=int((time.time() - start_time) * 1000),
            )
            raise

        duration_seconds = time.time() - start_time
        get_metrics_collector().record_http_request(
            method=request.method,
            endpoint=_endpoint_label(request),
            status_code=response.status_code,
            duration_seconds=duration_seconds,
        )
        logger.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=int(duration_seconds * 1000),
            correlation_id=correlation_id,
        )

        response.headers["X-Correlation-ID"] = correlation_id
        return response
