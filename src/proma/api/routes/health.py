"""Health check endpoint for monitoring."""

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from proma import __version__
from proma.observability.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(tags=["health"])


class HealthCheckComponent(BaseModel):
    """Health status of a single component.

    Attributes:
        status: Component status (healthy, unhealthy)
        message: Optional status message or error details
    """

    status: str
    message: str | None = None


class HealthCheckResponse(BaseModel):
    """Overall health check response.

    Attributes:
        status: Overall status (healthy, unhealthy)
        components: Status of individual components
        active_turns: Number of chat turns currently streaming
        version: Application version
    """

    status: str
    components: dict[str, HealthCheckComponent]
    active_turns: int = 0
    version: str = __version__


async def check_database_health(request: Request) -> HealthCheckComponent:
    """Check database connectivity with a trivial query."""
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        return HealthCheckComponent(status="unhealthy", message="Runtime not initialized")

    try:
        await runtime.database.health_check()
        return HealthCheckComponent(status="healthy", message="Database connection successful")
    except Exception as e:
        logger.error("database_health_check_failed", error=str(e))
        return HealthCheckComponent(status="unhealthy", message=f"Database error: {str(e)}")


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(request: Request) -> JSONResponse:
    """Report database health and the number of in-flight turns.

    Returns:
        200 OK when healthy, 503 Service Unavailable otherwise
    """
    database_health = await check_database_health(request)
    runtime = getattr(request.app.state, "runtime", None)
    active_turns = len(runtime.stream_registry.active_ids()) if runtime else 0

    healthy = database_health.status == "healthy"
    response = HealthCheckResponse(
        status="healthy" if healthy else "unhealthy",
        components={"database": database_health},
        active_turns=active_turns,
    )

    logger.info(
        "health_check_completed",
        overall_status=response.status,
        database=database_health.status,
        active_turns=active_turns,
    )

    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=response.model_dump(),
    )
