"""API route handlers for Proma.

This module exports all API routers for inclusion in the FastAPI app.
"""

from proma.api.routes.channels import router as channels_router
from proma.api.routes.chat import router as chat_router
from proma.api.routes.conversations import router as conversations_router
from proma.api.routes.health import router as health_router

__all__ = [
    "channels_router",
    "chat_router",
    "conversations_router",
    "health_router",
]
