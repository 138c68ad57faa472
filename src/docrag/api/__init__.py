"""HTTP routers exposed by the service."""

from .chat import router as chat_router
from .documents import router as documents_router
from .errors import APIError, install_error_handlers
from .insights import router as insights_router
from .setup import router as setup_router

__all__ = [
    "APIError",
    "chat_router",
    "documents_router",
    "insights_router",
    "install_error_handlers",
    "setup_router",
]
