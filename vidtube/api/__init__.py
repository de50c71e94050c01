"""API package exports."""

from vidtube.api.health import router as health_router
from vidtube.api.middleware import CorrelationIdMiddleware
from vidtube.api.users import router as users_router

__all__ = ["CorrelationIdMiddleware", "health_router", "users_router"]
