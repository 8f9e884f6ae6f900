"""Version 1 API endpoints."""

from .endpoints import (
    articles_router,
    faqs_router,
    galleries_router,
    services_router,
    system_router,
)

__all__ = [
    "articles_router",
    "services_router",
    "faqs_router",
    "galleries_router",
    "system_router",
]
