"""API endpoint modules for version 1."""

from .articles import router as articles_router
from .faqs import router as faqs_router
from .galleries import router as galleries_router
from .services import router as services_router
from .system import router as system_router

__all__ = [
    "articles_router",
    "services_router",
    "faqs_router",
    "galleries_router",
    "system_router",
]
