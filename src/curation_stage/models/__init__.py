# src/curation_stage/models/__init__.py
"""SQLAlchemy models for the Curation Stage application."""

from .article import Article
from .faq import FAQAnswer, FAQEntry
from .gallery import Gallery, GalleryImage
from .moderation import ContentStatus
from .service_listing import ServiceCategory, ServiceListing
from .user import Role, User

__all__ = [
    "Article",
    "ContentStatus",
    "FAQAnswer", "FAQEntry",
    "Gallery", "GalleryImage",
    "Role",
    "ServiceCategory", "ServiceListing",
    "User",
]
