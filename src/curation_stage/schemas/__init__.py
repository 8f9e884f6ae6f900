# src/curation_stage/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .article import ArticleCreate, ArticleResponse, ArticleUpdate
from .common import ImageUploadResponse, OrderRequest, StatusChange
from .faq import FAQAnswerCreate, FAQAnswerResponse, FAQCreate, FAQResponse, FAQUpdate
from .gallery import GalleryCreate, GalleryImageResponse, GalleryResponse, GalleryUpdate
from .service import ServiceCreate, ServiceResponse, ServiceUpdate

__all__ = [
    "ArticleCreate", "ArticleResponse", "ArticleUpdate",
    "FAQAnswerCreate", "FAQAnswerResponse", "FAQCreate", "FAQResponse", "FAQUpdate",
    "GalleryCreate", "GalleryImageResponse", "GalleryResponse", "GalleryUpdate",
    "ImageUploadResponse", "OrderRequest", "StatusChange",
    "ServiceCreate", "ServiceResponse", "ServiceUpdate",
]
