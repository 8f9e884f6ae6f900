"""Persistence adapters for moderated content."""

from .content_repo import ContentRepository

__all__ = ["ContentRepository"]
