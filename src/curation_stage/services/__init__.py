# src/curation_stage/services/__init__.py
"""Business logic services for the Curation application."""

from .assets import AssetStore
from .faq import FaqService
from .galleries import GalleryService
from .ordering import OrderCompactor
from .permissions import Caller, can_perform
from .workflow import KINDS, ModerationWorkflow

__all__ = [
    "AssetStore",
    "Caller",
    "FaqService",
    "GalleryService",
    "KINDS",
    "ModerationWorkflow",
    "OrderCompactor",
    "can_perform",
]
