"""Role-moderated content, ordering and image asset management."""

__version__ = "0.1.0"
