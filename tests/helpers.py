# tests/helpers.py
"""Helpers shared by the test modules."""
from __future__ import annotations

import io

from PIL import Image

from curation_stage.core.security import create_access_token
from curation_stage.models import User
from curation_stage.services.permissions import Caller
from curation_stage.services.transcoder import TranscodeConstraints


class FakeTranscoder:
    """Stands in for Pillow; tags the payload so tests can tell it was transcoded."""

    def __init__(self) -> None:
        self.calls = 0

    def transcode(self, data: bytes, constraints: TranscodeConstraints) -> bytes:
        self.calls += 1
        return b"WEBP" + data


class FailingTranscoder:
    def transcode(self, data: bytes, constraints: TranscodeConstraints) -> bytes:
        raise ValueError("cannot identify image file")


def caller_for(user: User) -> Caller:
    return Caller(user_id=user.id, role=user.role)


def auth_headers(user: User) -> dict[str, str]:
    """Return authorization headers for ``user``."""
    token = create_access_token(user.id)
    return {"Authorization": f"Bearer {token}"}


def image_bytes(size: tuple[int, int] = (8, 8), fmt: str = "PNG", mode: str = "RGB") -> bytes:
    """Encode a solid-colour image."""
    output = io.BytesIO()
    Image.new(mode, size, color="red").save(output, format=fmt)
    return output.getvalue()
