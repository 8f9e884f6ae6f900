"""Image transcoding used when promoting staged uploads."""

from __future__ import annotations

import io
from dataclasses import dataclass
from typing import Protocol

from PIL import Image, ImageOps

from curation_stage.core.settings import Settings


@dataclass(frozen=True, slots=True)
class TranscodeConstraints:
    """Output bounds applied to every promoted image."""

    max_width: int = 1200
    max_height: int = 1200
    quality: int = 80
    format: str = "WEBP"
    extension: str = ".webp"

    @classmethod
    def from_settings(cls, settings: Settings) -> TranscodeConstraints:
        return cls(
            max_width=settings.asset_max_width,
            max_height=settings.asset_max_height,
            quality=settings.asset_quality,
        )


class Transcoder(Protocol):
    """Black-box ``bytes -> bytes`` image normaliser."""

    def transcode(self, data: bytes, constraints: TranscodeConstraints) -> bytes:
        ...


class PillowTranscoder:
    """Re-encode images with Pillow, shrinking them to fit the bounds.

    Images are only ever downscaled and keep their aspect ratio. Animated
    inputs are flattened to their first frame.
    """

    def transcode(self, data: bytes, constraints: TranscodeConstraints) -> bytes:
        with Image.open(io.BytesIO(data)) as source:
            image = ImageOps.exif_transpose(source)
            if image.mode not in ("RGB", "RGBA"):
                image = image.convert("RGBA" if "A" in image.getbands() else "RGB")
            # thumbnail() never enlarges and preserves aspect ratio
            image.thumbnail((constraints.max_width, constraints.max_height))
            output = io.BytesIO()
            image.save(output, format=constraints.format, quality=constraints.quality)
            return output.getvalue()
