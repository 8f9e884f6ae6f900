"""Asset lifecycle: staging, transcoding, promotion, deletion and orphan sweeps.

Uploaded bytes are first written to a staging area, then transcoded and moved
into a durable per-scope directory under the upload root. Durable files are
addressed by public locators of the form
``<public_base_url>/uploads/<scope>/<name>``.
"""

from __future__ import annotations

import logging
import os
import re
import threading
import time
import uuid
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeout
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path, PurePosixPath
from urllib.parse import urlsplit

from curation_stage.core.errors import (
    CascadeAssetCleanupFailed,
    ContentError,
    NotFound,
    TranscodeFailure,
    UnsupportedMediaType,
    ValidationFailed,
)
from curation_stage.core.settings import Settings
from curation_stage.db.time import utcnow
from curation_stage.services.deletion import DeletionStrategy, select_deletion_strategy
from curation_stage.services.locks import ScopeLocks
from curation_stage.services.transcoder import (
    PillowTranscoder,
    TranscodeConstraints,
    Transcoder,
)

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES: dict[str, str] = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}

ARTICLE_SCOPE = "blog"
SERVICE_SCOPE = "services"
STAGING_DIRNAME = "temp"
PUBLIC_PREFIX = "uploads"

_SCOPE_PATTERN = re.compile(r"^(blog|services|galleries/gallery-\d+)$")


def gallery_scope(gallery_id: int) -> str:
    """Return the storage scope holding a gallery's images."""
    return f"galleries/gallery-{gallery_id}"


@dataclass(frozen=True, slots=True)
class StagedFile:
    """An upload waiting to be promoted; never persisted."""

    path: Path
    mime_type: str
    size: int
    arrived_at: datetime

    @property
    def name(self) -> str:
        return self.path.name


class AssetStore:
    """Owns every file under the upload root.

    Args:
        root: Upload root; durable scopes and the staging area live below it.
        public_base_url: Prefix of every locator handed out.
        transcoder: Image normaliser used by :meth:`promote`.
        deletion: Strategy used for every unlink.
        constraints: Output bounds for transcoding.
        max_upload_bytes: Largest payload :meth:`stage` accepts.
        transcode_timeout: Seconds :meth:`promote` waits for the transcoder.
        transcode_workers: Size of the transcoding thread pool.
        clock: Wall-clock source used by the orphan sweep.
    """

    def __init__(
        self,
        root: Path,
        public_base_url: str,
        transcoder: Transcoder,
        deletion: DeletionStrategy,
        *,
        constraints: TranscodeConstraints | None = None,
        max_upload_bytes: int = 10 * 1024 * 1024,
        transcode_timeout: float = 30.0,
        transcode_workers: int = 2,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.root = Path(root)
        self.public_base_url = public_base_url.rstrip("/")
        self.transcoder = transcoder
        self.deletion = deletion
        self.constraints = constraints or TranscodeConstraints()
        self.max_upload_bytes = max_upload_bytes
        self.transcode_timeout = transcode_timeout
        self.scope_locks = ScopeLocks()
        self._clock = clock
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, transcode_workers),
            thread_name_prefix="transcode",
        )
        self._in_flight: set[str] = set()
        self._lock = threading.Lock()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        transcoder: Transcoder | None = None,
        deletion: DeletionStrategy | None = None,
    ) -> AssetStore:
        """Build a store from application settings."""
        return cls(
            settings.upload_root,
            settings.public_base_url,
            transcoder or PillowTranscoder(),
            deletion or select_deletion_strategy(settings),
            constraints=TranscodeConstraints.from_settings(settings),
            max_upload_bytes=settings.asset_max_upload_bytes,
            transcode_timeout=settings.asset_transcode_timeout_seconds,
            transcode_workers=settings.asset_transcode_workers,
        )

    @property
    def staging_dir(self) -> Path:
        return self.root / STAGING_DIRNAME

    def ensure_dirs(self) -> None:
        """Create the staging area and the fixed scopes."""
        for directory in (self.staging_dir, self.root / ARTICLE_SCOPE, self.root / SERVICE_SCOPE):
            directory.mkdir(parents=True, exist_ok=True)

    def _scope_dir(self, scope: str) -> Path:
        if not _SCOPE_PATTERN.match(scope):
            raise ValidationFailed(f"Unknown storage scope: {scope}")
        directory = self.root / scope
        directory.mkdir(parents=True, exist_ok=True)
        return directory

    def locator_for(self, scope: str, name: str) -> str:
        return f"{self.public_base_url}/{PUBLIC_PREFIX}/{scope}/{name}"

    def stage(self, data: bytes, declared_mime: str | None) -> StagedFile:
        """Write an upload to the staging area.

        Raises:
            UnsupportedMediaType: If the declared type is not an allowed image type.
            ValidationFailed: If the payload is empty or too large.
        """
        mime = (declared_mime or "").split(";", 1)[0].strip().lower()
        extension = ALLOWED_MIME_TYPES.get(mime)
        if extension is None:
            logger.warning("Rejected upload with type %r", declared_mime)
            raise UnsupportedMediaType("Only image files (JPEG, PNG, GIF, WebP) are allowed")
        if not data:
            raise ValidationFailed("Uploaded file is empty")
        if len(data) > self.max_upload_bytes:
            raise ValidationFailed(
                f"Uploaded file exceeds the {self.max_upload_bytes} byte limit"
            )

        self.staging_dir.mkdir(parents=True, exist_ok=True)
        path = self.staging_dir / f"upload-{uuid.uuid4().hex}{extension}"
        path.write_bytes(data)
        return StagedFile(path=path, mime_type=mime, size=len(data), arrived_at=utcnow())

    def promote(self, staged: StagedFile, scope: str) -> str:
        """Transcode a staged file into durable storage and return its locator.

        The staged input is handed to the deletion strategy whether or not
        promotion succeeds.

        Raises:
            ValidationFailed: If ``scope`` is not a known storage scope.
            TranscodeFailure: If the transcoder fails or exceeds its timeout.
        """
        try:
            scope_dir = self._scope_dir(scope)
        except ValidationFailed:
            self.deletion.remove(staged.path)
            raise
        name = f"image-{uuid.uuid4().hex}{self.constraints.extension}"
        target = scope_dir / name
        partial = scope_dir / f".{name}.part"

        with self._lock:
            self._in_flight.add(staged.name)
        try:
            try:
                data = staged.path.read_bytes()
            except FileNotFoundError as exc:
                raise TranscodeFailure("Staged upload is no longer available") from exc
            future = self._executor.submit(self.transcoder.transcode, data, self.constraints)
            try:
                output = future.result(timeout=self.transcode_timeout)
            except FuturesTimeout as exc:
                future.cancel()
                raise TranscodeFailure("Image processing timed out") from exc
            except Exception as exc:
                raise TranscodeFailure(f"Image processing failed: {exc}") from exc
            partial.write_bytes(output)
            os.replace(partial, target)
        except TranscodeFailure as exc:
            logger.warning("Promotion of %s into %s failed: %s", staged.name, scope, exc.detail)
            self._discard_partial(partial)
            raise
        except OSError as exc:
            logger.error("Could not write promoted image %s", target, exc_info=True)
            self._discard_partial(partial)
            raise TranscodeFailure(f"Could not store processed image: {exc}") from exc
        finally:
            with self._lock:
                self._in_flight.discard(staged.name)
            self.deletion.remove(staged.path)

        logger.info("Promoted %s to %s/%s", staged.name, scope, name)
        return self.locator_for(scope, name)

    def _discard_partial(self, partial: Path) -> None:
        if partial.exists():
            self.deletion.remove(partial)

    def upload(self, data: bytes, declared_mime: str | None, scope: str) -> str:
        """Stage and promote in one step."""
        self._scope_dir(scope)
        staged = self.stage(data, declared_mime)
        return self.promote(staged, scope)

    def locate(self, locator: str) -> Path:
        """Map a locator back to its file.

        Raises:
            NotFound: If the locator does not point into a durable scope of this store.
        """
        raw_path = urlsplit(locator).path if "://" in locator else locator
        parts = PurePosixPath(raw_path).parts
        try:
            start = parts.index(PUBLIC_PREFIX)
        except ValueError as exc:
            raise NotFound(f"Asset not found: {locator}") from exc
        relative = parts[start + 1:]
        if len(relative) < 2 or any(part in ("", ".", "..") for part in relative):
            raise NotFound(f"Asset not found: {locator}")
        scope = "/".join(relative[:-1])
        if not _SCOPE_PATTERN.match(scope):
            raise NotFound(f"Asset not found: {locator}")
        return self.root.joinpath(*relative)

    def delete(self, locator: str) -> None:
        """Remove a durable asset; an already missing file counts as deleted.

        Raises:
            NotFound: If the locator does not belong to this store.
        """
        path = self.locate(locator)
        if not path.exists():
            return
        if self.deletion.remove(path):
            logger.info("Deleted asset %s", path)

    def discard(self, locators: Iterable[str | None]) -> list[str]:
        """Delete assets of a record that is already gone, logging failures.

        Returns:
            The locators whose cleanup failed.
        """
        failed: list[str] = []
        for locator in locators:
            if not locator:
                continue
            try:
                self.delete(locator)
            except (ContentError, OSError) as exc:
                failure = CascadeAssetCleanupFailed(f"Could not delete asset {locator}: {exc}")
                logger.warning(failure.detail)
                failed.append(locator)
        return failed

    def prune_scope(self, scope: str) -> None:
        """Remove a per-entity scope directory once it is empty."""
        directory = self.root / scope
        try:
            directory.rmdir()
        except FileNotFoundError:
            return
        except OSError as exc:
            logger.debug("Left scope directory %s in place: %s", directory, exc)

    def sweep_orphans(self, max_age: float) -> int:
        """Delete staged files older than ``max_age`` seconds that were never promoted.

        Returns:
            Number of files handed to the deletion strategy.
        """
        if not self.staging_dir.exists():
            return 0
        now = self._clock()
        with self._lock:
            busy = set(self._in_flight)

        swept = 0
        for path in self.staging_dir.iterdir():
            if not path.is_file() or path.name in busy:
                continue
            try:
                age = now - path.stat().st_mtime
            except FileNotFoundError:
                continue
            if age < max_age:
                continue
            self.deletion.remove(path)
            swept += 1
        if swept:
            logger.info("Swept %d orphaned staged files", swept)
        return swept

    def close(self) -> None:
        """Stop the transcoding pool and tear down the deletion strategy."""
        self._executor.shutdown(wait=False, cancel_futures=True)
        self.deletion.close()
