"""File deletion strategies for the asset store.

Some platforms refuse to unlink a file that another process still holds open.
There, a failed delete is parked on a :class:`RetryQueue` and drained later by
the maintenance worker; elsewhere files are removed synchronously. The
strategy is picked once at startup by :func:`select_deletion_strategy`.
"""

from __future__ import annotations

import logging
import os
import sys
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from threading import Lock
from typing import Protocol

from curation_stage.core.errors import StorageTransient
from curation_stage.core.settings import Settings

logger = logging.getLogger(__name__)

# Readers tend to keep these open longer, so they get a longer baseline and a cap on attempts.
SLOW_RELEASE_SUFFIXES = frozenset({".jpg", ".jpeg"})

Unlinker = Callable[[Path], None]
Clock = Callable[[], float]


def _unlink(path: Path) -> None:
    os.remove(path)


def _is_slow_release(path: Path) -> bool:
    return path.suffix.lower() in SLOW_RELEASE_SUFFIXES


class DeletionStrategy(Protocol):
    """How the asset store gets rid of a file."""

    def remove(self, path: Path) -> bool:
        """Delete ``path`` or arrange for it to be deleted.

        Returns:
            True if the file is gone when the call returns, False if removal
            was deferred or abandoned.
        """
        ...

    def close(self) -> None:
        """Release resources held by the strategy."""
        ...


class ImmediateDeletion:
    """Synchronous unlink with one best-effort retry on a transient failure."""

    def __init__(self, unlink: Unlinker = _unlink, retry_pause: float = 0.1) -> None:
        self._unlink = unlink
        self._retry_pause = retry_pause

    def remove(self, path: Path) -> bool:
        for attempt in (1, 2):
            try:
                self._unlink(path)
                return True
            except FileNotFoundError:
                return True
            except OSError as exc:
                if attempt == 1:
                    logger.debug("Delete of %s failed (%s); retrying once", path, exc)
                    time.sleep(self._retry_pause)
                    continue
                logger.warning("Could not delete %s: %s", path, exc)
        return False

    def close(self) -> None:
        return None


@dataclass
class PendingDeletion:
    """A file waiting for another deletion attempt."""

    path: Path
    added_at: float
    next_attempt: float
    attempts: int = 0


class RetryQueue:
    """Files whose deletion was blocked, keyed by resolved path.

    Each key is present at most once. :meth:`drain` removes a key before it
    calls unlink, so a path is never deleted by two parties at the same time.
    """

    def __init__(
        self,
        *,
        base_delay: float,
        slow_base_delay: float,
        max_delay: float,
        slow_max_attempts: int,
        unlink: Unlinker = _unlink,
        clock: Clock = time.time,
    ) -> None:
        self.base_delay = base_delay
        self.slow_base_delay = slow_base_delay
        self.max_delay = max_delay
        self.slow_max_attempts = slow_max_attempts
        self._unlink = unlink
        self._clock = clock
        self._entries: dict[str, PendingDeletion] = {}
        self._lock = Lock()
        self._closed = False

    @staticmethod
    def key_for(path: Path) -> str:
        return str(path.resolve())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, Path):
            return False
        with self._lock:
            return self.key_for(path) in self._entries

    def delay_for(self, path: Path, attempts: int) -> float:
        """Backoff before the next attempt, growing linearly with attempts."""
        base = self.slow_base_delay if _is_slow_release(path) else self.base_delay
        return min(base * max(attempts, 1), self.max_delay)

    def enqueue(self, path: Path) -> bool:
        """Park ``path`` for a later attempt; returns False if it was already queued."""
        key = self.key_for(path)
        now = self._clock()
        with self._lock:
            if self._closed:
                logger.warning("Retry queue closed; dropping deletion of %s", path)
                return False
            if key in self._entries:
                return False
            self._entries[key] = PendingDeletion(
                path=path,
                added_at=now,
                next_attempt=now + self.delay_for(path, 1),
            )
        logger.info("Queued %s for deferred deletion", path)
        return True

    def _take_due(self, now: float) -> list[PendingDeletion]:
        with self._lock:
            due = [key for key, entry in self._entries.items() if entry.next_attempt <= now]
            return [self._entries.pop(key) for key in due]

    def drain(self, now: float | None = None) -> int:
        """Attempt every due entry once.

        Returns:
            Number of entries settled (deleted, already gone, or abandoned).
        """
        moment = self._clock() if now is None else now
        settled = 0
        for entry in self._take_due(moment):
            if not entry.path.exists():
                settled += 1
                continue
            try:
                self._unlink(entry.path)
            except FileNotFoundError:
                settled += 1
                continue
            except OSError as exc:
                entry.attempts += 1
                if _is_slow_release(entry.path) and entry.attempts >= self.slow_max_attempts:
                    logger.warning(
                        "Giving up on locked file after %d attempts: %s",
                        entry.attempts,
                        entry.path,
                    )
                    settled += 1
                    continue
                entry.next_attempt = moment + self.delay_for(entry.path, entry.attempts)
                logger.debug(
                    "Deletion of %s still blocked (%s), attempt %d",
                    entry.path,
                    exc,
                    entry.attempts,
                )
                with self._lock:
                    self._entries.setdefault(self.key_for(entry.path), entry)
                continue
            logger.info("Deleted deferred file %s", entry.path)
            settled += 1
        return settled

    def pending(self) -> list[PendingDeletion]:
        with self._lock:
            return list(self._entries.values())

    def close(self) -> list[Path]:
        """Stop accepting work and return the paths that were never deleted."""
        with self._lock:
            self._closed = True
            leftover = [entry.path for entry in self._entries.values()]
            self._entries.clear()
        if leftover:
            logger.warning("Retry queue closed with %d undeleted files", len(leftover))
        return leftover


class RetryingDeletion:
    """Try once; park blocked deletions on the retry queue instead of failing."""

    def __init__(self, queue: RetryQueue, unlink: Unlinker = _unlink) -> None:
        self.queue = queue
        self._unlink = unlink

    def _attempt(self, path: Path) -> None:
        try:
            self._unlink(path)
        except FileNotFoundError:
            return
        except OSError as exc:
            raise StorageTransient(f"Deletion of {path.name} blocked: {exc}") from exc

    def remove(self, path: Path) -> bool:
        # The queue owns this path now; leave it alone.
        if path in self.queue:
            return False
        try:
            self._attempt(path)
        except StorageTransient as exc:
            logger.warning("%s; deferring", exc.detail)
            self.queue.enqueue(path)
            return False
        return True

    def close(self) -> None:
        self.queue.close()


def build_retry_queue(settings: Settings, unlink: Unlinker = _unlink) -> RetryQueue:
    """Construct a retry queue from the configured backoff settings."""
    return RetryQueue(
        base_delay=settings.asset_retry_base_seconds,
        slow_base_delay=settings.asset_retry_slow_base_seconds,
        max_delay=settings.asset_retry_max_delay_seconds,
        slow_max_attempts=settings.asset_slow_format_max_attempts,
        unlink=unlink,
    )


def select_deletion_strategy(
    settings: Settings,
    platform: str | None = None,
) -> ImmediateDeletion | RetryingDeletion:
    """Pick the deletion strategy for this process.

    ``ASSET_DELETE_STRATEGY`` may force ``immediate`` or ``retry``; ``auto``
    uses the retry queue only where open files block deletion (Windows).
    """
    choice = settings.asset_delete_strategy.lower()
    current = platform or sys.platform
    if choice == "auto":
        choice = "retry" if current.startswith("win") else "immediate"
    if choice == "retry":
        logger.info("Using queued deletion with retry/backoff")
        return RetryingDeletion(build_retry_queue(settings))
    if choice == "immediate":
        return ImmediateDeletion()
    raise ValueError(f"Unknown ASSET_DELETE_STRATEGY: {settings.asset_delete_strategy!r}")
