"""Tests for the deletion strategies and the retry queue."""

import os
from pathlib import Path

import pytest
from sqlalchemy.orm import Session

from curation_stage.models import Article
from curation_stage.services.assets import AssetStore
from curation_stage.services.deletion import (
    ImmediateDeletion,
    RetryingDeletion,
    RetryQueue,
    build_retry_queue,
    select_deletion_strategy,
)
from curation_stage.services.workflow import ARTICLE_KIND, ModerationWorkflow
from tests.helpers import FakeTranscoder, caller_for


class LockableUnlink:
    """os.remove that fails with a sharing violation for locked paths."""

    def __init__(self) -> None:
        self.locked: set[Path] = set()
        self.calls: list[Path] = []

    def lock(self, path: Path) -> None:
        self.locked.add(path.resolve())

    def unlock(self, path: Path) -> None:
        self.locked.discard(path.resolve())

    def __call__(self, path: Path) -> None:
        self.calls.append(path)
        if path.resolve() in self.locked:
            raise PermissionError(13, "The process cannot access the file", str(path))
        os.remove(path)


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture()
def unlink() -> LockableUnlink:
    return LockableUnlink()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def queue(unlink: LockableUnlink, clock: FakeClock) -> RetryQueue:
    return RetryQueue(
        base_delay=10,
        slow_base_delay=60,
        max_delay=100,
        slow_max_attempts=3,
        unlink=unlink,
        clock=clock,
    )


def _touch(path: Path) -> Path:
    path.write_bytes(b"x")
    return path


class TestImmediateDeletion:
    def test_removes_file(self, tmp_path: Path) -> None:
        path = _touch(tmp_path / "a.webp")
        assert ImmediateDeletion().remove(path) is True
        assert not path.exists()

    def test_missing_file_is_success(self, tmp_path: Path) -> None:
        assert ImmediateDeletion().remove(tmp_path / "gone.webp") is True

    def test_retries_once_after_transient_failure(self, tmp_path: Path) -> None:
        path = _touch(tmp_path / "a.webp")
        attempts: list[Path] = []

        def flaky(target: Path) -> None:
            attempts.append(target)
            if len(attempts) == 1:
                raise OSError("busy")
            os.remove(target)

        assert ImmediateDeletion(flaky, retry_pause=0).remove(path) is True
        assert len(attempts) == 2
        assert not path.exists()

    def test_gives_up_after_second_failure(self, tmp_path: Path, unlink: LockableUnlink, caplog) -> None:
        path = _touch(tmp_path / "a.webp")
        unlink.lock(path)

        assert ImmediateDeletion(unlink, retry_pause=0).remove(path) is False
        assert len(unlink.calls) == 2
        assert path.exists()
        assert "Could not delete" in caplog.text


class TestRetryQueue:
    def test_backoff_grows_linearly_and_is_capped(self, queue: RetryQueue) -> None:
        webp = Path("a.webp")
        assert [queue.delay_for(webp, n) for n in (1, 2, 5, 50)] == [10, 20, 50, 100]

    def test_slow_formats_use_longer_baseline(self, queue: RetryQueue) -> None:
        assert queue.delay_for(Path("a.jpg"), 1) == 60
        assert queue.delay_for(Path("a.JPEG"), 1) == 60
        assert queue.delay_for(Path("a.png"), 1) == 10

    def test_enqueue_is_keyed_by_path(self, queue: RetryQueue, tmp_path: Path) -> None:
        path = _touch(tmp_path / "a.webp")

        assert queue.enqueue(path) is True
        assert queue.enqueue(tmp_path / "." / "a.webp") is False
        assert len(queue) == 1
        assert path in queue

    def test_entries_wait_for_their_time(self, queue: RetryQueue, clock: FakeClock, tmp_path: Path) -> None:
        path = _touch(tmp_path / "a.webp")
        queue.enqueue(path)

        assert queue.drain(now=clock.now + 5) == 0
        assert path.exists()

        assert queue.drain(now=clock.now + 10) == 1
        assert not path.exists()
        assert len(queue) == 0

    def test_vanished_files_are_dropped_without_unlink(
        self,
        queue: RetryQueue,
        unlink: LockableUnlink,
        clock: FakeClock,
        tmp_path: Path,
    ) -> None:
        path = _touch(tmp_path / "a.webp")
        queue.enqueue(path)
        os.remove(path)

        assert queue.drain(now=clock.now + 60) == 1
        assert unlink.calls == []
        assert len(queue) == 0

    def test_failures_are_requeued_with_growing_delay(
        self,
        queue: RetryQueue,
        unlink: LockableUnlink,
        clock: FakeClock,
        tmp_path: Path,
    ) -> None:
        path = _touch(tmp_path / "a.webp")
        unlink.lock(path)
        queue.enqueue(path)

        moment = clock.now + 10
        assert queue.drain(now=moment) == 0
        (entry,) = queue.pending()
        assert entry.attempts == 1
        assert entry.next_attempt == moment + 10

        moment = entry.next_attempt
        assert queue.drain(now=moment) == 0
        (entry,) = queue.pending()
        assert entry.attempts == 2
        assert entry.next_attempt == moment + 20

        unlink.unlock(path)
        assert queue.drain(now=entry.next_attempt) == 1
        assert not path.exists()

    def test_slow_formats_are_abandoned(
        self,
        queue: RetryQueue,
        unlink: LockableUnlink,
        clock: FakeClock,
        tmp_path: Path,
    ) -> None:
        path = _touch(tmp_path / "photo.jpg")
        unlink.lock(path)
        queue.enqueue(path)

        far_future = clock.now + 10_000
        for _ in range(3):
            queue.drain(now=far_future)
            far_future += 10_000

        assert len(queue) == 0
        assert len(unlink.calls) == 3
        assert path.exists()

    def test_close_reports_leftovers_and_refuses_new_work(self, queue: RetryQueue, tmp_path: Path) -> None:
        path = _touch(tmp_path / "a.webp")
        queue.enqueue(path)

        assert queue.close() == [path]
        assert queue.enqueue(path) is False
        assert len(queue) == 0

    def test_build_from_settings(self, test_settings) -> None:
        built = build_retry_queue(test_settings)
        assert built.base_delay == test_settings.asset_retry_base_seconds
        assert built.slow_max_attempts == test_settings.asset_slow_format_max_attempts


class TestRetryingDeletion:
    def test_locked_file_is_deferred(self, queue: RetryQueue, unlink: LockableUnlink, tmp_path: Path) -> None:
        path = _touch(tmp_path / "a.webp")
        unlink.lock(path)
        strategy = RetryingDeletion(queue, unlink)

        assert strategy.remove(path) is False
        assert path in queue

    def test_queued_paths_are_left_to_the_queue(
        self,
        queue: RetryQueue,
        unlink: LockableUnlink,
        tmp_path: Path,
    ) -> None:
        path = _touch(tmp_path / "a.webp")
        unlink.lock(path)
        strategy = RetryingDeletion(queue, unlink)
        strategy.remove(path)
        unlink.unlock(path)

        assert strategy.remove(path) is False
        assert len(unlink.calls) == 1
        assert path.exists()

    def test_unlocked_file_is_removed_directly(self, queue: RetryQueue, unlink: LockableUnlink, tmp_path: Path) -> None:
        path = _touch(tmp_path / "a.webp")

        assert RetryingDeletion(queue, unlink).remove(path) is True
        assert not path.exists()
        assert len(queue) == 0

    def test_close_closes_queue(self, queue: RetryQueue, unlink: LockableUnlink) -> None:
        RetryingDeletion(queue, unlink).close()
        assert queue.enqueue(Path("late.webp")) is False


class TestStrategySelection:
    @pytest.mark.parametrize(
        ("choice", "platform", "expected"),
        [
            ("auto", "linux", ImmediateDeletion),
            ("auto", "darwin", ImmediateDeletion),
            ("auto", "win32", RetryingDeletion),
            ("immediate", "win32", ImmediateDeletion),
            ("retry", "linux", RetryingDeletion),
            ("RETRY", "linux", RetryingDeletion),
        ],
    )
    def test_selection(self, test_settings, choice: str, platform: str, expected: type) -> None:
        settings = test_settings.model_copy(update={"asset_delete_strategy": choice})
        assert isinstance(select_deletion_strategy(settings, platform), expected)

    def test_unknown_strategy(self, test_settings) -> None:
        settings = test_settings.model_copy(update={"asset_delete_strategy": "shred"})
        with pytest.raises(ValueError):
            select_deletion_strategy(settings, "linux")


def test_locked_asset_delete_succeeds_and_queue_reclaims_file(
    db_session: Session,
    upload_root: Path,
    queue: RetryQueue,
    unlink: LockableUnlink,
    clock: FakeClock,
    make_article,
    author,
) -> None:
    store = AssetStore(upload_root, "http://test", FakeTranscoder(), RetryingDeletion(queue, unlink))
    store.ensure_dirs()
    try:
        locator = store.upload(b"img", "image/png", "blog")
        path = store.locate(locator)
        article = make_article(author, image_url=locator)
        unlink.lock(path)

        ModerationWorkflow(db_session, ARTICLE_KIND, store).delete(caller_for(author), article.id)

        assert db_session.get(Article, article.id) is None
        assert path.exists()
        assert path in queue

        unlink.unlock(path)
        queue.drain(now=clock.now + 1000)

        assert not path.exists()
        assert len(queue) == 0
    finally:
        store.close()
