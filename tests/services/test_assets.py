"""Tests for staging, promotion, deletion and orphan sweeps in the asset store."""

import io
import os
import threading
import time
from pathlib import Path

import pytest
from PIL import Image

from curation_stage.core.errors import NotFound, TranscodeFailure, UnsupportedMediaType, ValidationFailed
from curation_stage.services.assets import AssetStore, StagedFile, gallery_scope
from curation_stage.services.deletion import ImmediateDeletion
from curation_stage.services.transcoder import PillowTranscoder, TranscodeConstraints
from tests.helpers import FailingTranscoder, image_bytes


def _store(root: Path, transcoder, **kwargs) -> AssetStore:
    store = AssetStore(root, "http://test", transcoder, ImmediateDeletion(retry_pause=0), **kwargs)
    store.ensure_dirs()
    return store


@pytest.mark.parametrize(
    ("mime", "extension"),
    [
        ("image/jpeg", ".jpg"),
        ("image/jpg", ".jpg"),
        ("image/png", ".png"),
        ("image/gif", ".gif"),
        ("image/webp", ".webp"),
        ("IMAGE/PNG; charset=binary", ".png"),
    ],
)
def test_stage_accepts_allowed_types(asset_store: AssetStore, mime: str, extension: str) -> None:
    staged = asset_store.stage(b"payload", mime)

    assert staged.path.parent == asset_store.staging_dir
    assert staged.path.suffix == extension
    assert staged.path.read_bytes() == b"payload"
    assert staged.size == 7


@pytest.mark.parametrize("mime", ["application/pdf", "image/svg+xml", "text/plain", "", None])
def test_stage_rejects_other_types_without_writing(asset_store: AssetStore, mime) -> None:
    with pytest.raises(UnsupportedMediaType) as exc_info:
        asset_store.stage(b"payload", mime)

    assert exc_info.value.status_code == 415
    assert list(asset_store.staging_dir.iterdir()) == []


def test_stage_rejects_empty_and_oversized_payloads(upload_root: Path, transcoder) -> None:
    store = _store(upload_root, transcoder, max_upload_bytes=4)
    try:
        with pytest.raises(ValidationFailed):
            store.stage(b"", "image/png")
        with pytest.raises(ValidationFailed):
            store.stage(b"12345", "image/png")
        assert list(store.staging_dir.iterdir()) == []
    finally:
        store.close()


def test_promote_writes_transcoded_file_and_drops_staged_input(asset_store: AssetStore, transcoder) -> None:
    staged = asset_store.stage(b"raw", "image/png")

    locator = asset_store.promote(staged, "blog")

    target = asset_store.locate(locator)
    assert locator == f"http://test/uploads/blog/{target.name}"
    assert target.name.startswith("image-") and target.suffix == ".webp"
    assert target.read_bytes() == b"WEBPraw"
    assert not staged.path.exists()
    assert transcoder.calls == 1
    assert not list((asset_store.root / "blog").glob(".*.part"))


def test_promoted_names_do_not_collide(asset_store: AssetStore) -> None:
    locators = {asset_store.upload(b"same", "image/png", "services") for _ in range(5)}
    assert len(locators) == 5


def test_promote_into_unknown_scope_is_rejected(asset_store: AssetStore) -> None:
    staged = asset_store.stage(b"raw", "image/png")

    with pytest.raises(ValidationFailed):
        asset_store.promote(staged, "../escape")

    assert not staged.path.exists()


def test_transcode_failure_cleans_up(upload_root: Path) -> None:
    store = _store(upload_root, FailingTranscoder())
    try:
        staged = store.stage(b"not an image", "image/png")

        with pytest.raises(TranscodeFailure):
            store.promote(staged, "blog")

        assert not staged.path.exists()
        assert list((store.root / "blog").iterdir()) == []
    finally:
        store.close()


def test_transcode_timeout_is_a_failure(upload_root: Path) -> None:
    release = threading.Event()

    class StuckTranscoder:
        def transcode(self, data: bytes, constraints: TranscodeConstraints) -> bytes:
            release.wait(5)
            return data

    store = _store(upload_root, StuckTranscoder(), transcode_timeout=0.05)
    try:
        staged = store.stage(b"raw", "image/png")

        with pytest.raises(TranscodeFailure, match="timed out"):
            store.promote(staged, "blog")

        assert not staged.path.exists()
        assert list((store.root / "blog").iterdir()) == []
    finally:
        release.set()
        store.close()


def test_delete_is_idempotent(asset_store: AssetStore) -> None:
    locator = asset_store.upload(b"raw", "image/png", "blog")

    asset_store.delete(locator)
    asset_store.delete(locator)

    assert not asset_store.locate(locator).exists()


@pytest.mark.parametrize(
    "locator",
    [
        "http://test/static/blog/image-1.webp",
        "http://test/uploads/blog/../../secrets.txt",
        "http://test/uploads/temp/upload-1.png",
        "http://test/uploads/image-1.webp",
    ],
)
def test_foreign_locators_are_not_found(asset_store: AssetStore, locator: str) -> None:
    with pytest.raises(NotFound):
        asset_store.delete(locator)


def test_locate_accepts_bare_paths(asset_store: AssetStore) -> None:
    path = asset_store.locate(f"/uploads/{gallery_scope(3)}/image-abc.webp")
    assert path == asset_store.root / "galleries" / "gallery-3" / "image-abc.webp"


def test_discard_reports_failures_and_continues(asset_store: AssetStore) -> None:
    good = asset_store.upload(b"raw", "image/png", "blog")

    failed = asset_store.discard([None, "http://elsewhere/x.png", good])

    assert failed == ["http://elsewhere/x.png"]
    assert not asset_store.locate(good).exists()


def _age(path: Path, seconds: float) -> None:
    past = time.time() - seconds
    os.utime(path, (past, past))


def test_sweep_removes_only_old_orphans(asset_store: AssetStore) -> None:
    old = asset_store.stage(b"old", "image/png")
    fresh = asset_store.stage(b"fresh", "image/png")
    _age(old.path, 3600)

    swept = asset_store.sweep_orphans(max_age=300)

    assert swept == 1
    assert not old.path.exists()
    assert fresh.path.exists()


def test_sweep_with_zero_age_clears_everything(asset_store: AssetStore) -> None:
    for _ in range(3):
        asset_store.stage(b"x", "image/gif")

    assert asset_store.sweep_orphans(0) == 3
    assert list(asset_store.staging_dir.iterdir()) == []


def test_sweep_skips_files_being_promoted(upload_root: Path) -> None:
    observed: list[bool] = []
    holder: dict[str, AssetStore] = {}

    class SweepingTranscoder:
        def transcode(self, data: bytes, constraints: TranscodeConstraints) -> bytes:
            store = holder["store"]
            store.sweep_orphans(0)
            observed.extend(path.exists() for path in store.staging_dir.iterdir())
            return data

    store = _store(upload_root, SweepingTranscoder())
    holder["store"] = store
    try:
        staged = store.stage(b"raw", "image/png")
        store.promote(staged, "blog")
    finally:
        store.close()

    assert observed == [True]


def test_sweep_without_staging_dir(tmp_path: Path, transcoder) -> None:
    store = AssetStore(tmp_path / "missing", "http://test", transcoder, ImmediateDeletion())
    try:
        assert store.sweep_orphans(0) == 0
    finally:
        store.close()


def test_prune_scope_leaves_non_empty_directories(asset_store: AssetStore) -> None:
    scope = gallery_scope(9)
    locator = asset_store.upload(b"raw", "image/png", scope)

    asset_store.prune_scope(scope)
    assert asset_store.locate(locator).exists()

    asset_store.delete(locator)
    asset_store.prune_scope(scope)
    assert not (asset_store.root / scope).exists()


def test_from_settings(test_settings, tmp_path: Path) -> None:
    settings = test_settings.model_copy(
        update={"upload_root": tmp_path, "public_base_url": "https://cdn.example/", "asset_quality": 60}
    )
    store = AssetStore.from_settings(settings, transcoder=PillowTranscoder())
    try:
        assert store.public_base_url == "https://cdn.example"
        assert store.constraints.quality == 60
        assert store.locator_for("blog", "a.webp") == "https://cdn.example/uploads/blog/a.webp"
    finally:
        store.close()


def test_staged_file_name() -> None:
    staged = StagedFile(path=Path("/tmp/temp/upload-1.png"), mime_type="image/png", size=1, arrived_at=None)
    assert staged.name == "upload-1.png"


class TestPillowTranscoder:
    """The default transcoder against real images."""

    def test_downscales_preserving_aspect(self) -> None:
        output = PillowTranscoder().transcode(image_bytes((2400, 1200)), TranscodeConstraints())

        with Image.open(io.BytesIO(output)) as result:
            assert result.format == "WEBP"
            assert result.size == (1200, 600)

    def test_never_upscales(self) -> None:
        output = PillowTranscoder().transcode(image_bytes((40, 30), fmt="JPEG"), TranscodeConstraints())

        with Image.open(io.BytesIO(output)) as result:
            assert result.size == (40, 30)

    def test_keeps_transparency(self) -> None:
        output = PillowTranscoder().transcode(image_bytes((10, 10), mode="RGBA"), TranscodeConstraints())

        with Image.open(io.BytesIO(output)) as result:
            assert result.mode == "RGBA"

    def test_rejects_garbage(self) -> None:
        with pytest.raises(Exception):
            PillowTranscoder().transcode(b"definitely not an image", TranscodeConstraints())
