# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("PYTEST_RUNNING", "true")

from curation_stage.core.settings import Settings
from curation_stage.db.session import Base
from curation_stage.db.session import get_db as app_get_session
from curation_stage.main import app as fastapi_app
from curation_stage.models import (
    Article,
    ContentStatus,
    FAQAnswer,
    FAQEntry,
    Gallery,
    GalleryImage,
    Role,
    ServiceCategory,
    ServiceListing,
    User,
)
from curation_stage.services.assets import AssetStore
from curation_stage.services.deletion import ImmediateDeletion
from tests.helpers import FakeTranscoder

TEST_DB_URL = "sqlite://"

_TEST_SETTINGS_INSTANCE = Settings()


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    connection = engine.connect()
    transaction = connection.begin()
    SessionLocal = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )
    session = SessionLocal()
    session.begin_nested()

    @event.listens_for(session, "after_transaction_end")
    def restart_savepoint(sess: Session, trans) -> None:  # pragma: no cover - SQLAlchemy internals
        if trans.nested and not getattr(trans._parent, "nested", False):
            session.begin_nested()

    try:
        yield session
    finally:
        event.remove(session, "after_transaction_end", restart_savepoint)
        session.close()

        if transaction.is_active:
            transaction.rollback()
        connection.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Provide a Settings instance aligned with runtime configuration."""
    return _TEST_SETTINGS_INSTANCE


@pytest.fixture()
def transcoder() -> FakeTranscoder:
    return FakeTranscoder()


@pytest.fixture()
def upload_root(tmp_path: Path) -> Path:
    return tmp_path / "uploads"


@pytest.fixture()
def asset_store(upload_root: Path, transcoder: FakeTranscoder) -> Iterator[AssetStore]:
    """Asset store rooted in a temporary directory with synchronous deletion."""
    store = AssetStore(
        upload_root,
        "http://test",
        transcoder,
        ImmediateDeletion(retry_pause=0),
        transcode_timeout=5,
    )
    store.ensure_dirs()
    try:
        yield store
    finally:
        store.close()


@pytest.fixture()
def client(app: FastAPI, asset_store: AssetStore) -> Iterator[TestClient]:
    app.state.asset_store = asset_store
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client
    app.state.asset_store = None


@pytest.fixture()
def make_user(db_session: Session) -> Callable[..., User]:
    """Return a factory persisting an account with the given role."""

    def _make(role: Role, name: str | None = None) -> User:
        user = User(name=name or role.value.lower(), role=role)
        db_session.add(user)
        db_session.commit()
        return user

    return _make


@pytest.fixture()
def viewer(make_user: Callable[..., User]) -> User:
    return make_user(Role.USER_SELF, "viewer")


@pytest.fixture()
def author(make_user: Callable[..., User]) -> User:
    return make_user(Role.ADMIN, "author")


@pytest.fixture()
def other_author(make_user: Callable[..., User]) -> User:
    return make_user(Role.ADMIN, "other author")


@pytest.fixture()
def supervisor(make_user: Callable[..., User]) -> User:
    return make_user(Role.SUPERADMIN, "supervisor")


@pytest.fixture()
def make_article(db_session: Session) -> Callable[..., Article]:
    def _make(
        author: User,
        status: ContentStatus = ContentStatus.PENDING,
        image_url: str = "http://test/uploads/blog/image-seed.webp",
    ) -> Article:
        article = Article(
            author_id=author.id,
            title="Seeded article",
            content="Body",
            image_url=image_url,
            status=status,
        )
        db_session.add(article)
        db_session.commit()
        return article

    return _make


@pytest.fixture()
def make_service(db_session: Session) -> Callable[..., ServiceListing]:
    def _make(
        status: ContentStatus = ContentStatus.PENDING,
        category: ServiceCategory = ServiceCategory.GENERAL,
    ) -> ServiceListing:
        listing = ServiceListing(
            title="Seeded service",
            short_desc="Short",
            content="Body",
            image_url="http://test/uploads/services/image-seed.webp",
            category=category,
            status=status,
        )
        db_session.add(listing)
        db_session.commit()
        return listing

    return _make


@pytest.fixture()
def make_faq(db_session: Session) -> Callable[..., FAQEntry]:
    """Insert a FAQ entry at the end of the global order, with optional answers."""

    def _make(
        question: str = "Seeded question?",
        status: ContentStatus = ContentStatus.PENDING,
        answers: tuple[str, ...] = (),
    ) -> FAQEntry:
        order = db_session.query(FAQEntry).count()
        entry = FAQEntry(question=question, status=status, order=order)
        for index, text in enumerate(answers):
            entry.answers.append(FAQAnswer(answer=text, order=index))
        db_session.add(entry)
        db_session.commit()
        return entry

    return _make


@pytest.fixture()
def make_gallery(db_session: Session) -> Callable[..., Gallery]:
    def _make(
        author: User,
        status: ContentStatus = ContentStatus.PENDING,
        images: tuple[str, ...] = (),
    ) -> Gallery:
        gallery = Gallery(author_id=author.id, title="Seeded gallery", status=status)
        for index, url in enumerate(images):
            gallery.images.append(GalleryImage(image_url=url, is_thumbnail=index == 0))
        db_session.add(gallery)
        db_session.commit()
        return gallery

    return _make
