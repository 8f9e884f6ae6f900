"""Article endpoints for the Curation API."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, File, Query, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from curation_stage.api.v1.dependencies import AssetStoreDep, CurrentCallerDep, SessionDep
from curation_stage.models import Article
from curation_stage.models.moderation import ContentStatus
from curation_stage.schemas.article import ArticleCreate, ArticleResponse, ArticleUpdate
from curation_stage.schemas.common import ImageUploadResponse, StatusChange
from curation_stage.services.assets import AssetStore
from curation_stage.services.workflow import ARTICLE_KIND, ModerationWorkflow

router = APIRouter(prefix="/articles", tags=["articles"])


def _workflow(db: Session, assets: AssetStore | None = None) -> ModerationWorkflow:
    return ModerationWorkflow(db, ARTICLE_KIND, assets)


@router.get("/public", response_model=list[ArticleResponse])
async def list_public_articles(db: SessionDep) -> list[Article]:
    """List approved articles, newest first. No authentication required."""
    return _workflow(db).list_public()


@router.get("/", response_model=list[ArticleResponse])
async def list_articles(
    caller: CurrentCallerDep,
    db: SessionDep,
    status_filter: Annotated[ContentStatus | None, Query(alias="status")] = None,
    mine: bool = False,
) -> list[Article]:
    """List the articles visible to the caller."""
    return _workflow(db).list_visible(caller, status=status_filter, mine=mine)


@router.post(
    "/upload-image",
    response_model=ImageUploadResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_article_image(
    caller: CurrentCallerDep,
    db: SessionDep,
    assets: AssetStoreDep,
    file: Annotated[UploadFile, File(...)],
) -> ImageUploadResponse:
    """Upload an article image and return the locator to store on the article."""
    data = await file.read()
    locator = await run_in_threadpool(
        _workflow(db, assets).upload_image, caller, data, file.content_type
    )
    return ImageUploadResponse(image_url=locator)


@router.post("/", response_model=ArticleResponse, status_code=status.HTTP_201_CREATED)
async def create_article(
    payload: ArticleCreate,
    caller: CurrentCallerDep,
    db: SessionDep,
    assets: AssetStoreDep,
) -> Article:
    """Create an article; it starts out pending review."""
    return _workflow(db, assets).create(caller, payload.model_dump())


@router.get("/{article_id}", response_model=ArticleResponse)
async def get_article(article_id: int, caller: CurrentCallerDep, db: SessionDep) -> Article:
    return _workflow(db).get(caller, article_id)


@router.patch("/{article_id}", response_model=ArticleResponse)
async def update_article(
    article_id: int,
    payload: ArticleUpdate,
    caller: CurrentCallerDep,
    db: SessionDep,
    assets: AssetStoreDep,
) -> Article:
    """Edit an article; a rejected article goes back to pending review."""
    return _workflow(db, assets).update(caller, article_id, payload.model_dump(exclude_unset=True))


@router.delete("/{article_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_article(
    article_id: int,
    caller: CurrentCallerDep,
    db: SessionDep,
    assets: AssetStoreDep,
) -> None:
    """Delete an article together with its image."""
    _workflow(db, assets).delete(caller, article_id)


@router.patch("/{article_id}/status", response_model=ArticleResponse)
async def change_article_status(
    article_id: int,
    payload: StatusChange,
    caller: CurrentCallerDep,
    db: SessionDep,
) -> Article:
    """Record a review decision."""
    return _workflow(db).change_status(caller, article_id, payload.status)
