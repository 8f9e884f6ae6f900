"""Gallery endpoints for the Curation API.

Handlers that touch a gallery's files are plain functions so FastAPI runs them
in its threadpool; they may wait on the per-gallery lock.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, File, Query, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from curation_stage.api.v1.dependencies import AssetStoreDep, CurrentCallerDep, SessionDep
from curation_stage.models import Gallery, GalleryImage
from curation_stage.models.moderation import ContentStatus
from curation_stage.schemas.common import StatusChange
from curation_stage.schemas.gallery import (
    GalleryCreate,
    GalleryImageResponse,
    GalleryResponse,
    GalleryUpdate,
)
from curation_stage.services.assets import AssetStore
from curation_stage.services.galleries import GalleryService
from curation_stage.services.workflow import GALLERY_KIND, ModerationWorkflow

router = APIRouter(prefix="/galleries", tags=["galleries"])


def _workflow(db: Session, assets: AssetStore | None = None) -> ModerationWorkflow:
    return ModerationWorkflow(db, GALLERY_KIND, assets)


@router.get("/public", response_model=list[GalleryResponse])
async def list_public_galleries(db: SessionDep) -> list[Gallery]:
    """List approved galleries, newest first. No authentication required."""
    return _workflow(db).list_public()


@router.get("/", response_model=list[GalleryResponse])
async def list_galleries(
    caller: CurrentCallerDep,
    db: SessionDep,
    status_filter: Annotated[ContentStatus | None, Query(alias="status")] = None,
    mine: bool = False,
) -> list[Gallery]:
    return _workflow(db).list_visible(caller, status=status_filter, mine=mine)


@router.post("/", response_model=GalleryResponse, status_code=status.HTTP_201_CREATED)
async def create_gallery(payload: GalleryCreate, caller: CurrentCallerDep, db: SessionDep) -> Gallery:
    """Create an empty gallery pending review."""
    return _workflow(db).create(caller, payload.model_dump())


@router.get("/{gallery_id}", response_model=GalleryResponse)
async def get_gallery(gallery_id: int, caller: CurrentCallerDep, db: SessionDep) -> Gallery:
    return _workflow(db).get(caller, gallery_id)


@router.patch("/{gallery_id}", response_model=GalleryResponse)
async def update_gallery(
    gallery_id: int,
    payload: GalleryUpdate,
    caller: CurrentCallerDep,
    db: SessionDep,
) -> Gallery:
    return _workflow(db).update(caller, gallery_id, payload.model_dump(exclude_unset=True))


@router.delete("/{gallery_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_gallery(
    gallery_id: int,
    caller: CurrentCallerDep,
    db: SessionDep,
    assets: AssetStoreDep,
) -> None:
    """Delete a gallery, its images and their files."""
    _workflow(db, assets).delete(caller, gallery_id)


@router.patch("/{gallery_id}/status", response_model=GalleryResponse)
async def change_gallery_status(
    gallery_id: int,
    payload: StatusChange,
    caller: CurrentCallerDep,
    db: SessionDep,
) -> Gallery:
    return _workflow(db).change_status(caller, gallery_id, payload.status)


@router.get("/{gallery_id}/images", response_model=list[GalleryImageResponse])
async def list_gallery_images(
    gallery_id: int,
    caller: CurrentCallerDep,
    db: SessionDep,
    assets: AssetStoreDep,
) -> list[GalleryImage]:
    return GalleryService(db, assets).list_images(caller, gallery_id)


@router.post(
    "/{gallery_id}/images",
    response_model=GalleryImageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_gallery_image(
    gallery_id: int,
    caller: CurrentCallerDep,
    db: SessionDep,
    assets: AssetStoreDep,
    file: Annotated[UploadFile, File(...)],
) -> GalleryImage:
    """Add an image; the first image of a gallery becomes its thumbnail."""
    data = await file.read()
    return await run_in_threadpool(
        GalleryService(db, assets).upload_image, caller, gallery_id, data, file.content_type
    )


@router.put(
    "/{gallery_id}/images/{image_id}/thumbnail",
    response_model=GalleryImageResponse,
)
def set_gallery_thumbnail(
    gallery_id: int,
    image_id: int,
    caller: CurrentCallerDep,
    db: SessionDep,
    assets: AssetStoreDep,
) -> GalleryImage:
    return GalleryService(db, assets).set_thumbnail(caller, gallery_id, image_id)


@router.delete(
    "/{gallery_id}/images/{image_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def delete_gallery_image(
    gallery_id: int,
    image_id: int,
    caller: CurrentCallerDep,
    db: SessionDep,
    assets: AssetStoreDep,
) -> None:
    GalleryService(db, assets).delete_image(caller, gallery_id, image_id)
