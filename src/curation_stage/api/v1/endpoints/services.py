"""Service listing endpoints for the Curation API."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, File, Query, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from curation_stage.api.v1.dependencies import AssetStoreDep, CurrentCallerDep, SessionDep
from curation_stage.models import ServiceCategory, ServiceListing
from curation_stage.models.moderation import ContentStatus
from curation_stage.schemas.service import ServiceCreate, ServiceResponse, ServiceUpdate
from curation_stage.schemas.common import ImageUploadResponse, StatusChange
from curation_stage.services.assets import AssetStore
from curation_stage.services.workflow import SERVICE_KIND, ModerationWorkflow

router = APIRouter(prefix="/services", tags=["services"])


def _workflow(db: Session, assets: AssetStore | None = None) -> ModerationWorkflow:
    return ModerationWorkflow(db, SERVICE_KIND, assets)


@router.get("/public", response_model=list[ServiceResponse])
async def list_public_services(
    db: SessionDep,
    category: ServiceCategory | None = None,
) -> list[ServiceListing]:
    """Public catalogue of approved service listings."""
    return _workflow(db).list_public({"category": category})


@router.get("/categories", response_model=list[ServiceCategory])
async def list_service_categories() -> list[ServiceCategory]:
    """Categories a listing can be filed under. No authentication required."""
    return list(ServiceCategory)


@router.get("/", response_model=list[ServiceResponse])
async def list_services(
    caller: CurrentCallerDep,
    db: SessionDep,
    status_filter: Annotated[ContentStatus | None, Query(alias="status")] = None,
    mine: bool = False,
    category: ServiceCategory | None = None,
) -> list[ServiceListing]:
    """List service listings; authors see every pending or rejected listing."""
    return _workflow(db).list_visible(
        caller, status=status_filter, mine=mine, filters={"category": category}
    )


@router.post(
    "/upload-image",
    response_model=ImageUploadResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_service_image(
    caller: CurrentCallerDep,
    db: SessionDep,
    assets: AssetStoreDep,
    file: Annotated[UploadFile, File(...)],
) -> ImageUploadResponse:
    """Upload a listing image ahead of create or update."""
    data = await file.read()
    locator = await run_in_threadpool(
        _workflow(db, assets).upload_image, caller, data, file.content_type
    )
    return ImageUploadResponse(image_url=locator)


@router.post("/", response_model=ServiceResponse, status_code=status.HTTP_201_CREATED)
async def create_service(
    payload: ServiceCreate,
    caller: CurrentCallerDep,
    db: SessionDep,
    assets: AssetStoreDep,
) -> ServiceListing:
    """Create a service listing pending review."""
    return _workflow(db, assets).create(caller, payload.model_dump())


@router.get("/{service_id}", response_model=ServiceResponse)
async def get_service(service_id: int, caller: CurrentCallerDep, db: SessionDep) -> ServiceListing:
    return _workflow(db).get(caller, service_id)


@router.patch("/{service_id}", response_model=ServiceResponse)
async def update_service(
    service_id: int,
    payload: ServiceUpdate,
    caller: CurrentCallerDep,
    db: SessionDep,
    assets: AssetStoreDep,
) -> ServiceListing:
    """Edit a listing. Supplying a new image_url removes the previous image."""
    return _workflow(db, assets).update(caller, service_id, payload.model_dump(exclude_unset=True))


@router.delete("/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_service(
    service_id: int,
    caller: CurrentCallerDep,
    db: SessionDep,
    assets: AssetStoreDep,
) -> None:
    """Delete a listing and its image."""
    _workflow(db, assets).delete(caller, service_id)


@router.patch("/{service_id}/status", response_model=ServiceResponse)
async def change_service_status(
    service_id: int,
    payload: StatusChange,
    caller: CurrentCallerDep,
    db: SessionDep,
) -> ServiceListing:
    """Record a review decision."""
    return _workflow(db).change_status(caller, service_id, payload.status)
