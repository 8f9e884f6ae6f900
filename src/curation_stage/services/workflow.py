# src/curation_stage/services/workflow.py
"""Moderation workflow shared by articles, service listings, FAQ entries and galleries.

One :class:`ModerationWorkflow` serves every content type; the differences
between types are captured by a small :class:`ContentKind` descriptor.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from contextlib import nullcontext
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from curation_stage.core.errors import NotFound, ValidationFailed
from curation_stage.db.session import atomic
from curation_stage.models import Article, FAQEntry, Gallery, GalleryImage, ServiceListing
from curation_stage.models.moderation import ContentStatus
from curation_stage.repositories.content_repo import ContentRepository
from curation_stage.services.assets import (
    ARTICLE_SCOPE,
    SERVICE_SCOPE,
    AssetStore,
    gallery_scope,
)
from curation_stage.services.ordering import OrderCompactor
from curation_stage.services.permissions import (
    Caller,
    Operation,
    Privilege,
    ResourceView,
    require,
)

logger = logging.getLogger(__name__)

# The global FAQ ordering belongs to the organisation and has no review state.
ORG_SCOPE_VIEW = ResourceView(status=None, owned=True)


def _image_field_assets(session: Session, entity: Any) -> list[str]:
    url = getattr(entity, "image_url", None)
    return [url] if url else []


def _no_assets(session: Session, entity: Any) -> list[str]:
    return []


def _gallery_assets(session: Session, entity: Any) -> list[str]:
    stmt = select(GalleryImage.image_url).where(GalleryImage.gallery_id == entity.id)
    return list(session.scalars(stmt))


@dataclass(frozen=True)
class ContentKind:
    """Capabilities of one moderated content type."""

    name: str
    label: str
    model: type[Any]
    editable_fields: tuple[str, ...]
    # Column holding the author for per-author types; None for org-owned types.
    owner_attr: str | None = None
    # Column stamped with the creator for org-owned types (informational only).
    creator_attr: str | None = None
    image_attr: str | None = None
    requires_image: bool = False
    ordered: bool = False
    asset_scope: Callable[[int], str] | None = None
    # True when every entity gets its own storage directory (galleries).
    scope_per_entity: bool = False
    collect_assets: Callable[[Session, Any], list[str]] = field(default=_no_assets)

    @property
    def has_author(self) -> bool:
        return self.owner_attr is not None


ARTICLE_KIND = ContentKind(
    name="article",
    label="Article",
    model=Article,
    editable_fields=("title", "content", "image_url"),
    owner_attr="author_id",
    image_attr="image_url",
    requires_image=True,
    asset_scope=lambda _entity_id: ARTICLE_SCOPE,
    collect_assets=_image_field_assets,
)

SERVICE_KIND = ContentKind(
    name="service",
    label="Service",
    model=ServiceListing,
    editable_fields=("title", "short_desc", "content", "image_url", "category", "price"),
    creator_attr="created_by",
    image_attr="image_url",
    requires_image=True,
    asset_scope=lambda _entity_id: SERVICE_SCOPE,
    collect_assets=_image_field_assets,
)

FAQ_KIND = ContentKind(
    name="faq",
    label="FAQ",
    model=FAQEntry,
    editable_fields=("question",),
    creator_attr="created_by",
    ordered=True,
)

GALLERY_KIND = ContentKind(
    name="gallery",
    label="Gallery",
    model=Gallery,
    editable_fields=("title",),
    owner_attr="author_id",
    asset_scope=gallery_scope,
    scope_per_entity=True,
    collect_assets=_gallery_assets,
)

KINDS: dict[str, ContentKind] = {
    kind.name: kind for kind in (ARTICLE_KIND, SERVICE_KIND, FAQ_KIND, GALLERY_KIND)
}


def image_references(session: Session, locator: str) -> int:
    """Count the records of any image-bearing kind that point at ``locator``."""
    total = 0
    for column in (Article.image_url, ServiceListing.image_url, GalleryImage.image_url):
        total += int(session.scalar(select(func.count()).where(column == locator)) or 0)
    return total


def release_assets(session: Session, assets: AssetStore, locators: Iterable[str | None]) -> list[str]:
    """Delete the files of removed records unless another record still uses them.

    Returns:
        The locators whose cleanup failed.
    """
    unused: list[str] = []
    for locator in locators:
        if not locator:
            continue
        if image_references(session, locator):
            logger.warning("Asset %s is still referenced, keeping the file", locator)
            continue
        unused.append(locator)
    return assets.discard(unused)


def resubmit_if_rejected(entity: Any) -> bool:
    """Move a rejected entity back into the review queue after an edit."""
    if entity.status is ContentStatus.REJECTED:
        entity.status = ContentStatus.PENDING
        return True
    return False


def _present(value: Any) -> bool:
    return value is not None and value != ""


class ModerationWorkflow:
    """Create, read, edit, delete and review entities of one content kind.

    Every mutation runs as a single unit of work. Asset files are removed only
    after the record change has committed; cleanup failures are logged.
    """

    def __init__(
        self,
        session: Session,
        kind: ContentKind,
        assets: AssetStore | None = None,
    ) -> None:
        self.session = session
        self.kind = kind
        self.assets = assets
        self.repo: ContentRepository[Any] = ContentRepository(session, kind.model)
        self.compactor = OrderCompactor(session, kind.model) if kind.ordered else None

    def view_of(self, entity: Any, caller: Caller) -> ResourceView:
        """Snapshot the status and caller ownership of an entity."""
        if self.kind.owner_attr is None:
            owned = True
        else:
            owned = getattr(entity, self.kind.owner_attr) == caller.user_id
        return ResourceView(status=entity.status, owned=owned)

    def load(self, entity_id: int, *, for_update: bool = False) -> Any:
        entity = self.repo.get_by_id(entity_id, for_update=for_update)
        if entity is None:
            raise NotFound(f"{self.kind.label} with ID {entity_id} not found")
        return entity

    def _order_by(self) -> list[Any]:
        model = self.kind.model
        if self.kind.ordered:
            return [model.order, model.id]
        return [model.created_at.desc(), model.id.desc()]

    def _lock_for(self, entity_id: int | None = None) -> Any:
        if self.compactor is not None:
            return self.compactor.hold()
        if (
            entity_id is not None
            and self.assets is not None
            and self.kind.scope_per_entity
            and self.kind.asset_scope
        ):
            return self.assets.scope_locks.hold(self.kind.asset_scope(entity_id))
        return nullcontext()

    def _claim_image(self, locator: str) -> None:
        """Check that ``locator`` is an uploaded image of this kind that no record uses yet."""
        if self.assets is not None and self.kind.asset_scope is not None:
            try:
                path = self.assets.locate(locator)
            except NotFound as exc:
                raise ValidationFailed("Image URL does not point to an uploaded image") from exc
            if not path.is_file():
                raise ValidationFailed("Image URL does not point to an uploaded image")
            if path.parent != self.assets.root / self.kind.asset_scope(0):
                raise ValidationFailed(f"Image URL is not a {self.kind.name} image")
        if image_references(self.session, locator):
            raise ValidationFailed("Image is already used by another record")

    def create(self, caller: Caller, payload: Mapping[str, Any]) -> Any:
        """Create a new entity in the PENDING state.

        Raises:
            PermissionDenied: If the caller may not create content.
            ValidationFailed: If the kind requires an image and none was given,
                or the image is foreign to this kind or already in use.
        """
        require(caller.role, Operation.CREATE)
        fields = {
            name: payload[name]
            for name in self.kind.editable_fields
            if _present(payload.get(name))
        }
        if self.kind.requires_image and not fields.get(self.kind.image_attr or ""):
            raise ValidationFailed("Image URL is required. Please upload an image first.")

        image = fields.get(self.kind.image_attr or "")

        with self._lock_for(), atomic(self.session):
            if image:
                self._claim_image(image)
            if self.kind.owner_attr:
                fields[self.kind.owner_attr] = caller.user_id
            if self.kind.creator_attr:
                fields[self.kind.creator_attr] = caller.user_id
            if self.compactor is not None:
                fields["order"] = self.compactor.next_order()
            entity = self.repo.add(status=ContentStatus.PENDING, **fields)

        logger.info("%s %s created by user %s", self.kind.label, entity.id, caller.user_id)
        return entity

    def upload_image(self, caller: Caller, data: bytes, declared_mime: str | None) -> str:
        """Stage and promote an image for a future create or update; returns its locator."""
        if self.assets is None or self.kind.image_attr is None or self.kind.asset_scope is None:
            raise ValidationFailed(f"{self.kind.label} entries do not take an image")
        require(caller.role, Operation.CREATE)
        return self.assets.upload(data, declared_mime, self.kind.asset_scope(0))

    def get(self, caller: Caller, entity_id: int) -> Any:
        entity = self.load(entity_id)
        require(caller.role, Operation.READ, self.view_of(entity, caller))
        return entity

    def list_visible(
        self,
        caller: Caller,
        *,
        status: ContentStatus | None = None,
        mine: bool = False,
        filters: Mapping[str, Any] | None = None,
    ) -> list[Any]:
        """List what the caller is allowed to read.

        Restricted viewers see approved entities only, authors additionally
        see their own, supervisors see everything.
        """
        privilege = caller.privilege
        statuses: list[ContentStatus] | None = None
        visible_to_owner = None
        owner = None

        if privilege is Privilege.VIEWER_RESTRICTED:
            statuses = [ContentStatus.APPROVED]
        elif privilege is Privilege.AUTHOR and self.kind.owner_attr:
            statuses = [ContentStatus.APPROVED]
            visible_to_owner = (self.kind.owner_attr, caller.user_id)

        if mine and self.kind.owner_attr:
            owner = (self.kind.owner_attr, caller.user_id)

        return self.repo.find(
            status=status,
            statuses=statuses,
            visible_to_owner=visible_to_owner,
            owner=owner,
            filters=filters,
            order_by=self._order_by(),
        )

    def list_public(self, filters: Mapping[str, Any] | None = None) -> list[Any]:
        """List approved entities; needs no caller."""
        return self.repo.find(
            status=ContentStatus.APPROVED,
            filters=filters,
            order_by=self._order_by(),
        )

    def update(self, caller: Caller, entity_id: int, patch: Mapping[str, Any]) -> Any:
        """Merge the non-empty fields of ``patch`` into the entity.

        A REJECTED entity goes back to PENDING. Replacing the image deletes the
        previous asset once the change has committed.
        """
        image_attr = self.kind.image_attr
        replaced: str | None = None

        with atomic(self.session):
            entity = self.load(entity_id, for_update=True)
            require(caller.role, Operation.UPDATE, self.view_of(entity, caller))

            changes = {
                name: patch[name]
                for name in self.kind.editable_fields
                if _present(patch.get(name))
            }
            if image_attr and image_attr in changes:
                previous = getattr(entity, image_attr)
                if previous != changes[image_attr]:
                    self._claim_image(changes[image_attr])
                    replaced = previous
            for name, value in changes.items():
                setattr(entity, name, value)
            if resubmit_if_rejected(entity):
                logger.info("%s %s resubmitted for review", self.kind.label, entity_id)
            self.session.flush()

        if replaced and self.assets is not None:
            release_assets(self.session, self.assets, [replaced])
        return entity

    def delete(self, caller: Caller, entity_id: int) -> None:
        """Delete an entity, its sub-resources and, afterwards, its assets."""
        with self._lock_for(entity_id):
            with atomic(self.session):
                entity = self.load(entity_id, for_update=True)
                require(caller.role, Operation.DELETE, self.view_of(entity, caller))

                locators = self.kind.collect_assets(self.session, entity)
                deleted_order = entity.order if self.compactor is not None else None
                self.repo.delete(entity)
                if self.compactor is not None and deleted_order is not None:
                    self.compactor.compact_after(None, deleted_order)

            logger.info("%s %s deleted by user %s", self.kind.label, entity_id, caller.user_id)
            if self.assets is not None and locators:
                failed = release_assets(self.session, self.assets, locators)
                if self.kind.scope_per_entity and self.kind.asset_scope and not failed:
                    self.assets.prune_scope(self.kind.asset_scope(entity_id))

    def change_status(self, caller: Caller, entity_id: int, new_status: ContentStatus) -> Any:
        """Set any status; supervisors only."""
        with atomic(self.session):
            entity = self.load(entity_id, for_update=True)
            require(caller.role, Operation.CHANGE_STATUS, self.view_of(entity, caller))
            previous = entity.status
            entity.status = new_status
            self.session.flush()

        logger.info(
            "%s %s status %s -> %s",
            self.kind.label,
            entity_id,
            previous.value,
            new_status.value,
        )
        return entity

    def reorder(self, caller: Caller, ordered_ids: Sequence[int]) -> list[Any]:
        """Apply a complete new ordering to every entity of an ordered kind."""
        if self.compactor is None:
            raise ValidationFailed(f"{self.kind.label} entries are not ordered")
        require(caller.role, Operation.REORDER, ORG_SCOPE_VIEW)

        with self.compactor.hold(), atomic(self.session):
            self.compactor.reorder(None, ordered_ids)

        logger.info("%s order updated by user %s", self.kind.label, caller.user_id)
        return self.repo.find(order_by=self._order_by())
