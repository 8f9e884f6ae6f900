"""Gallery images and the one-thumbnail-per-gallery rule.

Every mutation of a gallery's images runs under that gallery's scope lock, so
uploads, thumbnail swaps and deletions on the same gallery never interleave.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from curation_stage.core.errors import NotFound
from curation_stage.db.session import atomic
from curation_stage.models import Gallery, GalleryImage
from curation_stage.services.assets import AssetStore, gallery_scope
from curation_stage.services.permissions import Caller, Operation, require
from curation_stage.services.workflow import (
    GALLERY_KIND,
    ModerationWorkflow,
    release_assets,
    resubmit_if_rejected,
)

logger = logging.getLogger(__name__)


class GalleryService:
    """Upload, list, delete and choose the thumbnail of gallery images."""

    def __init__(self, session: Session, assets: AssetStore) -> None:
        self.session = session
        self.assets = assets
        self.galleries = ModerationWorkflow(session, GALLERY_KIND, assets)

    def _gallery(
        self,
        caller: Caller,
        gallery_id: int,
        operation: Operation,
        *,
        for_update: bool = False,
    ) -> Gallery:
        gallery = self.galleries.load(gallery_id, for_update=for_update)
        require(caller.role, operation, self.galleries.view_of(gallery, caller))
        return gallery

    def _image(self, gallery_id: int, image_id: int) -> GalleryImage:
        image = self.session.get(GalleryImage, image_id)
        if image is None or image.gallery_id != gallery_id:
            raise NotFound(f"Image with ID {image_id} not found")
        return image

    def _count(self, gallery_id: int) -> int:
        stmt = select(func.count()).select_from(GalleryImage).where(GalleryImage.gallery_id == gallery_id)
        return int(self.session.scalar(stmt) or 0)

    def _resubmit(self, gallery: Gallery) -> None:
        if resubmit_if_rejected(gallery):
            logger.info("Gallery %s resubmitted for review after an image change", gallery.id)

    def list_images(self, caller: Caller, gallery_id: int) -> list[GalleryImage]:
        self._gallery(caller, gallery_id, Operation.READ)
        stmt = select(GalleryImage).where(GalleryImage.gallery_id == gallery_id).order_by(GalleryImage.id)
        return list(self.session.scalars(stmt))

    def upload_image(
        self,
        caller: Caller,
        gallery_id: int,
        data: bytes,
        declared_mime: str | None,
    ) -> GalleryImage:
        """Store an image in the gallery.

        The first image of a gallery becomes its thumbnail. If the record
        cannot be written the promoted file is removed again.

        Raises:
            PermissionDenied: If the caller may not edit the gallery.
            UnsupportedMediaType: If the upload is not an allowed image type.
            TranscodeFailure: If the image could not be processed.
        """
        self._gallery(caller, gallery_id, Operation.UPDATE)
        staged = self.assets.stage(data, declared_mime)
        scope = gallery_scope(gallery_id)

        with self.assets.scope_locks.hold(scope):
            locator = self.assets.promote(staged, scope)
            try:
                with atomic(self.session):
                    gallery = self._gallery(caller, gallery_id, Operation.UPDATE, for_update=True)
                    image = GalleryImage(
                        image_url=locator,
                        is_thumbnail=self._count(gallery_id) == 0,
                    )
                    gallery.images.append(image)
                    self._resubmit(gallery)
                    self.session.flush()
            except Exception:
                self.assets.discard([locator])
                raise

        logger.info("Image %s added to gallery %s by user %s", image.id, gallery_id, caller.user_id)
        return image

    def set_thumbnail(self, caller: Caller, gallery_id: int, image_id: int) -> GalleryImage:
        """Make ``image_id`` the only thumbnail of its gallery."""
        with self.assets.scope_locks.hold(gallery_scope(gallery_id)):
            with atomic(self.session):
                gallery = self._gallery(caller, gallery_id, Operation.UPDATE, for_update=True)
                image = self._image(gallery_id, image_id)
                self.session.execute(
                    update(GalleryImage)
                    .where(GalleryImage.gallery_id == gallery_id, GalleryImage.id != image_id)
                    .values(is_thumbnail=False)
                    .execution_options(synchronize_session="fetch")
                )
                self.session.execute(
                    update(GalleryImage)
                    .where(GalleryImage.id == image_id)
                    .values(is_thumbnail=True)
                    .execution_options(synchronize_session="fetch")
                )
                self._resubmit(gallery)
                self.session.flush()

        logger.info("Image %s is now the thumbnail of gallery %s", image_id, gallery_id)
        return image

    def delete_image(self, caller: Caller, gallery_id: int, image_id: int) -> None:
        """Remove an image; a removed thumbnail passes to the lowest-id remaining image."""
        with self.assets.scope_locks.hold(gallery_scope(gallery_id)):
            with atomic(self.session):
                gallery = self._gallery(caller, gallery_id, Operation.DELETE, for_update=True)
                image = self._image(gallery_id, image_id)
                locator = image.image_url
                was_thumbnail = image.is_thumbnail
                gallery.images.remove(image)
                self.session.flush()

                if was_thumbnail:
                    successor = self.session.scalars(
                        select(GalleryImage)
                        .where(GalleryImage.gallery_id == gallery_id)
                        .order_by(GalleryImage.id)
                        .limit(1)
                    ).first()
                    if successor is not None:
                        successor.is_thumbnail = True
                self._resubmit(gallery)
                self.session.flush()

            logger.info("Image %s removed from gallery %s by user %s", image_id, gallery_id, caller.user_id)
            release_assets(self.session, self.assets, [locator])
