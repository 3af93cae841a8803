from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Any

from imagepipe.application.image_locks import ImageLockRegistry
from imagepipe.domain.entities.image import ImageEntity
from imagepipe.domain.entities.transformation import TransformationEntity
from imagepipe.domain.errors import (
    AccessDeniedError,
    ImageNotFoundError,
    InvalidImageError,
    ProcessingError,
    TransformationNotFoundError,
)
from imagepipe.domain.services.file_cleanup import remove_files
from imagepipe.domain.services.metadata_inspector import ImageInfo
from imagepipe.domain.services.pipeline_executor import ExecutionResult, PipelineExecutor
from imagepipe.infrastructure.database.repositories.image_repository import ImageRepository
from imagepipe.infrastructure.storage.local_storage import LocalFileStorage

log = logging.getLogger(__name__)


@dataclass
class AssetRecordManager:
    """Owns images and their transformation history.

    Every mutation checks ownership before touching a file or a record, and
    runs under the image's lock so that the pipeline run and the record
    update it produces are applied as one step.
    """

    images: ImageRepository
    storage: LocalFileStorage
    pipeline: PipelineExecutor
    locks: ImageLockRegistry

    # --------- access ---------

    def get_image(self, image_id: str) -> ImageEntity:
        image = self.images.get(image_id)
        if image is None:
            raise ImageNotFoundError(image_id)
        return image

    @staticmethod
    def ensure_owner(image: ImageEntity, user_id: str, action: str = "modify") -> None:
        if image.user_id != user_id:
            raise AccessDeniedError(f"Access denied. You can only {action} your own images.")

    @staticmethod
    def ensure_readable(image: ImageEntity, user_id: str) -> None:
        if image.user_id != user_id and not image.is_public:
            raise AccessDeniedError("Access denied. You can only access your own images.")

    def get_readable(self, user_id: str, image_id: str) -> ImageEntity:
        image = self.get_image(image_id)
        self.ensure_readable(image, user_id)
        return image

    # --------- transformations ---------

    def transform(
        self,
        user_id: str,
        image_id: str,
        op_type: Any,
        options: dict[str, Any] | None,
        base_url: str,
    ) -> TransformationEntity:
        self.ensure_owner(self.get_image(image_id), user_id, "transform")
        with self.locks.hold(image_id):
            image = self.get_image(image_id)
            result = self.pipeline.execute(image.path, op_type, options)
            records = self.append_transformations(image, [result], base_url)
        log.info("Applied %s to image %s", result.type.value, image_id)
        return records[0]

    def batch_transform(
        self,
        user_id: str,
        image_id: str,
        stages: list[tuple[Any, dict[str, Any] | None]],
        base_url: str,
    ) -> list[TransformationEntity]:
        self.ensure_owner(self.get_image(image_id), user_id, "transform")
        with self.locks.hold(image_id):
            image = self.get_image(image_id)
            results = self.pipeline.execute_sequence(image.path, stages)
            records = self.append_transformations(image, results, base_url)
        log.info("Applied %d chained transformations to image %s", len(records), image_id)
        return records

    def append_transformations(
        self, image: ImageEntity, results: list[ExecutionResult], base_url: str
    ) -> list[TransformationEntity]:
        """Persist one record per result, all together or not at all.

        If the record cannot be saved, the freshly produced files are removed
        so nothing on disk outlives the failed save.
        """
        now = datetime.now(UTC)
        records = [
            TransformationEntity(
                id=uuid.uuid4().hex,
                type=r.type,
                parameters=r.parameters,
                result_path=r.output_path,
                result_url=self.storage.url_for(r.output_path, base_url),
                created_at=now,
                width=r.width,
                height=r.height,
            )
            for r in results
        ]
        updated = replace(image, transformations=image.transformations + tuple(records))
        try:
            self.images.save(updated)
        except Exception as exc:
            log.error("Saving transformations of image %s failed: %s", image.id, exc)
            self.pipeline.discard(results)
            raise ProcessingError(f"Failed to save transformations: {exc}") from exc
        return records

    def list_transformations(self, user_id: str, image_id: str) -> tuple[TransformationEntity, ...]:
        return self.get_readable(user_id, image_id).transformations

    def remove_transformation(
        self, user_id: str, image_id: str, transformation_id: str
    ) -> list[str]:
        """Delete one derived file and its record. Returns file-removal warnings."""
        self.ensure_owner(self.get_image(image_id), user_id, "delete transformations of")
        with self.locks.hold(image_id):
            image = self.get_image(image_id)
            target = image.find_transformation(transformation_id)
            if target is None:
                raise TransformationNotFoundError(transformation_id)
            failure = self.storage.delete(target.result_path)
            remaining = tuple(t for t in image.transformations if t.id != transformation_id)
            self.images.save(replace(image, transformations=remaining))
        log.info("Deleted transformation %s of image %s", transformation_id, image_id)
        return [failure.detail] if failure else []

    # --------- images ---------

    def delete_image(self, user_id: str, image_id: str) -> list[str]:
        """Delete the original, every derived file and the record.

        Each file is removed independently; failures are returned as warnings
        and never stop the record from being deleted.
        """
        self.ensure_owner(self.get_image(image_id), user_id, "delete")
        with self.locks.hold(image_id):
            image = self.get_image(image_id)
            paths = [image.path] + [t.result_path for t in image.transformations]
            failures = remove_files(paths)
            self.images.delete(image.id)
        self.locks.forget(image_id)
        log.info("Deleted image %s with %d transformations", image_id, len(image.transformations))
        return [f.detail for f in failures]

    def inspect_image(self, user_id: str, image_id: str) -> tuple[ImageEntity, ImageInfo]:
        image = self.get_readable(user_id, image_id)
        try:
            info = self.pipeline.inspector.inspect(image.path)
        except InvalidImageError as exc:
            raise ProcessingError(f"Failed to get image metadata: {exc}") from exc
        return image, info
