from __future__ import annotations

import logging
import os
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime

from imagepipe.config import Settings
from imagepipe.domain.entities.image import ImageEntity
from imagepipe.domain.errors import ImagePipeError, InvalidImageError, ValidationError
from imagepipe.domain.services.metadata_inspector import MetadataInspector
from imagepipe.infrastructure.database.repositories.image_repository import ImageRepository
from imagepipe.infrastructure.storage.local_storage import (
    LocalFileStorage,
    StoredFile,
    sanitize_filename,
)

log = logging.getLogger(__name__)

# Decoded format -> (stored extension, recorded MIME type)
_UPLOAD_FORMATS = {
    "jpeg": (".jpg", "image/jpeg"),
    "png": (".png", "image/png"),
    "webp": (".webp", "image/webp"),
    "gif": (".gif", "image/gif"),
}


@dataclass
class UploadedFile:
    data: bytes
    filename: str
    mime_type: str


def parse_tags(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return ()
    return tuple(tag.strip() for tag in raw.split(",") if tag.strip())


@dataclass
class UploadImageUseCase:
    storage: LocalFileStorage
    image_repo: ImageRepository
    inspector: MetadataInspector
    settings: Settings

    def execute(
        self,
        user_id: str,
        upload: UploadedFile,
        base_url: str,
        *,
        tags: tuple[str, ...] = (),
        is_public: bool = False,
    ) -> ImageEntity:
        """
        Store an uploaded file and create its image record.

        The file must decode as an image; anything else is removed again and
        rejected with InvalidImageError. The stored name takes its extension
        from the decoded format, never from the client file name, so derived
        files always have a writable suffix. Dimensions recorded here describe
        the original upload and never change afterwards.
        """
        self._check(upload)
        stored = self.storage.save_upload(upload.data, upload.filename)
        try:
            info = self.inspector.inspect(stored.path)
        except InvalidImageError:
            self.storage.delete(stored.path)
            raise
        stored, mime_type = self._normalise(stored, upload, info.format)

        entity = ImageEntity(
            id=uuid.uuid4().hex,
            user_id=user_id,
            path=stored.path,
            url=self.storage.url_for(stored.path, base_url),
            filename=stored.filename,
            original_filename=sanitize_filename(upload.filename),
            mime_type=mime_type,
            file_size=stored.size,
            width=info.width,
            height=info.height,
            uploaded_at=datetime.now(UTC),
            tags=tags,
            is_public=is_public,
        )
        try:
            self.image_repo.save(entity)
        except Exception:
            self.storage.delete(stored.path)
            raise
        log.info("Uploaded image %s for user %s (%dx%d)", entity.id, user_id, info.width, info.height)
        return entity

    def execute_many(
        self,
        user_id: str,
        uploads: list[UploadedFile],
        base_url: str,
        *,
        tags: tuple[str, ...] = (),
        is_public: bool = False,
    ) -> tuple[list[ImageEntity], list[dict[str, str]]]:
        """Upload each file independently; failed files are reported, not raised."""
        if not uploads:
            raise ValidationError("No image files provided")
        if len(uploads) > self.settings.max_upload_files:
            raise ValidationError(
                f"Too many files. Maximum {self.settings.max_upload_files} files allowed per request"
            )
        uploaded: list[ImageEntity] = []
        failed: list[dict[str, str]] = []
        for upload in uploads:
            try:
                uploaded.append(
                    self.execute(user_id, upload, base_url, tags=tags, is_public=is_public)
                )
            except ImagePipeError as exc:
                log.warning("Upload of %s failed: %s", upload.filename, exc.detail)
                failed.append({"filename": upload.filename, "error": exc.detail})
        return uploaded, failed

    def _check(self, upload: UploadedFile) -> None:
        if not upload.data:
            raise ValidationError("No image file provided")
        if upload.mime_type not in self.settings.allowed_mime_types:
            raise ValidationError(
                f"Invalid file type. Allowed types: {', '.join(self.settings.allowed_mime_types)}"
            )
        if len(upload.data) > self.settings.max_file_size:
            limit_mb = self.settings.max_file_size / (1024 * 1024)
            raise ValidationError(f"File too large. Maximum size allowed is {limit_mb:g}MB")

    def _normalise(
        self, stored: StoredFile, upload: UploadedFile, fmt: str
    ) -> tuple[StoredFile, str]:
        if fmt not in _UPLOAD_FORMATS:
            self.storage.delete(stored.path)
            raise InvalidImageError(
                f"Unsupported image format: {fmt or 'unknown'}. "
                f"Allowed formats: {', '.join(_UPLOAD_FORMATS)}"
            )
        extension, mime_type = _UPLOAD_FORMATS[fmt]
        if os.path.splitext(stored.filename)[1] == extension:
            return stored, mime_type
        renamed = self.storage.save_upload(upload.data, upload.filename, extension)
        self.storage.delete(stored.path)
        return renamed, mime_type
