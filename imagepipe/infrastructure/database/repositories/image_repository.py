from __future__ import annotations

import json
import threading
from datetime import datetime
from typing import Any

from supabase import Client

from imagepipe.domain.entities.image import ImageEntity
from imagepipe.domain.entities.transformation import TransformationEntity
from imagepipe.infrastructure.database.postgres_client import PostgresClient

_COLUMNS = (
    "id",
    "user_id",
    "storage_path",
    "url",
    "filename",
    "original_filename",
    "mime_type",
    "file_size",
    "width",
    "height",
    "uploaded_at",
    "transformations",
    "tags",
    "is_public",
)


class ImageRepository:
    """Key-value store of image records with their embedded transformations.

    Backed by PostgreSQL when a ``PostgresClient`` is given, by the Supabase
    ``images`` table when a Supabase client is given, and by an in-process
    dict otherwise. ``save`` always writes the whole record, so a new
    transformation list becomes visible all at once or not at all.
    """

    def __init__(self, client: Client | None, pg_client: PostgresClient | None = None) -> None:
        self.client = client
        self.pg_client = pg_client
        # in-memory fallback
        self._mem: dict[str, ImageEntity] = {}
        self._mem_lock = threading.Lock()

    def _entity_to_row(self, entity: ImageEntity) -> dict[str, Any]:
        return {
            "id": entity.id,
            "user_id": entity.user_id,
            "storage_path": entity.path,
            "url": entity.url,
            "filename": entity.filename,
            "original_filename": entity.original_filename,
            "mime_type": entity.mime_type,
            "file_size": entity.file_size,
            "width": entity.width,
            "height": entity.height,
            "uploaded_at": entity.uploaded_at.isoformat(),
            "transformations": [t.to_dict() for t in entity.transformations],
            "tags": list(entity.tags),
            "is_public": entity.is_public,
        }

    def _row_to_entity(self, row: dict) -> ImageEntity:
        """Convert database row to ImageEntity."""
        # PostgreSQL returns datetime/JSONB objects, Supabase returns ISO strings and lists
        uploaded_at = row["uploaded_at"]
        if isinstance(uploaded_at, str):
            uploaded_at = datetime.fromisoformat(uploaded_at)
        transformations = row.get("transformations") or []
        if isinstance(transformations, str):
            transformations = json.loads(transformations)
        tags = row.get("tags") or []
        if isinstance(tags, str):
            tags = json.loads(tags)
        return ImageEntity(
            id=row["id"],
            user_id=row["user_id"],
            path=row["storage_path"],
            url=row.get("url", ""),
            filename=row["filename"],
            original_filename=row["original_filename"],
            mime_type=row["mime_type"],
            file_size=row["file_size"],
            width=row["width"],
            height=row["height"],
            uploaded_at=uploaded_at,
            transformations=tuple(TransformationEntity.from_dict(t) for t in transformations),
            tags=tuple(tags),
            is_public=bool(row.get("is_public", False)),
        )

    def get(self, image_id: str) -> ImageEntity | None:
        # PostgreSQL mode
        if self.pg_client:
            row = self.pg_client.execute_one("SELECT * FROM images WHERE id = %s", (image_id,))
            return self._row_to_entity(row) if row else None

        # In-memory mode
        if self.client is None:
            return self._mem.get(image_id)

        # Supabase mode
        try:  # pragma: no cover - network
            res = self.client.table("images").select("*").eq("id", image_id).limit(1).execute()
            rows = res.data or []
        except Exception as exc:  # pragma: no cover - network
            raise RuntimeError(f"DB get image failed: {exc}") from exc
        return self._row_to_entity(rows[0]) if rows else None

    def save(self, entity: ImageEntity) -> ImageEntity:
        """Insert or replace the whole record."""
        # PostgreSQL mode
        if self.pg_client:
            row = self._entity_to_row(entity)
            row["transformations"] = json.dumps(row["transformations"])
            row["tags"] = json.dumps(row["tags"])
            columns = ", ".join(_COLUMNS)
            placeholders = ", ".join(["%s"] * len(_COLUMNS))
            updates = ", ".join(f"{c} = EXCLUDED.{c}" for c in _COLUMNS if c != "id")
            query = (
                f"INSERT INTO images ({columns}) VALUES ({placeholders}) "
                f"ON CONFLICT (id) DO UPDATE SET {updates}"
            )
            try:
                self.pg_client.execute_update(query, tuple(row[c] for c in _COLUMNS))
            except Exception as exc:
                raise RuntimeError(f"PostgreSQL save image failed: {exc}") from exc
            return entity

        # In-memory mode
        if self.client is None:
            with self._mem_lock:
                self._mem[entity.id] = entity
            return entity

        # Supabase mode
        try:  # pragma: no cover - network
            self.client.table("images").upsert(self._entity_to_row(entity)).execute()
        except Exception as exc:  # pragma: no cover - network
            raise RuntimeError(f"DB save image failed: {exc}") from exc
        return entity

    def delete(self, image_id: str) -> bool:
        # PostgreSQL mode
        if self.pg_client:
            affected = self.pg_client.execute_update("DELETE FROM images WHERE id = %s", (image_id,))
            return affected > 0

        # In-memory mode
        if self.client is None:
            with self._mem_lock:
                return self._mem.pop(image_id, None) is not None

        # Supabase mode
        try:  # pragma: no cover - network
            self.client.table("images").delete().eq("id", image_id).execute()
            return True
        except Exception as exc:  # pragma: no cover - network
            raise RuntimeError(f"DB delete image failed: {exc}") from exc

    def list_by_user(self, user_id: str) -> list[ImageEntity]:
        # PostgreSQL mode
        if self.pg_client:
            query = "SELECT * FROM images WHERE user_id = %s ORDER BY uploaded_at DESC"
            rows = self.pg_client.execute_many(query, (user_id,))
            return [self._row_to_entity(row) for row in rows]

        # In-memory mode
        if self.client is None:
            with self._mem_lock:
                snapshot = list(self._mem.values())
            return [img for img in snapshot if img.user_id == user_id]

        # Supabase mode
        try:  # pragma: no cover - network
            res = self.client.table("images").select("*").eq("user_id", user_id).execute()
            rows = res.data or []
        except Exception as exc:  # pragma: no cover - network
            raise RuntimeError(f"DB list images failed: {exc}") from exc
        return [self._row_to_entity(row) for row in rows]
