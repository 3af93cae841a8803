"""
Tests for the image repository in its in-memory and PostgreSQL modes.
"""
from __future__ import annotations

import json
import threading
from datetime import UTC, datetime
from unittest.mock import Mock

from imagepipe.domain.entities.image import ImageEntity
from imagepipe.domain.entities.transformation import TransformationEntity
from imagepipe.domain.operations import OperationType, ResizeParams
from imagepipe.infrastructure.database.repositories.image_repository import ImageRepository


def make_entity(image_id="img_1", user_id="user_1", transformations=()):
    return ImageEntity(
        id=image_id,
        user_id=user_id,
        path=f"/tmp/{image_id}.png",
        url=f"http://testserver/uploads/{image_id}.png",
        filename=f"{image_id}.png",
        original_filename="photo.png",
        mime_type="image/png",
        file_size=1234,
        width=64,
        height=48,
        uploaded_at=datetime(2024, 1, 1, tzinfo=UTC),
        transformations=transformations,
        tags=("a",),
    )


def make_transformation():
    return TransformationEntity(
        id="t1",
        type=OperationType.RESIZE,
        parameters=ResizeParams(width=32),
        result_path="/tmp/img_1_resize.png",
        result_url="http://testserver/uploads/img_1_resize.png",
        created_at=datetime(2024, 1, 2, tzinfo=UTC),
        width=32,
        height=24,
    )


class TestInMemoryRepository:
    def test_save_get_delete(self):
        repo = ImageRepository(None)
        entity = make_entity()
        repo.save(entity)
        assert repo.get("img_1") is entity
        assert repo.delete("img_1") is True
        assert repo.get("img_1") is None
        assert repo.delete("img_1") is False

    def test_list_by_user(self):
        repo = ImageRepository(None)
        repo.save(make_entity("a", "user_1"))
        repo.save(make_entity("b", "user_2"))
        assert [e.id for e in repo.list_by_user("user_1")] == ["a"]

    def test_list_while_saving_from_another_thread(self):
        repo = ImageRepository(None)
        done = threading.Event()

        def writer():
            try:
                for i in range(2000):
                    repo.save(make_entity(f"img_{i}"))
            finally:
                done.set()

        thread = threading.Thread(target=writer)
        thread.start()
        while not done.is_set():
            repo.list_by_user("user_1")
        thread.join()
        assert len(repo.list_by_user("user_1")) == 2000


class TestPostgresRepository:
    def test_save_upserts_whole_record(self):
        pg = Mock()
        repo = ImageRepository(None, pg_client=pg)
        repo.save(make_entity(transformations=(make_transformation(),)))

        query, params = pg.execute_update.call_args[0]
        assert query.startswith("INSERT INTO images")
        assert "ON CONFLICT (id) DO UPDATE" in query
        stored = json.loads(params[11])
        assert stored[0]["type"] == "resize"
        assert stored[0]["parameters"]["width"] == 32

    def test_get_rebuilds_typed_parameters(self):
        row = {
            "id": "img_1",
            "user_id": "user_1",
            "storage_path": "/tmp/img_1.png",
            "url": "http://testserver/uploads/img_1.png",
            "filename": "img_1.png",
            "original_filename": "photo.png",
            "mime_type": "image/png",
            "file_size": 1234,
            "width": 64,
            "height": 48,
            "uploaded_at": datetime(2024, 1, 1, tzinfo=UTC),
            "transformations": [make_transformation().to_dict()],
            "tags": ["a"],
            "is_public": False,
        }
        pg = Mock()
        pg.execute_one.return_value = row
        entity = ImageRepository(None, pg_client=pg).get("img_1")
        assert entity.path == "/tmp/img_1.png"
        assert isinstance(entity.transformations[0].parameters, ResizeParams)
        assert entity.transformations[0].parameters.fit.value == "cover"

    def test_get_missing(self):
        pg = Mock()
        pg.execute_one.return_value = None
        assert ImageRepository(None, pg_client=pg).get("nope") is None
