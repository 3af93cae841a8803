import io
import os
import sys
import tempfile
from pathlib import Path
from unittest.mock import Mock

import numpy as np
import pytest
from fastapi.testclient import TestClient
from PIL import Image

# Ensure project root is on sys.path so 'imagepipe' is importable during tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("SUPABASE_DISABLED", "1")
os.environ.setdefault("USE_LOCAL_DB", "0")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="imagepipe-uploads-"))


def make_image_bytes(w=64, h=48, color=(128, 64, 32), fmt="PNG") -> bytes:
    arr = np.zeros((h, w, 3), dtype=np.uint8)
    arr[:, :] = color
    img = Image.fromarray(arr)
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def image_file(tmp_path):
    """Factory writing a solid-colour image into tmp_path and returning its path."""

    def _make(name="sample.png", w=64, h=48, color=(128, 64, 32), fmt=None):
        fmt = fmt or ("JPEG" if name.lower().endswith((".jpg", ".jpeg")) else "PNG")
        path = tmp_path / name
        path.write_bytes(make_image_bytes(w, h, color, fmt))
        return str(path)

    return _make


@pytest.fixture
def services():
    """Real raster stack: (raster, inspector, dispatcher, pipeline)."""
    from imagepipe.domain.services.metadata_inspector import MetadataInspector
    from imagepipe.domain.services.operation_dispatcher import OperationDispatcher
    from imagepipe.domain.services.path_namer import DerivedPathNamer
    from imagepipe.domain.services.pipeline_executor import PipelineExecutor
    from imagepipe.domain.services.raster_service import RasterService

    raster = RasterService()
    inspector = MetadataInspector(raster)
    dispatcher = OperationDispatcher(raster=raster, namer=DerivedPathNamer(), inspector=inspector)
    pipeline = PipelineExecutor(dispatcher=dispatcher, inspector=inspector, max_batch_size=10)
    return raster, inspector, dispatcher, pipeline


@pytest.fixture
def mock_image_repo():
    """Mock repository keeping records in a dict, so saves can be inspected or failed."""
    store = {}
    repo = Mock()
    repo.store = store
    repo.get.side_effect = lambda image_id: store.get(image_id)

    def _save(entity):
        store[entity.id] = entity
        return entity

    repo.save.side_effect = _save
    repo.delete.side_effect = lambda image_id: store.pop(image_id, None) is not None
    repo.list_by_user.side_effect = lambda user_id: [
        e for e in store.values() if e.user_id == user_id
    ]
    return repo


@pytest.fixture(scope="session")
def client() -> TestClient:
    # lazy import after env configured
    from imagepipe.main import create_app

    app = create_app()
    return TestClient(app)


@pytest.fixture()
def auth_header() -> dict[str, str]:
    # any token is accepted in disabled mode
    return {"Authorization": "Bearer test-token"}


@pytest.fixture()
def other_auth_header() -> dict[str, str]:
    return {"Authorization": "Bearer someone-else"}


@pytest.fixture
def image_bytes():
    return make_image_bytes
