from __future__ import annotations

from dataclasses import dataclass

from imagepipe.application.asset_record_manager import AssetRecordManager
from imagepipe.application.image_locks import ImageLockRegistry
from imagepipe.application.use_cases.upload_image import UploadImageUseCase
from imagepipe.config import Settings
from imagepipe.domain.services.metadata_inspector import MetadataInspector
from imagepipe.domain.services.operation_dispatcher import OperationDispatcher
from imagepipe.domain.services.path_namer import DerivedPathNamer
from imagepipe.domain.services.pipeline_executor import PipelineExecutor
from imagepipe.domain.services.raster_service import RasterService
from imagepipe.infrastructure.database.postgres_client import PostgresClient
from imagepipe.infrastructure.database.repositories.image_repository import ImageRepository
from imagepipe.infrastructure.database.supabase_client import (
    SupabaseAuthAdapter,
    create_supabase_client,
)
from imagepipe.infrastructure.storage.local_storage import LocalFileStorage


@dataclass
class ServiceContainer:
    """Everything a request needs, built once per application."""

    settings: Settings
    auth: SupabaseAuthAdapter
    storage: LocalFileStorage
    images: ImageRepository
    inspector: MetadataInspector
    pipeline: PipelineExecutor
    records: AssetRecordManager
    uploads: UploadImageUseCase
    pg_client: PostgresClient | None = None

    def close(self) -> None:
        if self.pg_client is not None:
            self.pg_client.close()


def build_container(settings: Settings) -> ServiceContainer:
    client = create_supabase_client(settings)
    pg_client = PostgresClient(**settings.postgres) if settings.use_local_db else None

    raster = RasterService()
    inspector = MetadataInspector(raster)
    dispatcher = OperationDispatcher(raster=raster, namer=DerivedPathNamer(), inspector=inspector)
    pipeline = PipelineExecutor(
        dispatcher=dispatcher, inspector=inspector, max_batch_size=settings.max_batch_size
    )
    storage = LocalFileStorage(settings.upload_dir)
    images = ImageRepository(client, pg_client)
    return ServiceContainer(
        settings=settings,
        auth=SupabaseAuthAdapter(client),
        storage=storage,
        images=images,
        inspector=inspector,
        pipeline=pipeline,
        records=AssetRecordManager(
            images=images, storage=storage, pipeline=pipeline, locks=ImageLockRegistry()
        ),
        uploads=UploadImageUseCase(
            storage=storage, image_repo=images, inspector=inspector, settings=settings
        ),
        pg_client=pg_client,
    )
