from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from imagepipe.application.dtos.common_dto import HealthResponse, RootResponse
from imagepipe.config import Settings
from imagepipe.infrastructure.api.errors import add_exception_handlers
from imagepipe.infrastructure.api.middlewares import add_default_middlewares
from imagepipe.infrastructure.api.routes.auth_routes import router as auth_router
from imagepipe.infrastructure.api.routes.image_routes import router as image_router
from imagepipe.infrastructure.api.routes.transformation_routes import (
    router as transformation_router,
)
from imagepipe.infrastructure.container import build_container

log = logging.getLogger("imagepipe")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
        Releases the resources held by the service container on shutdown.
    """
    yield
    app.state.container.close()


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings.from_env()
    logging.basicConfig(level=settings.log_level)

    app = FastAPI(
        title="ImagePipe Backend",
        version="0.1.0",
        lifespan=lifespan,
        description="""
        ## ImagePipe Backend API

        Upload images and derive new files from them with resize, crop, rotate,
        format conversion, filters, text watermarks and thumbnails. Originals are
        never modified; every derived file is recorded against its image.

        ### Authentication
        All endpoints (except root and health) require a Bearer token
        in the Authorization header:
        ```
        Authorization: Bearer your-jwt-token
        ```

        ### Error Responses
        - **400 Bad Request**: Invalid file, transformation type or options
        - **401 Unauthorized**: Missing or invalid authentication token
        - **403 Forbidden**: The image belongs to another user
        - **404 Not Found**: Image or transformation does not exist
        - **422 Unprocessable Entity**: Malformed request body
        - **500 Internal Server Error**: Processing or storage failure
        """,
    )
    app.state.container = build_container(settings)
    log.info(
        "Storing uploads in %s (supabase %s, local db %s)",
        settings.upload_dir,
        "disabled" if settings.supabase_disabled else "enabled",
        "on" if settings.use_local_db else "off",
    )

    add_exception_handlers(app)
    add_default_middlewares(app, settings)
    app.mount("/uploads", StaticFiles(directory=settings.upload_dir), name="uploads")

    @app.get(
        "/",
        response_model=RootResponse,
        summary="API Root",
        description="Get basic information about the ImagePipe API",
    )
    def root():
        """Get API root information."""
        return {"status": "ok", "service": "imagepipe-backend", "version": app.version}

    @app.get(
        "/health",
        response_model=HealthResponse,
        summary="Health Check",
        description="Check if the API service is running and healthy",
    )
    def health():
        return {"status": "healthy"}

    app.include_router(auth_router)
    app.include_router(image_router)
    app.include_router(transformation_router)
    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run("imagepipe.main:app", host="0.0.0.0", port=8000, reload=True)
