from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from imagepipe.domain.entities.image import ImageEntity


class Dimensions(BaseModel):
    width: int = Field(..., description="Width in pixels", examples=[800], gt=0)
    height: int = Field(..., description="Height in pixels", examples=[600], gt=0)


class ImageMetadata(BaseModel):
    """Metadata of an uploaded image."""
    id: str = Field(..., description="Unique identifier of the image")
    user_id: str = Field(..., description="ID of the user who owns this image")
    url: str = Field(..., description="Public URL of the original file")
    filename: str = Field(..., description="Stored file name", examples=["1718000000000-3f2a.png"])
    original_filename: str = Field(..., description="Original filename when uploaded", examples=["photo.jpg"])
    mime_type: str = Field(..., description="MIME type of the image", examples=["image/png"])
    file_size: int = Field(..., description="Size of the file in bytes", examples=[2048576])
    dimensions: Dimensions = Field(..., description="Dimensions of the original file")
    tags: list[str] = Field(default_factory=list, description="Free-text labels")
    is_public: bool = Field(False, description="Whether other users may read this image")
    transformation_count: int = Field(0, description="Number of derived files attached")
    uploaded_at: datetime = Field(..., description="ISO timestamp of the upload")

    @classmethod
    def from_entity(cls, entity: ImageEntity) -> ImageMetadata:
        return cls(
            id=entity.id,
            user_id=entity.user_id,
            url=entity.url,
            filename=entity.filename,
            original_filename=entity.original_filename,
            mime_type=entity.mime_type,
            file_size=entity.file_size,
            dimensions=Dimensions(width=entity.width, height=entity.height),
            tags=list(entity.tags),
            is_public=entity.is_public,
            transformation_count=len(entity.transformations),
            uploaded_at=entity.uploaded_at,
        )


class UploadImageResponse(BaseModel):
    """Response model for successful image upload."""
    image: ImageMetadata = Field(..., description="Metadata of the uploaded image")


class UploadMultipleResponse(BaseModel):
    """Response model for a multi-file upload."""
    images: list[ImageMetadata] = Field(..., description="Images stored successfully")
    uploaded_count: int = Field(..., ge=0)
    total_files: int = Field(..., ge=0)
    warnings: list[dict[str, str]] = Field(
        default_factory=list, description="Files that were rejected, with the reason"
    )


class Pagination(BaseModel):
    current_page: int = Field(..., ge=1)
    total_pages: int = Field(..., ge=0)
    total_images: int = Field(..., ge=0)
    has_next_page: bool
    has_prev_page: bool


class ListImagesResponse(BaseModel):
    """Response model for listing user images with pagination."""
    images: list[ImageMetadata] = Field(..., description="List of image metadata objects")
    pagination: Pagination


class BasicMetadata(BaseModel):
    filename: str
    original_filename: str
    mimetype: str
    size: int
    dimensions: Dimensions
    uploaded_at: datetime


class ImageMetadataResponse(BaseModel):
    """Stored record facts plus what the decoder reports for the file."""
    basic: BasicMetadata
    detailed: dict[str, Any] = Field(
        ...,
        description="width, height, format, channels, has_alpha, density and size of the file",
    )
