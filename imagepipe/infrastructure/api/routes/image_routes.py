from __future__ import annotations

import math
from typing import Literal

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from imagepipe.application.asset_record_manager import AssetRecordManager
from imagepipe.application.dtos.common_dto import DeleteResponse, ErrorResponse
from imagepipe.application.dtos.image_dto import (
    BasicMetadata,
    Dimensions,
    ImageMetadata,
    ImageMetadataResponse,
    ListImagesResponse,
    Pagination,
    UploadImageResponse,
    UploadMultipleResponse,
)
from imagepipe.application.use_cases.upload_image import (
    UploadedFile,
    UploadImageUseCase,
    parse_tags,
)
from imagepipe.infrastructure.api.dependencies import (
    get_base_url,
    get_current_user,
    get_record_manager,
    get_upload_use_case,
)

router = APIRouter(
    prefix="/images",
    tags=["Image Management"],
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized - Invalid or missing authentication token"},
        403: {"model": ErrorResponse, "description": "Forbidden - Image belongs to another user"},
        404: {"model": ErrorResponse, "description": "Not Found - Image does not exist"},
        422: {"description": "Validation Error - Invalid request format"},
    },
)


_SORT_FIELDS = {
    "uploaded_at": "uploaded_at",
    "size": "file_size",
    "original_filename": "original_filename",
}


def _read_upload(file: UploadFile, max_size: int) -> UploadedFile:
    # one byte past the limit is enough for the size check to reject it
    return UploadedFile(
        data=file.file.read(max_size + 1),
        filename=file.filename or "uploaded_image",
        mime_type=file.content_type or "application/octet-stream",
    )


@router.post(
    "/upload",
    response_model=UploadImageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload Image",
    description="""
    Upload a new image file.

    **Supported types**: JPEG, PNG, WEBP, GIF
    **Maximum file size**: `MAX_FILE_SIZE` (10MB by default)

    The file must decode as an image; anything else is rejected and not kept.
    """,
    responses={
        400: {"model": ErrorResponse, "description": "Bad Request - Invalid image file, type or size"},
    },
)
def upload_image(
    file: UploadFile = File(..., description="Image file to upload"),
    tags: str | None = Form(None, max_length=200, description="Comma separated tags"),
    is_public: bool = Form(False, description="Let other users read this image"),
    user=Depends(get_current_user),
    uploads: UploadImageUseCase = Depends(get_upload_use_case),
    base_url: str = Depends(get_base_url),
):
    """Upload a new image file and create its record."""
    entity = uploads.execute(
        user.id,
        _read_upload(file, uploads.settings.max_file_size),
        base_url,
        tags=parse_tags(tags),
        is_public=is_public,
    )
    return UploadImageResponse(image=ImageMetadata.from_entity(entity))


@router.post(
    "/upload/multiple",
    response_model=UploadMultipleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload Several Images",
    description="""
    Upload up to `MAX_UPLOAD_FILES` (5) images at once.

    Each file is validated on its own. Rejected files are listed under
    `warnings` while the others are stored.
    """,
)
def upload_images(
    files: list[UploadFile] = File(..., description="Image files to upload"),
    tags: str | None = Form(None, max_length=200, description="Comma separated tags"),
    is_public: bool = Form(False),
    user=Depends(get_current_user),
    uploads: UploadImageUseCase = Depends(get_upload_use_case),
    base_url: str = Depends(get_base_url),
):
    uploaded, failed = uploads.execute_many(
        user.id,
        [_read_upload(f, uploads.settings.max_file_size) for f in files],
        base_url,
        tags=parse_tags(tags),
        is_public=is_public,
    )
    return UploadMultipleResponse(
        images=[ImageMetadata.from_entity(e) for e in uploaded],
        uploaded_count=len(uploaded),
        total_files=len(files),
        warnings=failed,
    )


@router.get(
    "",
    response_model=ListImagesResponse,
    summary="List User Images",
    description="""
    Paginated list of the images owned by the authenticated user.

    Optional filters: `tags` (comma separated, any match) and `mimetype`
    (case-insensitive substring). Sorted by upload time, newest first, unless
    `sort_by`/`sort_order` say otherwise.
    """,
)
async def list_images(
    user=Depends(get_current_user),
    records: AssetRecordManager = Depends(get_record_manager),
    page: int = Query(1, ge=1, description="Page number, starting at 1"),
    limit: int = Query(10, ge=1, le=50, description="Images per page (1-50)"),
    tags: str | None = Query(None, description="Comma separated tags"),
    mimetype: str | None = Query(None, description="MIME type filter"),
    sort_by: Literal["uploaded_at", "size", "original_filename"] = Query("uploaded_at"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
):
    """Get paginated list of user's images."""
    items = records.images.list_by_user(user.id)
    if mimetype:
        items = [i for i in items if mimetype.lower() in i.mime_type.lower()]
    wanted = set(parse_tags(tags))
    if wanted:
        items = [i for i in items if wanted.intersection(i.tags)]
    sort_attr = _SORT_FIELDS[sort_by]
    items.sort(key=lambda i: getattr(i, sort_attr), reverse=sort_order == "desc")

    total = len(items)
    total_pages = math.ceil(total / limit)
    page_items = items[(page - 1) * limit : page * limit]
    return ListImagesResponse(
        images=[ImageMetadata.from_entity(i) for i in page_items],
        pagination=Pagination(
            current_page=page,
            total_pages=total_pages,
            total_images=total,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
        ),
    )


@router.get(
    "/{image_id}",
    response_model=ImageMetadata,
    summary="Get Image",
    description="Metadata of one image. Readable by its owner, or by anyone when public.",
)
async def get_image(
    image_id: str,
    user=Depends(get_current_user),
    records: AssetRecordManager = Depends(get_record_manager),
):
    return ImageMetadata.from_entity(records.get_readable(user.id, image_id))


@router.delete(
    "/{image_id}",
    response_model=DeleteResponse,
    summary="Delete Image",
    description="""
    Permanently delete an image, its file and every derived file.

    Files that cannot be removed are reported in `warnings`; the record is
    deleted regardless. Only the owner may delete an image.
    """,
)
def delete_image(
    image_id: str,
    user=Depends(get_current_user),
    records: AssetRecordManager = Depends(get_record_manager),
):
    warnings = records.delete_image(user.id, image_id)
    return DeleteResponse(ok=True, message="Image deleted successfully", warnings=warnings)


@router.get(
    "/{image_id}/metadata",
    response_model=ImageMetadataResponse,
    summary="Get Image File Metadata",
    description="""
    Upload facts stored with the record (`basic`) and what the decoder reports
    for the original file (`detailed`): format, dimensions, channels, alpha
    and density.
    """,
)
def get_image_metadata(
    image_id: str,
    user=Depends(get_current_user),
    records: AssetRecordManager = Depends(get_record_manager),
):
    image, info = records.inspect_image(user.id, image_id)
    return ImageMetadataResponse(
        basic=BasicMetadata(
            filename=image.filename,
            original_filename=image.original_filename,
            mimetype=image.mime_type,
            size=image.file_size,
            dimensions=Dimensions(width=image.width, height=image.height),
            uploaded_at=image.uploaded_at,
        ),
        detailed=info.to_dict(),
    )
