from __future__ import annotations

from fastapi import APIRouter, Depends

from imagepipe.application.asset_record_manager import AssetRecordManager
from imagepipe.application.dtos.common_dto import DeleteResponse, ErrorResponse
from imagepipe.application.dtos.transformation_dto import (
    BatchTransformRequest,
    TransformationItem,
    TransformationListResponse,
    TransformRequest,
    TransformResponse,
)
from imagepipe.infrastructure.api.dependencies import (
    get_base_url,
    get_current_user,
    get_record_manager,
)

router = APIRouter(
    prefix="/images",
    tags=["Image Transformations"],
    responses={
        400: {"model": ErrorResponse, "description": "Bad Request - Invalid transformation type or options"},
        401: {"model": ErrorResponse, "description": "Unauthorized - Invalid or missing authentication token"},
        403: {"model": ErrorResponse, "description": "Forbidden - Image belongs to another user"},
        404: {"model": ErrorResponse, "description": "Not Found - Image or transformation does not exist"},
    },
)


@router.post(
    "/{image_id}/transform",
    response_model=TransformResponse,
    summary="Transform Image",
    description="""
    Apply one transformation to the original image and keep the result.

    **Operations and options:**
    - `resize` - `width`, `height` (at least one), `fit` (cover|contain|fill|inside|outside),
      `position`, `background`, `withoutEnlargement`
    - `crop` - `left`, `top`, `width`, `height` (all required)
    - `rotate` - `angle` (-360..360, default 90), `background`
    - `format` - `format` (jpeg|png|webp|tiff|gif), `quality` (1..100, default 85)
    - `filter` - `filter` (grayscale|sepia|blur|sharpen|negate), `intensity` (0.1..10, blur only)
    - `watermark` - `text` (1..100 chars), `position`, `fontSize`, `color`, `opacity`
    - `thumbnail` - `width`, `height` (default 150), `quality` (default 80)

    Positions: top-left, top-center, top-right, center-left, center,
    center-right, bottom-left, bottom-center, bottom-right.
    """,
)
def transform_image(
    image_id: str,
    body: TransformRequest,
    user=Depends(get_current_user),
    records: AssetRecordManager = Depends(get_record_manager),
    base_url: str = Depends(get_base_url),
):
    record = records.transform(user.id, image_id, body.type, body.options, base_url)
    return TransformResponse(transformation=TransformationItem.from_entity(record))


@router.post(
    "/{image_id}/batch-transform",
    response_model=TransformationListResponse,
    summary="Batch Transform Image",
    description="""
    Apply 1 to 10 transformations in sequence; each one reads the previous
    one's output and the original is never modified.

    Every stage result is kept and returned in order. If any stage fails,
    nothing is recorded and every file produced by the batch is removed.
    """,
)
def batch_transform_image(
    image_id: str,
    body: BatchTransformRequest,
    user=Depends(get_current_user),
    records: AssetRecordManager = Depends(get_record_manager),
    base_url: str = Depends(get_base_url),
):
    stages = [(t.type, t.options) for t in body.transformations]
    created = records.batch_transform(user.id, image_id, stages, base_url)
    return TransformationListResponse(
        transformations=[TransformationItem.from_entity(r) for r in created]
    )


@router.get(
    "/{image_id}/transformations",
    response_model=TransformationListResponse,
    summary="List Transformations",
    description="Transformations of an image in the order they were created.",
)
async def list_transformations(
    image_id: str,
    user=Depends(get_current_user),
    records: AssetRecordManager = Depends(get_record_manager),
):
    items = records.list_transformations(user.id, image_id)
    return TransformationListResponse(
        transformations=[TransformationItem.from_entity(t) for t in items]
    )


@router.delete(
    "/{image_id}/transformations/{transformation_id}",
    response_model=DeleteResponse,
    summary="Delete Transformation",
    description="Remove one derived file and its record. Sibling transformations are untouched.",
)
def delete_transformation(
    image_id: str,
    transformation_id: str,
    user=Depends(get_current_user),
    records: AssetRecordManager = Depends(get_record_manager),
):
    warnings = records.remove_transformation(user.id, image_id, transformation_id)
    return DeleteResponse(ok=True, message="Transformation deleted successfully", warnings=warnings)
