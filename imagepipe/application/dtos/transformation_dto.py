from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from imagepipe.domain.entities.transformation import TransformationEntity
from imagepipe.domain.operations import dump_parameters


class TransformRequest(BaseModel):
    """One transformation: its type and operation-specific options."""

    type: str = Field(
        ...,
        description="One of resize, crop, rotate, format, filter, watermark, thumbnail",
        examples=["resize"],
    )
    options: dict[str, Any] = Field(
        default_factory=dict,
        description="Operation-specific options",
        examples=[{"width": 400, "fit": "cover"}],
    )


class BatchTransformRequest(BaseModel):
    """Transformations applied in order, each to the previous one's output."""

    transformations: list[TransformRequest] = Field(
        ...,
        description="1 to 10 transformations, applied in sequence",
        examples=[
            [
                {"type": "resize", "options": {"width": 800}},
                {"type": "filter", "options": {"filter": "grayscale"}},
                {"type": "watermark", "options": {"text": "(c) me", "position": "bottom-right"}},
            ]
        ],
    )


class TransformationItem(BaseModel):
    id: str = Field(..., description="Identifier of the transformation within its image")
    type: str = Field(..., description="Operation that produced the file", examples=["resize"])
    parameters: dict[str, Any] = Field(..., description="Validated options, defaults filled in")
    result_url: str = Field(..., description="Public URL of the derived file")
    width: int | None = Field(None, description="Width of the derived file in pixels")
    height: int | None = Field(None, description="Height of the derived file in pixels")
    created_at: datetime

    @classmethod
    def from_entity(cls, entity: TransformationEntity) -> TransformationItem:
        return cls(
            id=entity.id,
            type=entity.type.value,
            parameters=dump_parameters(entity.parameters),
            result_url=entity.result_url,
            width=entity.width,
            height=entity.height,
            created_at=entity.created_at,
        )


class TransformResponse(BaseModel):
    transformation: TransformationItem


class TransformationListResponse(BaseModel):
    transformations: list[TransformationItem]
