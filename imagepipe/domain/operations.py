"""Closed set of transformation operations and their typed parameter models.

Each operation owns exactly one parameter model; the pair (``OperationType``,
params model) is the tagged variant stored on every transformation record.
Models accept the camelCase option names sent by the UI and dump back to them.
"""
from __future__ import annotations

from enum import Enum
from typing import Annotated, Any

from PIL import ImageColor
from pydantic import AfterValidator, AliasChoices, BaseModel, ConfigDict, Field, field_validator


class OperationType(str, Enum):
    RESIZE = "resize"
    CROP = "crop"
    ROTATE = "rotate"
    FORMAT = "format"
    FILTER = "filter"
    WATERMARK = "watermark"
    THUMBNAIL = "thumbnail"


class FitMode(str, Enum):
    COVER = "cover"
    CONTAIN = "contain"
    FILL = "fill"
    INSIDE = "inside"
    OUTSIDE = "outside"


class Position(str, Enum):
    TOP_LEFT = "top-left"
    TOP_CENTER = "top-center"
    TOP_RIGHT = "top-right"
    CENTER_LEFT = "center-left"
    CENTER = "center"
    CENTER_RIGHT = "center-right"
    BOTTOM_LEFT = "bottom-left"
    BOTTOM_CENTER = "bottom-center"
    BOTTOM_RIGHT = "bottom-right"


class ImageFormat(str, Enum):
    JPEG = "jpeg"
    PNG = "png"
    WEBP = "webp"
    TIFF = "tiff"
    GIF = "gif"


class FilterType(str, Enum):
    GRAYSCALE = "grayscale"
    SEPIA = "sepia"
    BLUR = "blur"
    SHARPEN = "sharpen"
    NEGATE = "negate"


SUPPORTED_FORMATS = tuple(f.value for f in ImageFormat)
SUPPORTED_FILTERS = tuple(f.value for f in FilterType)
SUPPORTED_TYPES = tuple(t.value for t in OperationType)


def _check_colour(value: str) -> str:
    try:
        ImageColor.getrgb(value)
    except ValueError as exc:
        raise ValueError(f"Unknown colour: {value}") from exc
    return value


Colour = Annotated[str, AfterValidator(_check_colour)]


class OperationParams(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def path_summary(self) -> dict[str, Any]:
        """Key/value pairs embedded in the derived file name."""
        return {}


class ResizeParams(OperationParams):
    width: int | None = Field(None, ge=1, le=5000)
    height: int | None = Field(None, ge=1, le=5000)
    fit: FitMode = FitMode.COVER
    position: Position = Position.CENTER
    background: Colour = "white"
    without_enlargement: bool = Field(False, alias="withoutEnlargement")

    def path_summary(self) -> dict[str, Any]:
        return {"width": self.width, "height": self.height}


class CropParams(OperationParams):
    left: int = Field(..., ge=0)
    top: int = Field(..., ge=0)
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)

    def path_summary(self) -> dict[str, Any]:
        return {"left": self.left, "top": self.top, "width": self.width, "height": self.height}


class RotateParams(OperationParams):
    angle: float = Field(90, ge=-360, le=360)
    background: Colour = "white"

    def path_summary(self) -> dict[str, Any]:
        return {"angle": self.angle}


class FormatParams(OperationParams):
    format: ImageFormat
    quality: int = Field(85, ge=1, le=100)

    @field_validator("format", mode="before")
    @classmethod
    def _known_format(cls, value: Any) -> Any:
        name = str(value).lower()
        if name == "jpg":
            name = "jpeg"
        if name not in SUPPORTED_FORMATS:
            raise ValueError(
                f"Unsupported format: {value}. Supported formats: {', '.join(SUPPORTED_FORMATS)}"
            )
        return name

    def path_summary(self) -> dict[str, Any]:
        return {"format": self.format.value}


class FilterParams(OperationParams):
    filter: FilterType = Field(
        ...,
        validation_alias=AliasChoices("filter", "type"),
        serialization_alias="filter",
    )
    intensity: float = Field(1.0, ge=0.1, le=10)

    @field_validator("filter", mode="before")
    @classmethod
    def _known_filter(cls, value: Any) -> Any:
        if str(value) not in SUPPORTED_FILTERS:
            raise ValueError(
                f"Unsupported filter: {value}. Supported filters: {', '.join(SUPPORTED_FILTERS)}"
            )
        return value

    def path_summary(self) -> dict[str, Any]:
        return {"filter": self.filter.value}


class WatermarkParams(OperationParams):
    text: str = Field(..., min_length=1, max_length=100)
    position: Position = Position.BOTTOM_RIGHT
    font_size: int = Field(24, ge=1, le=500, alias="fontSize")
    color: Colour = "white"
    opacity: float = Field(0.8, ge=0.0, le=1.0)

    @field_validator("text")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Watermark text is required")
        return value

    def path_summary(self) -> dict[str, Any]:
        return {"text": self.text[:10]}


class ThumbnailParams(OperationParams):
    width: int = Field(150, gt=0, le=5000)
    height: int = Field(150, gt=0, le=5000)
    quality: int = Field(80, ge=1, le=100)

    def path_summary(self) -> dict[str, Any]:
        return {"width": self.width, "height": self.height}


PARAMETER_MODELS: dict[OperationType, type[OperationParams]] = {
    OperationType.RESIZE: ResizeParams,
    OperationType.CROP: CropParams,
    OperationType.ROTATE: RotateParams,
    OperationType.FORMAT: FormatParams,
    OperationType.FILTER: FilterParams,
    OperationType.WATERMARK: WatermarkParams,
    OperationType.THUMBNAIL: ThumbnailParams,
}


def dump_parameters(params: OperationParams) -> dict[str, Any]:
    """JSON-ready form of a parameter model, as stored and returned by the API."""
    return params.model_dump(mode="json", by_alias=True)
