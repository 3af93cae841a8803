from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from imagepipe.domain.errors import (
    ImagePipeError,
    InvalidImageError,
    PathCollisionError,
    ProcessingError,
    ValidationError,
)
from imagepipe.domain.operations import (
    PARAMETER_MODELS,
    SUPPORTED_TYPES,
    CropParams,
    FilterParams,
    FormatParams,
    OperationParams,
    OperationType,
    Position,
    ResizeParams,
    RotateParams,
    ThumbnailParams,
    WatermarkParams,
)
from imagepipe.domain.services.file_cleanup import remove_file
from imagepipe.domain.services.metadata_inspector import MetadataInspector
from imagepipe.domain.services.path_namer import DerivedPathNamer
from imagepipe.domain.services.raster_service import RasterService

log = logging.getLogger(__name__)

WATERMARK_PADDING = 20

# Named position -> (x, y) fraction used as the crop/pad anchor.
_CENTERING = {
    Position.TOP_LEFT: (0.0, 0.0),
    Position.TOP_CENTER: (0.5, 0.0),
    Position.TOP_RIGHT: (1.0, 0.0),
    Position.CENTER_LEFT: (0.0, 0.5),
    Position.CENTER: (0.5, 0.5),
    Position.CENTER_RIGHT: (1.0, 0.5),
    Position.BOTTOM_LEFT: (0.0, 1.0),
    Position.BOTTOM_CENTER: (0.5, 1.0),
    Position.BOTTOM_RIGHT: (1.0, 1.0),
}


def watermark_anchor(
    position: Position, width: int, height: int, font_size: int, padding: int = WATERMARK_PADDING
) -> tuple[float, float, str]:
    """Map a named position to the text baseline point and its alignment.

    Returns ``(x, y, align)`` where ``align`` is ``start``, ``middle`` or ``end``.
    """
    position = Position(position)
    top = font_size + padding
    bottom = height - padding
    left = padding
    right = width - padding
    if position is Position.TOP_LEFT:
        return left, top, "start"
    if position is Position.TOP_CENTER:
        return width / 2, top, "middle"
    if position is Position.TOP_RIGHT:
        return right, top, "end"
    if position is Position.CENTER_LEFT:
        return left, height / 2, "start"
    if position is Position.CENTER:
        return width / 2, height / 2, "middle"
    if position is Position.CENTER_RIGHT:
        return right, height / 2, "end"
    if position is Position.BOTTOM_LEFT:
        return left, bottom, "start"
    if position is Position.BOTTOM_CENTER:
        return width / 2, bottom, "middle"
    return right, bottom, "end"


def _describe(exc: PydanticValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "options"
        parts.append(f"{loc}: {err['msg'].removeprefix('Value error, ')}")
    return "; ".join(parts)


@dataclass
class OperationDispatcher:
    """Validates operation options and runs the matching raster operation.

    Every handler writes a new file named by the ``DerivedPathNamer`` and
    returns its path. Handlers never modify their input, and a failed handler
    leaves no output file behind.
    """

    raster: RasterService
    namer: DerivedPathNamer
    inspector: MetadataInspector

    def parse_type(self, value: Any) -> OperationType:
        try:
            return OperationType(value)
        except ValueError as exc:
            raise ValidationError(
                f"Invalid transformation type: {value}. Valid types: {', '.join(SUPPORTED_TYPES)}"
            ) from exc

    def validate(
        self, op_type: Any, options: dict[str, Any] | None, *, standalone: bool = True
    ) -> OperationParams:
        """Check ``options`` against the parameter contract of ``op_type``.

        ``standalone`` is False for batch stages, where a resize without
        dimensions is allowed to pass the image through unchanged.
        """
        op_type = self.parse_type(op_type)
        if options is None:
            options = {}
        if not isinstance(options, dict):
            raise ValidationError("Options must be an object")
        try:
            params = PARAMETER_MODELS[op_type].model_validate(options)
        except PydanticValidationError as exc:
            raise ValidationError(f"Invalid {op_type.value} options: {_describe(exc)}") from exc
        if (
            standalone
            and isinstance(params, ResizeParams)
            and params.width is None
            and params.height is None
        ):
            raise ValidationError("Resize requires at least one of width or height")
        return params

    def apply(self, input_path: str, op_type: OperationType, params: OperationParams) -> str:
        if not isinstance(params, PARAMETER_MODELS[op_type]):
            raise ValidationError(f"Parameters do not match transformation type {op_type.value}")
        if op_type is OperationType.RESIZE:
            return self.resize_image(input_path, params)
        elif op_type is OperationType.CROP:
            return self.crop_image(input_path, params)
        elif op_type is OperationType.ROTATE:
            return self.rotate_image(input_path, params)
        elif op_type is OperationType.FORMAT:
            return self.convert_format(input_path, params)
        elif op_type is OperationType.FILTER:
            return self.apply_filter(input_path, params)
        elif op_type is OperationType.WATERMARK:
            return self.add_text_watermark(input_path, params)
        elif op_type is OperationType.THUMBNAIL:
            return self.create_thumbnail(input_path, params)
        raise ValidationError(f"Unsupported transformation type: {op_type}")

    # --------- handlers ---------

    def resize_image(self, input_path: str, params: ResizeParams) -> str:
        output = self.namer.name(input_path, "resize", params.path_summary())
        with self._producing(output, "resize"):
            self.raster.resize(
                input_path,
                output,
                params.width,
                params.height,
                fit=params.fit.value,
                centering=_CENTERING[params.position],
                background=params.background,
                without_enlargement=params.without_enlargement,
            )
        return output

    def crop_image(self, input_path: str, params: CropParams) -> str:
        width, height = self._dimensions(input_path)
        if params.left + params.width > width or params.top + params.height > height:
            raise ValidationError(
                f"Crop area {params.width}x{params.height}+{params.left}+{params.top} "
                f"is outside the {width}x{height} image"
            )
        output = self.namer.name(input_path, "crop", params.path_summary())
        with self._producing(output, "crop"):
            self.raster.crop(
                input_path, output, params.left, params.top, params.width, params.height
            )
        return output

    def rotate_image(self, input_path: str, params: RotateParams) -> str:
        output = self.namer.name(input_path, "rotate", params.path_summary())
        with self._producing(output, "rotate"):
            self.raster.rotate(input_path, output, params.angle, params.background)
        return output

    def convert_format(self, input_path: str, params: FormatParams) -> str:
        fmt = params.format.value
        ext = "jpg" if fmt == "jpeg" else fmt
        output = self.namer.name(input_path, "convert", params.path_summary(), ext)
        with self._producing(output, "format"):
            self.raster.convert(input_path, output, fmt, params.quality)
        return output

    def apply_filter(self, input_path: str, params: FilterParams) -> str:
        output = self.namer.name(input_path, "filter", params.path_summary())
        with self._producing(output, "filter"):
            self.raster.apply_filter(input_path, output, params.filter.value, params.intensity)
        return output

    def add_text_watermark(self, input_path: str, params: WatermarkParams) -> str:
        # The overlay is laid out against the target image's own size.
        width, height = self._dimensions(input_path)
        x, y, align = watermark_anchor(params.position, width, height, params.font_size)
        output = self.namer.name(input_path, "watermark", params.path_summary())
        with self._producing(output, "watermark"):
            self.raster.draw_text(
                input_path,
                output,
                params.text,
                (x, y),
                align=align,
                font_size=params.font_size,
                color=params.color,
                opacity=params.opacity,
            )
        return output

    def create_thumbnail(self, input_path: str, params: ThumbnailParams) -> str:
        output = self.namer.name(input_path, "thumbnail", params.path_summary(), "jpg")
        with self._producing(output, "thumbnail"):
            self.raster.thumbnail(input_path, output, params.width, params.height, params.quality)
        return output

    # --------- helpers ---------

    def _dimensions(self, path: str) -> tuple[int, int]:
        try:
            info = self.inspector.inspect(path)
        except InvalidImageError as exc:
            raise ProcessingError(f"Cannot read input image: {exc.detail}") from exc
        return info.width, info.height

    @contextmanager
    def _producing(self, output: str, operation: str) -> Iterator[None]:
        try:
            yield
        except FileExistsError as exc:
            # the existing file belongs to another writer
            raise PathCollisionError(f"Derived path already exists: {output}") from exc
        except ImagePipeError:
            self._discard(output)
            raise
        except Exception as exc:
            self._discard(output)
            log.error("%s failed for %s: %s", operation, output, exc)
            raise ProcessingError(f"{operation} failed: {exc}") from exc

    @staticmethod
    def _discard(output: str) -> None:
        if os.path.exists(output):
            remove_file(output)
