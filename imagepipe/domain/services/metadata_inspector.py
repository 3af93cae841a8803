from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from PIL import Image

from imagepipe.domain.errors import InvalidImageError
from imagepipe.domain.services.raster_service import RasterService


@dataclass(frozen=True)
class ImageInfo:
    width: int
    height: int
    format: str
    channels: int
    has_alpha: bool
    density: int | None
    size: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class MetadataInspector:
    """Decodes a file to report its format and geometry.

    A file the raster primitive cannot decode is not an image: callers get
    ``InvalidImageError`` rather than a decoder exception.
    """

    raster: RasterService

    def inspect(self, path: str) -> ImageInfo:
        try:
            info = self.raster.read_info(path)
        except (OSError, ValueError, SyntaxError, Image.DecompressionBombError) as exc:
            raise InvalidImageError(f"Invalid image file: {exc}") from exc
        return ImageInfo(**info)

    def is_valid(self, path: str) -> bool:
        try:
            self.inspect(path)
        except InvalidImageError:
            return False
        return True
