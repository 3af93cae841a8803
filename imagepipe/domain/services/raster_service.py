from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import numpy as np
from PIL import Image, ImageColor, ImageDraw, ImageFilter, ImageFont, ImageOps

# Pillow save format per output extension.
_EXTENSION_FORMATS = {
    ".jpg": "JPEG",
    ".jpeg": "JPEG",
    ".png": "PNG",
    ".webp": "WEBP",
    ".tif": "TIFF",
    ".tiff": "TIFF",
    ".gif": "GIF",
}

_TEXT_ANCHORS = {"start": "ls", "middle": "ms", "end": "rs"}


class RasterService:
    """Pillow/NumPy raster primitive.

    Every operation reads ``src`` and writes a brand new file at ``dst``; the
    source file is never touched. Output files are created exclusively, so an
    existing ``dst`` raises ``FileExistsError`` instead of being overwritten.

    Pixel math helpers work on float32 arrays normalized to [0, 1]:
    - Grayscale: (H, W)
    - RGB: (H, W, 3)
    """

    # --------- pixel math ---------

    # Sepia: luminance (0.299R + 0.587G + 0.114B) tinted toward (255, 240, 196)
    @staticmethod
    def sepia_tint(matrix: np.ndarray) -> np.ndarray:
        mat = matrix.astype(np.float32)
        if mat.ndim == 3 and mat.shape[2] >= 3:
            weights = np.array([0.299, 0.587, 0.114], dtype=np.float32)
            lum = np.dot(mat[..., :3], weights)
        else:
            lum = mat
        tint = np.array([255.0, 240.0, 196.0], dtype=np.float32) / 255.0
        return np.clip(lum[..., None] * tint, 0.0, 1.0).astype(np.float32)

    # Invert: I_out = 1 - I_in
    @staticmethod
    def invert_color(matrix: np.ndarray) -> np.ndarray:
        return (1.0 - matrix.astype(np.float32)).astype(np.float32)

    # --------- operations ---------

    def resize(
        self,
        src: str,
        dst: str,
        width: int | None,
        height: int | None,
        *,
        fit: str = "cover",
        centering: tuple[float, float] = (0.5, 0.5),
        background: str = "white",
        without_enlargement: bool = False,
    ) -> None:
        img = self.load(src)
        target = self.target_size(img.size, width, height)
        if target is None or (
            without_enlargement and target[0] >= img.width and target[1] >= img.height
        ):
            self.save(img, dst)
            return
        tw, th = target
        if fit == "fill":
            out = img.resize((tw, th), Image.LANCZOS)
        elif fit == "cover":
            out = ImageOps.fit(img, (tw, th), method=Image.LANCZOS, centering=centering)
        elif fit == "contain":
            out = ImageOps.pad(
                img,
                (tw, th),
                method=Image.LANCZOS,
                color=ImageColor.getcolor(background, img.mode),
                centering=centering,
            )
        elif fit == "inside":
            out = ImageOps.contain(img, (tw, th), method=Image.LANCZOS)
        elif fit == "outside":
            scale = max(tw / img.width, th / img.height)
            size = (max(1, round(img.width * scale)), max(1, round(img.height * scale)))
            out = img.resize(size, Image.LANCZOS)
        else:
            raise ValueError(f"Unsupported fit: {fit}")
        self.save(out, dst)

    def crop(self, src: str, dst: str, left: int, top: int, width: int, height: int) -> None:
        img = self.load(src)
        self.save(img.crop((left, top, left + width, top + height)), dst)

    # Positive angles rotate clockwise; the canvas grows to fit and the corners
    # are filled with ``background``.
    def rotate(self, src: str, dst: str, angle: float, background: str = "white") -> None:
        img = self.load(src)
        out = img.rotate(
            -float(angle),
            resample=Image.BICUBIC,
            expand=True,
            fillcolor=ImageColor.getcolor(background, img.mode),
        )
        self.save(out, dst)

    def convert(self, src: str, dst: str, fmt: str, quality: int = 85) -> None:
        img = self.load(src)
        options: dict[str, Any]
        if fmt == "jpeg":
            options = {"quality": quality}
        elif fmt == "png":
            options = {"optimize": True}
        elif fmt == "webp":
            options = {"quality": quality}
        elif fmt == "tiff":
            options = {"compression": "tiff_lzw"}
        elif fmt == "gif":
            options = {}
        else:
            raise ValueError(f"Unsupported format: {fmt}")
        self.save(img, dst, **options)

    def apply_filter(self, src: str, dst: str, name: str, intensity: float = 1.0) -> None:
        img = self.load(src)
        if name == "grayscale":
            out = img.convert("LA" if self.has_alpha(img) else "L")
        elif name == "sepia":
            out = self._map_rgb(img, self.sepia_tint)
        elif name == "blur":
            out = img.filter(ImageFilter.GaussianBlur(radius=float(intensity) * 3))
        elif name == "sharpen":
            out = img.filter(ImageFilter.SHARPEN)
        elif name == "negate":
            out = self._map_rgb(img, self.invert_color)
        else:
            raise ValueError(f"Unsupported filter: {name}")
        self.save(out, dst)

    def draw_text(
        self,
        src: str,
        dst: str,
        text: str,
        xy: tuple[float, float],
        *,
        align: str = "start",
        font_size: int = 24,
        color: str = "white",
        opacity: float = 0.8,
    ) -> None:
        """Composite ``text`` onto a transparent layer the size of the image.

        ``xy`` is the baseline point of the text; ``align`` says whether the
        text starts, is centred on, or ends at that point.
        """
        img = self.load(src)
        base = img.convert("RGBA")
        layer = Image.new("RGBA", base.size, (0, 0, 0, 0))
        draw = ImageDraw.Draw(layer)
        font = ImageFont.load_default(size=font_size)
        r, g, b = ImageColor.getrgb(color)[:3]
        draw.text(
            xy,
            text,
            font=font,
            fill=(r, g, b, int(round(opacity * 255))),
            anchor=_TEXT_ANCHORS[align],
        )
        out = Image.alpha_composite(base, layer)
        if not self.has_alpha(img):
            out = out.convert("RGB")
        self.save(out, dst)

    def thumbnail(self, src: str, dst: str, width: int, height: int, quality: int = 80) -> None:
        img = self.load(src)
        out = ImageOps.fit(img, (width, height), method=Image.LANCZOS, centering=(0.5, 0.5))
        self.save(out, dst, format="JPEG", quality=quality)

    def read_info(self, path: str) -> dict[str, Any]:
        with Image.open(path) as im:
            fmt = (im.format or "").lower()
            im.load()
            dpi = im.info.get("dpi")
            return {
                "width": im.width,
                "height": im.height,
                "format": fmt,
                "channels": len(im.getbands()),
                "has_alpha": self.has_alpha(im),
                "density": int(round(float(dpi[0]))) if dpi else None,
                "size": os.path.getsize(path),
            }

    # --------- helpers ---------

    @staticmethod
    def target_size(
        size: tuple[int, int], width: int | None, height: int | None
    ) -> tuple[int, int] | None:
        """Fill in a missing dimension from the source aspect ratio."""
        w, h = size
        if width is None and height is None:
            return None
        if width is None:
            width = max(1, round(w * height / h))
        elif height is None:
            height = max(1, round(h * width / w))
        return int(width), int(height)

    @staticmethod
    def has_alpha(img: Image.Image) -> bool:
        return "A" in img.getbands() or "transparency" in img.info

    def load(self, path: str) -> Image.Image:
        with Image.open(path) as im:
            im.load()
            if im.mode in ("RGB", "RGBA", "L", "LA"):
                return im.copy()
            return im.convert("RGBA" if self.has_alpha(im) else "RGB")

    def save(self, img: Image.Image, dst: str, format: str | None = None, **options: Any) -> None:
        fmt = format or _EXTENSION_FORMATS.get(Path(dst).suffix.lower())
        if fmt is None:
            raise ValueError(f"Cannot infer output format from '{dst}'")
        if fmt == "JPEG" and img.mode not in ("RGB", "L"):
            img = img.convert("RGB")
        with open(dst, "xb") as fh:
            img.save(fh, format=fmt, **options)

    def _map_rgb(self, img: Image.Image, fn) -> Image.Image:
        rgb = np.asarray(img.convert("RGB")).astype(np.float32) / 255.0
        out = Image.fromarray((np.clip(fn(rgb), 0.0, 1.0) * 255.0).round().astype("uint8"))
        if "A" in img.getbands():
            out.putalpha(img.getchannel("A"))
        return out
