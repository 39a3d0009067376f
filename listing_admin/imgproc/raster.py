"""Raster decode/resample/encode capability used by the normaliser."""

from __future__ import annotations

import warnings
from io import BytesIO
from typing import Any, Protocol

from PIL import Image, ImageOps

BACKGROUND_COLOR = (0, 0, 0)
DEFAULT_MAX_PIXELS = 89_478_485


class RasterBackend(Protocol):
    """Minimal raster capability. Failures are reported as ``OSError`` or ``ValueError``."""

    def decode(self, data: bytes) -> Any:
        ...

    def dimensions(self, raster: Any) -> tuple[int, int]:
        ...

    def resample(self, raster: Any, size: tuple[int, int]) -> Any:
        ...

    def encode_jpeg(self, raster: Any, quality: float) -> bytes:
        ...


def jpeg_quality(quality: float) -> int:
    """Map a ``(0, 1]`` quality factor onto Pillow's 1..100 JPEG scale."""

    return max(1, min(100, round(quality * 100)))


class PillowRaster:
    """Pillow implementation of :class:`RasterBackend`.

    Images with more than ``max_pixels`` pixels are refused before their pixel
    data is decoded.
    """

    def __init__(self, max_pixels: int = DEFAULT_MAX_PIXELS) -> None:
        if max_pixels < 1:
            raise ValueError("max_pixels must be positive.")
        self._max_pixels = max_pixels

    def decode(self, data: bytes) -> Image.Image:
        try:
            with warnings.catch_warnings():
                warnings.simplefilter("error", Image.DecompressionBombWarning)
                with Image.open(BytesIO(data)) as img:
                    width, height = img.size
                    if width * height > self._max_pixels:
                        raise ValueError(
                            f"{width}x{height} exceeds the {self._max_pixels} pixel limit."
                        )
                    # First frame only for animated GIF/WEBP.
                    img.seek(0)
                    img.load()
                    return ImageOps.exif_transpose(img)
        except (OSError, ValueError):
            raise
        except Exception as exc:
            # Pillow plugins also fail with SyntaxError, struct.error, EOFError,
            # IndexError and decompression-bomb errors on malformed input.
            raise ValueError(f"{type(exc).__name__}: {exc}") from exc

    def dimensions(self, raster: Image.Image) -> tuple[int, int]:
        return raster.size

    def resample(self, raster: Image.Image, size: tuple[int, int]) -> Image.Image:
        return raster.resize(size, Image.Resampling.LANCZOS)

    def encode_jpeg(self, raster: Image.Image, quality: float) -> bytes:
        image = _flatten(raster)
        buffer = BytesIO()
        try:
            image.save(buffer, format="JPEG", quality=jpeg_quality(quality), optimize=True)
        except (OSError, ValueError):
            raise
        except Exception as exc:
            raise ValueError(f"{type(exc).__name__}: {exc}") from exc
        return buffer.getvalue()


def _flatten(image: Image.Image) -> Image.Image:
    """Return an RGB copy with any transparency composited onto the background."""

    if image.mode == "P" and "transparency" in image.info:
        image = image.convert("RGBA")
    if image.mode in ("RGBA", "LA", "PA"):
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, BACKGROUND_COLOR)
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    if image.mode != "RGB":
        return image.convert("RGB")
    return image
