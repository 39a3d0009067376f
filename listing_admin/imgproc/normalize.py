"""Image normalisation helpers.

Listing photos are downscaled into a bounding box (never upscaled) and
re-encoded as JPEG before they are handed to an upload sink. Every output is
``image/jpeg`` whatever the source format, so transparent PNG/GIF/WEBP input
loses its alpha channel.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from pathlib import PurePath

from listing_admin.imgproc.raster import PillowRaster, RasterBackend

logger = logging.getLogger(__name__)

DEFAULT_MAX_WIDTH = 1920
DEFAULT_MAX_HEIGHT = 1080
DEFAULT_QUALITY = 0.85
JPEG_MIME_TYPE = "image/jpeg"
JPEG_SUFFIX = ".jpg"


class ImageProcessingError(RuntimeError):
    """Base error for a single file that could not be normalised."""

    def __init__(self, message: str, file_name: str) -> None:
        self.file_name = file_name
        super().__init__(message)


class DecodeError(ImageProcessingError):
    """Raised when the input bytes are not a supported raster image."""


class EncodeError(ImageProcessingError):
    """Raised when resampling or JPEG encoding fails after a successful decode."""


@dataclass(frozen=True, slots=True)
class Dimensions:
    """Pixel extents of an image."""

    width: int
    height: int

    def fits(self, box: BoundingBox) -> bool:
        return self.width <= box.max_width and self.height <= box.max_height

    def as_tuple(self) -> tuple[int, int]:
        return self.width, self.height


@dataclass(frozen=True, slots=True)
class BoundingBox:
    """Maximum width/height an image may occupy after normalisation."""

    max_width: int = DEFAULT_MAX_WIDTH
    max_height: int = DEFAULT_MAX_HEIGHT

    def __post_init__(self) -> None:
        for name in ("max_width", "max_height"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ValueError(f"{name} must be a positive integer, got {value!r}.")


@dataclass(frozen=True, slots=True)
class NormalizedImage:
    """JPEG bytes produced by :class:`ImageNormalizer`."""

    data: bytes
    file_name: str
    width: int
    height: int
    mime_type: str = JPEG_MIME_TYPE

    @property
    def byte_length(self) -> int:
        return len(self.data)

    @property
    def dimensions(self) -> Dimensions:
        return Dimensions(self.width, self.height)


def _round_pixels(value: float, ceiling: int) -> int:
    return min(ceiling, max(1, math.floor(value + 0.5)))


def compute_target_dimensions(source: Dimensions, box: BoundingBox) -> Dimensions:
    """Return the size ``source`` should be drawn at to fit inside ``box``.

    Images already inside the box keep their size. Larger images are scaled by
    ``min(max_width / width, max_height / height)`` so both limits hold and the
    aspect ratio survives up to integer rounding.
    """

    if source.fits(box):
        return source

    ratio = min(box.max_width / source.width, box.max_height / source.height)
    return Dimensions(
        width=_round_pixels(source.width * ratio, box.max_width),
        height=_round_pixels(source.height * ratio, box.max_height),
    )


def output_file_name(file_name: str) -> str:
    """Keep the original stem and switch the extension to ``.jpg``."""

    stem = PurePath(file_name).stem if file_name else ""
    return f"{stem or 'image'}{JPEG_SUFFIX}"


def validate_quality(quality: float) -> float:
    if isinstance(quality, bool) or not isinstance(quality, (int, float)):
        raise ValueError(f"quality must be a number, got {quality!r}.")
    if not 0.0 < quality <= 1.0:
        raise ValueError(f"quality must be in (0.0, 1.0], got {quality!r}.")
    return float(quality)


class ImageNormalizer:
    """Constrains images to a bounding box and re-encodes them as JPEG."""

    def __init__(self, backend: RasterBackend | None = None) -> None:
        self._backend = backend or PillowRaster()

    def normalize(
        self,
        image_bytes: bytes,
        file_name: str,
        *,
        max_width: int = DEFAULT_MAX_WIDTH,
        max_height: int = DEFAULT_MAX_HEIGHT,
        quality: float = DEFAULT_QUALITY,
    ) -> NormalizedImage:
        """Return processed image bytes ready for the upload sink."""

        box = BoundingBox(max_width, max_height)
        quality = validate_quality(quality)

        try:
            raster = self._backend.decode(image_bytes)
            source = Dimensions(*self._backend.dimensions(raster))
        except (OSError, ValueError) as exc:
            raise DecodeError(f"{file_name} is not a supported image: {exc}", file_name) from exc
        if source.width < 1 or source.height < 1:
            raise DecodeError(f"{file_name} has no pixels ({source.width}x{source.height}).", file_name)

        target = compute_target_dimensions(source, box)
        try:
            if target != source:
                raster = self._backend.resample(raster, target.as_tuple())
            data = self._backend.encode_jpeg(raster, quality)
        except (OSError, ValueError) as exc:
            raise EncodeError(f"Failed to encode {file_name} as JPEG: {exc}", file_name) from exc
        if not data:
            raise EncodeError(f"Encoder returned no data for {file_name}.", file_name)

        logger.debug(
            "Normalised %s: %dx%d -> %dx%d, %d -> %d bytes",
            file_name,
            source.width,
            source.height,
            target.width,
            target.height,
            len(image_bytes),
            len(data),
        )
        return NormalizedImage(
            data=data,
            file_name=output_file_name(file_name),
            width=target.width,
            height=target.height,
        )
