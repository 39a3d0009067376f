"""Image decoding, resizing and JPEG re-encoding."""

from .normalize import (
    BoundingBox,
    DecodeError,
    Dimensions,
    EncodeError,
    ImageNormalizer,
    ImageProcessingError,
    NormalizedImage,
    compute_target_dimensions,
)
from .preview import build_preview, format_file_size
from .raster import PillowRaster, RasterBackend

__all__ = [
    "BoundingBox",
    "DecodeError",
    "Dimensions",
    "EncodeError",
    "ImageNormalizer",
    "ImageProcessingError",
    "NormalizedImage",
    "PillowRaster",
    "RasterBackend",
    "build_preview",
    "compute_target_dimensions",
    "format_file_size",
]
