"""Preview helpers for the admin image grid."""

from __future__ import annotations

import base64

from listing_admin.imgproc.normalize import NormalizedImage

SIZE_UNITS = ("Bytes", "KB", "MB")


def build_preview(image: NormalizedImage) -> str:
    """Return the image as a ``data:`` URL suitable for an ``<img src>``."""

    encoded = base64.b64encode(image.data).decode("ascii")
    return f"data:{image.mime_type};base64,{encoded}"


def format_file_size(size: int) -> str:
    """Render a byte count such as ``1.5 MB``."""

    if size <= 0:
        return "0 Bytes"
    index = 0
    while index < len(SIZE_UNITS) - 1 and size >= 1024 ** (index + 1):
        index += 1
    value = round(size / 1024**index, 2)
    if value == int(value):
        value = int(value)
    return f"{value} {SIZE_UNITS[index]}"
