"""Shared fixtures for image and batch tests."""

from __future__ import annotations

import struct
import zlib
from io import BytesIO
from typing import Callable

import pytest
from PIL import Image

from listing_admin.config.settings import get_settings


class FakeRaster:
    """In-memory raster backend: ``b"WxH"`` decodes to a ``(W, H)`` raster."""

    def __init__(self, *, fail_encode: bool = False) -> None:
        self.fail_encode = fail_encode
        self.resampled: list[tuple[int, int]] = []

    def decode(self, data: bytes) -> tuple[int, int]:
        try:
            width, height = data.decode("ascii").split("x")
            return int(width), int(height)
        except (UnicodeDecodeError, ValueError) as exc:
            raise ValueError("unrecognised image data") from exc

    def dimensions(self, raster: tuple[int, int]) -> tuple[int, int]:
        return raster

    def resample(self, raster: tuple[int, int], size: tuple[int, int]) -> tuple[int, int]:
        self.resampled.append(size)
        return size

    def encode_jpeg(self, raster: tuple[int, int], quality: float) -> bytes:
        if self.fail_encode:
            raise OSError("encoder rejected parameters")
        return f"jpeg:{raster[0]}x{raster[1]}@{quality}".encode("ascii")


@pytest.fixture
def fake_raster() -> FakeRaster:
    return FakeRaster()


@pytest.fixture
def make_image() -> Callable[..., bytes]:
    """Return a factory that encodes a solid-colour image in the given format."""

    def _make(
        width: int,
        height: int,
        image_format: str = "PNG",
        mode: str = "RGB",
        color: object = (40, 120, 200),
    ) -> bytes:
        image = Image.new(mode, (width, height), color=color)
        buffer = BytesIO()
        image.save(buffer, format=image_format)
        return buffer.getvalue()

    return _make


@pytest.fixture(autouse=True)
def _reset_settings_cache() -> None:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def _png_chunk(chunk_type: bytes, body: bytes) -> bytes:
    crc = zlib.crc32(chunk_type + body) & 0xFFFFFFFF
    return struct.pack(">I", len(body)) + chunk_type + body + struct.pack(">I", crc)


@pytest.fixture
def broken_png() -> bytes:
    """PNG whose pixel data continues in a chunk with an invalid type.

    Pillow reads the header fine and only fails while loading pixels, with an
    exception that is neither ``OSError`` nor ``ValueError``.
    """

    width, height = 16, 16
    rows = b"".join(b"\x00" + bytes([90, 140, 210]) * width for _ in range(height))
    compressed = zlib.compress(rows)
    half = len(compressed) // 2
    return (
        b"\x89PNG\r\n\x1a\n"
        + _png_chunk(b"IHDR", struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0))
        + _png_chunk(b"IDAT", compressed[:half])
        + _png_chunk(b"\x9cEND", compressed[half:])
        + _png_chunk(b"IEND", b"")
    )
