"""Local file storage for listing media."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Protocol


class StorageBackend(Protocol):
    """Persists bytes under a key and returns where they ended up."""

    async def save(self, key: str, data: bytes) -> str:
        ...


class LocalStorage:
    """Stores files below a root directory on the local disk."""

    def __init__(self, root: Path) -> None:
        self._root = root

    @property
    def root(self) -> Path:
        return self._root

    def _path_for(self, key: str) -> Path:
        path = (self._root / key).resolve()
        if not path.is_relative_to(self._root.resolve()):
            raise ValueError(f"Storage key {key!r} escapes the media root.")
        return path

    async def save(self, key: str, data: bytes) -> str:
        path = self._path_for(key)
        await asyncio.to_thread(self._write_file, path, data)
        return str(path)

    @staticmethod
    def _write_file(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
