"""Response models for the admin image endpoints."""

from __future__ import annotations

from pydantic import BaseModel

from listing_admin.services.batch import FileRejection, PreviewEntry


class ImageSummary(BaseModel):
    file_name: str
    width: int
    height: int
    mime_type: str
    original_size: int
    resized_size: int

    @classmethod
    def from_entry(cls, entry: PreviewEntry) -> ImageSummary:
        return cls(
            file_name=entry.image.file_name,
            width=entry.image.width,
            height=entry.image.height,
            mime_type=entry.image.mime_type,
            original_size=entry.original_size,
            resized_size=entry.resized_size,
        )


class ImageWarning(BaseModel):
    file_name: str
    reason: str
    message: str

    @classmethod
    def from_rejection(cls, rejection: FileRejection) -> ImageWarning:
        return cls(
            file_name=rejection.file_name,
            reason=rejection.reason.value,
            message=rejection.message,
        )


class ImageUploadResponse(BaseModel):
    """Uploaded URLs plus per-file warnings for skipped images."""

    urls: list[str]
    images: list[ImageSummary]
    warnings: list[ImageWarning]
