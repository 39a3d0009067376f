"""Pending image batch of the listing form and its admission rules."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence

from listing_admin.config.settings import Settings
from listing_admin.imgproc.normalize import (
    BoundingBox,
    DecodeError,
    ImageNormalizer,
    ImageProcessingError,
    NormalizedImage,
    validate_quality,
)
from listing_admin.imgproc.preview import build_preview, format_file_size
from listing_admin.imgproc.raster import PillowRaster
from listing_admin.metrics.prometheus_exporter import (
    images_normalized_total,
    images_rejected_total,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILES = 10
DEFAULT_MAX_FILE_BYTES = 5 * 1024 * 1024


class RejectionReason(str, Enum):
    """Why a selected file did not make it into the batch."""

    TOO_LARGE = "too_large"
    CAP_EXCEEDED = "cap_exceeded"
    DECODE_FAILED = "decode_failed"
    ENCODE_FAILED = "encode_failed"
    PROCESSING_FAILED = "processing_failed"


@dataclass(slots=True)
class FileRejection:
    """User-facing record of a skipped file."""

    file_name: str
    reason: RejectionReason
    message: str


class FileValidationError(ValueError):
    """Raised by the admission gates before a file reaches the normaliser."""

    def __init__(self, message: str, file_name: str, reason: RejectionReason) -> None:
        self.file_name = file_name
        self.reason = reason
        super().__init__(message)

    def to_rejection(self) -> FileRejection:
        return FileRejection(file_name=self.file_name, reason=self.reason, message=str(self))


@dataclass(frozen=True, slots=True)
class SelectedFile:
    """A file picked by the user, before any processing."""

    data: bytes
    name: str
    declared_size: int | None = None
    content_type: str | None = None

    @property
    def size(self) -> int:
        if self.declared_size is not None:
            return self.declared_size
        return len(self.data)


@dataclass(frozen=True, slots=True)
class PreviewEntry:
    """Normalised image waiting for form submission."""

    image: NormalizedImage
    preview: str
    original_size: int
    resized_size: int


@dataclass(frozen=True, slots=True)
class ImageBatch:
    """Ordered, immutable collection of preview entries."""

    entries: tuple[PreviewEntry, ...] = ()

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def __getitem__(self, index: int) -> PreviewEntry:
        return self.entries[index]


def add_entry(batch: ImageBatch, entry: PreviewEntry) -> ImageBatch:
    return ImageBatch(entries=(*batch.entries, entry))


def remove_entry(batch: ImageBatch, index: int) -> ImageBatch:
    """Return ``batch`` without the entry at ``index``."""

    if not 0 <= index < len(batch.entries):
        raise IndexError(f"No image at position {index}; batch holds {len(batch.entries)}.")
    return ImageBatch(entries=batch.entries[:index] + batch.entries[index + 1 :])


def clear_batch() -> ImageBatch:
    return ImageBatch()


def _declared_type_note(file: SelectedFile) -> str:
    if not file.content_type:
        return ""
    return f" (declared as {file.content_type})"


def check_file_size(file: SelectedFile, max_bytes: int) -> None:
    """Reject files whose pre-normalisation size exceeds ``max_bytes``."""

    if file.size > max_bytes:
        raise FileValidationError(
            f"{file.name} exceeds the {format_file_size(max_bytes)} limit "
            f"({format_file_size(file.size)}).",
            file.name,
            RejectionReason.TOO_LARGE,
        )


def admit_files(
    files: Sequence[SelectedFile],
    *,
    occupied: int,
    max_files: int,
) -> tuple[list[SelectedFile], list[FileRejection]]:
    """Split a selection into files under the count cap and rejections."""

    free_slots = max(0, max_files - occupied)
    admitted = list(files[:free_slots])
    rejections = [
        FileRejection(
            file_name=file.name,
            reason=RejectionReason.CAP_EXCEEDED,
            message=f"{file.name} was not added: only {max_files} images can be uploaded.",
        )
        for file in files[free_slots:]
    ]
    return admitted, rejections


@dataclass(slots=True)
class BatchReport:
    """Outcome of one file selection."""

    accepted: list[PreviewEntry] = field(default_factory=list)
    rejections: list[FileRejection] = field(default_factory=list)

    @property
    def messages(self) -> list[str]:
        return [rejection.message for rejection in self.rejections]


class ImageBatchController:
    """Owns the pending image batch of one listing form.

    Each admitted file is normalised in a worker thread and appended to the
    batch as soon as it completes, so entries follow completion order (which
    is selection order when ``concurrency`` is 1). ``reset`` discards the batch
    and any results still in flight.
    """

    def __init__(
        self,
        normalizer: ImageNormalizer | None = None,
        *,
        max_files: int = DEFAULT_MAX_FILES,
        max_file_bytes: int = DEFAULT_MAX_FILE_BYTES,
        bounds: BoundingBox | None = None,
        quality: float = 0.85,
        concurrency: int = 2,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1.")
        self._normalizer = normalizer or ImageNormalizer()
        self._max_files = max_files
        self._max_file_bytes = max_file_bytes
        self._bounds = bounds or BoundingBox()
        self._quality = validate_quality(quality)
        self._semaphore = asyncio.Semaphore(concurrency)
        self._lock = asyncio.Lock()
        self._batch = ImageBatch()
        self._reserved = 0
        self._generation = 0

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        normalizer: ImageNormalizer | None = None,
    ) -> ImageBatchController:
        return cls(
            normalizer or ImageNormalizer(PillowRaster(max_pixels=settings.image_max_pixels)),
            max_files=settings.max_batch_files,
            max_file_bytes=settings.max_file_bytes,
            bounds=BoundingBox(settings.image_max_width, settings.image_max_height),
            quality=settings.image_quality,
            concurrency=settings.normalize_concurrency,
        )

    @property
    def batch(self) -> ImageBatch:
        return self._batch

    async def add_files(self, files: Sequence[SelectedFile]) -> BatchReport:
        """Admit, normalise and queue a new file selection."""

        report = BatchReport()
        async with self._lock:
            generation = self._generation
            admitted, rejected = admit_files(
                files,
                occupied=len(self._batch) + self._reserved,
                max_files=self._max_files,
            )
            self._reserved += len(admitted)
        for rejection in rejected:
            self._record_rejection(report, rejection)

        await asyncio.gather(*(self._process(file, generation, report) for file in admitted))
        return report

    def remove(self, index: int) -> None:
        self._batch = remove_entry(self._batch, index)

    def reset(self) -> None:
        """Empty the batch; results from earlier selections are dropped."""

        self._generation += 1
        self._reserved = 0
        self._batch = clear_batch()

    async def _process(self, file: SelectedFile, generation: int, report: BatchReport) -> None:
        entry: PreviewEntry | None = None
        try:
            check_file_size(file, self._max_file_bytes)
            async with self._semaphore:
                entry = await asyncio.to_thread(self._build_entry, file)
        except FileValidationError as exc:
            self._record_rejection(report, exc.to_rejection())
        except ImageProcessingError as exc:
            if isinstance(exc, DecodeError):
                reason = RejectionReason.DECODE_FAILED
                message = f"{exc}{_declared_type_note(file)}"
            else:
                reason = RejectionReason.ENCODE_FAILED
                message = str(exc)
            self._record_rejection(
                report,
                FileRejection(file_name=file.name, reason=reason, message=message),
            )
        except Exception as exc:
            # Errors stay scoped to their file so the rest of the selection completes.
            logger.exception("Unexpected failure while normalising %s", file.name)
            self._record_rejection(
                report,
                FileRejection(
                    file_name=file.name,
                    reason=RejectionReason.PROCESSING_FAILED,
                    message=f"{file.name} could not be processed: {exc}",
                ),
            )
        finally:
            async with self._lock:
                stale = generation != self._generation
                if not stale:
                    self._reserved -= 1
                    if entry is not None:
                        self._batch = add_entry(self._batch, entry)

        if entry is None:
            return
        if stale:
            logger.info("Discarding %s: the batch was reset while it was processed.", file.name)
            return
        report.accepted.append(entry)
        images_normalized_total.inc()

    def _build_entry(self, file: SelectedFile) -> PreviewEntry:
        image = self._normalizer.normalize(
            file.data,
            file.name,
            max_width=self._bounds.max_width,
            max_height=self._bounds.max_height,
            quality=self._quality,
        )
        return PreviewEntry(
            image=image,
            preview=build_preview(image),
            original_size=file.size,
            resized_size=image.byte_length,
        )

    @staticmethod
    def _record_rejection(report: BatchReport, rejection: FileRejection) -> None:
        logger.warning("Skipping %s: %s", rejection.file_name, rejection.message)
        images_rejected_total.labels(reason=rejection.reason.value).inc()
        report.rejections.append(rejection)
