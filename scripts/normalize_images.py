"""Normalise local listing photos with the same rules as the admin form."""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Sequence

from listing_admin.config.settings import get_settings
from listing_admin.imgproc.normalize import BoundingBox, ImageNormalizer
from listing_admin.imgproc.preview import format_file_size
from listing_admin.imgproc.raster import PillowRaster
from listing_admin.monitoring.logging import configure_logging
from listing_admin.services.batch import BatchReport, ImageBatchController, PreviewEntry, SelectedFile

logger = logging.getLogger("listing_admin.scripts.normalize_images")


def _build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("paths", nargs="+", type=Path, help="Image files to normalise")
    parser.add_argument(
        "--output",
        default=Path("normalized"),
        type=Path,
        help="Directory where JPEG files are written",
    )
    parser.add_argument("--max-width", type=int, default=settings.image_max_width)
    parser.add_argument("--max-height", type=int, default=settings.image_max_height)
    parser.add_argument(
        "--quality",
        type=float,
        default=settings.image_quality,
        help="JPEG quality between 0 (exclusive) and 1",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def _read_selection(paths: Sequence[Path]) -> list[SelectedFile]:
    selection: list[SelectedFile] = []
    for path in paths:
        try:
            data = path.read_bytes()
        except OSError as exc:
            logger.warning("Cannot read %s: %s", path, exc)
            continue
        selection.append(SelectedFile(data=data, name=path.name))
    return selection


def unique_file_name(file_name: str, taken: set[str]) -> str:
    """Return ``file_name`` or ``stem-N.suffix`` so no two outputs share a name."""

    candidate = file_name
    stem, suffix = Path(file_name).stem, Path(file_name).suffix
    counter = 1
    while candidate.lower() in taken:
        candidate = f"{stem}-{counter}{suffix}"
        counter += 1
    taken.add(candidate.lower())
    return candidate


def _print_report(report: BatchReport, written: Sequence[tuple[PreviewEntry, Path]]) -> None:
    for entry, destination in written:
        print(
            f"✅ {destination}: {entry.image.width}x{entry.image.height}, "
            f"{format_file_size(entry.original_size)} -> {format_file_size(entry.resized_size)}"
        )
    for rejection in report.rejections:
        print(f"❌ {rejection.file_name}: {rejection.message}")


async def run(args: argparse.Namespace) -> tuple[BatchReport, list[tuple[PreviewEntry, Path]]]:
    settings = get_settings()
    controller = ImageBatchController(
        ImageNormalizer(PillowRaster(max_pixels=settings.image_max_pixels)),
        max_files=settings.max_batch_files,
        max_file_bytes=settings.max_file_bytes,
        bounds=BoundingBox(args.max_width, args.max_height),
        quality=args.quality,
        concurrency=settings.normalize_concurrency,
    )
    report = await controller.add_files(_read_selection(args.paths))

    args.output.mkdir(parents=True, exist_ok=True)
    taken: set[str] = set()
    written: list[tuple[PreviewEntry, Path]] = []
    for entry in controller.batch:
        destination = args.output / unique_file_name(entry.image.file_name, taken)
        await asyncio.to_thread(destination.write_bytes, entry.image.data)
        written.append((entry, destination))
    return report, written


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging("DEBUG" if args.verbose else None)
    report, written = asyncio.run(run(args))
    _print_report(report, written)
    return 1 if report.rejections else 0


if __name__ == "__main__":
    raise SystemExit(main())
