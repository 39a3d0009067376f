"""Prometheus exporter helpers."""

from __future__ import annotations

from prometheus_client import Counter


images_normalized_total = Counter(
    "listing_images_normalized_total",
    "Total number of listing images normalised and queued for upload.",
)

images_rejected_total = Counter(
    "listing_images_rejected_total",
    "Total number of selected listing images that were not queued.",
    ["reason"],
)

images_uploaded_total = Counter(
    "listing_images_uploaded_total",
    "Total number of normalised images stored by an upload sink.",
    ["provider"],
)
