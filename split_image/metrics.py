"""Prometheus metrics for the split-image skill."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

RECORDS_TOTAL = Counter(
    "split_image_records_total",
    "Skill records processed, by outcome",
    ("outcome",),
)
TILES_TOTAL = Counter("split_image_tiles_total", "Tiles rendered and returned to callers")
SPLIT_SECONDS = Histogram(
    "split_image_split_seconds",
    "Wall time spent decoding and tiling one image",
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30, 60),
)
SOURCE_BYTES = Histogram(
    "split_image_source_bytes",
    "Size of downloaded source images",
    buckets=(1e4, 1e5, 1e6, 5e6, 1e7, 5e7, 1e8),
)


def record_success(tile_count: int) -> None:
    RECORDS_TOTAL.labels(outcome="ok").inc()
    TILES_TOTAL.inc(tile_count)


def record_failure() -> None:
    RECORDS_TOTAL.labels(outcome="error").inc()


def observe_source_bytes(size: int) -> None:
    SOURCE_BYTES.observe(size)
