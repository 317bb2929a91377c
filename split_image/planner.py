"""Tile planning: overlapping, size-capped rectangles covering an image."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterator

from split_image.errors import InvalidConfiguration, InvalidImage


@dataclass(frozen=True, slots=True)
class TileRect:
    """Half-open rectangle ``[start_x, end_x) x [start_y, end_y)`` in source pixels."""

    start_x: int
    end_x: int
    start_y: int
    end_y: int

    @property
    def width(self) -> int:
        return self.end_x - self.start_x

    @property
    def height(self) -> int:
        return self.end_y - self.start_y

    def as_box(self) -> tuple[int, int, int, int]:
        """Return ``(left, top, width, height)`` as expected by crop APIs."""

        return self.start_x, self.start_y, self.width, self.height

    def __str__(self) -> str:
        return f"[{self.start_x}:{self.end_x}, {self.start_y}:{self.end_y}]"


def _check_inputs(width: int, height: int, max_dim: int, overlap: int) -> int:
    if max_dim < 1 or overlap < 0 or overlap >= max_dim:
        raise InvalidConfiguration(
            f"Tile planning requires max_dim > overlap >= 0 (max_dim={max_dim}, overlap={overlap})"
        )
    if width < 1 or height < 1:
        raise InvalidImage(f"Image dimensions must be positive, got {width}x{height}")
    return max_dim - overlap


def plan_tiles(width: int, height: int, *, max_dim: int, overlap: int) -> Iterator[TileRect]:
    """Yield the tile rectangles covering a ``width`` x ``height`` image.

    Origins advance by ``max_dim - overlap`` along each axis until a tile
    reaches the image edge. The outer loop walks ``x`` and the inner loop
    walks ``y``, so every tile of a vertical band is emitted before the band
    to its right. Tiles touching the right or bottom edge are clamped to the
    image rather than padded or re-centred, so they can be narrower than
    ``max_dim``.

    Arguments are validated immediately; iteration itself cannot fail.
    """

    stride = _check_inputs(width, height, max_dim, overlap)
    return _iter_rects(width, height, max_dim, stride)


def _axis_spans(length: int, max_dim: int, stride: int) -> Iterator[tuple[int, int]]:
    for start in range(0, length, stride):
        end = min(start + max_dim, length)
        yield start, end
        if end == length:
            # Any further origin would yield a sliver already inside this span.
            break


def _iter_rects(width: int, height: int, max_dim: int, stride: int) -> Iterator[TileRect]:
    for start_x, end_x in _axis_spans(width, max_dim, stride):
        for start_y, end_y in _axis_spans(height, max_dim, stride):
            yield TileRect(start_x=start_x, end_x=end_x, start_y=start_y, end_y=end_y)


def _axis_count(length: int, max_dim: int, stride: int) -> int:
    if length <= max_dim:
        return 1
    return 1 + math.ceil((length - max_dim) / stride)


def count_tiles(width: int, height: int, *, max_dim: int, overlap: int) -> int:
    """Return how many rectangles :func:`plan_tiles` would emit."""

    stride = _check_inputs(width, height, max_dim, overlap)
    return _axis_count(width, max_dim, stride) * _axis_count(height, max_dim, stride)
