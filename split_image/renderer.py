"""Crop + encode a single planned tile."""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from split_image.errors import CropError, EncodeError, SplitImageError
from split_image.planner import TileRect

if TYPE_CHECKING:  # pragma: no cover
    from split_image.codec import ImageCodec, Raster

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TileDescriptor:
    """An encoded tile plus provenance metadata."""

    width: int
    height: int
    payload: bytes = field(repr=False)
    index: int = 0
    rect: TileRect | None = None
    sha256: str = ""


@dataclass(frozen=True, slots=True)
class TileOutcome:
    """Result of rendering one rectangle: a descriptor or the error that prevented it."""

    rect: TileRect
    descriptor: TileDescriptor | None = None
    error: SplitImageError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> TileDescriptor:
        if self.error is not None:
            raise self.error
        assert self.descriptor is not None
        return self.descriptor


def check_bounds(image: Raster, rect: TileRect) -> None:
    """Raise :class:`CropError` unless ``rect`` is a non-empty region inside ``image``."""

    inside = (
        0 <= rect.start_x < rect.end_x <= image.width
        and 0 <= rect.start_y < rect.end_y <= image.height
    )
    if not inside:
        raise CropError(rect, (image.width, image.height))


def render_tile(image: Raster, rect: TileRect, *, codec: ImageCodec, index: int = 0) -> TileOutcome:
    """Crop ``rect`` out of ``image`` and encode it.

    The source image is never mutated, so one decoded image can serve every
    tile of a plan. Failures are returned inside the outcome rather than
    raised; the caller decides whether a single bad tile aborts the image.
    """

    try:
        check_bounds(image, rect)
    except CropError as exc:
        LOGGER.warning("Tile %s rejected: %s", index, exc)
        return TileOutcome(rect=rect, error=exc)

    try:
        payload = codec.encode_region(image, rect)
    except Exception as exc:  # noqa: BLE001 - any codec failure is reported per tile
        error = EncodeError(rect, exc)
        error.__cause__ = exc
        LOGGER.warning("Tile %s failed to encode: %s", index, exc)
        return TileOutcome(rect=rect, error=error)

    descriptor = TileDescriptor(
        width=rect.width,
        height=rect.height,
        payload=payload,
        index=index,
        rect=rect,
        sha256=hashlib.sha256(payload).hexdigest(),
    )
    return TileOutcome(rect=rect, descriptor=descriptor)
