"""Tile slicing pipeline: decode, plan, render, collect."""

from __future__ import annotations

import asyncio
import hashlib
import logging
from typing import TYPE_CHECKING, List, Sequence

from split_image.planner import TileRect, plan_tiles
from split_image.renderer import TileDescriptor, TileOutcome, check_bounds, render_tile

if TYPE_CHECKING:  # pragma: no cover
    from split_image.codec import ImageCodec, Raster

LOGGER = logging.getLogger(__name__)
DEFAULT_MAX_TILE_DIMENSION = 4000
DEFAULT_OVERLAP_PX = 100


async def render_tiles(
    image: Raster,
    rects: Sequence[TileRect],
    *,
    codec: ImageCodec,
    max_concurrency: int = 4,
) -> List[TileOutcome]:
    """Render every rectangle on worker threads, returning outcomes in ``rects`` order."""

    semaphore = asyncio.Semaphore(max(1, max_concurrency))

    async def _render(index: int, rect: TileRect) -> TileOutcome:
        async with semaphore:
            return await asyncio.to_thread(render_tile, image, rect, codec=codec, index=index)

    return list(await asyncio.gather(*(_render(idx, rect) for idx, rect in enumerate(rects))))


async def split_image_bytes(
    image_bytes: bytes,
    *,
    codec: ImageCodec,
    max_dim: int = DEFAULT_MAX_TILE_DIMENSION,
    overlap: int = DEFAULT_OVERLAP_PX,
    max_concurrency: int = 4,
) -> List[TileDescriptor]:
    """Decode ``image_bytes`` and slice it into overlapping tiles no larger than ``max_dim``.

    Tiles come back in planner order. The first failing tile (in that order)
    is raised and no partial result is returned.
    """

    image = await asyncio.to_thread(codec.decode, image_bytes)
    return await split_decoded_image(
        image,
        codec=codec,
        max_dim=max_dim,
        overlap=overlap,
        max_concurrency=max_concurrency,
    )


async def split_decoded_image(
    image: Raster,
    *,
    codec: ImageCodec,
    max_dim: int = DEFAULT_MAX_TILE_DIMENSION,
    overlap: int = DEFAULT_OVERLAP_PX,
    max_concurrency: int = 4,
) -> List[TileDescriptor]:
    rects = list(plan_tiles(image.width, image.height, max_dim=max_dim, overlap=overlap))
    LOGGER.info(
        "Splitting %sx%s image into %s tiles (max_dim=%s, overlap=%s)",
        image.width,
        image.height,
        len(rects),
        max_dim,
        overlap,
    )
    outcomes = await render_tiles(image, rects, codec=codec, max_concurrency=max_concurrency)
    return [outcome.unwrap() for outcome in outcomes]


def validate_tiles(tiles: Sequence[TileDescriptor], *, image: Raster | None = None) -> None:
    """Sanity-check rendered tiles before they leave the service.

    Raises ``ValueError`` when a payload no longer matches its checksum, when
    the reported dimensions disagree with the tile rectangle, or when indices
    are out of order.
    """

    for position, tile in enumerate(tiles):
        if tile.index != position:
            raise ValueError(f"Tile {tile.index} is out of order (expected index {position})")
        if not tile.payload:
            raise ValueError(f"Tile {tile.index} has an empty payload")
        digest = hashlib.sha256(tile.payload).hexdigest()
        if digest != tile.sha256:
            raise ValueError(f"Tile {tile.index} checksum mismatch")
        if tile.rect is not None:
            if (tile.width, tile.height) != (tile.rect.width, tile.rect.height):
                raise ValueError(
                    f"Tile {tile.index} reports {tile.width}x{tile.height} but covers {tile.rect}"
                )
            if image is not None:
                check_bounds(image, tile.rect)
