"""Tests for tiler helpers."""

from __future__ import annotations

import dataclasses

import pytest

from split_image.errors import DecodeError, EncodeError, InvalidConfiguration
from split_image.planner import TileRect, plan_tiles
from split_image.tiler import render_tiles, split_image_bytes, validate_tiles

from fakes import FakeCodec, FakeRaster


@pytest.mark.asyncio
async def test_split_image_bytes_returns_tiles_in_plan_order(fake_codec: FakeCodec) -> None:
    tiles = await split_image_bytes(b"4100x3000", codec=fake_codec, max_dim=4000, overlap=100)

    assert [(tile.width, tile.height) for tile in tiles] == [(4000, 3000), (200, 3000)]
    assert [tile.index for tile in tiles] == [0, 1]
    assert tiles[1].rect == TileRect(start_x=3900, end_x=4100, start_y=0, end_y=3000)
    validate_tiles(tiles, image=FakeRaster(4100, 3000))


@pytest.mark.asyncio
async def test_render_tiles_keeps_order_when_completion_is_reversed() -> None:
    image = FakeRaster(40, 40)
    rects = list(plan_tiles(40, 40, max_dim=10, overlap=0))
    # Earlier tiles finish last.
    codec = FakeCodec(delay_for=lambda rect: 0.002 * (40 - rect.start_x - rect.start_y // 10))

    outcomes = await render_tiles(image, rects, codec=codec, max_concurrency=8)

    assert [outcome.rect for outcome in outcomes] == rects
    assert [outcome.unwrap().index for outcome in outcomes] == list(range(len(rects)))
    assert codec.encoded != rects


@pytest.mark.asyncio
async def test_render_tiles_reports_each_failure_separately() -> None:
    rects = list(plan_tiles(20, 20, max_dim=10, overlap=0))
    codec = FakeCodec(fail_on=[rects[1], rects[3]])

    outcomes = await render_tiles(FakeRaster(20, 20), rects, codec=codec)

    assert [outcome.ok for outcome in outcomes] == [True, False, True, False]


@pytest.mark.asyncio
async def test_split_image_bytes_raises_first_failure_in_plan_order() -> None:
    rects = list(plan_tiles(20, 20, max_dim=10, overlap=0))
    codec = FakeCodec(fail_on=[rects[2], rects[1]])

    with pytest.raises(EncodeError) as excinfo:
        await split_image_bytes(b"20x20", codec=codec, max_dim=10, overlap=0)

    assert excinfo.value.rect == rects[1]


@pytest.mark.asyncio
async def test_split_image_bytes_propagates_decode_errors(fake_codec: FakeCodec) -> None:
    with pytest.raises(DecodeError):
        await split_image_bytes(b"not an image", codec=fake_codec)


@pytest.mark.asyncio
async def test_split_image_bytes_rejects_zero_stride(fake_codec: FakeCodec) -> None:
    with pytest.raises(InvalidConfiguration):
        await split_image_bytes(b"100x100", codec=fake_codec, max_dim=50, overlap=50)
    assert fake_codec.encoded == []


@pytest.mark.asyncio
async def test_validate_tiles_raises_on_checksum_mismatch(fake_codec: FakeCodec) -> None:
    tiles = await split_image_bytes(b"10x10", codec=fake_codec, max_dim=10, overlap=0)
    tampered = dataclasses.replace(tiles[0], sha256="deadbeef")

    try:
        validate_tiles([tampered])
    except ValueError as exc:
        assert "checksum" in str(exc)
    else:  # pragma: no cover - safety net
        raise AssertionError("Expected checksum mismatch ValueError")


@pytest.mark.asyncio
async def test_validate_tiles_rejects_out_of_order_tiles(fake_codec: FakeCodec) -> None:
    tiles = await split_image_bytes(b"30x10", codec=fake_codec, max_dim=10, overlap=0)

    with pytest.raises(ValueError, match="out of order"):
        validate_tiles(list(reversed(tiles)))
