"""Round-trip checks against real libvips."""

from __future__ import annotations

import pytest

try:  # pragma: no cover - exercised only when libvips missing
    import pyvips
except Exception as exc:  # noqa: BLE001
    pytest.skip(f"pyvips unavailable: {exc}", allow_module_level=True)

from split_image.codec import VipsCodec
from split_image.errors import DecodeError
from split_image.planner import TileRect
from split_image.tiler import split_image_bytes, validate_tiles


def _png_bytes(width: int = 10, height: int = 10, bands: int = 3) -> bytes:
    image = pyvips.Image.black(width, height, bands=bands).add(1)
    if bands == 4:
        image = image.copy(interpretation="srgb")
    return image.write_to_buffer(".png")


def test_decode_reports_dimensions() -> None:
    image = VipsCodec().decode(_png_bytes(64, 48))

    assert (image.width, image.height) == (64, 48)


@pytest.mark.parametrize("payload", [b"", b"definitely not an image"])
def test_decode_rejects_garbage(payload: bytes) -> None:
    with pytest.raises(DecodeError):
        VipsCodec().decode(payload)


def test_decode_rejects_formats_outside_the_supported_loaders() -> None:
    try:
        webp = pyvips.Image.black(8, 8).write_to_buffer(".webp")
    except pyvips.Error as exc:
        pytest.skip(f"libvips built without webp: {exc.message}")

    with pytest.raises(DecodeError, match="loader=webpload"):
        VipsCodec().decode(webp)


def test_decode_keeps_loader_metadata() -> None:
    image = VipsCodec().decode(_png_bytes(12, 7))

    assert image.get("vips-loader").startswith("pngload")


def test_encode_region_writes_baseline_jpeg_of_the_crop() -> None:
    codec = VipsCodec(quality=80)
    image = codec.decode(_png_bytes(64, 48))

    jpeg = codec.encode_region(image, TileRect(start_x=10, end_x=40, start_y=8, end_y=48))

    assert jpeg[:2] == b"\xff\xd8"
    tile = pyvips.Image.new_from_buffer(jpeg, "")
    assert (tile.width, tile.height) == (30, 40)
    assert tile.get("vips-loader").startswith("jpegload")
    assert (image.width, image.height) == (64, 48)


def test_encode_region_flattens_alpha() -> None:
    codec = VipsCodec()
    image = codec.decode(_png_bytes(20, 20, bands=4))

    jpeg = codec.encode_region(image, TileRect(start_x=0, end_x=20, start_y=0, end_y=20))

    assert pyvips.Image.new_from_buffer(jpeg, "").bands == 3


@pytest.mark.asyncio
async def test_split_image_bytes_with_vips_codec() -> None:
    codec = VipsCodec()
    tiles = await split_image_bytes(_png_bytes(90, 50), codec=codec, max_dim=40, overlap=10, max_concurrency=3)

    assert [(tile.width, tile.height) for tile in tiles] == [
        (40, 40), (40, 20),
        (40, 40), (40, 20),
        (30, 40), (30, 20),
    ]
    validate_tiles(tiles)
    for tile in tiles:
        decoded = pyvips.Image.new_from_buffer(tile.payload, "")
        assert (decoded.width, decoded.height) == (tile.width, tile.height)
