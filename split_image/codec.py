"""Decode/encode capability used by the renderer, backed by pyvips."""

from __future__ import annotations

import logging
from typing import Protocol

import pyvips

from split_image.errors import DecodeError
from split_image.planner import TileRect

LOGGER = logging.getLogger(__name__)

# Loader name fragments for the formats the skill accepts. BMP only decodes
# when libvips was built with ImageMagick support.
SUPPORTED_LOADER_TOKENS = ("jpeg", "png", "gif", "tiff", "magick")


class Raster(Protocol):
    """Decoded image; only its dimensions matter to the tiling core."""

    @property
    def width(self) -> int: ...

    @property
    def height(self) -> int: ...


class ImageCodec(Protocol):
    """Narrow decode / encode-region capability."""

    def decode(self, data: bytes) -> Raster: ...

    def encode_region(self, image: Raster, rect: TileRect) -> bytes: ...


class VipsCodec:
    """Decode with libvips and encode crops as baseline JPEG."""

    def __init__(self, *, quality: int = 75) -> None:
        self.quality = quality

    def decode(self, data: bytes) -> pyvips.Image:
        if not data:
            raise DecodeError("Image payload is empty")
        try:
            # Random access: tiles are cropped out of order and possibly from several threads.
            image = pyvips.Image.new_from_buffer(data, "", access="random")
        except pyvips.Error as exc:
            raise DecodeError(f"Failed to decode image: {exc.message}") from exc
        loader = image.get("vips-loader") if image.get_typeof("vips-loader") != 0 else None
        if loader is None or not any(token in loader.lower() for token in SUPPORTED_LOADER_TOKENS):
            raise DecodeError(f"Unsupported or unrecognised image format (loader={loader})")
        LOGGER.debug("Decoded %sx%s image via %s", image.width, image.height, loader)
        return image

    def encode_region(self, image: pyvips.Image, rect: TileRect) -> bytes:
        region = image.crop(*rect.as_box())
        if region.hasalpha():
            region = region.flatten(background=[255] * (region.bands - 1))
        return region.write_to_buffer(".jpg", Q=self.quality, interlace=False)
