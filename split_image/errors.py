"""Error taxonomy for planning, rendering and fetching tiles."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from split_image.planner import TileRect


class SplitImageError(Exception):
    """Base class for every failure surfaced by the split pipeline."""


class InvalidConfiguration(SplitImageError, ValueError):
    """Planner parameters violate ``max_dim > overlap >= 0``."""


class InvalidImage(SplitImageError, ValueError):
    """Image dimensions are zero or negative."""


class CropError(SplitImageError):
    """A rectangle falls outside the image it is cropped from."""

    def __init__(self, rect: TileRect, image_size: tuple[int, int]) -> None:
        self.rect = rect
        self.image_size = image_size
        width, height = image_size
        super().__init__(f"Failed to crop image: rectangle {rect} outside {width}x{height} image")


class EncodeError(SplitImageError):
    """The codec failed to crop or encode a tile."""

    def __init__(self, rect: TileRect, cause: BaseException) -> None:
        self.rect = rect
        super().__init__(f"Failed to crop image: encoding {rect} failed: {cause}")


class DecodeError(SplitImageError):
    """Input bytes could not be decoded into an image."""


class FetchError(SplitImageError):
    """The image could not be downloaded."""

    def __init__(
        self,
        message: str,
        *,
        url: str,
        status_code: int | None = None,
        retryable: bool = False,
    ) -> None:
        self.url = url
        self.status_code = status_code
        self.retryable = retryable
        super().__init__(message)
