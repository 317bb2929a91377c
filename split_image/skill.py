"""Per-record processing for the split-image skill."""

from __future__ import annotations

import asyncio
import base64
import logging
from typing import TYPE_CHECKING, Awaitable, Callable

import httpx

from split_image import metrics
from split_image.failure_log import append_failure_log
from split_image.fetch import fetch_image_bytes, redact_url
from split_image.schemas import (
    SkillMessage,
    SkillRequest,
    SkillRequestRecord,
    SkillResponse,
    SkillResponseRecord,
    SplitImageEntry,
)
from split_image.settings import Settings, get_settings
from split_image.tiler import split_image_bytes, validate_tiles
from split_image.uri import combine_sas_token_with_uri

if TYPE_CHECKING:  # pragma: no cover
    from split_image.codec import ImageCodec

LOGGER = logging.getLogger(__name__)
SKILL_NAME = "split-image"
MISSING_LOCATION_MESSAGE = "Parameter 'imageLocation' is required to be present and a valid uri."

Fetcher = Callable[[str], Awaitable[bytes]]


async def process_request(
    request: SkillRequest,
    *,
    codec: ImageCodec,
    settings: Settings | None = None,
    client: httpx.AsyncClient | None = None,
) -> SkillResponse:
    """Split the image behind every record; failures stay local to their record."""

    cfg = settings or get_settings()

    async def _fetch(url: str) -> bytes:
        return await fetch_image_bytes(url, settings=cfg, client=client)

    values = []
    for record in request.values:
        values.append(await process_record(record, codec=codec, settings=cfg, fetcher=_fetch))
    return SkillResponse(values=values)


async def process_record(
    record: SkillRequestRecord,
    *,
    codec: ImageCodec,
    settings: Settings,
    fetcher: Fetcher,
) -> SkillResponseRecord:
    out = SkillResponseRecord(record_id=record.record_id)
    image_location = record.data.get("imageLocation")
    sas_token = record.data.get("sasToken")

    if not isinstance(image_location, str) or not image_location.strip():
        out.errors.append(SkillMessage(message=MISSING_LOCATION_MESSAGE))
        metrics.record_failure()
        return out
    if sas_token is not None and not isinstance(sas_token, str):
        sas_token = str(sas_token)

    safe_location = redact_url(image_location)
    try:
        work = _split_record(image_location, sas_token, codec=codec, settings=settings, fetcher=fetcher)
        timeout = settings.tiling.record_timeout_s
        entries = await (asyncio.wait_for(work, timeout) if timeout > 0 else work)
    except asyncio.TimeoutError as exc:
        detail = f"timed out after {settings.tiling.record_timeout_s}s"
        await _report_failure(out, record.record_id, safe_location, exc, detail)
        return out
    except Exception as exc:  # noqa: BLE001 - surfaced to the caller as a record error
        await _report_failure(out, record.record_id, safe_location, exc, str(exc))
        return out

    out.data["splitImages"] = [entry.model_dump(by_alias=True) for entry in entries]
    metrics.record_success(len(entries))
    LOGGER.info("Record %s split into %s tiles", record.record_id, len(entries))
    return out


async def _split_record(
    image_location: str,
    sas_token: str | None,
    *,
    codec: ImageCodec,
    settings: Settings,
    fetcher: Fetcher,
) -> list[SplitImageEntry]:
    full_uri = combine_sas_token_with_uri(image_location, sas_token)
    image_bytes = await fetcher(full_uri)
    metrics.observe_source_bytes(len(image_bytes))

    tiling = settings.tiling
    with metrics.SPLIT_SECONDS.time():
        tiles = await split_image_bytes(
            image_bytes,
            codec=codec,
            max_dim=tiling.max_tile_dimension,
            overlap=tiling.tile_overlap_px,
            max_concurrency=tiling.max_concurrency,
        )
    validate_tiles(tiles)
    return [
        SplitImageEntry(
            data=base64.b64encode(tile.payload).decode("ascii"),
            width=tile.width,
            height=tile.height,
        )
        for tile in tiles
    ]


async def _report_failure(
    out: SkillResponseRecord,
    record_id: str,
    safe_location: str,
    error: BaseException,
    detail: str,
) -> None:
    LOGGER.warning("Record %s (%s) failed: %s", record_id, safe_location, detail, exc_info=error)
    out.errors.append(SkillMessage(message=f"{SKILL_NAME} - Error processing the request record : {detail}"))
    metrics.record_failure()
    await asyncio.to_thread(
        append_failure_log, record_id=record_id, image_location=safe_location, error=error
    )
