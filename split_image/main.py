"""Entry point for the FastAPI application."""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from functools import lru_cache

import httpx
from fastapi import Depends, FastAPI, HTTPException, Request, status
from prometheus_client import start_http_server
from prometheus_fastapi_instrumentator import Instrumentator
from pydantic import ValidationError

from split_image.auth import require_api_key
from split_image.codec import ImageCodec, VipsCodec
from split_image.fetch import request_timeout
from split_image.schemas import SkillRequest, SkillResponse
from split_image.settings import get_settings
from split_image.skill import SKILL_NAME, process_request

LOGGER = logging.getLogger(__name__)
_PROMETHEUS_EXPORTER_STARTED = False


async def _start_prometheus_exporter() -> None:
    """Expose Prometheus metrics on the configured auxiliary port."""

    global _PROMETHEUS_EXPORTER_STARTED
    if _PROMETHEUS_EXPORTER_STARTED:
        return
    port = get_settings().telemetry.prometheus_port
    if port <= 0:
        return
    try:
        start_http_server(port)
    except OSError as exc:  # pragma: no cover - system dependent
        LOGGER.warning("Prometheus exporter failed to bind on port %s: %s", port, exc)
        return
    _PROMETHEUS_EXPORTER_STARTED = True
    LOGGER.info("Prometheus exporter listening on port %s", port)


@asynccontextmanager
async def _lifespan(app: FastAPI):
    settings = get_settings()
    logging.basicConfig(level=settings.logging.level)
    await _start_prometheus_exporter()
    async with httpx.AsyncClient(timeout=request_timeout(settings), follow_redirects=True, http2=True) as client:
        app.state.http_client = client
        yield
    app.state.http_client = None


app = FastAPI(title="Split Image Skill", lifespan=_lifespan)
instrumentator = Instrumentator(should_instrument_requests_inprogress=True)
instrumentator.instrument(app)
try:
    instrumentator.expose(app, include_in_schema=False, should_gzip=True)
except ValueError:  # pragma: no cover - already registered
    LOGGER.debug("Prometheus /metrics endpoint already exposed")


@lru_cache(maxsize=1)
def get_codec() -> ImageCodec:
    """Return the process-wide pyvips codec."""

    return VipsCodec(quality=get_settings().tiling.jpeg_quality)


@app.get("/health", tags=["health"])
async def healthcheck() -> dict[str, str]:
    """Return a simple status useful for smoke tests."""

    return {"status": "ok"}


@app.post(
    f"/{SKILL_NAME}",
    response_model=SkillResponse,
    response_model_by_alias=True,
    dependencies=[Depends(require_api_key)],
)
async def split_image(request: Request, codec: ImageCodec = Depends(get_codec)) -> SkillResponse:
    """Split every record's image into overlapping tiles."""

    invalid = HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=f"{SKILL_NAME} - Invalid request record array.",
    )
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise invalid from exc
    try:
        skill_request = SkillRequest.model_validate(payload)
    except ValidationError as exc:
        raise invalid from exc

    LOGGER.info("%s: processing %s records", SKILL_NAME, len(skill_request.values))
    client = getattr(request.app.state, "http_client", None)
    return await process_request(skill_request, codec=codec, settings=get_settings(), client=client)
