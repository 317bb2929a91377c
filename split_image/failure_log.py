"""Append failed skill records to an ops JSONL log."""

from __future__ import annotations

from datetime import datetime, timezone
import json
import logging
from typing import Any

from split_image.errors import CropError, EncodeError, FetchError
from split_image.settings import get_settings

LOGGER = logging.getLogger(__name__)


def _error_details(error: BaseException) -> dict[str, Any]:
    details: dict[str, Any] = {"type": type(error).__name__, "message": str(error)}
    if isinstance(error, (CropError, EncodeError)):
        rect = error.rect
        details["rect"] = {
            "start_x": rect.start_x,
            "end_x": rect.end_x,
            "start_y": rect.start_y,
            "end_y": rect.end_y,
        }
    if isinstance(error, CropError):
        details["image_size"] = list(error.image_size)
    if isinstance(error, FetchError) and error.status_code is not None:
        details["status_code"] = error.status_code
    cause = error.__cause__
    if cause is not None:
        details["cause"] = f"{type(cause).__name__}: {cause}"
    return details


def append_failure_log(*, record_id: str, image_location: str | None, error: BaseException) -> None:
    """Append one JSON line describing a failed record.

    ``image_location`` should already be stripped of credentials. No-op when
    ``FAILURE_LOG_PATH`` is empty. Write failures are logged, never raised.
    """

    log_path = get_settings().logging.failure_log_path
    if log_path is None:
        return

    record = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "record_id": record_id,
        "image_location": image_location,
        "error": _error_details(error),
    }
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        with log_path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(record))
            handle.write("\n")
    except OSError as exc:
        LOGGER.warning("Could not append to failure log %s: %s", log_path, exc)
