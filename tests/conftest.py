from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Callable

import pytest

from fakes import FakeCodec
from split_image.settings import (
    FetchSettings,
    LoggingSettings,
    Settings,
    TelemetrySettings,
    TilingSettings,
)


def _settings(tmp_root: Path) -> Settings:
    return Settings(
        env_path=".env",
        tiling=TilingSettings(
            max_tile_dimension=4000,
            tile_overlap_px=100,
            jpeg_quality=75,
            max_concurrency=4,
            record_timeout_s=0.0,
        ),
        fetch=FetchSettings(timeout_s=5.0, max_attempts=3, max_bytes=1_000_000),
        telemetry=TelemetrySettings(prometheus_port=0),
        logging=LoggingSettings(level="INFO", failure_log_path=tmp_root / "failures.jsonl"),
        api_key=None,
    )


@pytest.fixture
def make_settings(tmp_path: Path) -> Callable[..., Settings]:
    """Build a Settings bundle; keyword overrides target the tiling/fetch groups or top-level fields."""

    def _factory(*, tiling: dict | None = None, fetch: dict | None = None, **top_level) -> Settings:
        base = _settings(tmp_path)
        if tiling:
            base = replace(base, tiling=replace(base.tiling, **tiling))
        if fetch:
            base = replace(base, fetch=replace(base.fetch, **fetch))
        return replace(base, **top_level)

    return _factory


@pytest.fixture
def fake_codec() -> FakeCodec:
    return FakeCodec()


@pytest.fixture(autouse=True)
def _isolate_failure_log(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """Keep record failures from writing into the working tree."""

    settings = _settings(tmp_path)
    monkeypatch.setattr("split_image.failure_log.get_settings", lambda: settings)
    return settings.logging.failure_log_path
