"""Configuration helpers bound to python-decouple."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from decouple import Config as DecoupleConfig, RepositoryEmpty, RepositoryEnv

from split_image.errors import InvalidConfiguration


def load_config(env_path: str = ".env") -> DecoupleConfig:
    """Return a decouple config object anchored to the repository .env file.

    Environment variables always win; the .env file is optional.
    """

    if Path(env_path).exists():
        return DecoupleConfig(RepositoryEnv(env_path))
    return DecoupleConfig(RepositoryEmpty())


@dataclass(frozen=True, slots=True)
class TilingSettings:
    max_tile_dimension: int
    tile_overlap_px: int
    jpeg_quality: int
    max_concurrency: int
    record_timeout_s: float


@dataclass(frozen=True, slots=True)
class FetchSettings:
    timeout_s: float
    max_attempts: int
    max_bytes: int


@dataclass(frozen=True, slots=True)
class TelemetrySettings:
    prometheus_port: int


@dataclass(frozen=True, slots=True)
class LoggingSettings:
    level: str
    failure_log_path: Path | None


@dataclass(frozen=True, slots=True)
class Settings:
    """Top-level settings bundle handed to the service and CLI."""

    env_path: str
    tiling: TilingSettings
    fetch: FetchSettings
    telemetry: TelemetrySettings
    logging: LoggingSettings
    api_key: str | None = None


def _validate(tiling: TilingSettings, fetch: FetchSettings) -> None:
    if tiling.max_tile_dimension < 1:
        raise InvalidConfiguration(
            f"SPLIT_MAX_TILE_DIMENSION must be positive, got {tiling.max_tile_dimension}"
        )
    if not 0 <= tiling.tile_overlap_px < tiling.max_tile_dimension:
        raise InvalidConfiguration(
            "SPLIT_TILE_OVERLAP_PX must satisfy 0 <= overlap < max tile dimension "
            f"(overlap={tiling.tile_overlap_px}, max={tiling.max_tile_dimension})"
        )
    if not 1 <= tiling.jpeg_quality <= 100:
        raise InvalidConfiguration(f"SPLIT_JPEG_QUALITY must be within 1-100, got {tiling.jpeg_quality}")
    if tiling.max_concurrency < 1:
        raise InvalidConfiguration(f"SPLIT_MAX_CONCURRENCY must be >= 1, got {tiling.max_concurrency}")
    if fetch.max_attempts < 1:
        raise InvalidConfiguration(f"FETCH_MAX_ATTEMPTS must be >= 1, got {fetch.max_attempts}")


def build_settings(env_path: str = ".env") -> Settings:
    """Read every setting from the environment (and optional .env file)."""

    config = load_config(env_path)

    tiling = TilingSettings(
        max_tile_dimension=config("SPLIT_MAX_TILE_DIMENSION", default=4000, cast=int),
        tile_overlap_px=config("SPLIT_TILE_OVERLAP_PX", default=100, cast=int),
        jpeg_quality=config("SPLIT_JPEG_QUALITY", default=75, cast=int),
        max_concurrency=config("SPLIT_MAX_CONCURRENCY", default=4, cast=int),
        record_timeout_s=config("SPLIT_RECORD_TIMEOUT_S", default=0.0, cast=float),
    )
    fetch = FetchSettings(
        timeout_s=config("FETCH_TIMEOUT_S", default=60.0, cast=float),
        max_attempts=config("FETCH_MAX_ATTEMPTS", default=3, cast=int),
        max_bytes=config("FETCH_MAX_BYTES", default=100_000_000, cast=int),
    )
    _validate(tiling, fetch)

    failure_log = config("FAILURE_LOG_PATH", default="ops/split_failures.jsonl")
    api_key = config("SKILL_API_KEY", default="") or None

    return Settings(
        env_path=env_path,
        tiling=tiling,
        fetch=fetch,
        telemetry=TelemetrySettings(prometheus_port=config("PROMETHEUS_PORT", default=0, cast=int)),
        logging=LoggingSettings(
            level=config("LOG_LEVEL", default="INFO").upper(),
            failure_log_path=Path(failure_log) if failure_log else None,
        ),
        api_key=api_key,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the cached settings singleton."""

    return build_settings()

