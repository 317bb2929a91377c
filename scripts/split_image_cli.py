#!/usr/bin/env python3
"""Command-line helpers for planning and splitting images locally."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from split_image.codec import VipsCodec
from split_image.errors import SplitImageError
from split_image.fetch import fetch_image_bytes
from split_image.planner import count_tiles, plan_tiles
from split_image.settings import Settings, get_settings
from split_image.tiler import split_image_bytes, validate_tiles
from split_image.uri import combine_sas_token_with_uri

console = Console()
cli = typer.Typer(help="Split large images into overlapping, size-capped JPEG tiles.")


def _resolve_settings() -> Settings:
    return get_settings()


def _read_source(source: str, sas_token: Optional[str], settings: Settings) -> bytes:
    if source.startswith(("http://", "https://")):
        url = combine_sas_token_with_uri(source, sas_token)
        return asyncio.run(fetch_image_bytes(url, settings=settings))
    path = Path(source)
    if not path.is_file():
        raise typer.BadParameter(f"{source} is neither a file nor an http(s) URL", param_hint="SOURCE")
    return path.read_bytes()


@cli.command()
def plan(
    width: int = typer.Argument(..., help="Image width in pixels"),
    height: int = typer.Argument(..., help="Image height in pixels"),
    max_dim: Optional[int] = typer.Option(None, "--max-dim", help="Maximum tile side (defaults to settings)"),
    overlap: Optional[int] = typer.Option(None, "--overlap", help="Overlap in pixels (defaults to settings)"),
    as_json: bool = typer.Option(False, "--json", help="Emit rectangles as JSON"),
) -> None:
    """Print the tile rectangles for an image of the given size."""

    tiling = _resolve_settings().tiling
    max_dim = max_dim if max_dim is not None else tiling.max_tile_dimension
    overlap = overlap if overlap is not None else tiling.tile_overlap_px
    try:
        total = count_tiles(width, height, max_dim=max_dim, overlap=overlap)
        rects = list(plan_tiles(width, height, max_dim=max_dim, overlap=overlap))
    except SplitImageError as exc:
        console.print(f"[red]{escape(str(exc))}[/]")
        raise typer.Exit(1) from exc

    if as_json:
        payload = [
            {"start_x": r.start_x, "end_x": r.end_x, "start_y": r.start_y, "end_y": r.end_y}
            for r in rects
        ]
        console.print_json(json.dumps(payload))
        return

    table = Table("#", "x", "y", "Width", "Height", title=f"{width}x{height} → {total} tiles")
    for index, rect in enumerate(rects):
        table.add_row(
            str(index),
            f"{rect.start_x}–{rect.end_x}",
            f"{rect.start_y}–{rect.end_y}",
            str(rect.width),
            str(rect.height),
        )
    console.print(table)


@cli.command()
def split(
    source: str = typer.Argument(..., help="Image file path or http(s) URL"),
    out: Path = typer.Option(Path("tiles"), "--out", "-o", help="Directory for the JPEG tiles"),
    sas_token: Optional[str] = typer.Option(None, "--sas-token", help="Query-string token merged into URLs"),
    max_dim: Optional[int] = typer.Option(None, "--max-dim", help="Maximum tile side (defaults to settings)"),
    overlap: Optional[int] = typer.Option(None, "--overlap", help="Overlap in pixels (defaults to settings)"),
) -> None:
    """Split SOURCE into tiles and write them plus a manifest.json to --out."""

    settings = _resolve_settings()
    tiling = settings.tiling
    max_dim = max_dim if max_dim is not None else tiling.max_tile_dimension
    overlap = overlap if overlap is not None else tiling.tile_overlap_px

    try:
        image_bytes = _read_source(source, sas_token, settings)
        tiles = asyncio.run(
            split_image_bytes(
                image_bytes,
                codec=VipsCodec(quality=tiling.jpeg_quality),
                max_dim=max_dim,
                overlap=overlap,
                max_concurrency=tiling.max_concurrency,
            )
        )
        validate_tiles(tiles)
    except SplitImageError as exc:
        console.print(f"[red]{escape(str(exc))}[/]")
        raise typer.Exit(1) from exc

    out.mkdir(parents=True, exist_ok=True)
    manifest = []
    table = Table("#", "File", "Origin", "Size", "Bytes", title=f"{len(tiles)} tiles → {out}")
    for tile in tiles:
        assert tile.rect is not None
        name = f"tile_{tile.index:03d}_x{tile.rect.start_x}_y{tile.rect.start_y}.jpg"
        (out / name).write_bytes(tile.payload)
        manifest.append(
            {
                "index": tile.index,
                "file": name,
                "start_x": tile.rect.start_x,
                "end_x": tile.rect.end_x,
                "start_y": tile.rect.start_y,
                "end_y": tile.rect.end_y,
                "width": tile.width,
                "height": tile.height,
                "sha256": tile.sha256,
            }
        )
        table.add_row(
            str(tile.index),
            name,
            f"({tile.rect.start_x}, {tile.rect.start_y})",
            f"{tile.width}x{tile.height}",
            str(len(tile.payload)),
        )
    (out / "manifest.json").write_text(json.dumps(manifest, indent=2), encoding="utf-8")
    console.print(table)


@cli.command("merge-uri")
def merge_uri(
    uri: str = typer.Argument(..., help="Base image URI"),
    sas_token: str = typer.Argument("", help="Token query string, e.g. 'sv=...&sig=...'"),
) -> None:
    """Print URI with the token's query parameters merged in."""

    console.print(combine_sas_token_with_uri(uri, sas_token), soft_wrap=True, highlight=False, markup=False)


if __name__ == "__main__":
    cli()
