from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError

from tileimagery.client import DEFAULT_USER_AGENT, Deferred, Delivered, TileRequestClient
from tileimagery.config import build_config, count_tiles_at_level
from tileimagery.errors import ConfigurationError
from tileimagery.geo import Rectangle, TileCoordinate
from tileimagery.providers import build_provider
from tileimagery.schemas import DEFAULT_URL, ProviderOptions
from tileimagery.urls import build_tile_url

app = typer.Typer(help="Build, validate and fetch slippy-map tiles from an OpenStreetMap-style server.")


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)


def _parse_rectangle(value: Optional[str]) -> Optional[Rectangle]:
    if not value:
        return None
    try:
        west, south, east, north = (float(part) for part in value.split(","))
        return Rectangle.from_degrees(west, south, east, north)
    except ValueError as exc:
        raise typer.BadParameter(f"--rectangle must be W,S,E,N in degrees ({exc})")


def _build_options(
    url: str,
    ext: str,
    minimum_level: int = 0,
    maximum_level: Optional[int] = None,
    rectangle: Optional[str] = None,
) -> ProviderOptions:
    try:
        return ProviderOptions(
            url=url,
            file_extension=ext,
            minimum_level=minimum_level,
            maximum_level=maximum_level,
            rectangle=_parse_rectangle(rectangle),
        )
    except ValidationError as exc:
        typer.echo(f"Invalid options: {exc}", err=True)
        raise typer.Exit(code=1)


@app.command()
def url(
    x: int = typer.Argument(...),
    y: int = typer.Argument(...),
    level: int = typer.Argument(...),
    server: str = typer.Option(DEFAULT_URL, "--url"),
    ext: str = typer.Option("png", "--ext"),
) -> None:
    """Print the tile URL for X Y LEVEL."""
    config = build_config(_build_options(server, ext))
    typer.echo(build_tile_url(config, TileCoordinate(x, y, level)))


@app.command()
def validate(
    server: str = typer.Option(DEFAULT_URL, "--url"),
    ext: str = typer.Option("png", "--ext"),
    minimum_level: int = typer.Option(0, "--minimum-level"),
    maximum_level: Optional[int] = typer.Option(None, "--maximum-level"),
    rectangle: Optional[str] = typer.Option(None, "--rectangle", help="W,S,E,N in degrees."),
    verbose: bool = typer.Option(False, "--verbose"),
) -> None:
    _setup_logging(verbose)
    options = _build_options(server, ext, minimum_level, maximum_level, rectangle)
    try:
        config = build_config(options)
    except ConfigurationError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1)
    tiles = count_tiles_at_level(config.tiling_scheme, config.rectangle, config.minimum_level)
    typer.echo("Valid configuration")
    typer.echo(f"{tiles} tile(s) at level {config.minimum_level}: {config.url_template}")


@app.command()
def fetch(
    x: int = typer.Argument(...),
    y: int = typer.Argument(...),
    level: int = typer.Argument(...),
    out: Path = typer.Option(..., "--out"),
    server: str = typer.Option(DEFAULT_URL, "--url"),
    ext: str = typer.Option("png", "--ext"),
    user_agent: str = typer.Option(DEFAULT_USER_AGENT, "--user-agent"),
    timeout: float = typer.Option(10.0, "--timeout"),
    verbose: bool = typer.Option(False, "--verbose"),
) -> None:
    _setup_logging(verbose)
    client = TileRequestClient(timeout=timeout, user_agent=user_agent)
    provider = build_provider(_build_options(server, ext), client=client)
    try:
        if verbose:
            typer.echo(f"Fetching {provider.tile_url(x, y, level)}")
        outcome = provider.request_image(x, y, level).result()
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    finally:
        provider.close()

    if isinstance(outcome, Deferred):
        typer.echo("Too many requests in flight; try again later.", err=True)
        raise typer.Exit(code=2)
    if not isinstance(outcome, Delivered):
        typer.echo(f"Failed to fetch tile {level}/{x}/{y}: {outcome.reason}", err=True)
        raise typer.Exit(code=1)

    out.parent.mkdir(parents=True, exist_ok=True)
    outcome.image.save(out)
    typer.echo(f"Saved {out}")
    typer.echo(provider.credit.text)
