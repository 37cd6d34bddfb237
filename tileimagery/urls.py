from __future__ import annotations

import re
from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable
from urllib.parse import quote

from tileimagery.geo import TileCoordinate, WebMercatorTilingScheme

if TYPE_CHECKING:
    from tileimagery.config import ProviderConfig

TEMPLATE_TAG = re.compile(r"\{(z|x|y|reverseX|reverseY)\}")


@runtime_checkable
class Proxy(Protocol):
    def resolve(self, url: str) -> str:
        ...


class DefaultProxy:
    """Routes every request through ``proxy`` with the target URL as the query string."""

    def __init__(self, proxy: str) -> None:
        self.proxy = proxy

    def resolve(self, url: str) -> str:
        return f"{self.proxy}?{quote(url, safe='')}"

    def __repr__(self) -> str:
        return f"DefaultProxy(proxy={self.proxy!r})"


def expand_url_template(
    template: str,
    coordinate: TileCoordinate,
    tiling_scheme: Optional[WebMercatorTilingScheme] = None,
) -> str:
    def replace(match: re.Match) -> str:
        tag = match.group(1)
        if tag == "z":
            return str(coordinate.level)
        if tag == "x":
            return str(coordinate.x)
        if tag == "y":
            return str(coordinate.y)
        if tiling_scheme is None:
            return match.group(0)
        if tag == "reverseX":
            return str(tiling_scheme.number_of_x_tiles_at_level(coordinate.level) - coordinate.x - 1)
        return str(tiling_scheme.number_of_y_tiles_at_level(coordinate.level) - coordinate.y - 1)

    return TEMPLATE_TAG.sub(replace, template)


def build_tile_url(config: ProviderConfig, coordinate: TileCoordinate) -> str:
    """Tile URL ``<base_url><level>/<x>/<y>.<file_extension>`` for ``coordinate``.

    Pure: no proxying, no I/O. Proxies are applied by the provider when it
    issues the request.
    """
    return expand_url_template(config.url_template, coordinate, config.tiling_scheme)
