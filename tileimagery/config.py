from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from tileimagery.credit import Credit
from tileimagery.errors import ConfigurationError
from tileimagery.geo import TILE_SIZE, Rectangle, WebMercatorTilingScheme
from tileimagery.schemas import ProviderOptions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderConfig:
    base_url: str
    file_extension: str
    tiling_scheme: WebMercatorTilingScheme
    rectangle: Rectangle
    credit: Credit
    minimum_level: int = 0
    maximum_level: Optional[int] = None
    tile_width: int = TILE_SIZE
    tile_height: int = TILE_SIZE
    proxy: Optional[Any] = None
    tile_discard_policy: Optional[Any] = None

    @property
    def url_template(self) -> str:
        return f"{self.base_url}{{z}}/{{x}}/{{y}}.{self.file_extension}"


def normalize_base_url(url: str) -> str:
    return url if url.endswith("/") else url + "/"


def count_tiles_at_level(tiling_scheme: WebMercatorTilingScheme, rectangle: Rectangle, level: int) -> int:
    """Number of tiles spanned by ``rectangle`` at ``level``.

    Only the southwest and northeast corners are located, so the result is
    ``(|dx| + 1) * (|dy| + 1)`` of their tile indices. Corners outside the
    tiling scheme's extent are pulled onto its edge first.
    """
    covered = rectangle.intersection(tiling_scheme.rectangle)
    if covered is None:
        raise ConfigurationError("The imagery provider's rectangle does not overlap the tiling scheme's extent.")
    southwest = tiling_scheme.position_to_tile_xy(covered.southwest(), level)
    northeast = tiling_scheme.position_to_tile_xy(covered.northeast(), level)
    return (abs(northeast.x - southwest.x) + 1) * (abs(northeast.y - southwest.y) + 1)


def build_config(options: Optional[ProviderOptions] = None) -> ProviderConfig:
    options = options or ProviderOptions()

    tiling_scheme = WebMercatorTilingScheme(ellipsoid=options.ellipsoid)
    rectangle = options.rectangle or tiling_scheme.rectangle

    tile_count = count_tiles_at_level(tiling_scheme, rectangle, options.minimum_level)
    if tile_count > options.maximum_tiles_at_minimum_level:
        raise ConfigurationError(
            "The imagery provider's rectangle and minimum_level indicate that there are "
            f"{tile_count} tiles at the minimum level. Imagery providers with more than "
            f"{options.maximum_tiles_at_minimum_level} tiles at the minimum level are not supported."
        )

    config = ProviderConfig(
        base_url=normalize_base_url(options.url),
        file_extension=options.file_extension,
        tiling_scheme=tiling_scheme,
        rectangle=rectangle,
        credit=options.credit,
        minimum_level=options.minimum_level,
        maximum_level=options.maximum_level,
        proxy=options.proxy,
        tile_discard_policy=options.tile_discard_policy,
    )
    logger.debug("Built provider config %s (%d tiles at level %d)", config.url_template, tile_count, config.minimum_level)
    return config
