from __future__ import annotations

from concurrent.futures import Future
from typing import Any, List, Optional

from tileimagery.client import RequestOutcome, TileRequestClient
from tileimagery.config import build_config
from tileimagery.credit import Credit
from tileimagery.geo import Rectangle, WebMercatorTilingScheme
from tileimagery.providers.base import UrlTemplateImageryProvider
from tileimagery.schemas import ProviderOptions


class OpenStreetMapImageryProvider:
    """Tiled imagery from OpenStreetMap or another slippy-map tile server.

    A default-constructed provider talks to OpenStreetMap's volunteer-run
    servers, so callers must respect the OSM tile usage policy.

    Construction validates the options and fails with
    :class:`~tileimagery.errors.ConfigurationError` when the rectangle covers
    more than ``maximum_tiles_at_minimum_level`` tiles at ``minimum_level``.
    All tile operations are forwarded to an owned
    :class:`UrlTemplateImageryProvider`.
    """

    def __init__(self, options: Optional[ProviderOptions] = None, client: Optional[TileRequestClient] = None) -> None:
        config = build_config(options)
        self._url = config.base_url
        self._provider = UrlTemplateImageryProvider(config, client=client)

    @property
    def url(self) -> str:
        return self._url

    @property
    def template_url(self) -> str:
        return self._provider.url

    @property
    def proxy(self) -> Optional[Any]:
        return self._provider.proxy

    @property
    def tile_width(self) -> int:
        return self._provider.tile_width

    @property
    def tile_height(self) -> int:
        return self._provider.tile_height

    @property
    def minimum_level(self) -> int:
        return self._provider.minimum_level

    @property
    def maximum_level(self) -> Optional[int]:
        return self._provider.maximum_level

    @property
    def tiling_scheme(self) -> WebMercatorTilingScheme:
        return self._provider.tiling_scheme

    @property
    def rectangle(self) -> Rectangle:
        return self._provider.rectangle

    @property
    def credit(self) -> Credit:
        return self._provider.credit

    @property
    def tile_discard_policy(self) -> Optional[Any]:
        return self._provider.tile_discard_policy

    @property
    def has_alpha_channel(self) -> bool:
        return self._provider.has_alpha_channel

    @property
    def ready(self) -> bool:
        return self._provider.ready

    def tile_url(self, x: int, y: int, level: int) -> str:
        return self._provider.tile_url(x, y, level)

    def request_image(self, x: int, y: int, level: int) -> "Future[RequestOutcome]":
        """Request the image for tile (x, y, level).

        Returns a future resolving to ``Delivered``, ``Failed`` or, when too
        many requests are already in flight to the server, an immediately
        resolved ``Deferred`` that the caller should retry later.

        Raises ``UsageError`` if the provider is not ready.
        """
        return self._provider.request_image(x, y, level)

    def get_tile_credits(self, x: int, y: int, level: int) -> List[Credit]:
        return self._provider.get_tile_credits(x, y, level)

    def pick_features(self, x: int, y: int, level: int, longitude: float, latitude: float) -> None:
        return self._provider.pick_features(x, y, level, longitude, latitude)

    def close(self) -> None:
        self._provider.close()

    def __repr__(self) -> str:
        return f"OpenStreetMapImageryProvider(url='{self.url}', minimum_level={self.minimum_level})"
