from __future__ import annotations

from concurrent.futures import Future
from typing import Any, List, Optional

from tileimagery.client import RequestOutcome, TileRequestClient
from tileimagery.config import ProviderConfig
from tileimagery.credit import Credit
from tileimagery.errors import UsageError
from tileimagery.geo import Rectangle, TileCoordinate, WebMercatorTilingScheme
from tileimagery.urls import build_tile_url


class UrlTemplateImageryProvider:
    """Serves tiles whose URLs come from a ``{z}/{x}/{y}`` template."""

    def __init__(self, config: ProviderConfig, client: Optional[TileRequestClient] = None) -> None:
        self._config = config
        self._client = client or TileRequestClient()

    @property
    def config(self) -> ProviderConfig:
        return self._config

    @property
    def url(self) -> str:
        return self._config.url_template

    @property
    def proxy(self) -> Optional[Any]:
        return self._config.proxy

    @property
    def tile_width(self) -> int:
        return self._config.tile_width

    @property
    def tile_height(self) -> int:
        return self._config.tile_height

    @property
    def minimum_level(self) -> int:
        return self._config.minimum_level

    @property
    def maximum_level(self) -> Optional[int]:
        return self._config.maximum_level

    @property
    def tiling_scheme(self) -> WebMercatorTilingScheme:
        return self._config.tiling_scheme

    @property
    def rectangle(self) -> Rectangle:
        return self._config.rectangle

    @property
    def credit(self) -> Credit:
        return self._config.credit

    @property
    def tile_discard_policy(self) -> Optional[Any]:
        return self._config.tile_discard_policy

    @property
    def has_alpha_channel(self) -> bool:
        return True

    @property
    def ready(self) -> bool:
        policy = self._config.tile_discard_policy
        return policy is None or policy.is_ready()

    def _require_ready(self, operation: str) -> None:
        if not self.ready:
            raise UsageError(f"{operation} must not be called before the imagery provider is ready.")

    def tile_url(self, x: int, y: int, level: int) -> str:
        coordinate = TileCoordinate(x, y, level)
        x_tiles = self.tiling_scheme.number_of_x_tiles_at_level(level)
        y_tiles = self.tiling_scheme.number_of_y_tiles_at_level(level)
        if x >= x_tiles or y >= y_tiles:
            raise ValueError(f"Tile ({x}, {y}) is outside the {x_tiles}x{y_tiles} grid at level {level}")
        url = build_tile_url(self._config, coordinate)
        if self._config.proxy is not None:
            url = self._config.proxy.resolve(url)
        return url

    def request_image(self, x: int, y: int, level: int) -> "Future[RequestOutcome]":
        self._require_ready("request_image")
        return self._client.request_image(self.tile_url(x, y, level))

    def get_tile_credits(self, x: int, y: int, level: int) -> List[Credit]:
        self._require_ready("get_tile_credits")
        return []

    def pick_features(self, x: int, y: int, level: int, longitude: float, latitude: float) -> None:
        return None

    def close(self) -> None:
        self._client.close()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(url='{self.url}', minimum_level={self.minimum_level})"
