from __future__ import annotations

from typing import Optional

from tileimagery.client import TileRequestClient
from tileimagery.providers.base import UrlTemplateImageryProvider
from tileimagery.providers.osm import OpenStreetMapImageryProvider
from tileimagery.schemas import ProviderOptions

__all__ = ["OpenStreetMapImageryProvider", "UrlTemplateImageryProvider", "build_provider"]


def build_provider(
    options: Optional[ProviderOptions] = None,
    client: Optional[TileRequestClient] = None,
) -> OpenStreetMapImageryProvider:
    return OpenStreetMapImageryProvider(options, client=client)
