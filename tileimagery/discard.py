from __future__ import annotations

import logging
from concurrent.futures import Future
from typing import Optional, Protocol, Sequence, Tuple, runtime_checkable

import numpy as np
from PIL import Image

from tileimagery.client import Delivered, RequestOutcome, TileRequestClient
from tileimagery.errors import UsageError

logger = logging.getLogger(__name__)


@runtime_checkable
class TileDiscardPolicy(Protocol):
    def is_ready(self) -> bool:
        ...

    def should_discard(self, image: Image.Image) -> bool:
        ...


class NeverTileDiscardPolicy:
    def is_ready(self) -> bool:
        return True

    def should_discard(self, image: Image.Image) -> bool:
        return False


def _sample_pixels(image: Image.Image, pixels: Sequence[Tuple[int, int]]) -> Optional[np.ndarray]:
    array = np.asarray(image.convert("RGBA"))
    height, width = array.shape[:2]
    if any(not (0 <= x < width and 0 <= y < height) for x, y in pixels):
        return None
    xs = np.array([x for x, _ in pixels], dtype=int)
    ys = np.array([y for _, y in pixels], dtype=int)
    return array[ys, xs]


class DiscardMissingTileImagePolicy:
    """Discards tiles that look like the server's "missing tile" placeholder.

    Some servers answer requests for absent tiles with a stock image instead of
    an error. The placeholder is fetched once from ``missing_image_url``; a tile
    is discarded when every pixel listed in ``pixels_to_check`` matches the
    placeholder's pixel at the same position.

    The policy is ready once the placeholder fetch has settled. If the fetch
    fails, or ``disable_check_if_all_pixels_are_transparent`` is set and all
    checked placeholder pixels are fully transparent, nothing is discarded.
    """

    def __init__(
        self,
        missing_image_url: str,
        pixels_to_check: Sequence[Tuple[int, int]],
        disable_check_if_all_pixels_are_transparent: bool = False,
        client: Optional[TileRequestClient] = None,
    ) -> None:
        if not pixels_to_check:
            raise ValueError("pixels_to_check must list at least one (x, y) position")
        self.missing_image_url = missing_image_url
        self.pixels_to_check = [tuple(p) for p in pixels_to_check]
        self.disable_check_if_all_pixels_are_transparent = disable_check_if_all_pixels_are_transparent
        self._missing_pixels: Optional[np.ndarray] = None
        self._ready = False
        self._owned_client = None if client is not None else TileRequestClient()
        self._load: Future = (client or self._owned_client).load_image(missing_image_url)
        self._load.add_done_callback(self._on_loaded)

    def _on_loaded(self, future: "Future[RequestOutcome]") -> None:
        try:
            outcome = future.result()
            if isinstance(outcome, Delivered):
                pixels = _sample_pixels(outcome.image, self.pixels_to_check)
                if pixels is None:
                    logger.warning("Missing tile image %s is smaller than the pixels to check", self.missing_image_url)
                elif self.disable_check_if_all_pixels_are_transparent and not pixels[:, 3].any():
                    pixels = None
                self._missing_pixels = pixels
            else:
                logger.warning("Could not load missing tile image %s: %s", self.missing_image_url, outcome)
        finally:
            # Runs on the client's own worker, so its pool cannot be joined here.
            if self._owned_client is not None:
                self._owned_client.close(wait=False)
            self._ready = True

    def is_ready(self) -> bool:
        return self._ready

    def should_discard(self, image: Image.Image) -> bool:
        if not self._ready:
            raise UsageError("should_discard must not be called before the discard policy is ready.")
        if self._missing_pixels is None:
            return False
        pixels = _sample_pixels(image, self.pixels_to_check)
        if pixels is None:
            return False
        return bool(np.array_equal(pixels, self._missing_pixels))
