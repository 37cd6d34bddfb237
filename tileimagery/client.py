from __future__ import annotations

import io
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, Optional, Union

import requests
from PIL import Image

from tileimagery.throttle import RequestThrottle, default_throttle, server_key

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "tileimagery/0.1 (+https://wiki.openstreetmap.org/wiki/Tile_usage_policy)"


@dataclass(frozen=True)
class Delivered:
    image: Image.Image


@dataclass(frozen=True)
class Deferred:
    pass


@dataclass(frozen=True)
class Failed:
    reason: str


RequestOutcome = Union[Delivered, Deferred, Failed]


def _resolved(outcome: RequestOutcome) -> "Future[RequestOutcome]":
    future: Future = Future()
    future.set_result(outcome)
    return future


class TileRequestClient:
    """Fetches tile images on worker pools behind a shared request throttle.

    Every call returns a :class:`concurrent.futures.Future` resolving to a
    :data:`RequestOutcome`. When the throttle has no free slot for the target
    server the future is already resolved with :class:`Deferred` and nothing
    was sent; retrying is up to the caller.

    Throttled fetches run on one pool per server, sized to the throttle's
    per-server cap, so a request that holds a slot always has a worker.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        throttle: Optional[RequestThrottle] = None,
        timeout: float = 10.0,
        user_agent: str = DEFAULT_USER_AGENT,
        default_scheme: str = "https",
        max_workers: Optional[int] = None,
    ) -> None:
        self._owns_session = session is None
        self.session = session or requests.Session()
        self.throttle = throttle or default_throttle
        self.timeout = timeout
        self.user_agent = user_agent
        self.default_scheme = default_scheme
        self._server_pools: Dict[str, ThreadPoolExecutor] = {}
        self._pools_lock = threading.Lock()
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or self.throttle.maximum_requests_per_server,
            thread_name_prefix="tileimagery-load",
        )

    def request_image(self, url: str) -> "Future[RequestOutcome]":
        if not self.throttle.try_acquire(url):
            logger.debug("Too many requests in flight, deferring %s", url)
            return _resolved(Deferred())
        try:
            return self._server_pool(url).submit(self._fetch_and_release, url)
        except RuntimeError:
            self.throttle.release(url)
            raise

    def load_image(self, url: str) -> "Future[RequestOutcome]":
        return self._executor.submit(self._fetch, url)

    def close(self, wait: bool = True) -> None:
        with self._pools_lock:
            pools = list(self._server_pools.values())
        for pool in pools + [self._executor]:
            pool.shutdown(wait=wait)
        if self._owns_session:
            self.session.close()

    def __enter__(self) -> "TileRequestClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _server_pool(self, url: str) -> ThreadPoolExecutor:
        key = server_key(self._absolute(url))
        with self._pools_lock:
            pool = self._server_pools.get(key)
            if pool is None:
                pool = ThreadPoolExecutor(
                    max_workers=self.throttle.maximum_requests_per_server,
                    thread_name_prefix=f"tileimagery-{key}",
                )
                self._server_pools[key] = pool
            return pool

    def _absolute(self, url: str) -> str:
        if url.startswith("//"):
            return f"{self.default_scheme}:{url}"
        return url

    def _fetch_and_release(self, url: str) -> RequestOutcome:
        try:
            return self._fetch(url)
        finally:
            self.throttle.release(url)

    def _fetch(self, url: str) -> RequestOutcome:
        try:
            response = self.session.get(
                self._absolute(url),
                timeout=self.timeout,
                headers={"User-Agent": self.user_agent},
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("Tile request failed for %s: %s", url, exc)
            return Failed(f"request failed: {exc}")

        if not response.content:
            logger.warning("Tile request for %s returned an empty body", url)
            return Failed("empty response body")

        try:
            image = Image.open(io.BytesIO(response.content))
            image.load()
        except (OSError, ValueError, Image.DecompressionBombError) as exc:
            logger.warning("Could not decode tile image from %s: %s", url, exc)
            return Failed(f"malformed image: {exc}")
        return Delivered(image)
