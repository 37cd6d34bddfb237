from __future__ import annotations

import threading
from collections import defaultdict
from typing import Dict
from urllib.parse import urlsplit

MAXIMUM_REQUESTS_PER_SERVER = 6


def server_key(url: str) -> str:
    """Authority (``host[:port]``) a request for ``url`` will be sent to."""
    netloc = urlsplit(url).netloc
    return netloc.lower() if netloc else url


class RequestThrottle:
    """Caps how many requests may be in flight to one server at a time.

    ``try_acquire`` never blocks or queues: when the server is saturated it
    simply answers ``False`` and the caller decides when to try again.
    """

    def __init__(self, maximum_requests_per_server: int = MAXIMUM_REQUESTS_PER_SERVER) -> None:
        if maximum_requests_per_server < 1:
            raise ValueError("maximum_requests_per_server must be at least 1")
        self.maximum_requests_per_server = maximum_requests_per_server
        self._active: Dict[str, int] = defaultdict(int)
        self._lock = threading.Lock()

    def try_acquire(self, url: str) -> bool:
        key = server_key(url)
        with self._lock:
            if self._active[key] >= self.maximum_requests_per_server:
                return False
            self._active[key] += 1
            return True

    def release(self, url: str) -> None:
        key = server_key(url)
        with self._lock:
            if self._active.get(key, 0) <= 0:
                raise RuntimeError(f"release() without a matching acquire for {key}")
            self._active[key] -= 1
            if self._active[key] == 0:
                del self._active[key]

    def active_requests(self, url: str) -> int:
        with self._lock:
            return self._active.get(server_key(url), 0)


default_throttle = RequestThrottle()
