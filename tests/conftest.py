import io
import threading
from typing import Dict, List, Optional, Tuple

import pytest
import requests
from PIL import Image


def png_bytes(color=(255, 0, 0, 255), size=(256, 256)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGBA", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


class FakeSession:
    """Stands in for requests.Session, answering from a url -> (status, body) map."""

    def __init__(self, responses: Optional[Dict[str, Tuple[int, bytes]]] = None, gate: Optional[threading.Event] = None):
        self.responses = responses or {}
        self.gate = gate
        self.calls: List[str] = []
        self.headers: List[dict] = []

    def get(self, url, timeout=None, headers=None):
        self.calls.append(url)
        self.headers.append(headers or {})
        if self.gate is not None:
            self.gate.wait(timeout=5)
        status, body = self.responses.get(url, (404, b""))
        response = requests.Response()
        response.status_code = status
        response._content = body
        response.url = url
        return response

    def close(self):
        pass


class FailingSession(FakeSession):
    def get(self, url, timeout=None, headers=None):
        self.calls.append(url)
        raise requests.ConnectionError("connection refused")


@pytest.fixture
def red_png():
    return png_bytes()
