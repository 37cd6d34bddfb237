import threading

from conftest import FailingSession, FakeSession, png_bytes

from tileimagery.client import Deferred, Delivered, Failed, TileRequestClient
from tileimagery.throttle import RequestThrottle

TILE = "https://a.tile.openstreetmap.org/3/1/2.png"


def make_client(session, limit=6):
    return TileRequestClient(session=session, throttle=RequestThrottle(maximum_requests_per_server=limit))


def test_delivers_decoded_image():
    session = FakeSession({TILE: (200, png_bytes())})
    with make_client(session) as client:
        outcome = client.request_image(TILE).result(timeout=5)
        assert isinstance(outcome, Delivered)
        assert outcome.image.size == (256, 256)
        assert client.throttle.active_requests(TILE) == 0
    assert session.headers[0]["User-Agent"]


def test_protocol_relative_urls_use_default_scheme():
    session = FakeSession({TILE: (200, png_bytes())})
    with make_client(session) as client:
        outcome = client.request_image("//a.tile.openstreetmap.org/3/1/2.png").result(timeout=5)
    assert isinstance(outcome, Delivered)
    assert session.calls == [TILE]


def test_non_2xx_is_failed():
    session = FakeSession({TILE: (503, b"busy")})
    with make_client(session) as client:
        outcome = client.request_image(TILE).result(timeout=5)
        assert isinstance(outcome, Failed)
        assert "503" in outcome.reason
        assert client.throttle.active_requests(TILE) == 0


def test_malformed_payload_is_failed():
    session = FakeSession({TILE: (200, b"<html>not an image</html>")})
    with make_client(session) as client:
        outcome = client.request_image(TILE).result(timeout=5)
    assert isinstance(outcome, Failed)
    assert outcome.reason.startswith("malformed image")


def test_empty_body_is_failed():
    session = FakeSession({TILE: (200, b"")})
    with make_client(session) as client:
        outcome = client.request_image(TILE).result(timeout=5)
    assert outcome == Failed("empty response body")


def test_transport_error_is_failed():
    session = FailingSession()
    with make_client(session) as client:
        outcome = client.request_image(TILE).result(timeout=5)
        assert isinstance(outcome, Failed)
        assert "connection refused" in outcome.reason
        assert client.throttle.active_requests(TILE) == 0


def test_saturated_throttle_defers_without_io():
    gate = threading.Event()
    session = FakeSession({TILE: (200, png_bytes())}, gate=gate)
    with make_client(session, limit=1) as client:
        first = client.request_image(TILE)
        second = client.request_image(TILE)
        assert second.done()
        assert isinstance(second.result(), Deferred)
        gate.set()
        assert isinstance(first.result(timeout=5), Delivered)
    assert len(session.calls) == 1


def test_slot_is_held_for_request_lifetime():
    gate = threading.Event()
    session = FakeSession({TILE: (200, png_bytes())}, gate=gate)
    with make_client(session, limit=2) as client:
        future = client.request_image(TILE)
        assert client.throttle.active_requests(TILE) == 1
        gate.set()
        future.result(timeout=5)
        assert client.throttle.active_requests(TILE) == 0


def test_load_image_ignores_throttle():
    session = FakeSession({TILE: (200, png_bytes())})
    with make_client(session, limit=1) as client:
        assert client.throttle.try_acquire(TILE)
        outcome = client.load_image(TILE).result(timeout=5)
        assert isinstance(outcome, Delivered)


class BlockingServerSession(FakeSession):
    """Holds every request to ``blocked_host`` until ``release`` is set."""

    def __init__(self, responses, blocked_host, release):
        super().__init__(responses)
        self.blocked_host = blocked_host
        self.release = release

    def get(self, url, timeout=None, headers=None):
        if self.blocked_host in url:
            self.release.wait(timeout=5)
        return super().get(url, timeout=timeout, headers=headers)


def test_busy_server_does_not_hold_up_another_server():
    release = threading.Event()
    other_tiles = [f"https://b.example.com/0/0/{i}.png" for i in range(6)]
    session = BlockingServerSession({url: (200, png_bytes()) for url in other_tiles}, "a.example.com", release)
    with make_client(session, limit=6) as client:
        blocked = [client.request_image(f"https://a.example.com/0/0/{i}.png") for i in range(6)]
        assert client.throttle.active_requests("https://a.example.com/") == 6
        other = [client.request_image(url) for url in other_tiles]
        for future in other:
            assert isinstance(future.result(timeout=5), Delivered)
        assert sorted(url for url in session.calls if "b.example.com" in url) == sorted(other_tiles)
        assert client.throttle.active_requests("https://b.example.com/") == 0
        assert not any(future.done() for future in blocked)
        release.set()
        for future in blocked:
            assert isinstance(future.result(timeout=5), Failed)
