import threading
import time

import pytest
from conftest import FakeSession, png_bytes
from PIL import Image

from tileimagery.client import TileRequestClient
from tileimagery.discard import DiscardMissingTileImagePolicy, NeverTileDiscardPolicy, TileDiscardPolicy
from tileimagery.errors import UsageError

MISSING = "https://tiles.example.com/missing.png"
PIXELS = [(0, 0), (120, 140), (255, 255)]


def settled_policy(body, status=200, **kwargs):
    client = TileRequestClient(session=FakeSession({MISSING: (status, body)}))
    policy = DiscardMissingTileImagePolicy(MISSING, PIXELS, client=client, **kwargs)
    client.close()
    return policy


def test_never_policy():
    policy = NeverTileDiscardPolicy()
    assert isinstance(policy, TileDiscardPolicy)
    assert policy.is_ready()
    assert not policy.should_discard(Image.new("RGB", (256, 256)))


def test_discards_tiles_matching_missing_image():
    policy = settled_policy(png_bytes((200, 200, 200, 255)))
    assert policy.is_ready()
    assert policy.should_discard(Image.new("RGBA", (256, 256), (200, 200, 200, 255)))
    assert not policy.should_discard(Image.new("RGBA", (256, 256), (10, 200, 200, 255)))


def test_tile_too_small_is_kept():
    policy = settled_policy(png_bytes((200, 200, 200, 255)))
    assert not policy.should_discard(Image.new("RGBA", (64, 64), (200, 200, 200, 255)))


def test_failed_missing_image_disables_discarding():
    policy = settled_policy(b"", status=404)
    assert policy.is_ready()
    assert not policy.should_discard(Image.new("RGBA", (256, 256)))


def test_transparent_missing_image_can_disable_check():
    transparent = png_bytes((0, 0, 0, 0))
    policy = settled_policy(transparent, disable_check_if_all_pixels_are_transparent=True)
    assert not policy.should_discard(Image.new("RGBA", (256, 256), (0, 0, 0, 0)))

    strict = settled_policy(transparent)
    assert strict.should_discard(Image.new("RGBA", (256, 256), (0, 0, 0, 0)))


def test_not_ready_until_missing_image_loads():
    gate = threading.Event()
    client = TileRequestClient(session=FakeSession({MISSING: (200, png_bytes())}, gate=gate))
    policy = DiscardMissingTileImagePolicy(MISSING, PIXELS, client=client)
    assert not policy.is_ready()
    with pytest.raises(UsageError):
        policy.should_discard(Image.new("RGBA", (256, 256)))
    gate.set()
    client.close()
    assert policy.is_ready()


def test_requires_pixels():
    with pytest.raises(ValueError):
        DiscardMissingTileImagePolicy(MISSING, [], client=TileRequestClient(session=FakeSession()))


class RecordingClient(TileRequestClient):
    instances = []

    def __init__(self):
        super().__init__(session=FakeSession({MISSING: (200, png_bytes())}))
        self.closed = False
        RecordingClient.instances.append(self)

    def close(self, wait=True):
        self.closed = True
        super().close(wait=wait)


def wait_until_ready(policy, timeout=5.0):
    deadline = time.monotonic() + timeout
    while not policy.is_ready() and time.monotonic() < deadline:
        time.sleep(0.01)
    return policy.is_ready()


def test_policy_closes_the_client_it_creates(monkeypatch):
    RecordingClient.instances = []
    monkeypatch.setattr("tileimagery.discard.TileRequestClient", RecordingClient)
    policy = DiscardMissingTileImagePolicy(MISSING, PIXELS)
    assert wait_until_ready(policy)
    [client] = RecordingClient.instances
    assert client.closed
    assert policy.should_discard(Image.new("RGBA", (256, 256), (255, 0, 0, 255)))


def test_policy_leaves_an_injected_client_open():
    client = RecordingClient()
    policy = DiscardMissingTileImagePolicy(MISSING, PIXELS, client=client)
    assert wait_until_ready(policy)
    assert not client.closed
    client.close()
