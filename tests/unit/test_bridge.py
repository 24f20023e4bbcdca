"""
Unit tests for CameraBridge startup and shutdown

The FTP server binds to an ephemeral port on 127.0.0.1; the broker is faked.
"""

import threading
from dataclasses import dataclass

import pytest

from mqtt_camera_ftpd.bridge import CameraBridge
from mqtt_camera_ftpd.broker import BrokerConnectionError
from mqtt_camera_ftpd.config import BridgeConfig


@dataclass
class FakePublishResult:
    rc: int = 0


class FakeBrokerConnection:
    """Stands in for BrokerConnection (connect/publish/disconnect)."""

    def __init__(self, reachable=True):
        self.host = "broker.lan"
        self.port = 1883
        self.reachable = reachable
        self.connected = False
        self.published = []

    def connect(self, timeout=10.0):
        self.connected = self.reachable
        return self.reachable

    def publish(self, topic, payload, qos=0, retain=False):
        self.published.append((topic, payload, qos, retain))
        return FakePublishResult()

    def disconnect(self):
        self.connected = False


@pytest.fixture
def config():
    return BridgeConfig(port=0, address="127.0.0.1")


@pytest.fixture
def broker():
    return FakeBrokerConnection()


@pytest.fixture
def bridge(config, broker):
    bridge = CameraBridge(config, broker=broker)
    yield bridge
    if bridge.server is not None and not bridge._stop.is_set():
        bridge.stop()
        bridge.serve_forever(poll_interval=0.01)


def test_unreachable_broker_aborts_startup(config):
    bridge = CameraBridge(config, broker=FakeBrokerConnection(reachable=False))

    with pytest.raises(BrokerConnectionError, match="broker.lan:1883"):
        bridge.start()

    assert bridge.server is None
    bridge.ioloop.close()


def test_start_binds_ftp_after_broker(bridge, broker):
    bridge.start()

    assert broker.connected
    assert bridge.port > 0
    assert bridge.publisher.preface == "cameras"


def test_serve_forever_requires_start(bridge):
    with pytest.raises(RuntimeError):
        bridge.serve_forever()
    bridge.ioloop.close()


def test_shutdown_flushes_pending_motion(bridge, broker):
    bridge.start()
    bridge.debouncer.on_upload("cam1", b"jpeg")

    bridge.stop()
    bridge.serve_forever(poll_interval=0.01)

    assert broker.published[-2:] == [
        ("cameras/cam1/motion", "inactive", 0, True),
        ("cameras/cam1/image", b"", 0, True),
    ]
    assert not broker.connected


def test_stop_from_another_thread(bridge, broker):
    bridge.start()
    thread = threading.Thread(target=bridge.serve_forever, kwargs={"poll_interval": 0.05})
    thread.start()

    bridge.stop()
    thread.join(timeout=5)

    assert not thread.is_alive()
    assert not broker.connected
