"""
Unit tests for the diagnostic EventMonitor
"""

from types import SimpleNamespace

from mqtt_camera_ftpd.config import MqttConfig
from mqtt_camera_ftpd.events.protocol import TopicKind
from mqtt_camera_ftpd.monitor import EventMonitor, ObservedEvent


class FakeSubscriberClient:
    def __init__(self):
        self.subscriptions = []
        self.on_message = None
        self.on_connect = None

    def subscribe(self, topic, qos=0):
        self.subscriptions.append(topic)


def make_monitor(events, preface="cameras"):
    client = FakeSubscriberClient()
    monitor = EventMonitor(MqttConfig(preface=preface), events.append, client=client)
    return monitor, client


def message(topic, payload, retain=False):
    return SimpleNamespace(topic=topic, payload=payload, retain=retain)


def test_subscribes_to_both_kinds_on_connect():
    monitor, client = make_monitor([])

    monitor._on_connect(client, None, {}, SimpleNamespace(is_failure=False), None)

    assert client.subscriptions == ["cameras/+/motion", "cameras/+/image"]


def test_no_subscription_when_refused():
    monitor, client = make_monitor([])

    monitor._on_connect(client, None, {}, SimpleNamespace(is_failure=True), None)

    assert client.subscriptions == []


def test_bridge_messages_become_events():
    events = []
    monitor, client = make_monitor(events, preface="home/cams")

    monitor._on_message(client, None, message("home/cams/garage/motion", b"active", retain=True))
    monitor._on_message(client, None, message("home/cams/garage/image", b"\xff\xd8"))

    assert events == [
        ObservedEvent("garage", TopicKind.MOTION, b"active", True),
        ObservedEvent("garage", TopicKind.IMAGE, b"\xff\xd8", False),
    ]


def test_foreign_topics_ignored():
    events = []
    monitor, client = make_monitor(events)

    monitor._on_message(client, None, message("cameras/garage/status", b"x"))

    assert events == []


def test_describe():
    assert ObservedEvent("cam1", TopicKind.MOTION, b"inactive", True).describe() == "cam1 motion: inactive [retained]"
    assert ObservedEvent("cam1", TopicKind.IMAGE, b"1234", False).describe() == "cam1 image: 4 bytes"
    assert ObservedEvent("cam1", TopicKind.IMAGE, b"", False).describe() == "cam1 image: (cleared)"
