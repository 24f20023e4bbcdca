"""
Event Monitor
=============

Diagnostic MQTT subscriber printing what the bridge publishes.
"""

from dataclasses import dataclass
from threading import Thread
from typing import Callable, Optional

import paho.mqtt.client as mqtt

from mqtt_camera_ftpd.config import MqttConfig
from mqtt_camera_ftpd.events.protocol import (
    TopicKind,
    parse_device_topic,
    subscription_for_kind,
)
from mqtt_camera_ftpd.logging_utils import get_component_logger

logger = get_component_logger(__name__, "monitor")


@dataclass
class ObservedEvent:
    """One message seen on a bridge topic"""

    device_id: str
    kind: TopicKind
    payload: bytes
    retained: bool

    def describe(self) -> str:
        if self.kind is TopicKind.MOTION:
            value = self.payload.decode("utf-8", errors="replace")
        elif self.payload:
            value = f"{len(self.payload)} bytes"
        else:
            value = "(cleared)"
        suffix = " [retained]" if self.retained else ""
        return f"{self.device_id} {self.kind.value}: {value}{suffix}"


class EventMonitor(Thread):
    """
    Background thread subscribed to every device's motion and image topics.

    Args:
        config: MqttConfig (broker address, preface, credentials)
        on_event: Called with each ObservedEvent

    Example:
        >>> monitor = EventMonitor(config.mqtt, lambda e: print(e.describe()))
        >>> monitor.start()
        >>> # ... later ...
        >>> monitor.stop()
    """

    def __init__(
        self,
        config: MqttConfig,
        on_event: Callable[[ObservedEvent], None],
        client: Optional[mqtt.Client] = None,
    ):
        super().__init__(daemon=True)
        self.config = config
        self.on_event = on_event
        self.client = client or mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=f"{config.client_id}-monitor",
        )
        self.client.on_message = self._on_message
        self.client.on_connect = self._on_connect

    def run(self):
        """Start MQTT listener (called by Thread.start())"""
        try:
            if self.config.username:
                self.client.username_pw_set(self.config.username, self.config.password)

            host, port = self.config.broker_address
            logger.info(f"Monitor connecting to {host}:{port}", extra={"event": "monitor_connect"})
            self.client.connect(host, port, keepalive=self.config.keepalive)

            # Loop forever (blocks until disconnect)
            self.client.loop_forever()

        except Exception as e:
            logger.error(f"Monitor error: {e}", extra={"event": "monitor_error"})

    def stop(self):
        self.client.disconnect()

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        if reason_code.is_failure:
            logger.error(f"Monitor connection failed: {reason_code}", extra={"event": "monitor_connect_failed"})
            return

        for kind in TopicKind:
            topic = subscription_for_kind(self.config.preface, kind)
            client.subscribe(topic)
            logger.info(f"Monitor subscribed to {topic}", extra={"event": "monitor_subscribed"})

    def _on_message(self, client, userdata, msg):
        parsed = parse_device_topic(msg.topic, self.config.preface)
        if parsed is None:
            return

        device_id, kind = parsed
        try:
            self.on_event(ObservedEvent(device_id, kind, bytes(msg.payload), bool(msg.retain)))
        except Exception as e:
            logger.error(f"Failed to handle event on {msg.topic}: {e}", extra={"event": "monitor_callback_error"})
