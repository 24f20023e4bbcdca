"""
MQTT Broker Connection
======================

Long-lived paho-mqtt connection shared by the notification publisher.

The connection is established once at startup, gated by a one-shot latch, and
exposes its state so a dropped broker is visible (``degraded``) instead of
silently swallowing publishes.
"""

import threading
from enum import Enum
from typing import Any, Callable, Optional, Union

import paho.mqtt.client as mqtt

from mqtt_camera_ftpd.logging_utils import get_component_logger

logger = get_component_logger(__name__, "broker")


class BrokerConnectionError(RuntimeError):
    """Initial connection to the broker could not be established."""
    pass


class BrokerState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DEGRADED = "degraded"


class OneShotLatch:
    """
    Latch that is released exactly once.

    paho raises on_connect on every (re)connection; only the first one may
    unblock startup.

    Usage:
        >>> latch = OneShotLatch()
        >>> latch.release()
        True
        >>> latch.release()
        False
        >>> latch.wait(timeout=0)
        True
    """

    def __init__(self):
        self._event = threading.Event()
        self._lock = threading.Lock()

    def release(self) -> bool:
        """Release the latch. Returns True only for the call that released it."""
        with self._lock:
            if self._event.is_set():
                return False
            self._event.set()
            return True

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._event.wait(timeout=timeout)

    @property
    def released(self) -> bool:
        return self._event.is_set()


def _default_client_factory(client_id: str) -> mqtt.Client:
    return mqtt.Client(
        callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
        client_id=client_id,
    )


class BrokerConnection:
    """
    paho-mqtt client wrapper implementing the MessageBroker protocol.

    Args:
        host: Broker hostname or IP
        port: Broker port
        client_id: MQTT client identifier
        username: Broker username (optional)
        password: Broker password (optional)
        keepalive: Keep-alive interval in seconds
        client_factory: Builds the underlying client from client_id (tests inject fakes)

    Example:
        >>> broker = BrokerConnection("localhost", 1883)
        >>> if not broker.connect(timeout=10):
        ...     raise BrokerConnectionError("broker unreachable")
        >>> broker.publish("cameras/cam1/motion", "active", qos=0, retain=True)
    """

    def __init__(
        self,
        host: str,
        port: int = 1883,
        client_id: str = "mqtt-camera-ftpd",
        username: Optional[str] = None,
        password: Optional[str] = None,
        keepalive: int = 60,
        client_factory: Callable[[str], Any] = _default_client_factory,
    ):
        self.host = host
        self.port = port
        self.keepalive = keepalive

        self.client = client_factory(client_id)
        if username:
            self.client.username_pw_set(username, password)

        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect

        self._ready = OneShotLatch()
        self._state = BrokerState.DISCONNECTED
        self._closing = False

    @property
    def state(self) -> BrokerState:
        return self._state

    @property
    def is_degraded(self) -> bool:
        return self._state is BrokerState.DEGRADED

    def connect(self, timeout: float = 10.0) -> bool:
        """
        Connect and wait for the first CONNACK.

        Returns:
            True once connected, False on timeout or connection error
        """
        logger.info(
            f"Connecting to MQTT at mqtt://{self.host}:{self.port}",
            extra={"event": "broker_connection_attempt", "broker_host": self.host, "broker_port": self.port},
        )
        self._state = BrokerState.CONNECTING

        try:
            self.client.connect(self.host, self.port, keepalive=self.keepalive)
        except (OSError, ValueError) as e:
            self._state = BrokerState.DISCONNECTED
            logger.error(
                f"Failed to connect to MQTT broker: {e}",
                extra={
                    "event": "broker_connection_exception",
                    "error_type": type(e).__name__,
                    "broker_host": self.host,
                },
            )
            return False

        self.client.loop_start()
        return self._ready.wait(timeout=timeout)

    def publish(
        self,
        topic: str,
        payload: Union[str, bytes],
        qos: int = 0,
        retain: bool = False,
    ) -> mqtt.MQTTMessageInfo:
        return self.client.publish(topic, payload, qos=qos, retain=retain)

    def disconnect(self) -> None:
        logger.info("Disconnecting from MQTT broker", extra={"event": "broker_disconnect"})
        self._closing = True
        self.client.disconnect()
        self.client.loop_stop()
        self._state = BrokerState.DISCONNECTED

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        if reason_code.is_failure:
            logger.error(
                f"MQTT broker refused connection: {reason_code}",
                extra={"event": "broker_connection_failed", "reason_code": str(reason_code)},
            )
            return

        previous = self._state
        self._state = BrokerState.CONNECTED

        if self._ready.release():
            logger.info(
                f"Connected to MQTT at mqtt://{self.host}:{self.port}",
                extra={"event": "broker_connected"},
            )
        else:
            logger.warning(
                f"MQTT connection restored (was {previous.value})",
                extra={"event": "broker_reconnected", "previous_state": previous.value},
            )

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None):
        if self._closing:
            return

        if self._ready.released:
            self._state = BrokerState.DEGRADED
            logger.warning(
                f"Degraded: broker disconnected ({reason_code})",
                extra={"event": "broker_disconnected", "reason_code": str(reason_code)},
            )
        else:
            self._state = BrokerState.DISCONNECTED
