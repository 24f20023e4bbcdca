"""
Interfaces for Dependency Injection
====================================

Protocols (interfaces) for decoupling the bridge core from its collaborators.

This allows:
- Testing with fake implementations (no MQTT broker, no FTP client needed)
- Swapping implementations (e.g., replace paho.mqtt with another client)
- Clear contracts (documented interface methods)
"""

from typing import Any, Callable, Protocol, Union


class MessageBroker(Protocol):
    """
    Protocol for an MQTT-like message broker.

    Minimal interface required by NotificationPublisher.

    Concrete implementation: BrokerConnection (wraps paho.mqtt.Client)
    Test implementation: FakeMessageBroker (see tests/unit/test_publisher_with_fakes.py)
    """

    def publish(
        self,
        topic: str,
        payload: Union[str, bytes],
        qos: int = 0,
        retain: bool = False,
    ) -> Any:
        """
        Publish message to topic.

        Args:
            topic: MQTT topic string
            payload: Message payload (state token or raw image bytes)
            qos: Quality of Service (0, 1, or 2)
            retain: Retain message on broker

        Returns:
            MQTTMessageInfo or equivalent (result.rc == 0 for success)
        """
        ...


class TimerHandle(Protocol):
    """Handle returned by Scheduler.call_later."""

    def cancel(self) -> None:
        """Cancel the scheduled call. Safe to call once the call has fired."""
        ...


class Scheduler(Protocol):
    """
    Protocol for the event loop that runs the debounce timers.

    Concrete implementation: pyftpdlib.ioloop.IOLoop (same loop as the FTP handlers)
    Test implementation: FakeScheduler (see tests/unit/test_debouncer.py)
    """

    def call_later(
        self, seconds: float, target: Callable[..., Any], *args: Any
    ) -> TimerHandle:
        """
        Schedule ``target(*args)`` after ``seconds``.

        Returns:
            Handle whose cancel() prevents the call
        """
        ...


class UploadSink(Protocol):
    """
    Protocol for whatever consumes a completed upload.

    Concrete implementation: MotionDebouncer
    """

    def on_upload(self, device_id: str, payload: bytes) -> None:
        """Handle one uploaded file for ``device_id``."""
        ...
