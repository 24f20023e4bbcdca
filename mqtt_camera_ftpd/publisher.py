"""
Notification Publisher
======================

Publishes motion state and snapshot for a device to MQTT.

Each transition is two retained publishes (motion, image). They are issued
independently: a failure on one is logged and never blocks the other or
reaches the caller.
"""

from typing import Union

import paho.mqtt.client as mqtt

from mqtt_camera_ftpd.events.protocol import MotionState, TopicKind, topic_for_device
from mqtt_camera_ftpd.interfaces import MessageBroker
from mqtt_camera_ftpd.logging_utils import get_component_logger

logger = get_component_logger(__name__, "publisher")


class NotificationPublisher:
    """
    Fire-and-forget publisher for device transitions.

    Args:
        mqtt_client: Connected broker (MessageBroker protocol)
        preface: Topic namespace root
        qos: QoS for both publishes

    Example:
        >>> publisher = NotificationPublisher(broker, "cameras")
        >>> publisher.publish("front-door", MotionState.ACTIVE, jpeg_bytes)
        # cameras/front-door/motion <- "active"   (retained)
        # cameras/front-door/image  <- jpeg_bytes (retained)
    """

    def __init__(self, mqtt_client: MessageBroker, preface: str, qos: int = 0):
        self.client = mqtt_client
        self.preface = preface
        self.qos = qos

    def publish(self, device_id: str, state: MotionState, payload: bytes = b"") -> None:
        """
        Publish a state transition for ``device_id``.

        Args:
            device_id: Device identity
            state: MotionState.ACTIVE or MotionState.INACTIVE
            payload: Snapshot bytes (empty for inactive transitions)
        """
        state = MotionState(state)
        motion_topic = topic_for_device(self.preface, device_id, TopicKind.MOTION)
        image_topic = topic_for_device(self.preface, device_id, TopicKind.IMAGE)

        logger.debug(
            f"Notifying MQTT {motion_topic} with {state.value}",
            extra={"event": "notify", "device_id": device_id, "state": state.value, "payload_bytes": len(payload)},
        )

        self._publish(motion_topic, state.value)
        self._publish(image_topic, payload)

    def _publish(self, topic: str, payload: Union[str, bytes]) -> bool:
        try:
            result = self.client.publish(topic, payload, qos=self.qos, retain=True)
        except Exception as e:
            logger.error(
                f"Error notifying MQTT on {topic}: {e}",
                extra={"event": "publish_error", "topic": topic, "error_type": type(e).__name__},
            )
            return False

        if result.rc != mqtt.MQTT_ERR_SUCCESS:
            logger.warning(
                f"Failed to publish to {topic}: {mqtt.error_string(result.rc)}",
                extra={
                    "event": "publish_failed",
                    "topic": topic,
                    "rc": result.rc,
                    "broker_state": getattr(getattr(self.client, "state", None), "value", None),
                },
            )
            return False

        return True
