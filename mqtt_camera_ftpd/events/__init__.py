"""
Event Protocol for the Camera Bridge
=====================================

MQTT topic utilities and state tokens.
"""

from mqtt_camera_ftpd.events.protocol import (
    MotionState,
    TopicKind,
    parse_device_topic,
    subscription_for_kind,
    topic_for_device,
)

__all__ = [
    "MotionState",
    "TopicKind",
    "topic_for_device",
    "subscription_for_kind",
    "parse_device_topic",
]
