"""
MQTT Protocol Utilities
========================

Topic naming conventions, state tokens and parsing utilities for the bridge.
"""

from enum import Enum
from typing import Optional, Tuple


class TopicKind(str, Enum):
    """Last topic segment: what the message describes."""

    MOTION = "motion"
    IMAGE = "image"


class MotionState(str, Enum):
    """Payload published on the motion topic."""

    ACTIVE = "active"
    INACTIVE = "inactive"


def topic_for_device(preface: str, device_id: str, kind: TopicKind) -> str:
    """
    Generate MQTT topic for a device.

    Args:
        preface: Topic namespace root (from configuration)
        device_id: Device identity (the FTP username, used verbatim)
        kind: TopicKind.MOTION or TopicKind.IMAGE

    Returns:
        MQTT topic string

    Examples:
        >>> topic_for_device("cameras", "front-door", TopicKind.MOTION)
        'cameras/front-door/motion'
        >>> topic_for_device("home/cams", "garage", TopicKind.IMAGE)
        'home/cams/garage/image'
    """
    return "/".join([preface, device_id, TopicKind(kind).value])


def subscription_for_kind(preface: str, kind: TopicKind) -> str:
    """
    Wildcard subscription matching every device for one topic kind.

    Examples:
        >>> subscription_for_kind("cameras", TopicKind.MOTION)
        'cameras/+/motion'
    """
    return "/".join([preface, "+", TopicKind(kind).value])


def parse_device_topic(topic: str, preface: str) -> Optional[Tuple[str, TopicKind]]:
    """
    Extract device identity and kind from a bridge topic.

    Args:
        topic: MQTT topic string (e.g., "cameras/front-door/motion")
        preface: Topic namespace root the topic is expected to start with

    Returns:
        (device_id, kind) tuple, or None if the topic is not a bridge topic

    Examples:
        >>> parse_device_topic("cameras/front-door/motion", "cameras")
        ('front-door', <TopicKind.MOTION: 'motion'>)
        >>> parse_device_topic("other/front-door/motion", "cameras")
        None
    """
    prefix = preface + "/"
    if not topic.startswith(prefix):
        return None

    remainder = topic[len(prefix):]
    device_id, sep, kind = remainder.rpartition("/")
    if not sep or not device_id or "/" in device_id:
        return None

    try:
        return device_id, TopicKind(kind)
    except ValueError:
        return None
