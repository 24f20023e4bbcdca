"""
MQTT Camera FTPd - FTP to MQTT bridge for motion cameras
=========================================================

Cameras that can only alert by uploading a snapshot over FTP log in with their
device name as username; every upload becomes a retained MQTT motion event
plus the snapshot itself.

    <preface>/<device>/motion   "active" on upload, "inactive" after 10 s quiet
    <preface>/<device>/image    last snapshot (cleared when inactive)

Usage:
    from mqtt_camera_ftpd import CameraBridge, load_config

    bridge = CameraBridge(load_config("/config"))
    bridge.start()
    bridge.serve_forever()
"""

__version__ = "0.1.0"
__author__ = "Visiona Team"

from .config import BridgeConfig, MqttConfig, load_config
from .bridge import CameraBridge
from .debouncer import MotionDebouncer
from .publisher import NotificationPublisher
from .events import MotionState, TopicKind

__all__ = [
    "CameraBridge",
    "BridgeConfig",
    "MqttConfig",
    "load_config",
    "MotionDebouncer",
    "NotificationPublisher",
    "MotionState",
    "TopicKind",
]
