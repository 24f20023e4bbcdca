"""
FTP Side of the Bridge
======================

Session authentication, capability table and virtual filesystem plugged into
pyftpdlib.
"""

from mqtt_camera_ftpd.ftp.capabilities import (
    CapabilityTable,
    FilesystemOperation,
    OperationNotImplementedError,
    build_capability_table,
)
from mqtt_camera_ftpd.ftp.filesystem import VirtualFS
from mqtt_camera_ftpd.ftp.handler import AnyIdentityAuthorizer, CameraFTPHandler
from mqtt_camera_ftpd.ftp.server import create_ftp_server
from mqtt_camera_ftpd.ftp.session import CameraSession, SessionState

__all__ = [
    "CameraSession",
    "SessionState",
    "CapabilityTable",
    "FilesystemOperation",
    "OperationNotImplementedError",
    "build_capability_table",
    "VirtualFS",
    "CameraFTPHandler",
    "AnyIdentityAuthorizer",
    "create_ftp_server",
]
