"""
FTP Handler and Authorizer
==========================

pyftpdlib callbacks wired to CameraSession and VirtualFS.

pyftpdlib parses the protocol; this module only decides who may log in and
what happens when a file arrives.
"""

import sys
from typing import Optional

from pyftpdlib.authorizers import AuthenticationFailed
from pyftpdlib.handlers import FTPHandler

from mqtt_camera_ftpd.ftp.filesystem import VirtualFS
from mqtt_camera_ftpd.ftp.session import CameraSession
from mqtt_camera_ftpd.interfaces import UploadSink
from mqtt_camera_ftpd.logging_utils import get_component_logger, trace_context

logger = get_component_logger(__name__, "ftp")

# e/l/r/a/d/f/m/w/M/T: every command reaches VirtualFS, which decides
ALL_PERMS = "elradfmwMT"


class AnyIdentityAuthorizer:
    """
    pyftpdlib authorizer delegating the decision to the handler's session.

    Any non-empty username/password pair is accepted; every user gets the
    virtual root "/" and all permissions.
    """

    def validate_authentication(self, username, password, handler):
        if handler.session.on_credential(password) is None:
            raise AuthenticationFailed("Authentication failed.")

    def get_home_dir(self, username):
        return "/"

    def has_user(self, username):
        return bool(username)

    def has_perm(self, username, perm, path=None):
        return perm in ALL_PERMS

    def get_perms(self, username):
        return ALL_PERMS

    def get_msg_login(self, username):
        return f"Welcome {username}, upload your snapshots."

    def get_msg_quit(self, username):
        return "Goodbye."

    def impersonate_user(self, username, password):
        pass

    def terminate_impersonation(self, username):
        pass


class CameraFTPHandler(FTPHandler):
    """
    FTP control connection for one camera.

    ``upload_sink`` must be bound before serving (see build_handler_class).
    """

    authorizer = AnyIdentityAuthorizer()
    abstracted_fs = VirtualFS
    banner = "MQTT Camera FTPd ready."
    upload_sink: Optional[UploadSink] = None

    def __init__(self, conn, server, ioloop=None):
        super().__init__(conn, server, ioloop=ioloop)
        self.session = CameraSession(
            client=f"{self.remote_ip}:{self.remote_port}",
            sink=self.upload_sink,
        )

    def on_connect(self):
        logger.debug(
            f"Client {self.session.client} connected",
            extra={"event": "client_connected", "client": self.session.client},
        )

    def ftp_USER(self, line):
        if not self.session.on_identity(line):
            self.respond("530 Device identity required.")
            return
        super().ftp_USER(line)

    def on_login(self, username):
        logger.info(
            f"Device {username} logged in from {self.session.client}",
            extra={"event": "client_login", "device_id": username, "client": self.session.client},
        )

    def on_login_failed(self, username, password):
        logger.warning(
            f"Rejected login for {username!r} from {self.session.client}",
            extra={"event": "client_login_failed", "client": self.session.client},
        )

    def on_logout(self, username):
        logger.debug(
            f"Device {username} logged out",
            extra={"event": "client_logout", "device_id": username},
        )

    def on_file_received(self, file):
        with trace_context(self.session.trace_id):
            self.fs.commit_upload(file)

    def on_incomplete_file_received(self, file):
        logger.warning(
            f"Incomplete upload {file} from {self.session.device_id}, discarded",
            extra={"event": "upload_incomplete", "device_id": self.session.device_id, "file_name": file},
        )
        self.fs.discard_upload(file)

    def on_disconnect(self):
        self.session.close()

    def handle_error(self):
        error = sys.exc_info()[1]
        # pyftpdlib may fail inside __init__, before the session exists
        session = getattr(self, "session", None)
        if error is not None and session is not None:
            session.fail(error)
        super().handle_error()


def build_handler_class(sink: UploadSink, **attributes) -> type:
    """
    Create a CameraFTPHandler subclass bound to ``sink``.

    pyftpdlib configures handlers through class attributes; binding a
    subclass per server keeps servers (and tests) independent.

    Args:
        sink: UploadSink receiving completed uploads
        **attributes: Extra pyftpdlib handler attributes (passive_ports, masquerade_address, ...)

    Returns:
        Handler class to pass to FTPServer
    """
    attributes["upload_sink"] = sink
    return type("BoundCameraFTPHandler", (CameraFTPHandler,), attributes)
