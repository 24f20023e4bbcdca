"""
Camera Session
==============

Per-connection authentication state.

Any non-empty username is a device identity and any non-empty password is
accepted. On success the session holds the capability table the virtual
filesystem answers from.

State machine:
    UNAUTHENTICATED -> IDENTITY_GIVEN -> AUTHENTICATED -> CLOSED
    (CLOSED reachable from any state, terminal)
"""

from enum import Enum
from typing import Optional

from mqtt_camera_ftpd.ftp.capabilities import CapabilityTable, build_capability_table
from mqtt_camera_ftpd.interfaces import UploadSink
from mqtt_camera_ftpd.logging_utils import generate_trace_id, get_component_logger

logger = get_component_logger(__name__, "session")


class SessionState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    IDENTITY_GIVEN = "identity_given"
    AUTHENTICATED = "authenticated"
    CLOSED = "closed"


class CameraSession:
    """
    Authentication state for one FTP control connection.

    Args:
        client: Remote "ip:port", for logging
        sink: UploadSink bound into the write capability on login

    Example:
        >>> session = CameraSession("10.0.0.5:50312", debouncer)
        >>> session.on_identity("front-door")
        True
        >>> table = session.on_credential("anything")
        >>> session.state
        <SessionState.AUTHENTICATED: 'authenticated'>
    """

    def __init__(self, client: str, sink: UploadSink):
        self.client = client
        self.sink = sink
        self.trace_id = generate_trace_id("ftp")

        self.state = SessionState.UNAUTHENTICATED
        self.device_id: Optional[str] = None
        self.capabilities: Optional[CapabilityTable] = None

    def on_identity(self, identity: Optional[str]) -> bool:
        """
        Handle USER.

        Returns:
            False when the identity is empty or the session is closed
        """
        if self.state is SessionState.CLOSED or not identity:
            return False

        self.device_id = identity
        self.capabilities = None
        self.state = SessionState.IDENTITY_GIVEN
        return True

    def on_credential(self, credential: Optional[str]) -> Optional[CapabilityTable]:
        """
        Handle PASS. The credential is only checked for emptiness.

        Returns:
            CapabilityTable bound to the device identity, or None when rejected
        """
        if self.state is not SessionState.IDENTITY_GIVEN or not credential:
            if self.state is not SessionState.CLOSED:
                self.state = SessionState.UNAUTHENTICATED
                self.device_id = None
            return None

        self.capabilities = build_capability_table(self.device_id, self.sink)
        self.state = SessionState.AUTHENTICATED

        logger.info(
            f"Device {self.device_id} authenticated from {self.client}",
            extra={"event": "session_authenticated", "device_id": self.device_id, "client": self.client},
        )
        return self.capabilities

    @property
    def authenticated(self) -> bool:
        return self.state is SessionState.AUTHENTICATED

    def close(self) -> None:
        if self.state is SessionState.CLOSED:
            return
        self.state = SessionState.CLOSED
        logger.debug(
            f"Client {self.client} disconnected",
            extra={"event": "session_closed", "device_id": self.device_id, "client": self.client},
        )

    def fail(self, error: BaseException) -> None:
        logger.error(
            f"Client {self.client} had an error: {error}",
            extra={
                "event": "session_error",
                "device_id": self.device_id,
                "client": self.client,
                "error_type": type(error).__name__,
            },
        )
        self.close()
