"""
Camera Bridge - Main Orchestrator
=================================

Wires configuration, broker connection, publisher, debouncer and FTP server
together in the order the bridge depends on:

1. Broker connection (must be ready before any camera can upload)
2. Notification publisher + motion debouncer
3. FTP server (debounce timers share its IOLoop)
4. Serve until SIGINT/SIGTERM
"""

import signal
import threading
from typing import Optional

from pyftpdlib.ioloop import IOLoop
from pyftpdlib.servers import FTPServer

from mqtt_camera_ftpd import __version__
from mqtt_camera_ftpd.broker import BrokerConnection, BrokerConnectionError
from mqtt_camera_ftpd.config import BridgeConfig
from mqtt_camera_ftpd.debouncer import MotionDebouncer
from mqtt_camera_ftpd.ftp.server import bound_port, create_ftp_server
from mqtt_camera_ftpd.logging_utils import get_component_logger
from mqtt_camera_ftpd.publisher import NotificationPublisher

logger = get_component_logger(__name__, "bridge")


class CameraBridge:
    """
    FTP upload in, MQTT publish out.

    Args:
        config: BridgeConfig instance
        broker: Pre-built BrokerConnection (default: built from config.mqtt)
        connect_timeout: Seconds to wait for the first CONNACK

    Example:
        >>> bridge = CameraBridge(load_config())
        >>> bridge.start()          # raises BrokerConnectionError if broker unreachable
        >>> bridge.serve_forever()  # blocks until SIGINT/SIGTERM
    """

    def __init__(
        self,
        config: BridgeConfig,
        broker: Optional[BrokerConnection] = None,
        connect_timeout: float = 10.0,
    ):
        self.config = config
        self.connect_timeout = connect_timeout

        if broker is None:
            host, port = config.mqtt.broker_address
            broker = BrokerConnection(
                host,
                port,
                client_id=config.mqtt.client_id,
                username=config.mqtt.username,
                password=config.mqtt.password,
                keepalive=config.mqtt.keepalive,
            )
        self.broker = broker

        self.ioloop = IOLoop()
        self.publisher: Optional[NotificationPublisher] = None
        self.debouncer: Optional[MotionDebouncer] = None
        self.server: Optional[FTPServer] = None

        self._stop = threading.Event()

    def start(self) -> None:
        """
        Connect to the broker and bind the FTP server.

        Raises:
            BrokerConnectionError: If the broker does not accept the connection in time
        """
        logger.info(f"Starting MQTT Camera FTPd - {__version__}", extra={"event": "bridge_start"})

        if not self.broker.connect(timeout=self.connect_timeout):
            raise BrokerConnectionError(
                f"Could not connect to MQTT broker at {self.broker.host}:{self.broker.port}"
            )

        self.publisher = NotificationPublisher(
            self.broker, self.config.mqtt.preface, qos=self.config.mqtt.qos
        )
        self.debouncer = MotionDebouncer(self.publisher, self.ioloop)

        logger.info("Configuring FTPd", extra={"event": "ftp_configure"})
        self.server = create_ftp_server(self.config, self.debouncer, ioloop=self.ioloop)

        logger.info(
            f"Listening at ftp://{self.config.address}:{self.port}",
            extra={"event": "ftp_listening", "port": self.port, "preface": self.config.mqtt.preface},
        )

    @property
    def port(self) -> Optional[int]:
        return bound_port(self.server) if self.server else None

    def install_signal_handlers(self) -> None:
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

    def serve_forever(self, poll_interval: float = 1.0) -> None:
        """Run the FTP IOLoop until stop() is called, then clean up."""
        if self.server is None:
            raise RuntimeError("CameraBridge.start() must be called before serve_forever()")

        try:
            while not self._stop.is_set():
                self.server.serve_forever(timeout=poll_interval, blocking=False, handle_exit=False)
        finally:
            self._cleanup()

    def stop(self) -> None:
        self._stop.set()

    def _cleanup(self) -> None:
        logger.info("Performing shutdown cleanup", extra={"event": "shutdown_cleanup_start"})

        if self.debouncer:
            self.debouncer.flush()

        if self.server:
            self.server.close_all()

        self.broker.disconnect()

        logger.info("MQTT Camera FTPd stopped", extra={"event": "bridge_stopped"})

    def _signal_handler(self, signum, frame):
        logger.info(
            f"Received signal {signum}, shutting down...",
            extra={"event": "signal_received", "signal": signum},
        )
        self.stop()
