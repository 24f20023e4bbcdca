"""
FTP Server Factory
==================

Builds the pyftpdlib server the cameras upload to.
"""

from typing import Optional

from pyftpdlib.ioloop import IOLoop
from pyftpdlib.servers import FTPServer

from mqtt_camera_ftpd.config import BridgeConfig
from mqtt_camera_ftpd.ftp.handler import build_handler_class
from mqtt_camera_ftpd.interfaces import UploadSink


def create_ftp_server(
    config: BridgeConfig,
    sink: UploadSink,
    ioloop: Optional[IOLoop] = None,
) -> FTPServer:
    """
    Create (and bind) the FTP server.

    Args:
        config: BridgeConfig (address, port, passive ports, limits)
        sink: UploadSink receiving completed uploads
        ioloop: Event loop shared with the debounce timers (default: new IOLoop)

    Returns:
        Listening FTPServer; run it with serve_forever()
    """
    attributes = {}
    if config.passive_port_range is not None:
        attributes["passive_ports"] = config.passive_port_range
    if config.masquerade_address:
        attributes["masquerade_address"] = config.masquerade_address

    handler = build_handler_class(sink, **attributes)

    server = FTPServer(
        (config.address, config.port),
        handler,
        ioloop=ioloop if ioloop is not None else IOLoop(),
    )
    server.max_cons = config.max_connections
    return server


def bound_port(server: FTPServer) -> int:
    """Actual listening port (useful with port 0)."""
    return server.socket.getsockname()[1]
