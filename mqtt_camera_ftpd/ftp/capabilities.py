"""
Capability Table
================

Filesystem operations an authenticated session exposes to the FTP engine.

Only ``write`` does real work (hands the upload to the debouncer). ``stat``
always reports a synthetic directory so the engine's directory traversal
(CWD, MLST) keeps working. Every other operation fails with
"Not implemented".

All capabilities follow the completion convention: the last positional
argument is ``callback(error, *results)``. They never raise; failures are
delivered through the callback.
"""

import os
import stat
from enum import Enum
from typing import Any, Callable, Dict, Iterator, Mapping, Protocol, Tuple

from mqtt_camera_ftpd.interfaces import UploadSink
from mqtt_camera_ftpd.logging_utils import get_component_logger

logger = get_component_logger(__name__, "capabilities")

Completion = Callable[..., None]

# mode 0777 directory, size 1, mtime 1
SYNTHETIC_DIRECTORY_STAT = os.stat_result(
    (stat.S_IFDIR | 0o777, 0, 0, 1, 0, 0, 1, 1, 1, 1)
)


class FilesystemOperation(str, Enum):
    WRITE = "write"
    READ = "read"
    UNLINK = "unlink"
    READDIR = "readdir"
    MKDIR = "mkdir"
    OPEN = "open"
    CLOSE = "close"
    RMDIR = "rmdir"
    RENAME = "rename"
    STAT = "stat"
    CHMOD = "chmod"
    UTIME = "utime"


class OperationNotImplementedError(Exception):
    """Filesystem operation the bridge deliberately does not support."""

    def __init__(self, operation: FilesystemOperation):
        super().__init__("Not implemented")
        self.operation = operation


class Capability(Protocol):
    operation: FilesystemOperation

    def __call__(self, *args: Any) -> None:
        """Run the operation; the last argument is the completion callback."""
        ...


class UnsupportedCapability:
    """Fails every invocation with OperationNotImplementedError."""

    def __init__(self, operation: FilesystemOperation):
        self.operation = operation

    def __call__(self, *args: Any) -> None:
        callback = args[-1]
        callback(OperationNotImplementedError(self.operation))


class SyntheticStatCapability:
    """Reports every path as a permissive directory."""

    operation = FilesystemOperation.STAT

    def __call__(self, path: str, callback: Completion) -> None:
        callback(None, SYNTHETIC_DIRECTORY_STAT)


class WriteThroughCapability:
    """
    Forwards an uploaded file to the upload sink.

    The completion fires as soon as the upload is handed over; it does not
    wait for the MQTT publishes.

    Args:
        device_id: Identity of the session that owns this table
        sink: UploadSink (the MotionDebouncer)
    """

    operation = FilesystemOperation.WRITE

    def __init__(self, device_id: str, sink: UploadSink):
        self.device_id = device_id
        self.sink = sink

    def __call__(self, file_name: str, contents: bytes, callback: Completion) -> None:
        logger.debug(
            f"Upload {file_name} ({len(contents)} bytes) from {self.device_id}",
            extra={"event": "upload_forwarded", "device_id": self.device_id, "file_name": file_name},
        )
        try:
            self.sink.on_upload(self.device_id, contents)
        except Exception as e:
            callback(e)
            return
        callback(None)


class CapabilityTable(Mapping[FilesystemOperation, Capability]):
    """
    Immutable operation -> capability mapping for one session.

    Usage:
        >>> table = build_capability_table("cam1", debouncer)
        >>> table[FilesystemOperation.WRITE]("snap.jpg", data, lambda err: ...)
        >>> table.call(FilesystemOperation.STAT, "/any/path")
        (os.stat_result(st_mode=16895, ...),)
    """

    def __init__(self, device_id: str, capabilities: Dict[FilesystemOperation, Capability]):
        missing = set(FilesystemOperation) - set(capabilities)
        if missing:
            raise ValueError(f"Capability table missing: {sorted(op.value for op in missing)}")

        self.device_id = device_id
        self._capabilities = dict(capabilities)

    def __getitem__(self, operation: FilesystemOperation) -> Capability:
        return self._capabilities[FilesystemOperation(operation)]

    def __iter__(self) -> Iterator[FilesystemOperation]:
        return iter(self._capabilities)

    def __len__(self) -> int:
        return len(self._capabilities)

    def call(self, operation: FilesystemOperation, *args: Any) -> Tuple[Any, ...]:
        """
        Invoke a capability and wait for its completion.

        Capabilities complete within the call, so this adapts the callback
        convention to the synchronous filesystem interface of the FTP engine.

        Returns:
            Results passed to the completion after the error slot

        Raises:
            The error passed to the completion, if any
        """
        outcome: Dict[str, Any] = {}

        def completion(error=None, *results):
            outcome["error"] = error
            outcome["results"] = results

        self[operation](*args, completion)

        if "error" not in outcome:
            raise RuntimeError(f"Capability {operation.value!r} did not complete")
        if outcome["error"] is not None:
            raise outcome["error"]
        return outcome["results"]


def build_capability_table(device_id: str, sink: UploadSink) -> CapabilityTable:
    """
    Build the capability table for an authenticated device.

    Args:
        device_id: Session identity, bound into the write capability
        sink: UploadSink receiving uploads

    Returns:
        CapabilityTable with write-through, synthetic stat and unsupported stubs
    """
    capabilities: Dict[FilesystemOperation, Capability] = {
        operation: UnsupportedCapability(operation) for operation in FilesystemOperation
    }
    capabilities[FilesystemOperation.WRITE] = WriteThroughCapability(device_id, sink)
    capabilities[FilesystemOperation.STAT] = SyntheticStatCapability()
    return CapabilityTable(device_id, capabilities)
