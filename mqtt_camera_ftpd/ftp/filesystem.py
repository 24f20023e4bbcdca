"""
Virtual Filesystem
==================

pyftpdlib AbstractedFS backed by a session's capability table instead of the
host filesystem. Paths are purely virtual; nothing is ever written to disk.

STOR/APPE are buffered in memory by UploadBuffer and committed through the
``write`` capability once the engine reports the transfer complete.
"""

import io
import posixpath
from stat import S_ISDIR, S_ISREG
from typing import Dict

from pyftpdlib.filesystems import AbstractedFS, FilesystemError

from mqtt_camera_ftpd.ftp.capabilities import (
    CapabilityTable,
    FilesystemOperation,
    OperationNotImplementedError,
)
from mqtt_camera_ftpd.logging_utils import get_component_logger

logger = get_component_logger(__name__, "filesystem")


class UploadBuffer(io.BytesIO):
    """In-memory file object for one STOR. Keeps its contents after close()."""

    def __init__(self, name: str):
        super().__init__()
        self.name = name
        self.contents = b""

    def close(self) -> None:
        if not self.closed:
            self.contents = self.getvalue()
        super().close()


class VirtualFS(AbstractedFS):
    """
    Write-only virtual filesystem for one authenticated session.

    Constructed by pyftpdlib after login as ``abstracted_fs(home, handler)``;
    the capability table comes from ``handler.session``.
    """

    def __init__(self, root, cmd_channel):
        super().__init__(root, cmd_channel)
        self.capabilities: CapabilityTable = cmd_channel.session.capabilities
        self._uploads: Dict[str, UploadBuffer] = {}

    # --- capability dispatch ------------------------------------------------

    def _call(self, operation: FilesystemOperation, *args):
        try:
            return self.capabilities.call(operation, *args)
        except OperationNotImplementedError as e:
            logger.debug(
                f"Rejected {operation.value} on {args[0] if args else ''}",
                extra={"event": "operation_rejected", "operation": operation.value},
            )
            raise FilesystemError(str(e)) from e

    # --- path handling (virtual, never touches the host) --------------------

    def ftp2fs(self, ftppath):
        return self.ftpnorm(ftppath)

    def fs2ftp(self, fspath):
        if not posixpath.isabs(fspath):
            fspath = posixpath.join(self.cwd, fspath)
        return posixpath.normpath(fspath)

    def validpath(self, path):
        return True

    def realpath(self, path):
        return path

    # --- write path ---------------------------------------------------------

    def open(self, filename, mode):
        if "+" in mode:
            self._call(FilesystemOperation.OPEN, filename, mode)
        if "r" in mode:
            self._call(FilesystemOperation.READ, filename)

        upload = UploadBuffer(filename)
        self._uploads[filename] = upload
        return upload

    def commit_upload(self, filename) -> None:
        """Hand a completed upload to the ``write`` capability."""
        upload = self._uploads.pop(filename, None)
        if upload is None:
            logger.warning(
                f"No buffered upload for {filename}",
                extra={"event": "upload_missing", "file_name": filename},
            )
            return

        if not upload.closed:
            upload.close()

        def completion(error=None):
            if error is not None:
                logger.error(
                    f"Upload {filename} could not be forwarded: {error}",
                    extra={"event": "upload_forward_failed", "file_name": filename},
                )

        self.capabilities[FilesystemOperation.WRITE](
            posixpath.basename(filename), upload.contents, completion
        )

    def discard_upload(self, filename) -> None:
        """Drop the buffer of an aborted transfer."""
        upload = self._uploads.pop(filename, None)
        if upload is not None and not upload.closed:
            upload.close()

    # --- stubs routed through the capability table --------------------------

    def mkstemp(self, suffix='', prefix='', dir=None, mode='wb'):
        self._call(FilesystemOperation.OPEN, dir or self.cwd, mode)

    def mkdir(self, path):
        self._call(FilesystemOperation.MKDIR, path)

    def listdir(self, path):
        return self._call(FilesystemOperation.READDIR, path)[0]

    def listdirinfo(self, path):
        return self.listdir(path)

    def rmdir(self, path):
        self._call(FilesystemOperation.RMDIR, path)

    def remove(self, path):
        self._call(FilesystemOperation.UNLINK, path)

    def rename(self, src, dst):
        self._call(FilesystemOperation.RENAME, src, dst)

    def chmod(self, path, mode):
        self._call(FilesystemOperation.CHMOD, path, mode)

    def utime(self, path, timeval):
        self._call(FilesystemOperation.UTIME, path, timeval)

    def readlink(self, path):
        raise FilesystemError("Not implemented")

    # --- synthetic stat -----------------------------------------------------

    def stat(self, path):
        return self._call(FilesystemOperation.STAT, path)[0]

    lstat = stat

    def chdir(self, path):
        if not self.isdir(path):
            raise FilesystemError("Not a directory")
        self.cwd = self.fs2ftp(path)

    def isdir(self, path):
        try:
            return S_ISDIR(self.stat(path).st_mode)
        except FilesystemError:
            return False

    def isfile(self, path):
        try:
            return S_ISREG(self.stat(path).st_mode)
        except FilesystemError:
            return False

    def islink(self, path):
        return False

    def lexists(self, path):
        try:
            self.stat(path)
        except FilesystemError:
            return False
        return True

    def getsize(self, path):
        return self.stat(path).st_size

    def getmtime(self, path):
        return self.stat(path).st_mtime
