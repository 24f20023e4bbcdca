"""
Unit tests for the capability table
"""

import stat

import pytest

from mqtt_camera_ftpd.ftp.capabilities import (
    SYNTHETIC_DIRECTORY_STAT,
    CapabilityTable,
    FilesystemOperation,
    OperationNotImplementedError,
    UnsupportedCapability,
    build_capability_table,
)


class RecordingSink:
    def __init__(self, error=None):
        self.uploads = []
        self.error = error

    def on_upload(self, device_id, payload):
        if self.error is not None:
            raise self.error
        self.uploads.append((device_id, payload))


class Completion:
    """Captures the (error, *results) a capability completes with."""

    def __init__(self):
        self.calls = []

    def __call__(self, error=None, *results):
        self.calls.append((error, results))

    @property
    def error(self):
        return self.calls[-1][0]

    @property
    def results(self):
        return self.calls[-1][1]


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def table(sink):
    return build_capability_table("cam1", sink)


STUB_CALLS = [
    (FilesystemOperation.READ, ("/snap.jpg",)),
    (FilesystemOperation.UNLINK, ("/snap.jpg",)),
    (FilesystemOperation.READDIR, ("/",)),
    (FilesystemOperation.MKDIR, ("/new",)),
    (FilesystemOperation.OPEN, ("/snap.jpg", "r+b")),
    (FilesystemOperation.CLOSE, ("/snap.jpg",)),
    (FilesystemOperation.RMDIR, ("/old",)),
    (FilesystemOperation.RENAME, ("/a", "/b")),
    (FilesystemOperation.CHMOD, ("/a", 0o644)),
    (FilesystemOperation.UTIME, ("/a", 0)),
]


def test_table_covers_every_operation(table):
    assert set(table) == set(FilesystemOperation)
    assert len(table) == len(FilesystemOperation)


def test_table_bound_to_identity(table):
    assert table.device_id == "cam1"


def test_incomplete_table_rejected():
    with pytest.raises(ValueError, match="missing"):
        CapabilityTable("cam1", {FilesystemOperation.WRITE: UnsupportedCapability(FilesystemOperation.WRITE)})


class TestWrite:
    def test_forwards_contents_under_session_identity(self, table, sink):
        completion = Completion()

        table[FilesystemOperation.WRITE]("snap.jpg", b"\xff\xd8data", completion)

        assert sink.uploads == [("cam1", b"\xff\xd8data")]
        assert completion.calls == [(None, ())]

    def test_file_name_does_not_change_identity(self, table, sink):
        table[FilesystemOperation.WRITE]("other-camera/snap.jpg", b"x", Completion())

        assert sink.uploads == [("cam1", b"x")]

    def test_empty_upload_is_still_an_event(self, table, sink):
        table[FilesystemOperation.WRITE]("empty.jpg", b"", Completion())

        assert sink.uploads == [("cam1", b"")]

    def test_sink_error_delivered_through_callback(self):
        error = RuntimeError("boom")
        table = build_capability_table("cam1", RecordingSink(error=error))
        completion = Completion()

        table[FilesystemOperation.WRITE]("snap.jpg", b"x", completion)

        assert completion.calls == [(error, ())]


class TestStat:
    def test_reports_synthetic_directory(self, table):
        completion = Completion()

        table[FilesystemOperation.STAT]("/any/path", completion)

        assert completion.error is None
        (result,) = completion.results
        assert result is SYNTHETIC_DIRECTORY_STAT

    def test_synthetic_directory_attributes(self):
        assert stat.S_ISDIR(SYNTHETIC_DIRECTORY_STAT.st_mode)
        assert stat.S_IMODE(SYNTHETIC_DIRECTORY_STAT.st_mode) == 0o777
        assert SYNTHETIC_DIRECTORY_STAT.st_size == 1
        assert SYNTHETIC_DIRECTORY_STAT.st_mtime == 1


class TestUnsupported:
    @pytest.mark.parametrize("operation,args", STUB_CALLS, ids=lambda v: getattr(v, "value", None))
    def test_fails_through_callback(self, table, operation, args):
        completion = Completion()

        table[operation](*args, completion)

        assert len(completion.calls) == 1
        assert isinstance(completion.error, OperationNotImplementedError)
        assert str(completion.error) == "Not implemented"
        assert completion.error.operation is operation

    @pytest.mark.parametrize("operation,args", STUB_CALLS, ids=lambda v: getattr(v, "value", None))
    def test_never_touches_sink(self, table, sink, operation, args):
        table[operation](*args, Completion())

        assert sink.uploads == []


class TestCall:
    def test_returns_results(self, table):
        assert table.call(FilesystemOperation.STAT, "/") == (SYNTHETIC_DIRECTORY_STAT,)

    def test_raises_completion_error(self, table):
        with pytest.raises(OperationNotImplementedError):
            table.call(FilesystemOperation.MKDIR, "/x")

    def test_capability_that_never_completes(self):
        capabilities = {op: UnsupportedCapability(op) for op in FilesystemOperation}
        capabilities[FilesystemOperation.STAT] = lambda path, callback: None
        table = CapabilityTable("cam1", capabilities)

        with pytest.raises(RuntimeError, match="did not complete"):
            table.call(FilesystemOperation.STAT, "/")
