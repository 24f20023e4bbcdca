"""
Unit tests for CameraSession authentication
"""

import pytest

from mqtt_camera_ftpd.ftp.capabilities import FilesystemOperation
from mqtt_camera_ftpd.ftp.session import CameraSession, SessionState


class RecordingSink:
    def __init__(self):
        self.uploads = []

    def on_upload(self, device_id, payload):
        self.uploads.append((device_id, payload))


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def session(sink):
    return CameraSession("127.0.0.1:50000", sink)


def test_starts_unauthenticated(session):
    assert session.state is SessionState.UNAUTHENTICATED
    assert session.device_id is None
    assert session.capabilities is None
    assert session.trace_id.startswith("ftp-")


class TestIdentity:
    def test_any_non_empty_identity_accepted(self, session):
        assert session.on_identity("front-door") is True
        assert session.state is SessionState.IDENTITY_GIVEN
        assert session.device_id == "front-door"

    @pytest.mark.parametrize("identity", ["", None])
    def test_empty_identity_rejected(self, session, identity):
        assert session.on_identity(identity) is False
        assert session.state is SessionState.UNAUTHENTICATED

    def test_new_identity_restarts_login(self, session):
        session.on_identity("cam1")
        session.on_credential("pw")

        assert session.on_identity("cam2") is True
        assert session.state is SessionState.IDENTITY_GIVEN
        assert session.capabilities is None


class TestCredential:
    def test_any_non_empty_credential_accepted(self, session, sink):
        session.on_identity("cam1")

        table = session.on_credential("whatever")

        assert table is not None
        assert session.authenticated
        assert session.capabilities is table
        assert table.device_id == "cam1"

    def test_table_writes_under_identity(self, session, sink):
        session.on_identity("cam1")
        table = session.on_credential("pw")

        table.call(FilesystemOperation.WRITE, "snap.jpg", b"data")

        assert sink.uploads == [("cam1", b"data")]

    @pytest.mark.parametrize("credential", ["", None])
    def test_empty_credential_rejected(self, session, credential):
        session.on_identity("cam1")

        assert session.on_credential(credential) is None
        assert session.state is SessionState.UNAUTHENTICATED
        assert session.capabilities is None

    def test_credential_without_identity_rejected(self, session):
        assert session.on_credential("pw") is None
        assert session.state is SessionState.UNAUTHENTICATED

    def test_rejected_credential_requires_new_identity(self, session):
        session.on_identity("cam1")
        session.on_credential("")

        assert session.on_credential("pw") is None

        session.on_identity("cam1")
        assert session.on_credential("pw") is not None


class TestClose:
    def test_closed_is_terminal(self, session):
        session.close()

        assert session.on_identity("cam1") is False
        assert session.on_credential("pw") is None
        assert session.state is SessionState.CLOSED

    def test_close_is_idempotent(self, session):
        session.close()
        session.close()

        assert session.state is SessionState.CLOSED

    def test_fail_closes(self, session):
        session.on_identity("cam1")

        session.fail(ConnectionResetError("reset by peer"))

        assert session.state is SessionState.CLOSED
