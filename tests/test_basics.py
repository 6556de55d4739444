"""Basic unit tests for the roomchat package."""

from roomchat import (
    AsyncRoomChat,
    BusyError,
    ConnectionError,
    MessageLog,
    RemoteReadFailure,
    RemoteWriteFailure,
    RoomChatError,
    SyncError,
    TransportChannel,
    TransportFailure,
    ValidationError,
    __version__,
)
from roomchat.models.events import ConnectionState, OutboundType, StoreEvent, TransportEvent


def test_version():
    assert __version__ == "0.1.0"


def test_public_exports():
    assert AsyncRoomChat is not None
    assert MessageLog is not None
    assert TransportChannel is not None


def test_error_hierarchy():
    for cls in (ValidationError, BusyError, RemoteWriteFailure, RemoteReadFailure,
                TransportFailure, SyncError, ConnectionError):
        assert issubclass(cls, RoomChatError)


def test_error_attributes():
    err = RoomChatError(code="test_code", message="something broke")
    assert err.code == "test_code"
    assert str(err) == "something broke"
    assert err.details is None

    err_with_details = TransportFailure("gave up", details={"max_attempts": 5})
    assert err_with_details.code == "transport_failure"
    assert err_with_details.details == {"max_attempts": 5}
    assert BusyError().code == "busy"


def test_event_constants():
    assert OutboundType.CHAT_MESSAGE == "chat_message"
    assert TransportEvent.DISCONNECTED == "disconnected"
    assert StoreEvent.SNAPSHOT == "messages:snapshot"
    assert ConnectionState.RECONNECT_SCHEDULED.value == "reconnect-scheduled"
