"""
Event names and connection states for the companion transport.
"""

from enum import Enum


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECT_SCHEDULED = "reconnect-scheduled"


class TransportEvent:
    """Events emitted locally by the transport channel."""
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    ERROR = "error"
    MESSAGE = "message"


class OutboundType:
    """Frame ``type`` values sent to the server."""
    CHAT_MESSAGE = "chat_message"
    TYPING = "typing"
    JOIN_ROOM = "join_room"
    LEAVE_ROOM = "leave_room"


class StoreEvent:
    """Socket.IO event names of the live message query."""
    SUBSCRIBE = "messages:subscribe"
    UNSUBSCRIBE = "messages:unsubscribe"
    SNAPSHOT = "messages:snapshot"
    ERROR = "messages:error"
