"""
roomchat — client for a shared anonymous chat room.

Ordered, deduplicated message log fed by a live query, optimistic sends with
rollback, retention pruning and a reconnecting WebSocket companion channel.
"""

from roomchat.client import AsyncRoomChat
from roomchat.config import ChatConfig
from roomchat.errors import (
    BusyError,
    ConnectionError,
    RemoteReadFailure,
    RemoteWriteFailure,
    RoomChatError,
    SyncError,
    TransportFailure,
    ValidationError,
)
from roomchat.log import MessageLog
from roomchat.models.events import ConnectionState, OutboundType, TransportEvent
from roomchat.models.message import Message, MessageKind
from roomchat.models.participant import Participant
from roomchat.send import SendOutcome, SendPipeline, SendStatus
from roomchat.sync import SyncController, SyncMode, SyncState
from roomchat.transport.websocket import TransportChannel

__version__ = "0.1.0"
__all__ = [
    "AsyncRoomChat",
    "ChatConfig",
    "RoomChatError",
    "ValidationError",
    "BusyError",
    "RemoteWriteFailure",
    "RemoteReadFailure",
    "TransportFailure",
    "SyncError",
    "ConnectionError",
    "MessageLog",
    "Message",
    "MessageKind",
    "Participant",
    "SendPipeline",
    "SendOutcome",
    "SendStatus",
    "SyncController",
    "SyncMode",
    "SyncState",
    "TransportChannel",
    "ConnectionState",
    "TransportEvent",
    "OutboundType",
]
