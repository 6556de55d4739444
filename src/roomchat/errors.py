"""
Error types raised and returned by the roomchat engine.
"""

from typing import Any, Optional


class RoomChatError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class ValidationError(RoomChatError):
    """Empty or over-length input. Never reaches the network."""

    def __init__(self, message: str, code: str = "validation_error", details: Optional[dict[str, Any]] = None):
        super().__init__(code, message, details)


class BusyError(RoomChatError):
    """A send is already in flight."""

    def __init__(self, message: str = "A message is already being sent"):
        super().__init__("busy", message)


class RemoteWriteFailure(RoomChatError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("remote_write_failure", message, details)


class RemoteReadFailure(RoomChatError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("remote_read_failure", message, details)


class TransportFailure(RoomChatError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("transport_failure", message, details)


class SyncError(RoomChatError):
    def __init__(self, message: str):
        super().__init__("sync_error", message)


class ConnectionError(RoomChatError):
    def __init__(self, message: str):
        super().__init__("connection_error", message)
