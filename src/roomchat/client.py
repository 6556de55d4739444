"""
AsyncRoomChat — the room client that wires the engine together.
"""

import logging
from pathlib import Path
from typing import Any, Callable, Optional

from roomchat.config import ChatConfig
from roomchat.errors import ConnectionError
from roomchat.identity import IdentityStore
from roomchat.log import MessageLog
from roomchat.models.message import Message
from roomchat.models.participant import Participant
from roomchat.send import SendOutcome, SendPipeline
from roomchat.store.base import RemoteStore
from roomchat.store.remote import RemoteStoreClient
from roomchat.sync import SyncController, SyncMode, SyncState
from roomchat.transport.http import HttpClient
from roomchat.transport.socketio import SocketIOManager
from roomchat.transport.websocket import TransportChannel

logger = logging.getLogger(__name__)


class AsyncRoomChat:
    """Async client for the shared room."""

    def __init__(
        self,
        config: Optional[ChatConfig] = None,
        *,
        store: Optional[RemoteStore] = None,
        identity: Optional[IdentityStore] = None,
        identity_path: Optional[Path] = None,
        transport: Optional[TransportChannel] = None,
    ):
        self.config = config or ChatConfig.from_env()
        self.identity = identity or IdentityStore(identity_path, max_name_length=self.config.max_username_length)
        user = self.identity.user

        if store is None:
            http = HttpClient(self.config.api_base_url, timeout=self.config.request_timeout)
            sio = SocketIOManager(self.config.live_query_url, user.id, connect_timeout=self.config.request_timeout)
            store = RemoteStoreClient(http, sio, ack_timeout=self.config.request_timeout)
        self.store = store

        self.log = MessageLog(capacity=self.config.max_messages)
        self.pipeline = SendPipeline(
            self.log,
            self.store,
            self.identity,
            max_length=self.config.max_message_length,
            max_messages=self.config.max_messages,
        )
        self.sync = SyncController(
            self.store,
            self.log,
            mode=SyncMode.PUSH if self.config.enable_realtime else SyncMode.POLL,
            limit=self.config.max_messages,
        )

        if transport is None and self.config.enable_transport:
            transport = TransportChannel(
                self.config.ws_url,
                base_delay=self.config.reconnect_delay,
                max_attempts=self.config.max_reconnect_attempts,
            )
        self.transport = transport
        self._connected = False

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def user(self) -> Participant:
        return self.identity.user

    @property
    def messages(self) -> tuple[Message, ...]:
        return self.log.snapshot()

    async def connect(self) -> None:
        if self._connected:
            return
        if self.sync.state is SyncState.TERMINATED:
            raise ConnectionError("Client was disconnected. Create a new AsyncRoomChat to rejoin.")
        if self.transport is not None:
            self.sync.attach_transport(self.transport)
        await self.sync.start()
        if self.transport is not None:
            await self.transport.connect(self.user)
        self._connected = True
        logger.info(f"Joined room as {self.user.name!r} ({self.sync.mode.value} mode)")

    async def disconnect(self) -> None:
        await self.sync.stop()
        if self.transport is not None:
            await self.transport.disconnect()
        await self.store.close()
        self._connected = False

    async def __aenter__(self) -> "AsyncRoomChat":
        await self.connect()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.disconnect()

    async def wait_ready(self, timeout: Optional[float] = None) -> bool:
        return await self.sync.wait_ready(timeout)

    async def send(self, text: str) -> SendOutcome:
        self._ensure_connected()
        outcome = await self.pipeline.submit(text)
        if outcome.ok and outcome.message is not None and self.transport is not None and self.transport.connected:
            await self.transport.send_chat_message(outcome.message.to_wire())
        return outcome

    def rename(self, name: str) -> Participant:
        return self.identity.rename(name)

    def is_own(self, message: Message) -> bool:
        return message.user_id == self.user.id

    def on_change(self, listener: Callable[[tuple[Message, ...]], None]) -> Callable[[], None]:
        return self.log.subscribe(listener)

    def _ensure_connected(self) -> None:
        if not self._connected:
            raise ConnectionError("Not connected. Call connect() first.")
