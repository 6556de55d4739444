"""
Synchronization controller: feeds the message log from the remote store.

Push mode keeps one live query open and merges every window it delivers;
poll mode fetches a single page at startup. The mode is fixed for the life
of the controller.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Optional

from pydantic import ValidationError as PydanticValidationError

from roomchat.errors import RemoteReadFailure, SyncError
from roomchat.log import MessageLog
from roomchat.models.events import OutboundType
from roomchat.models.message import Message
from roomchat.store.base import RemoteStore, Snapshot
from roomchat.transport.websocket import TransportChannel

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 200


class SyncMode(str, Enum):
    PUSH = "push"
    POLL = "poll"


class SyncState(str, Enum):
    UNINITIALIZED = "uninitialized"
    SUBSCRIBING = "subscribing"
    ACTIVE = "active"
    TERMINATED = "terminated"


class SyncController:
    def __init__(
        self,
        store: RemoteStore,
        log: MessageLog,
        *,
        mode: SyncMode = SyncMode.PUSH,
        limit: int = DEFAULT_LIMIT,
    ):
        self._store = store
        self._log = log
        self._mode = mode
        self._limit = limit
        self._state = SyncState.UNINITIALIZED
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._transport_releases: list[Callable[[], None]] = []
        self._batches = 0
        self._ready = asyncio.Event()

    @property
    def mode(self) -> SyncMode:
        return self._mode

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def batches_processed(self) -> int:
        return self._batches

    async def start(self) -> None:
        if self._state is SyncState.TERMINATED:
            raise SyncError("Synchronization was stopped; create a new controller")
        self._release_subscription()
        self._state = SyncState.SUBSCRIBING
        if self._mode is SyncMode.PUSH:
            await self._subscribe()
        else:
            await self._poll_once()

    async def wait_ready(self, timeout: Optional[float] = None) -> bool:
        """Wait for the first window to land in the log."""
        try:
            await asyncio.wait_for(self._ready.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True

    async def _subscribe(self) -> None:
        try:
            unsubscribe = await self._store.subscribe(self._limit, self._on_batch, self._on_error)
        except RemoteReadFailure as e:
            logger.error(f"Could not subscribe to messages: {e}")
            self._state = SyncState.UNINITIALIZED
            self._ready.set()
            return
        if self._state is SyncState.TERMINATED:
            # stopped while the subscription was being set up
            unsubscribe()
            return
        self._unsubscribe = unsubscribe
        self._state = SyncState.ACTIVE

    async def _poll_once(self) -> None:
        result = await self._store.fetch_page(self._limit)
        if result.ok:
            self._apply(result.messages)
        else:
            logger.error(f"Error getting messages: {result.error}")
        if self._state is not SyncState.TERMINATED:
            self._state = SyncState.ACTIVE
        self._ready.set()

    def _on_batch(self, snapshot: Snapshot) -> None:
        if self._state is SyncState.TERMINATED:
            return
        if self._batches and snapshot.has_pending_writes:
            logger.debug("Skipping snapshot with unacknowledged local writes")
            return
        self._apply(snapshot.messages)
        self._ready.set()

    def _on_error(self, error: Exception) -> None:
        logger.warning(f"Message subscription error, keeping current view: {error}")

    def _apply(self, messages: list[Message]) -> None:
        self._batches += 1
        changed = self._log.merge(messages)
        removed = self._log.prune(self._limit) if len(self._log) > self._limit else []
        logger.debug(f"Merged batch #{self._batches}: {changed} changed, {len(removed)} evicted")

    # -- companion transport -------------------------------------------------

    def attach_transport(self, channel: TransportChannel) -> None:
        """Merge committed messages pushed over the companion channel."""
        self._transport_releases.append(channel.on(OutboundType.CHAT_MESSAGE, self._on_frame))

    def _on_frame(self, frame: Any) -> None:
        if self._state is SyncState.TERMINATED or not isinstance(frame, dict):
            return
        payload = {k: v for k, v in frame.items() if k != "type"}
        payload.setdefault("type", frame.get("kind"))
        try:
            message = Message.model_validate(payload)
        except PydanticValidationError as e:
            logger.warning(f"Dropping malformed chat_message frame: {e.error_count()} error(s)")
            return
        if message.id is None:
            logger.debug("Ignoring chat_message frame without id")
            return
        self._apply([message])

    # -- teardown -------------------------------------------------------------

    def _release_subscription(self) -> None:
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is not None:
            unsubscribe()

    async def stop(self) -> None:
        if self._state is SyncState.TERMINATED:
            return
        self._state = SyncState.TERMINATED
        self._release_subscription()
        for release in self._transport_releases:
            release()
        self._transport_releases.clear()
