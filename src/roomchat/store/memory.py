"""
In-process message store.

Backs the offline CLI mode and the test suite. Ids are random hex strings
and timestamps strictly increase, like a server clock would order writes.
Subscribers receive the full ascending window on every change, scheduled on
the event loop rather than called inline, the way a push channel delivers.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from roomchat.models.message import Message
from roomchat.store.base import (
    BatchCallback,
    ErrorCallback,
    FetchResult,
    PersistResult,
    RemoteStore,
    Snapshot,
    StoreResult,
)

logger = logging.getLogger(__name__)


class MemoryStore(RemoteStore):
    def __init__(self, messages: Optional[list[Message]] = None):
        self._messages: list[Message] = sorted(messages or [], key=lambda m: m.sort_key)
        self._subscribers: dict[int, tuple[int, BatchCallback]] = {}
        self._next_sub = 0
        self._last_ts: Optional[datetime] = None

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    def _now(self) -> datetime:
        now = datetime.now(timezone.utc)
        if self._last_ts is not None and now <= self._last_ts:
            now = self._last_ts + timedelta(microseconds=1)
        self._last_ts = now
        return now

    def _window(self, limit: int) -> list[Message]:
        return list(self._messages[:limit])

    def _publish(self) -> None:
        if not self._subscribers:
            return
        loop = asyncio.get_running_loop()
        for limit, callback in list(self._subscribers.values()):
            loop.call_soon(callback, Snapshot(messages=self._window(limit)))

    async def persist(self, message: dict[str, Any]) -> PersistResult:
        now = self._now()
        stored = Message(
            id=uuid.uuid4().hex,
            user_id=message["userId"],
            name=message.get("name", ""),
            text=message["text"],
            kind=message.get("type") or "normal",
            timestamp=now,
            created_at=now,
        )
        self._messages.append(stored)
        self._publish()
        return PersistResult(ok=True, id=stored.id, timestamp=stored.timestamp)

    async def fetch_page(self, limit: int) -> FetchResult:
        return FetchResult(ok=True, messages=self._window(limit))

    async def subscribe(
        self,
        limit: int,
        on_batch: BatchCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Callable[[], None]:
        key = self._next_sub
        self._next_sub += 1
        self._subscribers[key] = (limit, on_batch)
        asyncio.get_running_loop().call_soon(on_batch, Snapshot(messages=self._window(limit)))

        def unsubscribe() -> None:
            self._subscribers.pop(key, None)
        return unsubscribe

    async def prune_oldest(self, keep: int) -> StoreResult:
        excess = len(self._messages) - max(keep, 0)
        if excess > 0:
            del self._messages[:excess]
            logger.debug(f"Deleted {excess} old message(s)")
            self._publish()
        return StoreResult(ok=True)
