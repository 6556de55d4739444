"""Shared builders and fakes for the test suite."""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from roomchat.models.message import Message
from roomchat.models.participant import Participant
from roomchat.store.base import FetchResult, PersistResult, RemoteStore, StoreResult

BASE = datetime(2024, 1, 1, tzinfo=timezone.utc)


def at(seconds: float) -> datetime:
    return BASE + timedelta(seconds=seconds)


def msg(id: Optional[str], seconds: float, text: Optional[str] = None, user: str = "u1", **extra: Any) -> Message:
    return Message(
        id=id,
        user_id=user,
        name=extra.pop("name", "Anon"),
        text=text or f"text {id}",
        timestamp=at(seconds) if id is not None else None,
        created_at=at(seconds),
        **extra,
    )


class StaticIdentity:
    def __init__(self, user_id: str = "me", name: str = "Anonymous 1"):
        self.user = Participant(id=user_id, name=name)


class FakeStore(RemoteStore):
    """Scriptable store: persist results, page results and live-query hooks."""

    def __init__(self) -> None:
        self.persisted: list[dict[str, Any]] = []
        self.persist_result: Any = None
        self.persist_gate: Optional[asyncio.Event] = None
        self.page = FetchResult(ok=True, messages=[])
        self.prune_calls: list[int] = []
        self.prune_result = StoreResult(ok=True)
        self.subscribe_calls = 0
        self.unsubscribe_calls = 0
        self.subscribe_error: Optional[Exception] = None
        self.on_batch: Optional[Callable[..., None]] = None
        self.on_error: Optional[Callable[..., None]] = None
        self._ids = 0

    async def persist(self, message: dict[str, Any]) -> PersistResult:
        self.persisted.append(message)
        await asyncio.sleep(0)
        if self.persist_gate is not None:
            await self.persist_gate.wait()
        if isinstance(self.persist_result, Exception):
            raise self.persist_result
        if self.persist_result is not None:
            return self.persist_result
        self._ids += 1
        return PersistResult(ok=True, id=f"m{self._ids}", timestamp=at(10_000 + self._ids))

    async def fetch_page(self, limit: int) -> FetchResult:
        if self.page.ok:
            return FetchResult(ok=True, messages=self.page.messages[:limit])
        return self.page

    async def subscribe(self, limit, on_batch, on_error=None):
        self.subscribe_calls += 1
        if self.subscribe_error is not None:
            raise self.subscribe_error
        self.on_batch = on_batch
        self.on_error = on_error

        def unsubscribe() -> None:
            self.unsubscribe_calls += 1
        return unsubscribe

    async def prune_oldest(self, keep: int) -> StoreResult:
        self.prune_calls.append(keep)
        if isinstance(self.prune_result, Exception):
            raise self.prune_result
        return self.prune_result
