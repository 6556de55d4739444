"""
Remote store contract for the backing append-only message collection.

Every operation reports failure through its result object instead of
raising, so callers can branch on ``ok`` without try/except around the
network.
"""

import abc
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional

from roomchat.models.message import Message


@dataclass(frozen=True)
class StoreResult:
    ok: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class PersistResult(StoreResult):
    id: Optional[str] = None
    timestamp: Optional[datetime] = None


@dataclass(frozen=True)
class FetchResult(StoreResult):
    messages: list[Message] = field(default_factory=list)


@dataclass(frozen=True)
class Snapshot:
    """One delivery of a live query: the full current window, ascending."""
    messages: list[Message]
    has_pending_writes: bool = False


BatchCallback = Callable[[Snapshot], None]
ErrorCallback = Callable[[Exception], None]


class RemoteStore(abc.ABC):
    @abc.abstractmethod
    async def persist(self, message: dict[str, Any]) -> PersistResult:
        """Store ``{userId, name, text}``; the store assigns id and timestamp."""

    @abc.abstractmethod
    async def fetch_page(self, limit: int) -> FetchResult:
        """Up to ``limit`` messages, ascending by timestamp."""

    @abc.abstractmethod
    async def subscribe(
        self,
        limit: int,
        on_batch: BatchCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Callable[[], None]:
        """Start a live query. Returns the function that cancels it."""

    @abc.abstractmethod
    async def prune_oldest(self, keep: int) -> StoreResult:
        """Delete all but the most recent ``keep`` messages."""

    async def close(self) -> None:
        return None
