"""
Message log — the ordered, deduplicated, capacity-bounded view of the room.

Entries are kept sorted by ``Message.sort_key`` (server timestamp, falling
back to the client ``created_at``). Committed entries are keyed by id; pending
entries are reachable only through the ``PendingHandle`` returned by
``append``. Every mutating method is synchronous, so under a single event
loop no caller ever observes a half-applied update.
"""

import bisect
import itertools
import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, Iterator, Optional

from roomchat.emitter import EventEmitter
from roomchat.models.message import Message

logger = logging.getLogger(__name__)

CHANGED = "changed"


class PendingHandle:
    __slots__ = ("token",)

    def __init__(self, token: int):
        self.token = token

    def __repr__(self) -> str:
        return f"PendingHandle({self.token})"


class MessageLog:
    def __init__(self, capacity: Optional[int] = None):
        self._capacity = capacity
        self._entries: list[Message] = []
        self._by_id: dict[str, Message] = {}
        self._pending: dict[int, Message] = {}
        self._tokens = itertools.count(1)
        self._events = EventEmitter()

    @property
    def capacity(self) -> Optional[int]:
        return self._capacity

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Message]:
        return iter(tuple(self._entries))

    def get(self, message_id: str) -> Optional[Message]:
        return self._by_id.get(message_id)

    def snapshot(self) -> tuple[Message, ...]:
        return tuple(self._entries)

    def subscribe(self, listener: Callable[[tuple[Message, ...]], None]) -> Callable[[], None]:
        """Observe the log. The listener gets a snapshot after each change."""
        return self._events.on(CHANGED, listener)

    # -- mutation -----------------------------------------------------------

    def merge(self, batch: Iterable[Message]) -> int:
        """Reconcile a batch of committed messages into the log.

        Re-delivering the same batch is a no-op. Returns the number of
        entries inserted or replaced.
        """
        changed = 0
        for incoming in batch:
            if incoming.id is None:
                logger.debug("Ignoring message without id in merged batch")
                continue
            existing = self._by_id.get(incoming.id)
            if existing is not None:
                if existing == incoming:
                    continue
                self._remove(existing)
            self._insert(incoming)
            self._by_id[incoming.id] = incoming
            changed += 1
        if changed:
            self._notify()
        return changed

    def append(self, pending: Message) -> PendingHandle:
        """Add an optimistic, not yet persisted message at the tail."""
        if pending.id is not None:
            raise ValueError("append() takes a pending message without an id")
        now = datetime.now(timezone.utc)
        created_at = pending.created_at or now
        if self._entries and created_at < self._entries[-1].sort_key:
            created_at = self._entries[-1].sort_key
        if created_at != pending.created_at:
            pending = pending.model_copy(update={"created_at": created_at})
        handle = PendingHandle(next(self._tokens))
        self._pending[handle.token] = pending
        self._entries.append(pending)
        self._notify()
        return handle

    def commit(
        self,
        handle: PendingHandle,
        message_id: str,
        timestamp: Optional[datetime] = None,
    ) -> Optional[Message]:
        """Turn a pending entry into a committed one.

        If the committed copy already arrived through a merge, the pending
        entry is dropped and the merged entry is returned.
        """
        pending = self._pending.pop(handle.token, None)
        if pending is None:
            return None
        self._remove(pending)
        existing = self._by_id.get(message_id)
        if existing is not None:
            self._notify()
            return existing
        update: dict[str, object] = {"id": message_id}
        if timestamp is not None:
            if timestamp.tzinfo is None:
                timestamp = timestamp.replace(tzinfo=timezone.utc)
            update["timestamp"] = timestamp
        committed = pending.model_copy(update=update)
        self._insert(committed)
        self._by_id[message_id] = committed
        self._notify()
        return committed

    def rollback(self, handle: PendingHandle) -> Optional[Message]:
        pending = self._pending.pop(handle.token, None)
        if pending is None:
            return None
        self._remove(pending)
        self._notify()
        return pending

    def prune(self, cap: int) -> list[Message]:
        """Evict the oldest entries until at most ``cap`` remain."""
        cap = max(cap, 0)
        excess = len(self._entries) - cap
        if excess <= 0:
            return []
        removed = self._entries[:excess]
        del self._entries[:excess]
        for message in removed:
            if message.id is not None:
                self._by_id.pop(message.id, None)
        if self._pending:
            gone = {id(m) for m in removed}
            for token in [t for t, m in self._pending.items() if id(m) in gone]:
                del self._pending[token]
        logger.debug(f"Pruned {len(removed)} message(s) to cap {cap}")
        self._notify()
        return removed

    def enforce_capacity(self) -> list[Message]:
        if self._capacity is None:
            return []
        return self.prune(self._capacity)

    # -- internals ----------------------------------------------------------

    def _insert(self, message: Message) -> None:
        # equal keys keep arrival order
        index = bisect.bisect_right(self._entries, message.sort_key, key=_sort_key)
        self._entries.insert(index, message)

    def _remove(self, message: Message) -> None:
        for index, entry in enumerate(self._entries):
            if entry is message:
                del self._entries[index]
                return

    def _notify(self) -> None:
        if self._events.listener_count(CHANGED):
            self._events.emit(CHANGED, self.snapshot())


def _sort_key(message: Message) -> datetime:
    return message.sort_key
