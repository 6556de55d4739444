"""Synchronization controller in push and poll mode."""

import asyncio

import pytest

from roomchat.errors import RemoteReadFailure, SyncError
from roomchat.log import MessageLog
from roomchat.models.message import Message
from roomchat.store.base import FetchResult, Snapshot
from roomchat.store.memory import MemoryStore
from roomchat.sync import SyncController, SyncMode, SyncState

from factories import FakeStore, msg


def ids(log):
    return [m.id for m in log.snapshot()]


class TestPushMode:
    @pytest.mark.asyncio
    async def test_batches_are_merged(self):
        store, log = FakeStore(), MessageLog()
        sync = SyncController(store, log, mode=SyncMode.PUSH, limit=10)
        await sync.start()
        assert sync.state is SyncState.ACTIVE

        store.on_batch(Snapshot(messages=[msg("a", 1), msg("b", 2)]))
        assert ids(log) == ["a", "b"]
        assert await sync.wait_ready(timeout=0.1)

    @pytest.mark.asyncio
    async def test_identical_redelivery_leaves_log_unchanged(self):
        store, log = FakeStore(), MessageLog()
        sync = SyncController(store, log, limit=10)
        await sync.start()
        window = [msg("a", 1), msg("b", 2)]
        store.on_batch(Snapshot(messages=window))
        store.on_batch(Snapshot(messages=list(window)))
        assert len(log) == 2

    @pytest.mark.asyncio
    async def test_local_echo_with_pending_writes_is_skipped(self):
        store, log = FakeStore(), MessageLog()
        sync = SyncController(store, log, limit=10)
        await sync.start()
        store.on_batch(Snapshot(messages=[msg("a", 1)]))
        echo = Message(id="e1", user_id="me", text="mine", created_at=msg("x", 5).created_at)
        store.on_batch(Snapshot(messages=[msg("a", 1), echo], has_pending_writes=True))
        assert ids(log) == ["a"]

        # the acknowledged window converges
        store.on_batch(Snapshot(messages=[msg("a", 1), msg("e1", 5, text="mine", user="me")]))
        assert ids(log) == ["a", "e1"]

    @pytest.mark.asyncio
    async def test_first_snapshot_is_applied_even_with_pending_writes(self):
        store, log = FakeStore(), MessageLog()
        sync = SyncController(store, log, limit=10)
        await sync.start()
        store.on_batch(Snapshot(messages=[msg("a", 1)], has_pending_writes=True))
        assert ids(log) == ["a"]

    @pytest.mark.asyncio
    async def test_window_beyond_limit_is_evicted_oldest_first(self):
        store, log = FakeStore(), MessageLog()
        sync = SyncController(store, log, limit=3)
        await sync.start()
        store.on_batch(Snapshot(messages=[msg(str(i), i) for i in range(3)]))
        store.on_batch(Snapshot(messages=[msg(str(i), i) for i in range(2, 5)]))
        assert ids(log) == ["2", "3", "4"]

    @pytest.mark.asyncio
    async def test_subscription_error_keeps_current_view(self):
        store, log = FakeStore(), MessageLog()
        sync = SyncController(store, log, limit=10)
        await sync.start()
        store.on_batch(Snapshot(messages=[msg("a", 1)]))
        store.on_error(RemoteReadFailure("listener revoked"))
        assert ids(log) == ["a"]

    @pytest.mark.asyncio
    async def test_failed_subscribe_leaves_log_untouched(self):
        store, log = FakeStore(), MessageLog()
        log.merge([msg("a", 1)])
        store.subscribe_error = RemoteReadFailure("offline")
        sync = SyncController(store, log, limit=10)
        await sync.start()
        assert ids(log) == ["a"]
        assert sync.state is SyncState.UNINITIALIZED
        assert await sync.wait_ready(timeout=0.1)

    @pytest.mark.asyncio
    async def test_restart_releases_prior_subscription(self):
        store, log = FakeStore(), MessageLog()
        sync = SyncController(store, log, limit=10)
        await sync.start()
        await sync.start()
        assert store.subscribe_calls == 2
        assert store.unsubscribe_calls == 1

    @pytest.mark.asyncio
    async def test_stop_releases_and_ignores_late_batches(self):
        store, log = FakeStore(), MessageLog()
        sync = SyncController(store, log, limit=10)
        await sync.start()
        on_batch = store.on_batch
        await sync.stop()
        await sync.stop()
        assert store.unsubscribe_calls == 1
        assert sync.state is SyncState.TERMINATED

        on_batch(Snapshot(messages=[msg("late", 1)]))
        assert len(log) == 0

        with pytest.raises(SyncError):
            await sync.start()


class TestPollMode:
    @pytest.mark.asyncio
    async def test_single_fetch_is_merged(self):
        store, log = FakeStore(), MessageLog()
        store.page = FetchResult(ok=True, messages=[msg("b", 2), msg("a", 1)])
        sync = SyncController(store, log, mode=SyncMode.POLL, limit=10)
        await sync.start()
        assert ids(log) == ["a", "b"]
        assert store.subscribe_calls == 0
        assert sync.state is SyncState.ACTIVE

    @pytest.mark.asyncio
    async def test_fetch_failure_keeps_log(self):
        store, log = FakeStore(), MessageLog()
        log.merge([msg("a", 1)])
        store.page = FetchResult(ok=False, error="unavailable")
        sync = SyncController(store, log, mode=SyncMode.POLL, limit=10)
        await sync.start()
        assert ids(log) == ["a"]
        assert await sync.wait_ready(timeout=0.1)

    @pytest.mark.asyncio
    async def test_fetch_is_capped(self):
        store, log = FakeStore(), MessageLog()
        store.page = FetchResult(ok=True, messages=[msg(str(i), i) for i in range(10)])
        sync = SyncController(store, log, mode=SyncMode.POLL, limit=4)
        await sync.start()
        assert len(log) == 4


class TestTransportFrames:
    class FakeChannel:
        def __init__(self):
            self.handlers = {}

        def on(self, event, handler):
            self.handlers.setdefault(event, []).append(handler)
            return lambda: self.handlers[event].remove(handler)

        def fire(self, event, data):
            for handler in list(self.handlers.get(event, [])):
                handler(data)

    @pytest.mark.asyncio
    async def test_committed_frames_are_merged(self):
        store, log = FakeStore(), MessageLog()
        sync = SyncController(store, log, limit=10)
        channel = self.FakeChannel()
        sync.attach_transport(channel)
        await sync.start()
        channel.fire("chat_message", {
            "type": "chat_message", "id": "w1", "userId": 42, "name": "B", "text": "over ws",
            "timestamp": "2024-01-01T00:00:05Z", "kind": "announcement",
        })
        assert ids(log) == ["w1"]
        assert log.get("w1").user_id == "42"
        assert log.get("w1").is_banner

    @pytest.mark.asyncio
    async def test_malformed_or_uncommitted_frames_are_dropped(self):
        store, log = FakeStore(), MessageLog()
        sync = SyncController(store, log, limit=10)
        channel = self.FakeChannel()
        sync.attach_transport(channel)
        await sync.start()
        channel.fire("chat_message", {"type": "chat_message", "id": "x"})
        channel.fire("chat_message", {"type": "chat_message", "userId": "u", "text": "no id"})
        assert len(log) == 0

    @pytest.mark.asyncio
    async def test_stop_releases_transport_handlers(self):
        store, log = FakeStore(), MessageLog()
        sync = SyncController(store, log, limit=10)
        channel = self.FakeChannel()
        sync.attach_transport(channel)
        await sync.stop()
        assert channel.handlers["chat_message"] == []


@pytest.mark.asyncio
async def test_memory_store_round_trip():
    store, log = MemoryStore(), MessageLog()
    sync = SyncController(store, log, limit=3)
    await sync.start()
    assert await sync.wait_ready(timeout=1)

    for text in ("one", "two", "three", "four"):
        await store.persist({"userId": "u", "name": "U", "text": text})
    await store.prune_oldest(3)
    for _ in range(10):
        if [m.text for m in log.snapshot()] == ["two", "three", "four"]:
            break
        await asyncio.sleep(0)
    assert [m.text for m in log.snapshot()] == ["two", "three", "four"]
    await sync.stop()
