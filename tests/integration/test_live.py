"""
Integration tests against a running room server.

Requires environment variables:
  ROOMCHAT_API_BASE_URL  (optional) defaults to http://localhost:3001/api
  ROOMCHAT_WS_URL        (optional) defaults to ws://localhost:3001

Run: ROOMCHAT_INTEGRATION=1 pytest tests/integration/ -v
"""

import asyncio
import os

import pytest

from roomchat import AsyncRoomChat, ChatConfig, ConnectionState, SyncMode, TransportChannel

SKIP = not os.environ.get("ROOMCHAT_INTEGRATION")

pytestmark = pytest.mark.skipif(SKIP, reason="ROOMCHAT_INTEGRATION not set")


def make_client(tmp_path, name: str, **overrides) -> AsyncRoomChat:
    config = ChatConfig.from_env().model_copy(update=overrides)
    return AsyncRoomChat(config, identity_path=tmp_path / name / "user.json")


class TestRestStore:
    @pytest.mark.asyncio
    async def test_send_and_fetch(self, tmp_path):
        client = make_client(tmp_path, "poller", enable_realtime=False)
        async with client:
            assert client.sync.mode is SyncMode.POLL
            await client.wait_ready(timeout=10)
            outcome = await client.send("integration: poll mode")
            assert outcome.ok
            assert outcome.message.id
            assert client.messages[-1].id == outcome.message.id


class TestLiveQuery:
    @pytest.mark.asyncio
    async def test_second_participant_sees_message(self, tmp_path):
        alice = make_client(tmp_path, "alice", enable_realtime=True)
        bob = make_client(tmp_path, "bob", enable_realtime=True)
        async with alice, bob:
            await alice.wait_ready(timeout=10)
            await bob.wait_ready(timeout=10)
            outcome = await alice.send("integration: live query")
            assert outcome.ok

            for _ in range(50):
                if bob.log.get(outcome.message.id) is not None:
                    break
                await asyncio.sleep(0.1)
            assert bob.log.get(outcome.message.id) is not None


class TestTransport:
    @pytest.mark.asyncio
    async def test_connect_and_disconnect(self):
        channel = TransportChannel(ChatConfig.from_env().ws_url)
        await channel.connect("integration-user")
        assert channel.state is ConnectionState.CONNECTED
        assert await channel.send_typing(True)
        await channel.disconnect()
        assert channel.state is ConnectionState.DISCONNECTED
