"""
Remote store client — REST for writes and pages, Socket.IO for the live query.

REST endpoints (relative to the API base URL):
  POST /messages          {userId, name, text, createdAt} -> {id, timestamp}
  GET  /messages          ?limit=N&order=asc -> {messages: [...]}
  POST /messages/prune    {keep: N}

Live query events:
  C2S messages:subscribe    {subscription_id, limit, order}
  S2C messages:snapshot     {subscription_id, messages, has_pending_writes}
  S2C messages:error        {subscription_id, error}
  C2S messages:unsubscribe  {subscription_id}
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import httpx
from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from roomchat.errors import RemoteReadFailure, RoomChatError
from roomchat.models.events import StoreEvent
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
from roomchat.transport.http import HttpClient
from roomchat.transport.socketio import SocketIOManager

logger = logging.getLogger(__name__)

MESSAGES_PATH = "/messages"
_TIMESTAMP = TypeAdapter(datetime)


def parse_messages(raw: Any) -> list[Message]:
    """Validate a list of wire messages, dropping invalid and repeated ids."""
    messages: list[Message] = []
    seen: set[str] = set()
    for item in raw or []:
        try:
            message = Message.model_validate(item)
        except PydanticValidationError as e:
            logger.warning(f"Dropping malformed message: {e.error_count()} error(s)")
            continue
        if message.id is not None:
            if message.id in seen:
                continue
            seen.add(message.id)
        messages.append(message)
    return messages


class RemoteStoreClient(RemoteStore):
    def __init__(self, http: HttpClient, sio: SocketIOManager, ack_timeout: float = 10.0):
        self._http = http
        self._sio = sio
        self._ack_timeout = ack_timeout

    async def persist(self, message: dict[str, Any]) -> PersistResult:
        body = {
            "userId": message["userId"],
            "name": message.get("name", ""),
            "text": message["text"],
            "createdAt": datetime.now(timezone.utc).isoformat(),
        }
        try:
            result = await self._http.post(MESSAGES_PATH, body)
        except (RoomChatError, httpx.HTTPError) as e:
            logger.error(f"Error sending message: {e}")
            return PersistResult(ok=False, error=str(e))
        if not isinstance(result, dict) or not result.get("id"):
            return PersistResult(ok=False, error="store response carried no message id")
        timestamp = None
        if result.get("timestamp"):
            try:
                timestamp = _TIMESTAMP.validate_python(result["timestamp"])
            except PydanticValidationError:
                logger.warning(f"Ignoring unparseable timestamp {result['timestamp']!r}")
        return PersistResult(ok=True, id=str(result["id"]), timestamp=timestamp)

    async def fetch_page(self, limit: int) -> FetchResult:
        try:
            result = await self._http.get(MESSAGES_PATH, params={"limit": limit, "order": "asc"})
        except (RoomChatError, httpx.HTTPError) as e:
            logger.error(f"Error getting messages: {e}")
            return FetchResult(ok=False, error=str(e))
        raw = result.get("messages") if isinstance(result, dict) else result
        return FetchResult(ok=True, messages=parse_messages(raw)[:limit])

    async def subscribe(
        self,
        limit: int,
        on_batch: BatchCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Callable[[], None]:
        subscription_id = str(uuid.uuid4())

        def handler(event: str, raw: dict[str, Any]) -> None:
            data = raw.get("data")
            if not isinstance(data, dict) or data.get("subscription_id") != subscription_id:
                return
            if event == StoreEvent.SNAPSHOT:
                on_batch(Snapshot(
                    messages=parse_messages(data.get("messages"))[:limit],
                    has_pending_writes=bool(data.get("has_pending_writes")),
                ))
            elif event == StoreEvent.ERROR:
                logger.error(f"Error in messages subscription: {data.get('error')}")
                if on_error is not None:
                    on_error(RemoteReadFailure(str(data.get("error") or "subscription error")))

        try:
            await self._sio.connect()
        except Exception as e:
            raise RemoteReadFailure(f"Could not open live query channel: {e}")

        remove_handler = self._sio.add_event_handler(handler)
        try:
            await self._sio.emit_and_wait(
                StoreEvent.SUBSCRIBE,
                {"subscription_id": subscription_id, "limit": limit, "order": "asc"},
                timeout=self._ack_timeout,
            )
        except (TimeoutError, RuntimeError) as e:
            remove_handler()
            raise RemoteReadFailure(f"Subscription was not acknowledged: {e}")

        def unsubscribe() -> None:
            remove_handler()
            if self._sio.connected:
                self._sio.emit(StoreEvent.UNSUBSCRIBE, {"subscription_id": subscription_id})
        return unsubscribe

    async def prune_oldest(self, keep: int) -> StoreResult:
        try:
            await self._http.post(f"{MESSAGES_PATH}/prune", {"keep": keep})
        except (RoomChatError, httpx.HTTPError) as e:
            logger.error(f"Error deleting old messages: {e}")
            return StoreResult(ok=False, error=str(e))
        return StoreResult(ok=True)

    async def close(self) -> None:
        await self._sio.disconnect()
        await self._http.close()
