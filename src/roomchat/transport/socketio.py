"""
Socket.IO connection manager for the live message query.

Connection: {base_url}/socket.io/ with auth={userId}. Inbound events are
fanned out to every registered handler as ``(event, envelope_dict)``.
"""

import asyncio
import logging
import uuid
from typing import Any, Callable, Optional

import socketio

from roomchat.transport.envelope import build_envelope, parse_envelope

SOCKETIO_PATH = "/socket.io/"

logger = logging.getLogger(__name__)


class SocketIOManager:
    def __init__(
        self,
        base_url: str,
        user_id: str,
        transports: Optional[list[str]] = None,
        connect_timeout: float = 10.0,
    ):
        self._base_url = base_url
        self._user_id = user_id
        self._transports = transports or ["websocket"]
        self._connect_timeout = connect_timeout
        self._sio: Optional[socketio.AsyncClient] = None
        self._event_handlers: list[Callable[[str, dict[str, Any]], None]] = []

    @property
    def connected(self) -> bool:
        return self._sio is not None and self._sio.connected

    @property
    def user_id(self) -> str:
        return self._user_id

    def add_event_handler(self, handler: Callable[[str, dict[str, Any]], None]) -> Callable[[], None]:
        """Add an event handler. Returns a cleanup function."""
        self._event_handlers.append(handler)
        def remove() -> None:
            try:
                self._event_handlers.remove(handler)
            except ValueError:
                pass
        return remove

    async def connect(self) -> None:
        if self._sio and self._sio.connected:
            return

        self._sio = socketio.AsyncClient(reconnection=True)

        @self._sio.event
        async def connect() -> None:
            logger.info("Live query channel connected")

        @self._sio.on("*")
        async def on_any(event: str, data: Any) -> None:
            if parse_envelope(data) is None:
                logger.warning(f"Dropping malformed envelope for {event!r}")
                return
            for handler in list(self._event_handlers):
                try:
                    handler(event, data)
                except Exception as e:
                    logger.error(f"Handler failed for {event!r}: {e}")

        @self._sio.event
        async def disconnect(_reason: str = "") -> None:
            logger.info("Live query channel disconnected")

        await self._sio.connect(
            self._base_url,
            auth={"userId": self._user_id},
            transports=self._transports,
            socketio_path=SOCKETIO_PATH,
            wait_timeout=self._connect_timeout,
        )

    def emit(self, event_type: str, data: Any) -> None:
        """Emit an enveloped event without waiting.

        Schedules the async emit on the running event loop. Errors are logged
        rather than silently swallowed.
        """
        if not self._sio or not self._sio.connected:
            raise RuntimeError("Socket.IO not connected")
        envelope = build_envelope(event_type, data, user_id=self._user_id)

        async def _do_emit() -> None:
            try:
                await self._sio.emit(event_type, envelope)  # type: ignore[union-attr]
            except Exception as e:
                logger.error(f"Emit failed for {event_type}: {e}")

        asyncio.get_running_loop().create_task(_do_emit())

    async def emit_and_wait(
        self,
        event_type: str,
        data: Any,
        timeout: float = 10.0,
    ) -> dict[str, Any]:
        """Emit and wait for the reply carrying the same request_id."""
        if not self._sio or not self._sio.connected:
            raise RuntimeError("Socket.IO not connected")
        request_id = str(uuid.uuid4())
        envelope = build_envelope(event_type, data, user_id=self._user_id, request_id=request_id)

        result_event = asyncio.Event()
        result_data: dict[str, Any] = {}

        def response_handler(evt: str, raw: dict[str, Any]) -> None:
            if evt == event_type and raw.get("request_id") == request_id:
                result_data.update(raw.get("data") or {})
                result_event.set()

        remove_handler = self.add_event_handler(response_handler)
        await self._sio.emit(event_type, envelope)

        try:
            await asyncio.wait_for(result_event.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            raise TimeoutError(f"Timeout waiting for {event_type} response")
        finally:
            remove_handler()

        return result_data

    async def disconnect(self) -> None:
        if self._sio:
            await self._sio.disconnect()
            self._sio = None
