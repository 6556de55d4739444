"""
Reconnecting WebSocket channel — the companion push path.

Frames are JSON text objects with a ``type`` discriminator. Every inbound
frame is emitted as ``message`` and again under its own ``type``.

An unclean close (or a failed open) schedules a reconnect after
``base_delay * 2**(attempt-1)`` seconds. The attempt counter resets on every
successful connect and on every manual ``connect()``. Once it exceeds
``max_attempts`` the channel stays disconnected and emits ``error`` with a
``TransportFailure``. ``disconnect()`` is always clean and cancels any
scheduled reconnect; a socket opened by an attempt that was still in flight
is closed as soon as it arrives.
"""

import asyncio
import contextlib
import json
import logging
from typing import Any, Awaitable, Callable, Optional, Union
from urllib.parse import urlencode

import websockets
from websockets.exceptions import ConnectionClosed

from roomchat.emitter import EventEmitter, Handler
from roomchat.errors import TransportFailure
from roomchat.models.events import ConnectionState, OutboundType, TransportEvent
from roomchat.models.participant import Participant

DEFAULT_WS_URL = "ws://localhost:3001"
NORMAL_CLOSURE = 1000

logger = logging.getLogger(__name__)

Connector = Callable[[str], Awaitable[Any]]


async def _default_connector(url: str) -> Any:
    return await websockets.connect(url, open_timeout=10)


class TransportChannel:
    def __init__(
        self,
        url: str = DEFAULT_WS_URL,
        *,
        base_delay: float = 1.0,
        max_attempts: int = 5,
        connector: Optional[Connector] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self._url = url
        self._base_delay = base_delay
        self._max_attempts = max_attempts
        self._connector = connector or _default_connector
        self._sleep = sleep
        self._events = EventEmitter()

        self._state = ConnectionState.DISCONNECTED
        self._user_id: Optional[str] = None
        self._ws: Any = None
        self._reader_task: Optional[asyncio.Task[None]] = None
        self._reconnect_task: Optional[asyncio.Task[None]] = None
        self._attempts = 0
        self._exhausted = False
        self._intentional = False
        self._generation = 0

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    @property
    def attempts(self) -> int:
        return self._attempts

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    def status(self) -> dict[str, Any]:
        return {
            "state": self._state.value,
            "connected": self.connected,
            "reconnect_attempts": self._attempts,
            "exhausted": self._exhausted,
        }

    # -- events -------------------------------------------------------------

    def on(self, event: str, handler: Handler) -> Callable[[], None]:
        """Register a handler. Returns a cleanup function."""
        return self._events.on(event, handler)

    def off(self, event: str, handler: Handler) -> None:
        self._events.off(event, handler)

    # -- lifecycle ----------------------------------------------------------

    async def connect(self, identity: Union[Participant, str]) -> None:
        self._user_id = identity.id if isinstance(identity, Participant) else str(identity)
        self._intentional = False
        if self._state in (ConnectionState.CONNECTING, ConnectionState.CONNECTED):
            return
        self._cancel_reconnect()
        self._attempts = 0
        self._exhausted = False
        await self._open()

    async def disconnect(self) -> None:
        self._intentional = True
        # an open still awaiting the connector is now stale
        self._generation += 1
        self._cancel_reconnect()
        ws, self._ws = self._ws, None
        if ws is not None:
            try:
                await ws.close(NORMAL_CLOSURE, "User disconnected")
            except Exception as e:
                logger.warning(f"Error while closing WebSocket: {e}")
        reader, self._reader_task = self._reader_task, None
        if reader is not None and reader is not asyncio.current_task():
            with contextlib.suppress(asyncio.CancelledError):
                await reader
        self._state = ConnectionState.DISCONNECTED

    async def _open(self) -> None:
        generation = self._generation
        self._state = ConnectionState.CONNECTING
        url = self._build_url()
        try:
            ws = await self._connector(url)
        except asyncio.CancelledError:
            if generation == self._generation:
                self._state = ConnectionState.DISCONNECTED
            raise
        except Exception as e:
            if generation != self._generation:
                logger.debug(f"Ignoring failure of superseded connection attempt: {e}")
                return
            logger.error(f"Failed to connect to WebSocket: {e}")
            self._state = ConnectionState.DISCONNECTED
            self._events.emit(TransportEvent.ERROR, TransportFailure(str(e)))
            self._events.emit(TransportEvent.DISCONNECTED, {"clean": False, "code": None, "reason": str(e)})
            self._schedule_reconnect()
            return

        if generation != self._generation:
            with contextlib.suppress(Exception):
                await ws.close(NORMAL_CLOSURE, "User disconnected")
            return

        self._ws = ws
        self._state = ConnectionState.CONNECTED
        self._attempts = 0
        self._exhausted = False
        logger.info("WebSocket connected")
        self._events.emit(TransportEvent.CONNECTED, {"url": url})
        self._reader_task = asyncio.get_running_loop().create_task(self._read_loop(ws))

    async def _read_loop(self, ws: Any) -> None:
        clean = False
        reason = ""
        try:
            async for frame in ws:
                self._handle_frame(frame)
            clean = True
        except ConnectionClosed as e:
            reason = str(e)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            reason = str(e)
            logger.error(f"WebSocket error: {e}")
            self._events.emit(TransportEvent.ERROR, TransportFailure(reason))

        if self._ws is ws:
            self._ws = None
        clean = clean or self._intentional
        code = getattr(ws, "close_code", None)
        self._state = ConnectionState.DISCONNECTED
        logger.info(f"WebSocket disconnected (code={code}, clean={clean})")
        self._events.emit(TransportEvent.DISCONNECTED, {"clean": clean, "code": code, "reason": reason})
        if not clean:
            self._schedule_reconnect()

    def _handle_frame(self, frame: Union[str, bytes]) -> None:
        try:
            if isinstance(frame, bytes):
                frame = frame.decode("utf-8")
            data = json.loads(frame)
        except (UnicodeDecodeError, ValueError) as e:
            logger.warning(f"Error parsing WebSocket message: {e}")
            return
        if not isinstance(data, dict):
            logger.warning("Dropping WebSocket frame that is not a JSON object")
            return
        self._events.emit(TransportEvent.MESSAGE, data)
        frame_type = data.get("type")
        if isinstance(frame_type, str) and frame_type:
            self._events.emit(frame_type, data)

    # -- reconnect ----------------------------------------------------------

    def _schedule_reconnect(self) -> None:
        if self._intentional:
            return
        self._attempts += 1
        if self._attempts > self._max_attempts:
            self._state = ConnectionState.DISCONNECTED
            self._exhausted = True
            logger.error(f"Giving up on WebSocket after {self._max_attempts} reconnect attempts")
            self._events.emit(
                TransportEvent.ERROR,
                TransportFailure("Reconnect attempts exhausted", {"max_attempts": self._max_attempts}),
            )
            return
        delay = self._base_delay * 2 ** (self._attempts - 1)
        logger.info(f"Attempting to reconnect in {delay}s (attempt {self._attempts})")
        self._state = ConnectionState.RECONNECT_SCHEDULED
        self._reconnect_task = asyncio.get_running_loop().create_task(self._reconnect_after(delay))

    async def _reconnect_after(self, delay: float) -> None:
        await self._sleep(delay)
        if self._state is ConnectionState.RECONNECT_SCHEDULED and not self._intentional:
            await self._open()

    def _cancel_reconnect(self) -> None:
        task, self._reconnect_task = self._reconnect_task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        if self._state is ConnectionState.RECONNECT_SCHEDULED:
            self._state = ConnectionState.DISCONNECTED

    def _build_url(self) -> str:
        separator = "&" if "?" in self._url else "?"
        return f"{self._url}{separator}{urlencode({'userId': self._user_id or ''})}"

    # -- outbound -----------------------------------------------------------

    async def send(self, payload: dict[str, Any]) -> bool:
        """Send one JSON frame. Returns False instead of raising."""
        if self._state is not ConnectionState.CONNECTED or self._ws is None:
            logger.warning("WebSocket not connected")
            return False
        try:
            await self._ws.send(json.dumps(payload, default=str))
            return True
        except Exception as e:
            logger.error(f"Failed to send WebSocket message: {e}")
            return False

    async def send_chat_message(self, message: dict[str, Any]) -> bool:
        frame = dict(message)
        # the frame discriminator owns "type"; the message kind travels as "kind"
        if "type" in frame:
            frame["kind"] = frame.pop("type")
        frame["type"] = OutboundType.CHAT_MESSAGE
        return await self.send(frame)

    async def send_typing(self, is_typing: bool) -> bool:
        return await self.send({"type": OutboundType.TYPING, "isTyping": is_typing})

    async def join_room(self, room_id: str) -> bool:
        return await self.send({"type": OutboundType.JOIN_ROOM, "roomId": room_id})

    async def leave_room(self, room_id: str) -> bool:
        return await self.send({"type": OutboundType.LEAVE_ROOM, "roomId": room_id})
