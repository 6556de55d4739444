"""
Send pipeline — optimistic append, persist, then commit or roll back.

Only one send may be in flight. The flag is raised before the first await
and lowered in ``finally``, so a failed or crashed send never blocks the
next one.
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Protocol

from roomchat.errors import BusyError, RemoteWriteFailure, RoomChatError, ValidationError
from roomchat.log import MessageLog
from roomchat.models.message import Message
from roomchat.models.participant import Participant
from roomchat.store.base import RemoteStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_MESSAGE_LENGTH = 1000
DEFAULT_MAX_MESSAGES = 200


class SendStatus(str, Enum):
    SENT = "sent"
    INVALID = "invalid"
    BUSY = "busy"
    FAILED = "failed"


class SendOutcome:
    __slots__ = ("status", "draft", "message", "error", "pruned")

    def __init__(
        self,
        status: SendStatus,
        draft: str,
        message: Optional[Message] = None,
        error: Optional[RoomChatError] = None,
        pruned: int = 0,
    ):
        self.status = status
        self.draft = draft
        self.message = message
        self.error = error
        self.pruned = pruned

    @property
    def ok(self) -> bool:
        return self.status is SendStatus.SENT

    def __repr__(self) -> str:
        return f"SendOutcome(status={self.status.value!r}, draft={self.draft!r})"


class IdentitySource(Protocol):
    @property
    def user(self) -> Participant: ...


class SendPipeline:
    def __init__(
        self,
        log: MessageLog,
        store: RemoteStore,
        identity: IdentitySource,
        *,
        max_length: int = DEFAULT_MAX_MESSAGE_LENGTH,
        max_messages: int = DEFAULT_MAX_MESSAGES,
    ):
        self._log = log
        self._store = store
        self._identity = identity
        self._max_length = max_length
        self._max_messages = max_messages
        self._in_flight = False
        self._pending_draft: Optional[str] = None

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def pending_draft(self) -> Optional[str]:
        """Text of the message currently being sent, if any."""
        return self._pending_draft

    def validate(self, raw_text: str) -> str:
        text = (raw_text or "").strip()
        if not text:
            raise ValidationError("Message is empty")
        if len(text) > self._max_length:
            raise ValidationError(
                f"Message is longer than {self._max_length} characters",
                details={"length": len(text), "max_length": self._max_length},
            )
        return text

    async def submit(self, raw_text: str) -> SendOutcome:
        try:
            text = self.validate(raw_text)
        except ValidationError as e:
            return SendOutcome(SendStatus.INVALID, raw_text, error=e)
        if self._in_flight:
            return SendOutcome(SendStatus.BUSY, text, error=BusyError())

        self._in_flight = True
        self._pending_draft = text
        try:
            return await self._send(text)
        finally:
            self._pending_draft = None
            self._in_flight = False

    async def _send(self, text: str) -> SendOutcome:
        user = self._identity.user
        handle = self._log.append(Message(
            user_id=user.id,
            name=user.name,
            text=text,
            created_at=datetime.now(timezone.utc),
        ))

        try:
            result = await self._store.persist({"userId": user.id, "name": user.name, "text": text})
        except Exception as e:
            logger.error(f"Error sending message: {e}")
            self._log.rollback(handle)
            return SendOutcome(SendStatus.FAILED, text, error=RemoteWriteFailure(str(e)))

        if not result.ok or result.id is None:
            logger.error(f"Failed to send message: {result.error}")
            self._log.rollback(handle)
            return SendOutcome(
                SendStatus.FAILED, text,
                error=RemoteWriteFailure(result.error or "Message was not stored"),
            )

        committed = self._log.commit(handle, result.id, result.timestamp)
        if committed is None:
            # evicted while persisting; the push channel will deliver it
            committed = self._log.get(result.id)

        pruned = 0
        if len(self._log) > self._max_messages:
            pruned = len(self._log.prune(self._max_messages))
            await self._prune_remote()
        return SendOutcome(SendStatus.SENT, text, message=committed, pruned=pruned)

    async def _prune_remote(self) -> None:
        try:
            result = await self._store.prune_oldest(self._max_messages)
        except Exception as e:
            logger.warning(f"Remote prune failed: {e}")
            return
        if not result.ok:
            logger.warning(f"Remote prune failed: {result.error}")
