"""
Message model, the atomic unit of the room log.

Wire names are camelCase (``userId``, ``createdAt``, ``type``); Python code
uses the snake_case attribute names.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class MessageKind(str, Enum):
    NORMAL = "normal"
    SYSTEM = "system"
    ANNOUNCEMENT = "announcement"
    BROADCAST = "broadcast"
    NOTIFY = "notify"


class Message(BaseModel):
    id: Optional[str] = None
    user_id: str = Field(alias="userId")
    name: str = ""
    text: str
    timestamp: Optional[datetime] = None
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    kind: MessageKind = Field(default=MessageKind.NORMAL, alias="type")
    time: Optional[str] = None  # display label written by older web clients

    model_config = {"populate_by_name": True, "frozen": True}

    @field_validator("id", "user_id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(int(value))
        return value

    @field_validator("timestamp", "created_at")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @field_validator("kind", mode="before")
    @classmethod
    def _unknown_kind_is_normal(cls, value: Any) -> Any:
        if value is None:
            return MessageKind.NORMAL
        if isinstance(value, str) and value not in {k.value for k in MessageKind}:
            return MessageKind.NORMAL
        return value

    @property
    def pending(self) -> bool:
        return self.id is None

    @property
    def is_banner(self) -> bool:
        """System/announcement/broadcast/notify messages render as centered banners."""
        return self.kind is not MessageKind.NORMAL

    @property
    def sort_key(self) -> datetime:
        return self.timestamp or self.created_at or EPOCH

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)
