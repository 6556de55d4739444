"""
Participant model: an anonymous, self-named room member.
"""

from typing import Any

from pydantic import BaseModel, field_validator


class Participant(BaseModel):
    id: str
    name: str

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        # older clients stored a millisecond timestamp as the id
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value
