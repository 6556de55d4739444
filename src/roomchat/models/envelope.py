"""
Socket.IO envelope for the live message query.
"""

from typing import Any, Optional
from pydantic import BaseModel


class Envelope(BaseModel):
    type: str
    request_id: Optional[str] = None
    user_id: Optional[str] = None
    timestamp: Optional[str] = None
    data: Optional[Any] = None
