"""
Envelope construction and parsing for the live-query Socket.IO channel.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import ValidationError

from roomchat.models.envelope import Envelope


def build_envelope(
    event_type: str,
    data: Any,
    user_id: Optional[str] = None,
    request_id: Optional[str] = None,
) -> dict[str, Any]:
    """Build an outbound envelope as a dict ready for Socket.IO emit."""
    envelope = Envelope(
        type=event_type,
        request_id=request_id or str(uuid.uuid4()),
        user_id=user_id,
        timestamp=datetime.now(timezone.utc).isoformat(),
        data=data,
    )
    return envelope.model_dump()


def parse_envelope(raw: Any) -> Optional[Envelope]:
    """Parse an inbound envelope. Returns None if invalid."""
    if not isinstance(raw, dict):
        return None
    try:
        return Envelope.model_validate(raw)
    except ValidationError:
        return None
