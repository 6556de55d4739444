"""
Client configuration.

Presets per environment (development, staging, production); individual
values can be overridden with ``ROOMCHAT_*`` environment variables. Integer
settings that fail to parse fall back to their defaults.
"""

import os
from typing import Mapping, Optional

from pydantic import BaseModel

ENV_PREFIX = "ROOMCHAT_"
DEFAULT_ENVIRONMENT = "development"


class ChatConfig(BaseModel):
    api_base_url: str = "http://localhost:3001/api"
    ws_url: str = "ws://localhost:3001"
    max_messages: int = 200
    max_message_length: int = 1000
    max_username_length: int = 30
    enable_realtime: bool = False
    enable_transport: bool = False
    reconnect_delay: float = 1.0
    max_reconnect_attempts: int = 5
    request_timeout: float = 10.0
    debug: bool = False

    @property
    def live_query_url(self) -> str:
        """Socket.IO server root: the API base URL without its path."""
        scheme, _, rest = self.api_base_url.partition("://")
        return f"{scheme}://{rest.split('/', 1)[0]}"

    @classmethod
    def for_environment(cls, name: str) -> "ChatConfig":
        return cls(**ENVIRONMENTS.get(name, ENVIRONMENTS[DEFAULT_ENVIRONMENT]))

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ChatConfig":
        env = os.environ if environ is None else environ
        base = cls.for_environment(env.get(f"{ENV_PREFIX}ENV", DEFAULT_ENVIRONMENT))
        overrides: dict[str, object] = {}
        for field_name, field in cls.model_fields.items():
            raw = env.get(f"{ENV_PREFIX}{field_name.upper()}")
            if raw is None:
                continue
            if field.annotation is bool:
                overrides[field_name] = raw.strip().lower() == "true"
            elif field.annotation is int:
                value = _parse_number(raw, int)
                if value:
                    overrides[field_name] = value
            elif field.annotation is float:
                value = _parse_number(raw, float)
                if value:
                    overrides[field_name] = value
            else:
                overrides[field_name] = raw
        return base.model_copy(update=overrides)


def _parse_number(raw: str, kind: type) -> Optional[float]:
    try:
        return kind(raw.strip())
    except ValueError:
        return None


ENVIRONMENTS: dict[str, dict[str, object]] = {
    "development": {
        "api_base_url": "http://localhost:3001/api",
        "ws_url": "ws://localhost:3001",
    },
    "staging": {
        "api_base_url": "https://staging-api.roomchat.example/api",
        "ws_url": "wss://staging-api.roomchat.example",
    },
    "production": {
        "api_base_url": "https://api.roomchat.example/api",
        "ws_url": "wss://api.roomchat.example",
        "enable_realtime": True,
    },
}
