"""
REST HTTP client for the room's message API.
"""

from typing import Any, Optional

import httpx

from roomchat.errors import RoomChatError

DEFAULT_API_BASE_URL = "http://localhost:3001/api"
USER_AGENT = "roomchat/0.1.0"


class HttpClient:
    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE_URL,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    @staticmethod
    def _unwrap(json_data: Any) -> Any:
        """Unwrap ``{"success": true, "data": ...}`` style responses."""
        if isinstance(json_data, dict) and "data" in json_data and ("success" in json_data or "status" in json_data):
            return json_data["data"]
        return json_data

    @staticmethod
    def _check(resp: httpx.Response) -> None:
        if resp.status_code >= 400:
            raise RoomChatError("http_error", f"HTTP {resp.status_code}: {resp.text[:200]}",
                                {"status_code": resp.status_code})

    async def get(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        resp = await self._client.get(path, params=params)
        self._check(resp)
        return self._unwrap(resp.json())

    async def post(self, path: str, body: Optional[dict[str, Any]] = None) -> Any:
        resp = await self._client.post(path, json=body)
        self._check(resp)
        if not resp.content:
            return None
        return self._unwrap(resp.json())

    async def close(self) -> None:
        await self._client.aclose()
