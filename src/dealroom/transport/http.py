"""
REST HTTP client for the dealroom history and notification endpoints.
"""

from typing import Any, Optional

import httpx

from dealroom import __version__
from dealroom.errors import AuthenticationError, DealroomError, InvalidArgument

DEFAULT_BASE_URL = "http://localhost:8080"


class HttpClient:
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._client = httpx.AsyncClient(
            base_url=f"{self._base_url}/api",
            headers={"User-Agent": f"dealroom-sdk/{__version__}", "Accept": "application/json"},
            timeout=30.0,
            transport=transport,
        )

    def set_token(self, token: str) -> None:
        self._token = token

    def _auth_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    @staticmethod
    def _raise_for(resp: httpx.Response) -> None:
        try:
            detail = resp.json().get("detail", resp.text[:200])
        except ValueError:
            detail = resp.text[:200]
        if resp.status_code == 401:
            raise AuthenticationError(str(detail))
        if resp.status_code == 400:
            raise InvalidArgument(str(detail))
        raise DealroomError("http_error", f"HTTP {resp.status_code}: {detail}")

    async def get(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        resp = await self._client.get(path, params=params, headers=self._auth_headers())
        if resp.status_code >= 400:
            self._raise_for(resp)
        return resp.json()

    async def post(self, path: str, body: Optional[dict[str, Any]] = None) -> Any:
        resp = await self._client.post(path, json=body, headers=self._auth_headers())
        if resp.status_code >= 400:
            self._raise_for(resp)
        return resp.json()

    async def close(self) -> None:
        await self._client.aclose()
