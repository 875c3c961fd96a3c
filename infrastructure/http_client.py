"""Async HTTP client for outbound calls to third-party mail APIs."""

from typing import Any, Optional

import httpx


class HttpClient:
    """httpx.AsyncClient wrapper whose timeout bounds every outbound request.

    The connect phase gets its own, shorter limit so an unreachable provider
    fails fast instead of holding the request handler for the full timeout.
    """

    def __init__(self, timeout: float = 5.0, connect_timeout: Optional[float] = None) -> None:
        if connect_timeout is None:
            connect_timeout = min(timeout, 2.0)
        self.timeout = httpx.Timeout(timeout, connect=connect_timeout)
        self._client = httpx.AsyncClient(timeout=self.timeout)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self._client.post(url, **kwargs)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()
