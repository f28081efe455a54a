"""
HTTP client utilities for calling external AI providers.
"""

from typing import Any

import aiohttp


class HTTPRequestError(Exception):
    """Non-success HTTP response, carrying the provider's status and body."""

    def __init__(self, status: int, body: str) -> None:
        super().__init__(f"HTTP {status}: {body[:500]}")
        self.status = status
        self.body = body


class AsyncHTTPClient:
    """Async HTTP client for provider REST APIs."""

    def __init__(self, timeout: float = 30) -> None:
        """Initialize HTTP client."""
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> "AsyncHTTPClient":
        """Enter async context manager."""
        self.session = aiohttp.ClientSession(timeout=self.timeout)
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit async context manager."""
        if self.session:
            await self.session.close()

    @staticmethod
    async def _ensure_response_ok(response: Any) -> None:
        """Raise HTTPRequestError with the response body for non-2xx statuses."""
        status = response.status
        if isinstance(status, int) and status >= 400:
            body = await response.text()
            raise HTTPRequestError(status, body)

    async def post(
        self,
        url: str,
        data: dict[str, Any] | None = None,
        headers: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Perform POST request with a JSON body."""
        if not self.session:
            raise RuntimeError("HTTP client not initialized. Use async context manager.")

        async with self.session.post(url, json=data, headers=headers) as response:
            await self._ensure_response_ok(response)
            return await response.json()
