"""
Transport protocol for Soroban RPC and Horizon calls.

Defines the seam where the concrete HTTP implementation plugs in. The
RPC client depends on this protocol, not on httpx directly, so the
transport can be swapped for a test fake without editing client logic.

Concrete implementations:
    - HttpxTransport (default, uses httpx.AsyncClient)
    - FakeTransport (tests, returns canned responses)
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

import httpx

logger = logging.getLogger(__name__)


@runtime_checkable
class JsonTransport(Protocol):
    """Async transport for JSON-RPC POSTs and JSON resource GETs."""

    async def post_json(self, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        """POST ``payload`` as JSON to ``url`` and return the decoded object.

        Raises:
            Exception: When the endpoint cannot be reached or answers with
                an HTTP error status. Not caught by the RPC client.
        """
        ...

    async def get_json(self, url: str) -> dict[str, Any] | None:
        """Fetch a JSON resource.

        Returns:
            Parsed JSON body, or None when the resource does not exist
            (HTTP 404).

        Raises:
            Exception: On any other transport-level failure.
        """
        ...


class HttpxTransport:
    """Default transport on top of httpx.AsyncClient.

    Args:
        timeout: Per-request timeout in seconds.
        client: Optional shared AsyncClient. When omitted, each call opens
            and closes its own client.
    """

    def __init__(self, timeout: float = 30.0, client: httpx.AsyncClient | None = None) -> None:
        self._timeout = timeout
        self._client = client

    async def post_json(self, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        response = await self._request(
            "POST", url, json=payload, headers={"Content-Type": "application/json"}
        )
        response.raise_for_status()
        return _json_object(response)

    async def get_json(self, url: str) -> dict[str, Any] | None:
        response = await self._request("GET", url, headers={"Accept": "application/json"})
        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        response.raise_for_status()
        return _json_object(response)

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        logger.debug("%s %s", method, url)
        if self._client is not None:
            return await self._client.request(method, url, timeout=self._timeout, **kwargs)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.request(method, url, **kwargs)


def _json_object(response: httpx.Response) -> dict[str, Any]:
    body = response.json()
    if not isinstance(body, dict):
        raise ValueError(
            f"expected a JSON object from {response.request.url}, got {type(body).__name__}"
        )
    return body
