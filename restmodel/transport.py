"""
restmodel Transport — async JSON-over-HTTP via httpx.

The transport is the only place that touches the network. It sends a
request, checks the status and parses the JSON body; everything above it
(connections, builders, models) deals in plain Python data.

Usage::

    transport = Transport(base_url="https://api.example.com", timeout=5.0)
    people = await transport.get("api/people")
    await transport.aclose()

    # Or as a context manager
    async with Transport(base_url="https://api.example.com") as transport:
        person = await transport.request("POST", "api/people", json={"name": "Cat"})
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import httpx

from .casts import dumps
from .faults import HTTPStatusFault, TransportFault

logger = logging.getLogger("restmodel.transport")

__all__ = ["Transport", "get_transport", "set_transport"]


class Transport:
    """
    Thin wrapper around ``httpx.AsyncClient`` that speaks JSON.

    A client passed in is used as-is and never closed by the transport;
    otherwise one is created on first use and released by ``aclose()``.
    """

    def __init__(
        self,
        base_url: str = "",
        *,
        timeout: float = 10.0,
        headers: Optional[Dict[str, str]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/") if base_url else ""
        self.timeout = timeout
        self.headers = {"Accept": "application/json", **(headers or {})}

        self._client = client
        self._owns_client = client is None

    # ── Lifecycle ───────────────────────────────────────────────────

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            logger.debug(f"Opening HTTP client (base_url={self.base_url!r})")
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self.headers,
                timeout=httpx.Timeout(self.timeout),
            )
            self._owns_client = True
        return self._client

    async def aclose(self) -> None:
        """Close the underlying client if this transport created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> Transport:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ── Requests ────────────────────────────────────────────────────

    async def get(self, path: str) -> Any:
        """Issue a GET request and return the parsed JSON body."""
        return await self.request("GET", path)

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, str]] = None,
        json: Any = None,
    ) -> Any:
        """
        Send a request and return the parsed JSON body.

        An empty body yields None. Network errors, non-2xx statuses and
        bodies that are not JSON raise a TransportFault.
        """
        client = self._get_client()
        logger.debug(f"{method} {path} params={params!r}")

        content = None
        headers = None
        if json is not None:
            content = dumps(json)
            headers = {"Content-Type": "application/json"}

        try:
            response = await client.request(
                method, path, params=params, content=content, headers=headers,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning(f"{method} {path} failed: {exc.__class__.__name__}: {exc}")
            raise TransportFault(method, path, str(exc) or exc.__class__.__name__) from exc

        if not response.is_success:
            logger.warning(f"{method} {path} answered {response.status_code}")
            raise HTTPStatusFault(method, str(response.url), response.status_code, body=response.text)

        return self._decode(method, str(response.url), response)

    @staticmethod
    def _decode(method: str, url: str, response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise TransportFault(method, url, f"invalid JSON body: {exc}", retryable=False) from exc

    def __repr__(self) -> str:
        return f"<Transport base_url={self.base_url!r}>"


# ── Process default ──────────────────────────────────────────────────────────

_default_transport: Optional[Transport] = None


def get_transport() -> Transport:
    """Return the process-wide default transport, creating a bare one if unset."""
    global _default_transport
    if _default_transport is None:
        _default_transport = Transport()
    return _default_transport


def set_transport(transport: Optional[Transport]) -> None:
    """Install (or clear, with None) the process-wide default transport."""
    global _default_transport
    _default_transport = transport
