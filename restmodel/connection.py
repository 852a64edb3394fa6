"""
restmodel RestConnection — REST addressing and CRUD over a Transport.

One connection serves one resource collection. It knows how to turn an
identifier or a query stack into a URL and which HTTP verb each operation
uses; it holds no other state.

Addressing:
    read()               GET    {endpoint}
    read(5)              GET    {endpoint}/5
    read(["stack"])      GET    {endpoint}?query=["stack"]
    create({...})        POST   {endpoint}
    update(5, {...})     PUT    {endpoint}/5
    update([...], {...}) PUT    {endpoint}?query=[...]
    delete(5)            DELETE {endpoint}/5      -> True
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlencode

from .casts import dumps
from .faults import EndpointMissingFault
from .transport import Transport, get_transport

logger = logging.getLogger("restmodel.connection")

__all__ = ["RestConnection", "QUERY_PARAM"]

QUERY_PARAM = "query"


class RestConnection:
    """
    REST connection bound to a single endpoint.

    Usage:
        connection = RestConnection("api/people")
        people = await connection.read()
        person = await connection.create({"name": "Cat"})
        await connection.delete(person["id"])
    """

    def __init__(self, endpoint: Optional[str] = None, transport: Optional[Transport] = None):
        self.endpoint = endpoint.rstrip("/") if endpoint else endpoint
        self._transport = transport

    @property
    def transport(self) -> Transport:
        return self._transport or get_transport()

    @transport.setter
    def transport(self, transport: Optional[Transport]) -> None:
        self._transport = transport

    # ── Addressing ───────────────────────────────────────────────────

    def _target(self, id_or_query: Any = None) -> Tuple[str, Optional[Dict[str, str]]]:
        """Split an identifier or query into (path, query-string params)."""
        if not self.endpoint:
            raise EndpointMissingFault()

        if _is_query(id_or_query):
            if not id_or_query:
                return self.endpoint, None
            return self.endpoint, {QUERY_PARAM: dumps(id_or_query)}

        if id_or_query is None or id_or_query == "":
            return self.endpoint, None

        return f"{self.endpoint}/{id_or_query}", None

    def url(self, id_or_query: Any = None) -> str:
        """
        Build the URL addressed by an identifier or query.

        Raises:
            EndpointMissingFault: if no endpoint is set.
        """
        path, params = self._target(id_or_query)
        if params:
            return f"{path}?{urlencode(params)}"
        return path

    # ── CRUD ─────────────────────────────────────────────────────────

    async def read(self, id_or_query: Any = None) -> Any:
        """GET the collection, one item, or a filtered collection."""
        path, params = self._target(id_or_query)
        return await self.transport.request("GET", path, params=params)

    async def create(self, attributes: Dict[str, Any]) -> Any:
        """POST attributes to the collection; returns the server's representation."""
        path, _ = self._target()
        return await self.transport.request("POST", path, json=attributes)

    async def update(self, id_or_query: Any, attributes: Dict[str, Any]) -> Any:
        """PUT attributes to one item, or to the (optionally filtered) collection."""
        path, params = self._target(id_or_query)
        return await self.transport.request("PUT", path, params=params, json=attributes)

    async def delete(self, id_or_query: Any = None) -> bool:
        """DELETE one item or a filtered collection; any success yields True."""
        path, params = self._target(id_or_query)
        await self.transport.request("DELETE", path, params=params)
        logger.debug(f"Deleted {path} params={params!r}")
        return True

    def __repr__(self) -> str:
        return f"<RestConnection endpoint={self.endpoint!r}>"


def _is_query(value: Any) -> bool:
    return isinstance(value, (list, tuple, dict))
