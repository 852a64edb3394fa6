"""
restmodel Query Builder — chainable, async-terminal.

A Builder collects query intent as a JSON-serializable stack and only talks
to the connection when a terminal coroutine is awaited:

    people = await Person.query().where("age", ">", 18).order_by("name").get()
    dave = await Person.query().where("name", "Dave").first()
    await Person.where("active", False).delete()

The stack for the first line is sent as
``?query=[{"where":["age",">",18]},{"order_by":["name","asc"]}]``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Type, TYPE_CHECKING

from .faults import MissingKeyFault

if TYPE_CHECKING:
    from .connection import RestConnection
    from .model import Model

logger = logging.getLogger("restmodel.query")

__all__ = ["Builder", "PROXIED_METHODS"]

# Builder methods callable straight off a Model class or instance once booted.
PROXIED_METHODS = (
    "find",
    "first",
    "get",
    "where",
    "or_where",
    "where_in",
    "where_not_in",
    "order_by",
    "limit",
    "offset",
    "with_",
)

_UNSET = object()


class Builder:
    """
    Query builder bound to one Model class, and to one instance when it was
    started from ``instance.new_query()``.

    Accumulating methods mutate the builder and return it; a builder is meant
    for one query and is discarded after its terminal call.
    """

    __slots__ = ("_model_cls", "_instance", "_stack")

    def __init__(self, model: Any):
        if isinstance(model, type):
            self._model_cls: Type[Model] = model
            self._instance: Optional[Model] = None
        else:
            self._model_cls = type(model)
            self._instance = model
        self._stack: List[Dict[str, Any]] = []

    # ── Introspection ────────────────────────────────────────────────

    @property
    def model(self) -> Type[Model]:
        return self._model_cls

    @property
    def instance(self) -> Optional[Model]:
        return self._instance

    @property
    def connection(self) -> RestConnection:
        if self._instance is not None:
            return self._instance.get_connection()
        return self._model_cls.resolve_connection()

    def to_query(self) -> List[Dict[str, Any]]:
        """Copy of the accumulated stack, as sent in the ``query`` parameter."""
        return [dict(entry) for entry in self._stack]

    def _push(self, method: str, *args: Any) -> Builder:
        self._stack.append({method: list(args)})
        return self

    # ── Accumulating ─────────────────────────────────────────────────

    def where(self, column: str, operator: Any = _UNSET, value: Any = _UNSET) -> Builder:
        """
        Add a where clause: ``where("age", ">", 18)`` or ``where("name", "Dave")``.
        """
        if operator is _UNSET:
            raise TypeError("where() needs a value")
        if value is _UNSET:
            operator, value = "=", operator
        return self._push("where", column, operator, value)

    def or_where(self, column: str, operator: Any = _UNSET, value: Any = _UNSET) -> Builder:
        if operator is _UNSET:
            raise TypeError("or_where() needs a value")
        if value is _UNSET:
            operator, value = "=", operator
        return self._push("or_where", column, operator, value)

    def where_in(self, column: str, values: Sequence[Any]) -> Builder:
        return self._push("where_in", column, list(values))

    def where_not_in(self, column: str, values: Sequence[Any]) -> Builder:
        return self._push("where_not_in", column, list(values))

    def order_by(self, column: str, direction: str = "asc") -> Builder:
        """ORDER BY; ``direction`` is "asc" or "desc"."""
        direction = direction.lower()
        if direction not in ("asc", "desc"):
            raise ValueError(f"Order direction must be 'asc' or 'desc', got {direction!r}")
        return self._push("order_by", column, direction)

    def limit(self, n: int) -> Builder:
        return self._push("limit", n)

    def offset(self, n: int) -> Builder:
        return self._push("offset", n)

    def with_(self, *relations: str) -> Builder:
        """Ask the server to embed the named relations in each record."""
        return self._push("with", *relations)

    def scope(self, name: str, args: Sequence[Any] = ()) -> Builder:
        """
        Apply a named scope.

        If the model defines ``scope_<name>`` it is called with this builder
        and the args and shapes the query locally; otherwise the scope is
        recorded for the server to apply.
        """
        apply = getattr(self._model_cls, f"scope_{name}", None)
        if apply is None:
            return self._push("scope", name, list(args))
        result = apply(self, *args)
        return self if result is None else result

    def __getattr__(self, name: str) -> Any:
        # Scopes declared on the model chain off builders: Dog.of_breed("x").of_age(3)
        if not name.startswith("_") and name in getattr(self._model_cls, "scopes", ()):
            return lambda *args: self.scope(name, args)
        raise AttributeError(f"'{type(self).__name__}' object has no attribute '{name}'")

    # ── Terminal ─────────────────────────────────────────────────────

    async def get(self) -> List[Model]:
        """Execute and return every matching record, hydrated."""
        logger.debug(f"{self._model_cls.__name__}.get {self._stack!r}")
        data = await self.connection.read(self.to_query() or None)
        if data is None:
            return []
        if isinstance(data, dict):
            data = [data]
        return self._model_cls.hydrate(data)

    async def first(self) -> Optional[Model]:
        """Return the first matching record or None."""
        self.limit(1)
        results = await self.get()
        return results[0] if results else None

    async def find(self, id: Any) -> Optional[Model]:
        """Fetch one record by identifier; None if the server sends no body."""
        data = await self.connection.read(id)
        if isinstance(data, list):
            data = data[0] if data else None
        if data is None:
            return None
        return self._model_cls.hydrate([data])[0]

    async def fetch(self) -> Any:
        """Execute and return the raw response, without hydration."""
        return await self.connection.read(self.to_query() or None)

    def _target(self, operation: str) -> Any:
        if self._instance is None:
            return self.to_query() or None
        key = self._instance.get_key()
        if key is None:
            # An instance-bound write never widens to the collection.
            model_cls = type(self._instance)
            raise MissingKeyFault(model_cls.__name__, operation, model_cls.primary_key)
        return key

    async def insert(self, attributes: Dict[str, Any]) -> Any:
        """Create a record; returns the server's raw representation."""
        return await self.connection.create(attributes)

    async def update(self, attributes: Dict[str, Any]) -> Any:
        """Update the bound record, or every matching record; returns the raw response."""
        return await self.connection.update(self._target("update"), attributes)

    async def delete(self) -> bool:
        """Delete the bound record, or every matching record."""
        return await self.connection.delete(self._target("delete"))

    def __repr__(self) -> str:
        return f"<Builder {self._model_cls.__name__} {self._stack!r}>"


def proxy_factory(method: str):
    """Proxy factory that starts a fresh builder on whatever it is accessed from."""
    def factory(target: Any):
        builder = target.query() if isinstance(target, type) else target.new_query()
        return getattr(builder, method)
    factory.__name__ = f"proxy_{method}"
    return factory


def scope_factory(name: str):
    """Proxy factory that starts a fresh builder with a scope applied."""
    def factory(target: Any):
        def start(*args: Any) -> Builder:
            builder = target.query() if isinstance(target, type) else target.new_query()
            return builder.scope(name, list(args))
        start.__name__ = name
        start.__qualname__ = f"{getattr(target, '__name__', type(target).__name__)}.{name}"
        return start
    factory.__name__ = f"scope_{name}"
    return factory
