"""
restmodel Events — per-type lifecycle hooks.

Every Model type owns one Event per lifecycle name. Handlers receive the
model instance and may be plain functions or coroutine functions; they run
in registration order.

Usage:
    @Person.creating
    def require_name(person):
        if not person.get_attribute("name"):
            return False   # vetoes the create

    @Person.saved
    async def audit(person):
        await audit_log.write(person.to_dict())
"""

from __future__ import annotations

import contextlib
import inspect
import logging
from typing import Any, Callable, Dict, Iterator, List

logger = logging.getLogger("restmodel.events")

__all__ = ["Event", "EVENT_NAMES", "make_events"]

EVENT_NAMES = (
    "creating",
    "created",
    "updating",
    "updated",
    "saving",
    "saved",
    "deleting",
    "deleted",
)


class Event:
    """
    An ordered list of handlers for one lifecycle event of one model type.

    Supports ``handler in event``, iteration and ``len()`` so it reads like
    the plain handler list it wraps.
    """

    def __init__(self, name: str, owner: str = ""):
        self.name = name
        self.owner = owner
        self._handlers: List[Callable] = []

    def connect(self, handler: Callable) -> Callable:
        """Append a handler. Returns it so this works as a decorator."""
        if not callable(handler):
            raise TypeError(f"Event handler for '{self.name}' must be callable, got {handler!r}")
        self._handlers.append(handler)
        return handler

    def disconnect(self, handler: Callable) -> bool:
        """
        Remove the first registration of a handler.

        Returns True if the handler was found and removed.
        """
        for i, existing in enumerate(self._handlers):
            if existing is handler:
                self._handlers.pop(i)
                return True
        return False

    async def fire(self, instance: Any, *, halt: bool = False) -> bool:
        """
        Call every handler with the instance.

        With ``halt=True`` a handler returning exactly False stops the chain
        and the call returns False. Handlers registered while firing are not
        called for this firing.
        """
        for handler in list(self._handlers):
            result = handler(instance)
            if inspect.isawaitable(result):
                result = await result
            if halt and result is False:
                logger.debug(
                    f"{self.owner}.{self.name} halted by "
                    f"{getattr(handler, '__name__', repr(handler))}"
                )
                return False
        return True

    @contextlib.contextmanager
    def connected(self, handler: Callable):
        """
        Context manager for a temporary handler.

        Usage:
            with Person.events["saving"].connected(check):
                await person.save()
        """
        self.connect(handler)
        try:
            yield handler
        finally:
            self.disconnect(handler)

    @property
    def handlers(self) -> List[Callable]:
        return list(self._handlers)

    def clear(self) -> None:
        """Remove all handlers (useful for testing)."""
        self._handlers.clear()

    def __contains__(self, handler: Any) -> bool:
        return any(existing is handler for existing in self._handlers)

    def __iter__(self) -> Iterator[Callable]:
        return iter(list(self._handlers))

    def __len__(self) -> int:
        return len(self._handlers)

    def __repr__(self) -> str:
        return f"<Event '{self.owner}.{self.name}' handlers={len(self._handlers)}>"


def make_events(owner: str) -> Dict[str, Event]:
    """One empty Event per lifecycle name."""
    return {name: Event(name, owner) for name in EVENT_NAMES}
