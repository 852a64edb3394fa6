"""
restmodel Model Registry — process-wide per-type state.

Tracks:
- every concrete Model subclass by name (relation resolution)
- one ModelState per type: boot flag, lifecycle events, proxy table and the
  connection derived from the type's endpoint

Boot runs at most once per type, under a lock, no matter how many threads
construct the first instances concurrently.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Optional, Type, TYPE_CHECKING

from .events import Event, make_events
from .faults import RelationResolutionFault

if TYPE_CHECKING:
    from .connection import RestConnection
    from .model import Model

logger = logging.getLogger("restmodel.registry")

__all__ = ["ModelRegistry", "ModelState"]

# A proxy factory takes the class or instance it is accessed on and
# returns the callable handed to the caller.
ProxyFactory = Callable[[Any], Callable]


class ModelState:
    """Mutable per-type state owned by the registry."""

    __slots__ = ("model_cls", "booted", "events", "proxies", "connection")

    def __init__(self, model_cls: Type[Model]):
        self.model_cls = model_cls
        self.booted = False
        self.events: Dict[str, Event] = {}
        self.proxies: Dict[str, ProxyFactory] = {}
        self.connection: Optional[RestConnection] = None

    def __repr__(self) -> str:
        return (
            f"<ModelState {self.model_cls.__name__} booted={self.booted} "
            f"proxies={sorted(self.proxies)}>"
        )


class ModelRegistry:
    """
    Global registry for all Model subclasses.

    Model classes register themselves by class name when defined; relation
    names declared as strings are resolved through ``resolve()``.
    """

    _models: Dict[str, Type[Model]] = {}
    _states: Dict[type, ModelState] = {}
    _lock = threading.RLock()

    # ── Registration ─────────────────────────────────────────────────

    @classmethod
    def register(cls, model_cls: Type[Model]) -> None:
        """Register a model class."""
        name = model_cls.__name__
        if name in cls._models and cls._models[name] is not model_cls:
            logger.debug(f"Model name '{name}' re-registered by {model_cls.__module__}")
        cls._models[name] = model_cls

    @classmethod
    def get(cls, name: str) -> Optional[Type[Model]]:
        """Get model class by name."""
        return cls._models.get(name)

    @classmethod
    def resolve(cls, name: str) -> Type[Model]:
        """
        Get model class by name, failing loudly.

        Raises:
            RelationResolutionFault: if no model is registered under ``name``.
        """
        model_cls = cls._models.get(name)
        if model_cls is None:
            raise RelationResolutionFault(name, "no model registered under this name")
        return model_cls

    @classmethod
    def all_models(cls) -> Dict[str, Type[Model]]:
        """Get all registered models."""
        return dict(cls._models)

    # ── Per-type state ───────────────────────────────────────────────

    @classmethod
    def state(cls, model_cls: type) -> ModelState:
        """Return (creating if needed) the state of a model type."""
        state = cls._states.get(model_cls)
        if state is None:
            with cls._lock:
                state = cls._states.get(model_cls)
                if state is None:
                    state = ModelState(model_cls)
                    cls._states[model_cls] = state
        return state

    @classmethod
    def is_booted(cls, model_cls: type) -> bool:
        state = cls._states.get(model_cls)
        return state is not None and state.booted

    @classmethod
    def boot(cls, model_cls: type, initializer: Callable[[ModelState], None]) -> bool:
        """
        Run ``initializer`` once for a type.

        The state is flagged as booted before ``initializer`` returns control
        to user hooks, so re-entrant boot calls are no-ops. Returns True if
        this call performed the boot.
        """
        if cls.is_booted(model_cls):
            return False
        with cls._lock:
            state = cls.state(model_cls)
            if state.booted:
                return False
            state.events = make_events(model_cls.__name__)
            state.proxies = {}
            initializer(state)
            state.booted = True
            logger.debug(f"Booted {model_cls.__name__} (proxies={sorted(state.proxies)})")
        return True

    @classmethod
    def proxy(cls, model_cls: type, name: str) -> Optional[ProxyFactory]:
        """Look up a proxy registered for a booted type."""
        state = cls._states.get(model_cls)
        if state is None or not state.booted:
            return None
        return state.proxies.get(name)

    @classmethod
    def reset(cls) -> None:
        """Clear registry (for testing)."""
        with cls._lock:
            cls._models.clear()
            cls._states.clear()
