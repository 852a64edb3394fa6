"""
restmodel Model — active-record base for REST resources.

Usage:
    from restmodel import Model

    class Person(Model):
        endpoint = "api/people"
        dates = ["created_at", "updated_at", "born_on"]
        relations = {"comments": "Comment", "profile": "Profile"}
        scopes = ["adults"]

        @classmethod
        def scope_adults(cls, query):
            return query.where("age", ">=", 18)

    person = await Person.create(name="Cat")        # POST api/people
    person.name = "Kat"
    await person.save()                             # PUT api/people/2 {"name": "Kat"}
    await person.load("comments")                   # eager-load embedded relation
    adults = await Person.adults().order_by("name").get()
    await person.delete()                           # DELETE api/people/2
"""

from __future__ import annotations

import copy
import json
import logging
from typing import (
    Any,
    ClassVar,
    Dict,
    List,
    Optional,
    Sequence,
    Tuple,
    Type,
    Union,
)

from .casts import encode_value, to_datetime, to_timestamp
from .connection import RestConnection
from .events import Event
from .faults import CreateCancelledFault, MissingKeyFault, RelationResolutionFault
from .query import Builder, PROXIED_METHODS, proxy_factory, scope_factory
from .registry import ModelRegistry, ModelState

logger = logging.getLogger("restmodel.model")

__all__ = ["Model", "ModelMeta"]

# Names stored on the instance itself rather than in the attribute dict.
_INSTANCE_FIELDS = frozenset({"exists", "connection"})


# ── Model Metaclass ──────────────────────────────────────────────────────────


class ModelMeta(type):
    """
    Metaclass for restmodel models.

    Handles:
    - Meta class parsing (``abstract``)
    - Model registration in ModelRegistry
    - Class-level access to the per-type event map and proxy table
    """

    def __new__(
        mcs,
        name: str,
        bases: Tuple[type, ...],
        namespace: Dict[str, Any],
        **kwargs,
    ) -> ModelMeta:
        # Don't process the base Model class itself
        parents = [b for b in bases if isinstance(b, ModelMeta)]
        if not parents:
            return super().__new__(mcs, name, bases, namespace)

        meta_class = namespace.pop("Meta", None)
        abstract = bool(getattr(meta_class, "abstract", False)) if meta_class else False

        cls = super().__new__(mcs, name, bases, namespace)

        if not abstract:
            ModelRegistry.register(cls)

        return cls

    @property
    def events(cls) -> Dict[str, Event]:
        """Lifecycle events of this type (boots the type on first access)."""
        cls.boot()
        return ModelRegistry.state(cls).events

    def __getattr__(cls, name: str) -> Any:
        # Only reached when normal lookup fails: consult the proxy table.
        if name.startswith("_"):
            raise AttributeError(name)
        cls.boot()
        factory = ModelRegistry.proxy(cls, name)
        if factory is None:
            raise AttributeError(f"type object '{cls.__name__}' has no attribute '{name}'")
        return factory(cls)


# ── Model Base Class ─────────────────────────────────────────────────────────


class Model(metaclass=ModelMeta):
    """
    restmodel Model base class: one instance per remote record.

    Class configuration:
        endpoint:    collection URL the default RestConnection is built for
        connection:  explicit RestConnection (wins over ``endpoint``)
        primary_key: identifier field, ``"id"`` by default
        dates:       fields cast to ``datetime`` and sent as UNIX timestamps
        relations:   relation name -> related model (class or registered name)
        scopes:      scope names proxied as query starters

    Instance state:
        attributes (``get_attributes()``), the ``original`` snapshot used for
        dirty tracking, ``exists``, and loaded relation data.
    """

    endpoint: ClassVar[Optional[str]] = None
    connection: ClassVar[Optional[RestConnection]] = None
    primary_key: ClassVar[str] = "id"
    dates: ClassVar[Sequence[str]] = ("created_at", "updated_at")
    relations: ClassVar[Dict[str, Union[str, Type[Model]]]] = {}
    scopes: ClassVar[Sequence[str]] = ()

    def __init__(self, attributes: Optional[Dict[str, Any]] = None, **kwargs: Any):
        """Create a model instance (in-memory, not persisted)."""
        cls = type(self)
        if not ModelRegistry.is_booted(cls):
            cls.boot()

        object.__setattr__(self, "_attributes", {})
        object.__setattr__(self, "_original", {})
        object.__setattr__(self, "_relations", {})
        object.__setattr__(self, "exists", False)

        self.fill({**(attributes or {}), **kwargs})
        self.sync_original()

    # ── Boot ─────────────────────────────────────────────────────────

    @classmethod
    def boot(cls) -> None:
        """
        One-time per-type initialization.

        Creates an empty handler list per lifecycle event and registers the
        builder and scope proxies. Repeated calls are no-ops.
        """
        if ModelRegistry.boot(cls, cls._initialize_state):
            cls.booted()

    @classmethod
    def _initialize_state(cls, state: ModelState) -> None:
        for method in PROXIED_METHODS:
            state.proxies[method] = proxy_factory(method)
        for name in cls.scopes:
            state.proxies[name] = scope_factory(name)

    @classmethod
    def booted(cls) -> None:
        """Hook run once after the type boots; override to register handlers."""

    # ── Attribute access ─────────────────────────────────────────────

    def __getattr__(self, name: str) -> Any:
        # Only reached when normal lookup fails.
        if name.startswith("_"):
            raise AttributeError(name)
        attributes = self.__dict__.get("_attributes", {})
        if name in attributes:
            return attributes[name]
        if name in self.__dict__.get("_relations", {}):
            return self.__dict__["_relations"][name]
        cls = type(self)
        if name in cls.relations:
            return None
        factory = ModelRegistry.proxy(cls, name)
        if factory is not None:
            return factory(self)
        raise AttributeError(f"'{cls.__name__}' object has no attribute '{name}'")

    def __setattr__(self, name: str, value: Any) -> None:
        if name.startswith("_") or name in _INSTANCE_FIELDS:
            object.__setattr__(self, name, value)
        elif name in type(self).relations:
            self.set_relation(name, value)
        else:
            self.set_attribute(name, value)

    def __delattr__(self, name: str) -> None:
        if name in self._attributes:
            del self._attributes[name]
        elif name in self._relations:
            del self._relations[name]
        else:
            object.__delattr__(self, name)

    def get_attribute(self, name: str, default: Any = None) -> Any:
        return self._attributes.get(name, default)

    def set_attribute(self, name: str, value: Any) -> Model:
        """Set one field, casting date fields. Does not touch the original snapshot."""
        if name in type(self).relations:
            return self.set_relation(name, value)
        if value is not None and name in type(self).dates:
            value = to_datetime(value)
        self._attributes[name] = value
        return self

    def get_attributes(self) -> Dict[str, Any]:
        """Shallow copy of the plain (non-relation) fields."""
        return dict(self._attributes)

    def fill(self, attributes: Dict[str, Any]) -> Model:
        for name, value in attributes.items():
            self.set_attribute(name, value)
        return self

    def get_key(self) -> Any:
        return self._attributes.get(type(self).primary_key)

    # ── Dirty tracking ───────────────────────────────────────────────

    @property
    def original(self) -> Dict[str, Any]:
        return self._original

    def get_dirty(self) -> Dict[str, Any]:
        """Fields whose value differs from the last synced snapshot."""
        return {
            name: value
            for name, value in self._attributes.items()
            if name not in self._original or self._original[name] != value
        }

    def is_dirty(self, *names: str) -> bool:
        dirty = self.get_dirty()
        if not names:
            return bool(dirty)
        return any(name in dirty for name in names)

    def sync_original(self) -> Model:
        """Take a fresh deep snapshot of the attributes."""
        object.__setattr__(self, "_original", copy.deepcopy(self._attributes))
        return self

    # ── Relations ────────────────────────────────────────────────────

    def get_relation(self, name: str) -> Any:
        return self._relations.get(name)

    def get_relations(self) -> Dict[str, Any]:
        return dict(self._relations)

    def set_relation(self, name: str, value: Any) -> Model:
        """Attach relation data as-is; it never enters the attributes."""
        self._relations[name] = value
        return self

    def _get_related_class(self, name: str) -> Type[Model]:
        """
        Resolve a related type name to a model class.

        Override to plug in another container; the default looks the name up
        in ModelRegistry.
        """
        return ModelRegistry.resolve(name)

    def _relation_class(self, relation: str) -> Type[Model]:
        cls = type(self)
        if relation not in cls.relations:
            raise RelationResolutionFault(
                relation, f"'{relation}' is not a relation of {cls.__name__}"
            )
        target = cls.relations[relation]
        if isinstance(target, type):
            return target
        related = self._get_related_class(target)
        if not (isinstance(related, type) and issubclass(related, Model)):
            raise RelationResolutionFault(target, f"resolved to {related!r}, not a Model")
        return related

    @staticmethod
    def _hydrate_related(related: Type[Model], data: Any) -> Any:
        if isinstance(data, list):
            return related.hydrate(data)
        if isinstance(data, dict):
            return related.hydrate([data])[0]
        return data

    # ── Hydration ────────────────────────────────────────────────────

    @classmethod
    def hydrate(cls, items: Sequence[Dict[str, Any]]) -> List[Model]:
        """Turn plain records from the server into persisted instances."""
        models = []
        for item in items or ():
            model = cls()
            model._merge(item)
            model.sync_original()
            model.exists = True
            models.append(model)
        return models

    def _resolve_relations(self, names: Optional[Sequence[str]] = None) -> Dict[str, Type[Model]]:
        """Resolve relation names (all declared ones by default) to model classes."""
        if names is None:
            names = list(type(self).relations)
        return {name: self._relation_class(name) for name in names}

    def _merge(self, data: Any, related: Optional[Dict[str, Type[Model]]] = None) -> None:
        """
        Apply server-returned fields; embedded relations are hydrated.

        Related types are resolved and hydrated before anything is applied,
        so a resolution failure leaves the instance untouched.
        """
        if not isinstance(data, dict):
            return
        relations = type(self).relations
        if related is None:
            related = self._resolve_relations([name for name in data if name in relations])
        loaded = {
            name: self._hydrate_related(related_cls, data[name])
            for name, related_cls in related.items()
            if name in data
        }
        for name, value in data.items():
            if name not in relations:
                self.set_attribute(name, value)
        for name, value in loaded.items():
            self.set_relation(name, value)

    # ── Connection & queries ─────────────────────────────────────────

    @classmethod
    def resolve_connection(cls) -> RestConnection:
        """
        The type's connection: ``connection`` if set, otherwise one built
        once from ``endpoint``.
        """
        if cls.connection is not None:
            return cls.connection
        state = ModelRegistry.state(cls)
        if state.connection is None:
            state.connection = RestConnection(cls.endpoint)
        return state.connection

    def get_connection(self) -> RestConnection:
        """This instance's connection (an instance-level override wins)."""
        connection = self.__dict__.get("connection")
        if connection is not None:
            return connection
        return type(self).resolve_connection()

    @classmethod
    def query(cls) -> Builder:
        """
        Start a query chain.

        Usage:
            people = await Person.query().where("age", ">", 18).get()
        """
        cls.boot()
        return Builder(cls)

    def new_query(self) -> Builder:
        """Start a query chain bound to this instance."""
        return Builder(self)

    @classmethod
    async def all(cls) -> List[Model]:
        """Shortcut: get all records."""
        return await cls.query().get()

    # ── Events ───────────────────────────────────────────────────────

    @classmethod
    def _register_event(cls, event: str, handler: Any) -> Any:
        return cls.events[event].connect(handler)

    @classmethod
    def creating(cls, handler):
        """Register a handler run before create; returning False cancels it."""
        return cls._register_event("creating", handler)

    @classmethod
    def created(cls, handler):
        return cls._register_event("created", handler)

    @classmethod
    def updating(cls, handler):
        return cls._register_event("updating", handler)

    @classmethod
    def updated(cls, handler):
        return cls._register_event("updated", handler)

    @classmethod
    def saving(cls, handler):
        return cls._register_event("saving", handler)

    @classmethod
    def saved(cls, handler):
        return cls._register_event("saved", handler)

    @classmethod
    def deleting(cls, handler):
        return cls._register_event("deleting", handler)

    @classmethod
    def deleted(cls, handler):
        return cls._register_event("deleted", handler)

    async def _fire_event(self, event: str, *, halt: bool = False) -> bool:
        return await type(self).events[event].fire(self, halt=halt)

    # ── CRUD API ─────────────────────────────────────────────────────

    @classmethod
    async def create(cls, attributes: Optional[Dict[str, Any]] = None, **kwargs: Any) -> Model:
        """
        Build and persist a new record.

        Usage:
            person = await Person.create(name="Cat")

        Raises:
            CreateCancelledFault: if a ``creating`` handler returned False.
        """
        instance = cls(attributes, **kwargs)
        await instance.save()
        return instance

    async def save(self) -> Model:
        """
        Create the record if it does not exist yet, otherwise send the dirty fields.

        Declared relation types are resolved before any request is sent.

        Raises:
            MissingKeyFault: if the record exists but has no primary key value.
            RelationResolutionFault: if a declared relation type cannot be resolved.
        """
        if self.exists:
            self._require_key("update")
        related = self._resolve_relations()
        query = self.new_query()
        if self.exists:
            await self._perform_update(query, related)
        else:
            await self._perform_insert(query, related)
        await self._fire_event("saved")
        return self

    async def _perform_insert(self, query: Builder, related: Dict[str, Type[Model]]) -> None:
        if not await self._fire_event("creating", halt=True):
            logger.debug(f"{type(self).__name__} creation cancelled")
            raise CreateCancelledFault(type(self).__name__)
        await self._fire_event("saving")

        result = await query.insert(self.get_attributes())
        # The record exists server-side from here on; a retry must update.
        self.exists = True
        self._merge(result, related)
        self.sync_original()

        await self._fire_event("created")

    async def _perform_update(self, query: Builder, related: Dict[str, Type[Model]]) -> None:
        await self._fire_event("updating")
        await self._fire_event("saving")

        result = await query.update(self.get_dirty())
        self._merge(result, related)
        self.sync_original()

        await self._fire_event("updated")

    def _require_key(self, operation: str) -> Any:
        key = self.get_key()
        if key is None:
            raise MissingKeyFault(type(self).__name__, operation, type(self).primary_key)
        return key

    async def update(self, attributes: Optional[Dict[str, Any]] = None, **kwargs: Any) -> Model:
        """Fill the given fields and save."""
        self.fill({**(attributes or {}), **kwargs})
        return await self.save()

    async def delete(self) -> bool:
        """
        Delete this record on the server.

        Raises:
            MissingKeyFault: if the instance has no primary key value.
        """
        self._require_key("delete")
        await self._fire_event("deleting")
        result = await self.new_query().delete()
        self.exists = False
        await self._fire_event("deleted")
        return result

    async def load(self, *relations: str) -> Model:
        """
        Eager-load relations embedded by the server and attach them.

        Every relation type is resolved before the request is sent; if one
        cannot be resolved nothing is fetched or attached. Plain attributes
        are left alone, so edits made while the request is in flight survive.

        Usage:
            person = await person.load("comments", "profile")
        """
        related = self._resolve_relations(relations)
        if not related:
            return self

        query = self.new_query()
        key = self.get_key()
        if key is not None:
            query.where(type(self).primary_key, key)
        query.with_(*related)

        data = await query.fetch()
        if isinstance(data, list):
            data = data[0] if data else {}
        if not isinstance(data, dict):
            data = {}

        for name, related_cls in related.items():
            self.set_relation(name, self._hydrate_related(related_cls, data.get(name)))
        logger.debug(f"Loaded {sorted(related)} onto {self!r}")
        return self

    # ── Serialization ────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation: dates as UNIX timestamps, relations nested."""
        result: Dict[str, Any] = {}
        for name, value in self._attributes.items():
            if value is not None and name in type(self).dates:
                value = to_timestamp(value)
            result[name] = value
        for name, value in self._relations.items():
            if isinstance(value, list):
                value = [v.to_dict() if isinstance(v, Model) else v for v in value]
            elif isinstance(value, Model):
                value = value.to_dict()
            result[name] = value
        return result

    def to_json(self, **kwargs: Any) -> str:
        return json.dumps(self.to_dict(), default=encode_value, **kwargs)

    # ── Dunder ───────────────────────────────────────────────────────

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {type(self).primary_key}={self.get_key()!r} exists={self.exists}>"

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, type(self)) or not isinstance(self, type(other)):
            return NotImplemented
        return self._attributes == other._attributes

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.get_key()))
