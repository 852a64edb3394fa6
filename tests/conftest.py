"""
Shared test fixtures and helpers for the restmodel test suite.
"""

import json
import uuid
from types import SimpleNamespace
from typing import Any, Callable, List, Optional, Tuple
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from restmodel import Model, ModelRegistry, RestConnection, Transport, set_transport


BASE_URL = "http://api.test"


# ============================================================================
# Registry / Transport Isolation
# ============================================================================


@pytest.fixture(autouse=True)
def reset_registry():
    """Reset ModelRegistry and the default transport between tests."""
    ModelRegistry.reset()
    set_transport(None)
    yield
    ModelRegistry.reset()
    set_transport(None)


# ============================================================================
# Connection Helpers
# ============================================================================


def make_connection(
    read: Any = None,
    create: Any = None,
    update: Any = None,
    delete: Any = True,
) -> MagicMock:
    """Create a RestConnection stand-in whose CRUD coroutines are AsyncMocks."""
    connection = MagicMock(spec=RestConnection)
    connection.read = AsyncMock(return_value=read)
    connection.create = AsyncMock(return_value=create)
    connection.update = AsyncMock(return_value=update)
    connection.delete = AsyncMock(return_value=delete)
    return connection


@pytest.fixture
def stub_connection():
    return make_connection()


# ============================================================================
# Wire Helpers
# ============================================================================


def mock_transport(
    handler: Callable[[httpx.Request], httpx.Response],
) -> Tuple[Transport, List[httpx.Request]]:
    """
    Build a Transport backed by httpx.MockTransport.

    Returns the transport and the list every sent request is appended to.
    """
    requests: List[httpx.Request] = []

    def record(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    client = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(record))
    return Transport(BASE_URL, client=client), requests


def json_response(data: Any = None, status_code: int = 200) -> Callable[[httpx.Request], httpx.Response]:
    """Handler that always answers with the given JSON (or an empty body for None)."""
    def handler(request: httpx.Request) -> httpx.Response:
        if data is None:
            return httpx.Response(status_code)
        return httpx.Response(status_code, json=data)
    return handler


def request_json(request: httpx.Request) -> Any:
    return json.loads(request.content) if request.content else None


# ============================================================================
# Model Helpers
# ============================================================================


def fresh_model(name: str, bases=(Model,), attrs: Optional[dict] = None, meta_attrs: Optional[dict] = None):
    """
    Create a fresh Model subclass dynamically for testing.
    Uses unique names to avoid registry collisions.
    """
    attrs = dict(attrs or {})
    if meta_attrs:
        attrs["Meta"] = type("Meta", (), meta_attrs)
    unique_name = f"{name}_{uuid.uuid4().hex[:8]}"
    return type(unique_name, bases, attrs)


@pytest.fixture
def models(stub_connection):
    """Person / Comment / Profile models sharing one stub connection."""

    class Comment(Model):
        connection = stub_connection

    class Profile(Model):
        connection = stub_connection

    class Person(Model):
        connection = stub_connection
        relations = {"comments": "Comment", "profile": "Profile"}
        scopes = ["adults", "named"]

        @classmethod
        def scope_adults(cls, query):
            return query.where("age", ">=", 18)

    return SimpleNamespace(
        Person=Person,
        Comment=Comment,
        Profile=Profile,
        connection=stub_connection,
    )
