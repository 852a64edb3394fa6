"""
restmodel - active-record models for JSON REST resources.

Models map to a remote collection; queries are built locally and sent as a
JSON stack; lifecycle events, dirty tracking and eager-loading run on the
client.
"""

from .casts import to_datetime, to_timestamp
from .config import ConfigLoader, Settings, configure
from .connection import RestConnection
from .events import Event, EVENT_NAMES
from .faults import (
    ConfigFault,
    ConfigInvalidFault,
    CreateCancelledFault,
    EndpointMissingFault,
    Fault,
    FaultDomain,
    HTTPStatusFault,
    MissingKeyFault,
    ModelFault,
    RelationResolutionFault,
    Severity,
    TransportFault,
)
from .model import Model, ModelMeta
from .query import Builder
from .registry import ModelRegistry
from .transport import Transport, get_transport, set_transport

__version__ = "0.1.0"

__all__ = [
    "Model",
    "ModelMeta",
    "Builder",
    "RestConnection",
    "Transport",
    "get_transport",
    "set_transport",
    "ModelRegistry",
    "Event",
    "EVENT_NAMES",
    "ConfigLoader",
    "Settings",
    "configure",
    "to_datetime",
    "to_timestamp",
    "Fault",
    "FaultDomain",
    "Severity",
    "ConfigFault",
    "ConfigInvalidFault",
    "EndpointMissingFault",
    "ModelFault",
    "CreateCancelledFault",
    "MissingKeyFault",
    "RelationResolutionFault",
    "TransportFault",
    "HTTPStatusFault",
]
