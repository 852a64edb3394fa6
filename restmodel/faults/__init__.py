"""
restmodel faults - typed errors raised by the model, query and connection layers.

Every error this package raises is a Fault: a stable machine-readable code,
a human-readable message, a domain and a severity. Faults are never retried
or swallowed internally; they propagate to whoever awaited the operation.

Core exports:
- Fault: Base fault class
- FaultDomain: Domain enumeration
- Severity: Severity levels
"""

from .core import (
    DOMAIN_DEFAULTS,
    Fault,
    FaultDomain,
    Severity,
)

from .domains import (
    ConfigFault,
    ConfigInvalidFault,
    CreateCancelledFault,
    EndpointMissingFault,
    HTTPStatusFault,
    MissingKeyFault,
    ModelFault,
    RelationResolutionFault,
    TransportFault,
)

__all__ = [
    # Core types
    "DOMAIN_DEFAULTS",
    "Fault",
    "FaultDomain",
    "Severity",

    # Config
    "ConfigFault",
    "ConfigInvalidFault",
    "EndpointMissingFault",

    # Model
    "ModelFault",
    "CreateCancelledFault",
    "MissingKeyFault",
    "RelationResolutionFault",

    # IO
    "TransportFault",
    "HTTPStatusFault",
]
