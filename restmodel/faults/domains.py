"""
restmodel faults - Domain-specific fault types.

Provides concrete fault classes for each domain:
- CONFIG faults (missing endpoint, invalid settings)
- MODEL faults (cancelled creation, unresolvable relations)
- IO faults (transport and HTTP status failures)
"""

from typing import Any, Optional
from .core import Fault, FaultDomain, Severity


# ============================================================================
# CONFIG Faults
# ============================================================================

class ConfigFault(Fault):
    """Base class for configuration faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.FATAL,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.CONFIG,
            severity=severity,
            retryable=False,
            metadata=metadata,
        )


class EndpointMissingFault(ConfigFault):
    """A connection was used before its endpoint was set."""

    def __init__(self, **kwargs):
        super().__init__(
            code="ENDPOINT_MISSING",
            message="Endpoint must be set before a URL can be built",
            metadata=kwargs.get("metadata", {}),
        )


class ConfigInvalidFault(ConfigFault):
    """Configuration value is invalid."""

    def __init__(self, key: str, reason: str, **kwargs):
        super().__init__(
            code="CONFIG_INVALID",
            message=f"Invalid configuration for '{key}': {reason}",
            metadata={"key": key, "reason": reason, **kwargs.get("metadata", {})},
        )


# ============================================================================
# MODEL Faults
# ============================================================================

class ModelFault(Fault):
    """Base class for model lifecycle faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.ERROR,
        retryable: bool = False,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.MODEL,
            severity=severity,
            retryable=retryable,
            metadata=metadata,
        )


class CreateCancelledFault(ModelFault):
    """A `creating` handler vetoed the creation of a model."""

    def __init__(self, model_name: str, **kwargs):
        super().__init__(
            code="CREATE_CANCELLED",
            message=f"{model_name} creation cancelled by a 'creating' handler",
            severity=Severity.WARN,
            metadata={"model": model_name, **kwargs.get("metadata", {})},
        )


class MissingKeyFault(ModelFault):
    """An instance-bound write was attempted on a model with no primary key value."""

    def __init__(self, model_name: str, operation: str, key: str = "id", **kwargs):
        super().__init__(
            code="MISSING_KEY",
            message=(
                f"Cannot {operation} {model_name} without a '{key}' value; "
                f"refusing to address the whole collection"
            ),
            metadata={"model": model_name, "operation": operation, "key": key, **kwargs.get("metadata", {})},
        )


class RelationResolutionFault(ModelFault):
    """A relation name could not be turned into a model class."""

    def __init__(self, name: str, reason: str = "", **kwargs):
        message = f"Cannot construct '{name}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            code="RELATION_UNRESOLVED",
            message=message,
            metadata={"name": name, "reason": reason, **kwargs.get("metadata", {})},
        )


# ============================================================================
# IO Faults
# ============================================================================

class TransportFault(Fault):
    """Request could not be completed (network error or unreadable body)."""

    def __init__(
        self,
        method: str,
        url: str,
        reason: str,
        *,
        code: str = "TRANSPORT_FAILED",
        retryable: bool = True,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=f"{method} {url} failed: {reason}",
            domain=FaultDomain.IO,
            retryable=retryable,
            metadata={"method": method, "url": url, "reason": reason, **(metadata or {})},
        )
        self.method = method
        self.url = url


class HTTPStatusFault(TransportFault):
    """The server answered with a non-success status."""

    def __init__(self, method: str, url: str, status_code: int, body: Any = None):
        super().__init__(
            method,
            url,
            f"server responded with status {status_code}",
            code="HTTP_STATUS",
            retryable=status_code >= 500,
            metadata={"status_code": status_code, "body": body},
        )
        self.status_code = status_code
        self.body = body
