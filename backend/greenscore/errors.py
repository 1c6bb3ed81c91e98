"""
errors.py

Purpose:
  Exception hierarchy for the sustainability scoring engine.

Taxonomy:
  - **ConfigError**: missing/invalid settings, raised at construction only.
  - **ParamValidationError**: invalid filter/sort/offset/limit construction.
  - **TelemetryFetchError**: network, status or decode failure against the
    telemetry API or the token endpoint.
  - **TimestampParseError**: a series sample carries an unparseable bucket.
  - **KubeLookupError**: node label lookup failures. `NodeNotFoundError` and
    `LabelNotFoundError` are the two non-fatal cases (neutral score 0).
"""
from __future__ import annotations

from typing import Optional


class GreenSchedulingError(Exception):
    """Base exception for the scoring engine."""
    pass


class ConfigError(GreenSchedulingError):
    """Raised when plugin arguments fail validation."""
    def __init__(self, message: str, fields: Optional[list] = None):
        self.fields = list(fields or [])
        super().__init__(message)


class ParamValidationError(GreenSchedulingError, ValueError):
    """Raised when a query parameter cannot be constructed."""
    pass


class TelemetryFetchError(GreenSchedulingError):
    """Raised when a call to the telemetry API (or token endpoint) fails."""
    def __init__(
        self,
        operation: str,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ):
        self.operation = operation
        self.status_code = status_code
        self.body = body
        super().__init__(f"{operation}: {message}")


class TokenError(TelemetryFetchError):
    """Raised when the client-credentials exchange fails."""
    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__("token", message, status_code=status_code, body=body)


class DeadlineExceededError(TelemetryFetchError):
    """Raised when the scheduling cycle budget is spent before a network call."""
    pass


class TimestampParseError(GreenSchedulingError):
    def __init__(self, value: str):
        self.value = value
        super().__init__(f"error parsing time bucket {value!r}")


class KubeLookupError(GreenSchedulingError):
    """Base exception for node label lookups."""
    pass


class NodeNotFoundError(KubeLookupError):
    def __init__(self, node_name: str):
        self.node_name = node_name
        super().__init__(f"node '{node_name}' not found")


class LabelNotFoundError(KubeLookupError):
    def __init__(self, node_name: str, label: str):
        self.node_name = node_name
        self.label = label
        super().__init__(f"label '{label}' not found on node '{node_name}'")


class ClientCreationError(KubeLookupError):
    """Raised when no Kubernetes client configuration can be loaded."""
    pass
