# ============================================================================
# MODULE CONTEXT - ARCGIS FEATURE CLIENT ERRORS
# ============================================================================
# STATUS: Standalone Module - error taxonomy for the feature client
# PURPOSE: Distinguish caller mistakes, transport failures, service-reported errors and bad payloads
# EXPORTS: ArcGISServiceError, InvalidArgumentError, TransportError, RemoteServiceError, MalformedResponseError
# DEPENDENCIES: typing
# ============================================================================

"""
Feature client exception hierarchy.

    ArcGISServiceError
    ├── InvalidArgumentError    caller violated a precondition (raised before any I/O)
    ├── TransportError          non-2xx status, or no response at all
    ├── RemoteServiceError      HTTP 200 but the body carries an "error" object
    └── MalformedResponseError  payload failed structural validation

None of these are retried by the client.
"""

from typing import Any, Dict, List, Optional


class ArcGISServiceError(Exception):
    """Base class for every error raised by the feature client."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        """Error payload used by the HTTP triggers."""
        return {"code": type(self).__name__, "description": self.message}


class InvalidArgumentError(ArcGISServiceError, ValueError):
    """A caller-supplied parameter violates a documented precondition."""


class TransportError(ArcGISServiceError):
    """
    HTTP transport failure.

    ``status_code`` is None when no response was received (DNS failure,
    connection refused, timeout configured by the caller).
    """

    def __init__(self, message: str, status_code: Optional[int] = None, url: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.url = url

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        if self.status_code is not None:
            result["status_code"] = self.status_code
        return result


class RemoteServiceError(ArcGISServiceError):
    """The service answered but reported an error in its own payload."""

    def __init__(self, message: str, code: Optional[int] = None, details: Optional[List[str]] = None):
        super().__init__(message)
        self.code = code
        self.details = details or []

    @classmethod
    def from_payload(cls, error: Any) -> "RemoteServiceError":
        """Build from the ``error`` object of an ArcGIS REST response."""
        if not isinstance(error, dict):
            return cls(f"ArcGIS error: {error or 'Unknown error'}")

        message = error.get("message") or "Unknown error"
        code = error.get("code")
        details = error.get("details")
        return cls(
            f"ArcGIS error: {message}",
            code=code if isinstance(code, int) else None,
            details=[str(d) for d in details] if isinstance(details, list) else None
        )

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        if self.code is not None:
            result["service_code"] = self.code
        if self.details:
            result["details"] = self.details
        return result


class MalformedResponseError(ArcGISServiceError):
    """The payload is missing required fields or has the wrong shape."""

    def __init__(self, message: str, feature_index: Optional[int] = None):
        super().__init__(message)
        self.feature_index = feature_index

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        if self.feature_index is not None:
            result["feature_index"] = self.feature_index
        return result
