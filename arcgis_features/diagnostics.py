# ============================================================================
# MODULE CONTEXT - DIAGNOSTIC SINK
# ============================================================================
# STATUS: Standalone Module - advisory warnings of the feature client
# PURPOSE: Route non-fatal conditions through an injectable sink instead of printing
# EXPORTS: DiagnosticCode, Diagnostic, DiagnosticSink, LoggingDiagnosticSink, RecordingDiagnosticSink
# DEPENDENCIES: util_logger
# ============================================================================

"""
Diagnostic sink for advisory conditions.

The feature client never fails on these; it reports them here:
- base URL that does not look like a FeatureServer
- missing or unsupported spatial reference
- feature dropped because its geometry could not be decoded or converted
- polyline paths discarded during GeoJSON conversion
- conversion called with no features

Production code uses LoggingDiagnosticSink (WARNING records with the code
in customDimensions). Tests and the validator use RecordingDiagnosticSink.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from util_logger import LoggerFactory, ComponentType


class DiagnosticCode:
    """Codes emitted by the feature client."""
    NOT_ARCGIS_URL = "not_arcgis_url"
    NOT_FEATURE_SERVER_URL = "not_feature_server_url"
    ASSUMED_WGS84 = "assumed_wgs84"
    UNSUPPORTED_WKID = "unsupported_wkid"
    FEATURE_DROPPED = "feature_dropped"
    PATHS_DISCARDED = "paths_discarded"
    UNKNOWN_GEOMETRY_TYPE = "unknown_geometry_type"
    NO_FEATURES = "no_features"


@dataclass
class Diagnostic:
    """One advisory condition."""
    code: str
    message: str
    context: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


@runtime_checkable
class DiagnosticSink(Protocol):
    """Anything with a ``warn`` method accepting a code, message and context."""

    def warn(self, code: str, message: str, **context: Any) -> None:
        ...


class LoggingDiagnosticSink:
    """Writes each diagnostic as a WARNING log record."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or LoggerFactory.create_logger(ComponentType.CLIENT, "Diagnostics")

    def warn(self, code: str, message: str, **context: Any) -> None:
        self.logger.warning(
            message,
            extra={'custom_dimensions': {'diagnostic_code': code, **context}}
        )


class RecordingDiagnosticSink:
    """Keeps diagnostics in memory, optionally forwarding them to another sink."""

    def __init__(self, forward_to: Optional[DiagnosticSink] = None):
        self.records: List[Diagnostic] = []
        self.forward_to = forward_to

    def warn(self, code: str, message: str, **context: Any) -> None:
        self.records.append(Diagnostic(code=code, message=message, context=context))
        if self.forward_to is not None:
            self.forward_to.warn(code, message, **context)

    def codes(self) -> List[str]:
        return [record.code for record in self.records]

    def clear(self) -> None:
        self.records.clear()


_default_sink: Optional[LoggingDiagnosticSink] = None


def default_sink() -> LoggingDiagnosticSink:
    """Shared logging sink used when a caller does not inject one."""
    global _default_sink

    if _default_sink is None:
        _default_sink = LoggingDiagnosticSink()

    return _default_sink
