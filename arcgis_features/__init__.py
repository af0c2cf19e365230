# ============================================================================
# MODULE CONTEXT - ARCGIS FEATURES MODULE
# ============================================================================
# STATUS: Standalone Module - ArcGIS FeatureServer client
# PURPOSE: Fetch features and layer metadata from an ArcGIS FeatureServer and
#          convert them to GeoJSON for the dashboard map
# EXPORTS: FeatureClient, convert_to_geojson, transform_to_wgs84, get_arcgis_triggers,
#          error classes, models, diagnostics sinks
# INTERFACES: Standalone - base URL and settings are passed in by the caller
# PYDANTIC_MODELS: QueryResult, LayerDescriptor, QueryOptions, GeoJSONFeatureCollection
# DEPENDENCIES: httpx, pydantic, azure-functions (triggers only)
# ENTRY_POINTS: from arcgis_features import FeatureClient, get_arcgis_triggers
# ============================================================================

"""
ArcGIS Features - Standalone Module

Async client for one ArcGIS FeatureServer plus the HTTP triggers that
expose it to the dashboard.

Architecture:
    arcgis_features/
    ├── errors.py       # Error taxonomy (InvalidArgument/Transport/RemoteService/MalformedResponse)
    ├── diagnostics.py  # Injectable sink for advisory warnings
    ├── models.py       # Pydantic models (Esri JSON, layer info, query options, GeoJSON)
    ├── projection.py   # Web Mercator -> WGS84
    ├── geojson.py      # Esri JSON -> GeoJSON FeatureCollection
    ├── client.py       # FeatureClient (httpx.AsyncClient)
    └── triggers.py     # Azure Functions HTTP handlers

Integration:
    # In function_app.py
    from arcgis_features import get_arcgis_triggers

    for trigger in get_arcgis_triggers(client, config):
        app.route(
            route=trigger['route'],
            methods=trigger['methods'],
            auth_level=func.AuthLevel.ANONYMOUS
        )(trigger['handler'])
"""

from .errors import (
    ArcGISServiceError,
    InvalidArgumentError,
    MalformedResponseError,
    RemoteServiceError,
    TransportError,
)
from .diagnostics import (
    Diagnostic,
    DiagnosticCode,
    DiagnosticSink,
    LoggingDiagnosticSink,
    RecordingDiagnosticSink,
    default_sink,
)
from .models import (
    Feature,
    GeoJSONFeature,
    GeoJSONFeatureCollection,
    GeoJSONGeometry,
    GeometryType,
    LayerDescriptor,
    PointGeometry,
    PolygonGeometry,
    PolylineGeometry,
    QueryOptions,
    QueryResult,
    SpatialReference,
)
from .projection import transform_to_wgs84, web_mercator_to_wgs84
from .geojson import convert_to_geojson
from .client import FeatureClient
from .triggers import get_arcgis_triggers

__version__ = "1.0.0"
__all__ = [
    "ArcGISServiceError",
    "Diagnostic",
    "DiagnosticCode",
    "DiagnosticSink",
    "Feature",
    "FeatureClient",
    "GeoJSONFeature",
    "GeoJSONFeatureCollection",
    "GeoJSONGeometry",
    "GeometryType",
    "InvalidArgumentError",
    "LayerDescriptor",
    "LoggingDiagnosticSink",
    "MalformedResponseError",
    "PointGeometry",
    "PolygonGeometry",
    "PolylineGeometry",
    "QueryOptions",
    "QueryResult",
    "RecordingDiagnosticSink",
    "RemoteServiceError",
    "SpatialReference",
    "TransportError",
    "convert_to_geojson",
    "default_sink",
    "get_arcgis_triggers",
    "transform_to_wgs84",
    "web_mercator_to_wgs84",
]
