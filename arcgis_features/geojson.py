# ============================================================================
# MODULE CONTEXT - ARCGIS TO GEOJSON CONVERSION
# ============================================================================
# STATUS: Standalone Module - Esri JSON features to GeoJSON FeatureCollection
# PURPOSE: Convert query results for map rendering (WGS84 longitude/latitude)
# EXPORTS: convert_to_geojson, convert_geometry
# DEPENDENCIES: pydantic models, projection, diagnostics, util_logger
# ============================================================================

"""
ArcGIS (Esri JSON) to GeoJSON conversion.

Geometry rules by geometry type tag:
    esriGeometryPoint     -> Point       (numeric x, y required)
    esriGeometryPolyline  -> LineString  (FIRST path only)
    esriGeometryPolygon   -> Polygon     (every ring)

Multi-part polylines lose every path after the first. This matches what the
dashboard map has always drawn; a ``paths_discarded`` diagnostic is emitted
for each affected feature so the truncation is visible.

A feature whose geometry cannot be converted is dropped with a
``feature_dropped`` diagnostic; the rest of the batch is still converted.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple

from util_logger import LoggerFactory, ComponentType

from .diagnostics import DiagnosticCode, DiagnosticSink, default_sink
from .errors import InvalidArgumentError
from .models import (
    Feature,
    GeoJSONFeature,
    GeoJSONFeatureCollection,
    GeoJSONGeometry,
    GeometryType,
    SpatialReference,
    coordinate_pair,
    coordinate_sequence,
)
from .projection import GEOGRAPHIC_WKIDS, WEB_MERCATOR_WKIDS, transform_to_wgs84, wkid_of

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "GeoJSONConverter")

_WGS84 = SpatialReference(wkid=4326)


def _resolve_spatial_reference(spatial_reference: Any, sink: DiagnosticSink) -> Any:
    """
    Decide once per batch how coordinates are transformed.

    Missing or unsupported references are reported a single time and the
    batch is then treated as WGS84 (coordinates unchanged).
    """
    if spatial_reference is None:
        sink.warn(DiagnosticCode.ASSUMED_WGS84, "No spatial reference, assuming WGS84")
        return _WGS84

    wkid = wkid_of(spatial_reference)

    if wkid is None:
        sink.warn(DiagnosticCode.ASSUMED_WGS84, "Spatial reference has no WKID, assuming WGS84")
        return _WGS84

    if wkid in GEOGRAPHIC_WKIDS or wkid in WEB_MERCATOR_WKIDS:
        return spatial_reference

    sink.warn(
        DiagnosticCode.UNSUPPORTED_WKID,
        f"Unsupported coordinate system WKID: {wkid}",
        wkid=wkid
    )
    return _WGS84


def _unpack(feature: Any) -> Tuple[Dict[str, Any], Any]:
    """Return ``(attributes, raw geometry)`` for a typed or raw feature."""
    if isinstance(feature, Feature):
        return feature.attributes, feature.geometry.model_dump()
    if isinstance(feature, dict):
        attributes = feature.get("attributes")
        return (attributes if isinstance(attributes, dict) else {}), feature.get("geometry")
    raise ValueError(f"feature must be an object, got {type(feature).__name__}")


def convert_geometry(
    geometry: Any,
    geometry_type: GeometryType,
    spatial_reference: Any,
    diagnostics: Optional[DiagnosticSink] = None,
    index: Optional[int] = None
) -> GeoJSONGeometry:
    """
    Convert one Esri JSON geometry.

    Raises:
        ValueError: geometry does not have the shape of ``geometry_type``
    """
    sink = diagnostics or default_sink()

    if not isinstance(geometry, dict):
        raise ValueError("missing geometry")

    if geometry_type == GeometryType.POINT:
        x, y = coordinate_pair([geometry.get("x"), geometry.get("y")])
        coords = transform_to_wgs84([(x, y)], spatial_reference, sink)[0]
        return GeoJSONGeometry(type="Point", coordinates=coords)

    if geometry_type == GeometryType.POLYLINE:
        paths = geometry.get("paths")
        if not isinstance(paths, (list, tuple)) or not paths:
            raise ValueError("invalid polyline geometry paths")
        if len(paths) > 1:
            sink.warn(
                DiagnosticCode.PATHS_DISCARDED,
                f"Polyline feature {index} has {len(paths)} paths; only the first is converted",
                index=index,
                path_count=len(paths)
            )
        first_path = coordinate_sequence(paths[0], 2, "path")
        return GeoJSONGeometry(
            type="LineString",
            coordinates=transform_to_wgs84(first_path, spatial_reference, sink)
        )

    if geometry_type == GeometryType.POLYGON:
        rings = geometry.get("rings")
        if not isinstance(rings, (list, tuple)) or not rings:
            raise ValueError("invalid polygon geometry rings")
        return GeoJSONGeometry(
            type="Polygon",
            coordinates=[
                transform_to_wgs84(coordinate_sequence(ring, 1, "ring"), spatial_reference, sink)
                for ring in rings
            ]
        )

    raise ValueError(f"unknown geometry type: {geometry_type}")


def convert_to_geojson(
    features: Sequence[Any],
    geometry_type: Any,
    spatial_reference: Any = None,
    diagnostics: Optional[DiagnosticSink] = None
) -> GeoJSONFeatureCollection:
    """
    Convert ArcGIS features to a GeoJSON FeatureCollection in WGS84.

    Args:
        features: List of Feature models or raw ``{attributes, geometry}`` dicts
        geometry_type: Geometry type tag of the features (e.g. "esriGeometryPolyline")
        spatial_reference: Spatial reference of the coordinates; WGS84 assumed when None
        diagnostics: Sink for advisory warnings

    Returns:
        GeoJSONFeatureCollection with at most ``len(features)`` features, in input order

    Raises:
        InvalidArgumentError: ``features`` is not a list, or ``geometry_type`` is empty
    """
    sink = diagnostics or default_sink()

    if not isinstance(features, (list, tuple)):
        raise InvalidArgumentError("ArcGIS Service: Features must be an array")

    if not geometry_type or not isinstance(geometry_type, str):
        raise InvalidArgumentError("ArcGIS Service: Geometry type is required")

    if not features:
        sink.warn(DiagnosticCode.NO_FEATURES, "No features to convert")
        return GeoJSONFeatureCollection()

    tag = GeometryType.parse(geometry_type)
    if tag is None:
        sink.warn(
            DiagnosticCode.UNKNOWN_GEOMETRY_TYPE,
            f"Unknown geometry type: {geometry_type}; {len(features)} features dropped",
            geometry_type=geometry_type,
            dropped=len(features)
        )
        return GeoJSONFeatureCollection()

    effective_sr = _resolve_spatial_reference(spatial_reference, sink)

    converted: List[GeoJSONFeature] = []
    for index, feature in enumerate(features):
        try:
            attributes, geometry = _unpack(feature)
            geojson_geometry = convert_geometry(geometry, tag, effective_sr, sink, index)
        except ValueError as e:
            sink.warn(
                DiagnosticCode.FEATURE_DROPPED,
                f"Could not convert geometry for feature {index}: {e}",
                index=index
            )
            continue

        converted.append(GeoJSONFeature(geometry=geojson_geometry, properties=attributes))

    logger.info(
        "Converted to GeoJSON",
        extra={'custom_dimensions': {
            'original_count': len(features),
            'converted_count': len(converted),
            'geometry_type': tag.value
        }}
    )

    return GeoJSONFeatureCollection(features=converted)
