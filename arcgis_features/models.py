# ============================================================================
# MODULE CONTEXT - ARCGIS FEATURE MODELS
# ============================================================================
# STATUS: Standalone Models - ArcGIS REST and GeoJSON Pydantic models
# PURPOSE: Typed, validated shapes for query results, layer info and GeoJSON output
# EXPORTS: GeometryType, SpatialReference, PointGeometry, PolylineGeometry, PolygonGeometry,
#          Feature, QueryResult, LayerDescriptor, QueryOptions,
#          GeoJSONGeometry, GeoJSONFeature, GeoJSONFeatureCollection
# DEPENDENCIES: pydantic
# VALIDATION: Pydantic v2 validation
# PATTERNS: Data Transfer Objects (DTOs)
# ============================================================================

"""
ArcGIS FeatureServer and GeoJSON Pydantic Models

Wire field names (geometryType, spatialReference, maxRecordCount, ...) are
kept exactly as the ArcGIS REST API sends them.

References:
- ArcGIS REST API, Query (Feature Service/Layer)
- GeoJSON RFC 7946: https://tools.ietf.org/html/rfc7946
"""

import math
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


Coordinate = Tuple[float, float]


def is_number(value: Any) -> bool:
    """True for finite ints and floats; bools and numeric strings are not numbers."""
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def coordinate_pair(value: Any) -> Coordinate:
    """
    Validate one vertex and return it as an ``(x, y)`` tuple.

    Z and M values after the first two are dropped.
    """
    if not isinstance(value, (list, tuple)) or len(value) < 2:
        raise ValueError("coordinate must be an [x, y] array")
    x, y = value[0], value[1]
    if not (is_number(x) and is_number(y)):
        raise ValueError("coordinate values must be numbers")
    return (float(x), float(y))


def coordinate_sequence(value: Any, min_length: int, label: str) -> List[Coordinate]:
    """Validate a path or ring."""
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"{label} must be an array of coordinates")
    if len(value) < min_length:
        raise ValueError(f"{label} must have at least {min_length} coordinates")
    return [coordinate_pair(v) for v in value]


class GeometryType(str, Enum):
    """Geometry type tags supported by the feature client."""
    POINT = "esriGeometryPoint"
    POLYLINE = "esriGeometryPolyline"
    POLYGON = "esriGeometryPolygon"

    @property
    def geojson_type(self) -> str:
        return _GEOJSON_TYPES[self]

    @classmethod
    def parse(cls, tag: Any) -> Optional["GeometryType"]:
        """Return the member for ``tag`` or None when unsupported."""
        try:
            return cls(tag)
        except (ValueError, TypeError):
            return None


_GEOJSON_TYPES = {
    GeometryType.POINT: "Point",
    GeometryType.POLYLINE: "LineString",
    GeometryType.POLYGON: "Polygon",
}


class SpatialReference(BaseModel):
    """Spatial reference descriptor ``{wkid, latestWkid}``."""
    model_config = ConfigDict(extra="allow", frozen=True)

    wkid: Optional[int] = Field(default=None, description="Well-known ID")
    latestWkid: Optional[int] = Field(default=None, description="Current well-known ID")

    @property
    def effective_wkid(self) -> Optional[int]:
        return self.wkid if self.wkid is not None else self.latestWkid


# ============================================================================
# GEOMETRIES
# ============================================================================

class PointGeometry(BaseModel):
    """ArcGIS point ``{x, y}``."""
    model_config = ConfigDict(frozen=True)

    x: float
    y: float

    @field_validator("x", "y", mode="before")
    @classmethod
    def validate_number(cls, v: Any) -> Any:
        if not is_number(v):
            raise ValueError("point coordinates must be numbers")
        return v


class PolylineGeometry(BaseModel):
    """ArcGIS polyline ``{paths: [[[x, y], ...], ...]}``."""
    model_config = ConfigDict(frozen=True)

    paths: List[List[Coordinate]]

    @field_validator("paths", mode="before")
    @classmethod
    def validate_paths(cls, v: Any) -> Any:
        if not isinstance(v, (list, tuple)) or not v:
            raise ValueError("polyline must have at least one path")
        return [coordinate_sequence(path, 2, "path") for path in v]


class PolygonGeometry(BaseModel):
    """ArcGIS polygon ``{rings: [[[x, y], ...], ...]}``."""
    model_config = ConfigDict(frozen=True)

    rings: List[List[Coordinate]]

    @field_validator("rings", mode="before")
    @classmethod
    def validate_rings(cls, v: Any) -> Any:
        if not isinstance(v, (list, tuple)) or not v:
            raise ValueError("polygon must have at least one ring")
        return [coordinate_sequence(ring, 1, "ring") for ring in v]


Geometry = Union[PointGeometry, PolylineGeometry, PolygonGeometry]

GEOMETRY_MODELS = {
    GeometryType.POINT: PointGeometry,
    GeometryType.POLYLINE: PolylineGeometry,
    GeometryType.POLYGON: PolygonGeometry,
}


# ============================================================================
# QUERY RESULT / LAYER INFO
# ============================================================================

class Feature(BaseModel):
    """One feature: attribute bag plus geometry of the result's geometry type."""
    model_config = ConfigDict(frozen=True)

    attributes: Dict[str, Any]
    geometry: Geometry

    @property
    def object_id(self) -> Any:
        return self.attributes.get("OBJECTID")


class QueryResult(BaseModel):
    """Validated response of ``{layer}/query``."""
    model_config = ConfigDict(frozen=True)

    features: List[Feature] = Field(default_factory=list)
    geometryType: GeometryType
    spatialReference: SpatialReference
    # OBJECTIDs of features whose geometry did not decode
    dropped_object_ids: List[Any] = Field(default_factory=list)

    @property
    def object_ids(self) -> List[Any]:
        return [f.object_id for f in self.features]


class LayerDescriptor(BaseModel):
    """
    Validated layer metadata.

    Any other fields the service provides (fields, extent, drawingInfo, ...)
    are kept as extra attributes.
    """
    model_config = ConfigDict(extra="allow", frozen=True)

    name: str = Field(min_length=1)
    geometryType: str
    maxRecordCount: int = Field(gt=0)


class QueryOptions(BaseModel):
    """
    Options of a feature query.

    Accepts both the Python names and the ArcGIS parameter names
    (``out_fields`` or ``outFields``).
    """
    model_config = ConfigDict(extra="forbid", frozen=True, strict=True, populate_by_name=True)

    where: str = Field(default="1=1", min_length=1)
    out_fields: str = Field(
        default="*",
        min_length=1,
        validation_alias=AliasChoices("out_fields", "outFields")
    )
    return_geometry: bool = Field(
        default=True,
        validation_alias=AliasChoices("return_geometry", "returnGeometry")
    )
    max_record_count: int = Field(
        default=1000,
        gt=0,
        validation_alias=AliasChoices("max_record_count", "maxRecordCount")
    )

    def to_params(self) -> Dict[str, str]:
        """Query string parameters for ``{layer}/query``."""
        return {
            "f": "json",
            "where": self.where,
            "outFields": self.out_fields,
            "returnGeometry": "true" if self.return_geometry else "false",
            "maxRecordCount": str(self.max_record_count),
        }


# ============================================================================
# GEOJSON OUTPUT
# ============================================================================

class GeoJSONGeometry(BaseModel):
    """GeoJSON geometry object in WGS84 longitude/latitude order."""
    type: Literal["Point", "LineString", "Polygon"]
    coordinates: List[Any]


class GeoJSONFeature(BaseModel):
    """GeoJSON Feature; properties are the source attributes unchanged."""
    type: Literal["Feature"] = "Feature"
    geometry: GeoJSONGeometry
    properties: Dict[str, Any] = Field(default_factory=dict)


class GeoJSONFeatureCollection(BaseModel):
    """GeoJSON FeatureCollection."""
    type: Literal["FeatureCollection"] = "FeatureCollection"
    features: List[GeoJSONFeature] = Field(default_factory=list)
