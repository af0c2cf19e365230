# ============================================================================
# MODULE CONTEXT - SERVICE VALIDATOR CHECKS
# ============================================================================
# STATUS: Standalone Module - live checks against a FeatureServer
# PURPOSE: Exercise FeatureClient end-to-end and report pass/fail per check
# EXPORTS: validation_check, CheckFailed, ALL_CHECKS and the check functions
# DEPENDENCIES: asyncio, arcgis_features
# PATTERNS: Decorator wraps each check into a CheckResult
# ============================================================================

"""
Validation checks.

Every check is ``async def check(client, expectations) -> Optional[dict]``.
A check passes by returning (optionally with a details dict) and fails by
raising; the ``validation_check`` decorator turns either outcome into a
CheckResult, so one failing check never stops the others.
"""

import asyncio
import time
from functools import wraps
from typing import Any, Awaitable, Callable, Dict, List, Optional

from arcgis_features.client import FeatureClient, OBJECT_ID_FIELD
from arcgis_features.errors import (
    ArcGISServiceError,
    InvalidArgumentError,
    RemoteServiceError,
    TransportError,
)
from arcgis_features.models import (
    Feature,
    GeometryType,
    PointGeometry,
    PolygonGeometry,
    PolylineGeometry,
    is_number,
)

from .config import ValidationExpectations
from .models import CheckResult

CheckFunction = Callable[[FeatureClient, ValidationExpectations], Awaitable[Optional[Dict[str, Any]]]]


class CheckFailed(AssertionError):
    """An expectation of a validation check did not hold."""


def require(condition: Any, message: str) -> None:
    if not condition:
        raise CheckFailed(message)


def _error_text(e: Exception) -> str:
    if isinstance(e, CheckFailed):
        return str(e)
    return f"{type(e).__name__}: {e}"


def validation_check(name: str):
    """
    Wrap a check function so it always yields a CheckResult.

    Args:
        name: Display name of the check

    Returns:
        Decorator producing ``async (client, expectations) -> CheckResult``
    """
    def decorator(func: CheckFunction) -> Callable[..., Awaitable[CheckResult]]:
        @wraps(func)
        async def wrapper(client: FeatureClient, expectations: ValidationExpectations) -> CheckResult:
            start = time.perf_counter()
            try:
                details = await func(client, expectations)
            except Exception as e:
                return CheckResult(
                    name=name,
                    passed=False,
                    error=_error_text(e),
                    duration_ms=(time.perf_counter() - start) * 1000
                )
            return CheckResult(
                name=name,
                passed=True,
                details=details,
                duration_ms=(time.perf_counter() - start) * 1000
            )

        wrapper.check_name = name
        return wrapper
    return decorator


# ============================================================================
# GEOMETRY STRUCTURE
# ============================================================================

def _pair_ok(coord: Any) -> bool:
    return isinstance(coord, (list, tuple)) and len(coord) >= 2 and is_number(coord[0]) and is_number(coord[1])


def geometry_problems(feature: Feature, geometry_type: GeometryType) -> List[str]:
    """Return the structural problems of one feature's geometry (empty when valid)."""
    geometry = feature.geometry

    if geometry_type == GeometryType.POINT:
        if not isinstance(geometry, PointGeometry):
            return ["geometry is not a point"]
        if not (is_number(geometry.x) and is_number(geometry.y)):
            return ["point x/y must be numbers"]
        return []

    if geometry_type == GeometryType.POLYLINE:
        if not isinstance(geometry, PolylineGeometry):
            return ["geometry is not a polyline"]
        if not geometry.paths:
            return ["polyline has no paths"]
        problems = []
        for i, path in enumerate(geometry.paths):
            if len(path) < 2:
                problems.append(f"path {i} has fewer than 2 coordinates")
            elif not all(_pair_ok(c) for c in path):
                problems.append(f"path {i} has non-numeric coordinates")
        return problems

    if geometry_type == GeometryType.POLYGON:
        if not isinstance(geometry, PolygonGeometry):
            return ["geometry is not a polygon"]
        if not geometry.rings:
            return ["polygon has no rings"]
        problems = []
        for i, ring in enumerate(geometry.rings):
            if not ring:
                problems.append(f"ring {i} is empty")
            elif not all(_pair_ok(c) for c in ring):
                problems.append(f"ring {i} has non-numeric coordinates")
        return problems

    return [f"unsupported geometry type {geometry_type}"]


# ============================================================================
# CHECKS
# ============================================================================

@validation_check("Service Initialization")
async def check_service_initialization(client: FeatureClient, expectations: ValidationExpectations):
    require(client is not None, "Service instance should be created")
    for operation in ("fetch_features", "get_layer_info", "convert_to_geojson"):
        require(callable(getattr(client, operation, None)), f"Service should expose {operation}")
    require(getattr(client, "base_url", None), "Service should have a base URL")
    return {"base_url": client.base_url}


@validation_check("Layer Info Retrieval")
async def check_layer_info(client: FeatureClient, expectations: ValidationExpectations):
    info = await client.get_layer_info(expectations.layer_id)

    require(isinstance(info.name, str) and info.name, "Layer name should be a non-empty string")
    require(isinstance(info.geometryType, str), "Geometry type should be a string")
    require(isinstance(info.maxRecordCount, int), "Max record count should be a number")
    require(info.maxRecordCount > 0, "Max record count should be positive")

    if expectations.layer_name is not None:
        require(
            info.name == expectations.layer_name,
            f"Layer name should be {expectations.layer_name!r}, got {info.name!r}"
        )
    require(
        info.geometryType == expectations.geometry_type.value,
        f"Geometry type should be {expectations.geometry_type.value}, got {info.geometryType}"
    )

    return {
        "name": info.name,
        "geometryType": info.geometryType,
        "maxRecordCount": info.maxRecordCount
    }


@validation_check("Feature Fetching")
async def check_feature_fetching(client: FeatureClient, expectations: ValidationExpectations):
    result = await client.fetch_features(
        expectations.layer_id,
        out_fields=OBJECT_ID_FIELD,
        max_record_count=10
    )

    count = len(result.features)
    require(count > 0, "Should return features")
    require(
        count <= expectations.reasonable_max_features,
        f"Should return a reasonable number of features (<= {expectations.reasonable_max_features}), got {count}"
    )
    require(
        result.geometryType == expectations.geometry_type,
        f"Geometry type should be {expectations.geometry_type.value}, got {result.geometryType.value}"
    )

    first = result.features[0]
    require(first.attributes is not None, "Feature should have attributes")
    require(first.geometry is not None, "Feature should have geometry")
    require(first.object_id is not None, f"Feature should have {OBJECT_ID_FIELD}")

    return {
        "featureCount": count,
        "requestedCount": 10,
        "note": "The service may return more or fewer features than requested",
        "geometryType": result.geometryType.value,
        "spatialReference": result.spatialReference.model_dump(exclude_none=True)
    }


@validation_check("Data Validation")
async def check_data_validation(client: FeatureClient, expectations: ValidationExpectations):
    result = await client.fetch_features(expectations.layer_id, max_record_count=100)
    require(
        not result.dropped_object_ids,
        f"{len(result.dropped_object_ids)} features have undecodable geometry: "
        f"{OBJECT_ID_FIELD} {result.dropped_object_ids}"
    )
    require(result.features, "Should return features to validate")

    invalid = {}
    for index, feature in enumerate(result.features):
        problems = geometry_problems(feature, result.geometryType)
        if problems:
            invalid[str(feature.object_id if feature.object_id is not None else index)] = problems

    require(not invalid, f"{len(invalid)} features have invalid geometry: {invalid}")
    return {"validatedFeatures": len(result.features), "geometryType": result.geometryType.value}


@validation_check("Error Handling")
async def check_error_handling(client: FeatureClient, expectations: ValidationExpectations):
    try:
        await client.get_layer_info(expectations.missing_layer_id)
    except (TransportError, RemoteServiceError) as e:
        missing_layer_error = f"{type(e).__name__}: {e}"
    else:
        raise CheckFailed(f"Should throw error for invalid layer ID {expectations.missing_layer_id}")

    try:
        await client.fetch_features(
            expectations.layer_id,
            where=expectations.invalid_where,
            max_record_count=10
        )
    except ArcGISServiceError as e:
        invalid_filter_error = f"{type(e).__name__}: {e}"
    else:
        raise CheckFailed(f"Should throw error for invalid filter {expectations.invalid_where!r}")

    try:
        await client.fetch_features(expectations.layer_id, max_record_count=-1)
    except InvalidArgumentError as e:
        invalid_argument_error = str(e)
    else:
        raise CheckFailed("Should reject a negative maxRecordCount")

    return {
        "missingLayer": missing_layer_error,
        "invalidFilter": invalid_filter_error,
        "invalidArgument": invalid_argument_error
    }


@validation_check("GeoJSON Conversion")
async def check_geojson_conversion(client: FeatureClient, expectations: ValidationExpectations):
    result = await client.fetch_features(expectations.layer_id, max_record_count=5)
    require(result.features, "Should return features to convert")

    geojson = client.convert_to_geojson(result.features, result.geometryType.value, result.spatialReference)

    require(geojson.type == "FeatureCollection", "Should be FeatureCollection")
    require(
        len(geojson.features) == len(result.features),
        f"Should preserve feature count ({len(result.features)}), got {len(geojson.features)}"
    )

    expected_type = expectations.geometry_type.geojson_type
    for feature in geojson.features:
        require(feature.type == "Feature", "Each item should be a Feature")
        require(
            feature.geometry.type == expected_type,
            f"Should convert to {expected_type}, got {feature.geometry.type}"
        )

    converted_ids = [f.properties.get(OBJECT_ID_FIELD) for f in geojson.features]
    require(converted_ids == result.object_ids, f"Should preserve {OBJECT_ID_FIELD} values in order")

    return {"featureCount": len(geojson.features), "geometryType": expected_type}


@validation_check("Performance Testing")
async def check_performance(client: FeatureClient, expectations: ValidationExpectations):
    layer_id = expectations.layer_id

    start = time.perf_counter()
    results = await asyncio.gather(
        client.get_layer_info(layer_id),
        client.fetch_features(layer_id, max_record_count=10),
        client.fetch_features(layer_id, max_record_count=20),
        client.fetch_features(layer_id, max_record_count=50)
    )
    concurrent_ms = (time.perf_counter() - start) * 1000

    require(len(results) == 4, "All concurrent requests should complete")
    require(
        concurrent_ms < expectations.concurrent_threshold_ms,
        f"Concurrent requests should finish under {expectations.concurrent_threshold_ms:.0f}ms, "
        f"took {concurrent_ms:.0f}ms"
    )

    start = time.perf_counter()
    large = await client.fetch_features(layer_id, max_record_count=100)
    single_ms = (time.perf_counter() - start) * 1000

    require(large.features, "Large request should return features")
    require(
        single_ms < expectations.single_threshold_ms,
        f"Large request should finish under {expectations.single_threshold_ms:.0f}ms, took {single_ms:.0f}ms"
    )

    return {
        "concurrentMs": round(concurrent_ms, 1),
        "singleMs": round(single_ms, 1),
        "largeRequestFeatures": len(large.features)
    }


@validation_check("Data Consistency")
async def check_data_consistency(client: FeatureClient, expectations: ValidationExpectations):
    results = await asyncio.gather(*[
        client.fetch_features(expectations.layer_id, max_record_count=10)
        for _ in range(3)
    ])

    counts = [len(r.features) for r in results]
    require(len(set(counts)) == 1, f"Should return consistent feature counts, got {counts}")

    leading = [r.object_ids[:3] for r in results]
    require(
        all(ids == leading[0] for ids in leading),
        f"Should return consistent {OBJECT_ID_FIELD} values, got {leading}"
    )

    return {"featureCount": counts[0], "leadingObjectIds": leading[0]}


ALL_CHECKS = (
    check_service_initialization,
    check_layer_info,
    check_feature_fetching,
    check_data_validation,
    check_error_handling,
    check_geojson_conversion,
    check_performance,
    check_data_consistency,
)
