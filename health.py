# ============================================================================
# MODULE CONTEXT - HEALTH CHECK MODULE
# ============================================================================
# STATUS: Core Infrastructure - Health Monitoring
# PURPOSE: Health checks for APIM integration and monitoring
# EXPORTS: get_public_health, get_detailed_health, get_app_identity, HealthStatus
# DEPENDENCIES: arcgis_features, config, util_logger
# PATTERNS: Two-tier health checks (public/detailed) for APIM
# ============================================================================

"""
Health Check Module for the ArcGIS dashboard API

Provides two-tier health monitoring:

1. Public Health (/api/health):
   - Minimal response for external callers
   - Returns only status and timestamp
   - Always returns 200 (status in body indicates health)

2. Detailed Health (/api/health/detailed):
   - Feature service reachability with latency (layer info request)
   - Feature query round trip on the default layer
   - API module status
   - Returns 503 if unhealthy

Critical vs non-critical:
    feature_service  critical      -> UNHEALTHY on failure
    feature_query    non-critical  -> DEGRADED on failure
    api_modules      non-critical  -> DEGRADED on failure

Usage:
    from health import get_public_health, get_detailed_health

    result = await get_public_health(client, layer_id=12)
    # {"status": "healthy", "timestamp": "2025-11-24T12:00:00Z"}

    result = await get_detailed_health(client, config)
"""

import time
import uuid
from enum import Enum
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Optional, Dict, Any

from arcgis_features import FeatureClient
from config import AppConfig
from util_logger import LoggerFactory, ComponentType

# Create module logger
logger = LoggerFactory.create_logger(ComponentType.SERVICE, "HealthService")

APP_NAME = "arcgis-dashboard-api"
APP_DESCRIPTION = "ArcGIS FeatureServer Dashboard API"


# ============================================================================
# Health Status Enum
# ============================================================================

class HealthStatus(str, Enum):
    """Health status values."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"      # Non-critical components failing
    UNHEALTHY = "unhealthy"    # Critical components failing


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class CheckResult:
    """Result of a single health check."""
    status: str              # "pass" or "fail"
    latency_ms: float
    message: str
    details: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, excluding None values."""
        result = {
            "status": self.status,
            "latency_ms": round(self.latency_ms, 2),
            "message": self.message
        }
        if self.details:
            result["details"] = self.details
        return result


def get_app_identity() -> Dict[str, str]:
    return {"name": APP_NAME, "description": APP_DESCRIPTION}


# ============================================================================
# Health Check Functions
# ============================================================================

async def check_feature_service(client: FeatureClient, layer_id: int) -> CheckResult:
    """
    Check that the FeatureServer answers a layer info request.

    This is a critical check - failure means UNHEALTHY status.

    Args:
        client: Shared feature client
        layer_id: Layer to describe

    Returns:
        CheckResult with reachability and latency
    """
    start_time = time.perf_counter()

    try:
        info = await client.get_layer_info(layer_id)
        latency_ms = (time.perf_counter() - start_time) * 1000

        return CheckResult(
            status="pass",
            latency_ms=latency_ms,
            message="Feature service reachable",
            details={
                "base_url": client.base_url,
                "layer_id": layer_id,
                "layer_name": info.name,
                "geometry_type": info.geometryType
            }
        )

    except Exception as e:
        latency_ms = (time.perf_counter() - start_time) * 1000
        logger.error(f"Feature service health check failed: {e}")

        return CheckResult(
            status="fail",
            latency_ms=latency_ms,
            message=f"Feature service unreachable: {type(e).__name__}",
            details={
                "base_url": client.base_url,
                "layer_id": layer_id,
                "error": str(e)
            }
        )


async def check_feature_query(client: FeatureClient, layer_id: int) -> CheckResult:
    """
    Fetch a single OBJECTID from the default layer.

    Non-critical - failure means DEGRADED status (metadata still works,
    the map feed may not).
    """
    start_time = time.perf_counter()

    try:
        result = await client.fetch_features(layer_id, out_fields="OBJECTID", max_record_count=1)
        latency_ms = (time.perf_counter() - start_time) * 1000

        return CheckResult(
            status="pass",
            latency_ms=latency_ms,
            message="Feature query successful",
            details={
                "feature_count": len(result.features),
                "geometry_type": result.geometryType.value,
                "wkid": result.spatialReference.effective_wkid
            }
        )

    except Exception as e:
        latency_ms = (time.perf_counter() - start_time) * 1000
        logger.warning(f"Feature query health check failed: {e}")

        return CheckResult(
            status="fail",
            latency_ms=latency_ms,
            message=f"Feature query failed: {type(e).__name__}",
            details={"error": str(e)}
        )


def check_api_modules(client: FeatureClient, config: AppConfig) -> CheckResult:
    """
    Check API module availability.

    Verifies the arcgis_features triggers and service_validator can be loaded.
    This is a non-critical check - failure means DEGRADED status.
    """
    start_time = time.perf_counter()

    arcgis_status: Dict[str, Any] = {"available": False, "endpoints": 0}
    validator_status: Dict[str, Any] = {"available": False, "checks": 0}

    try:
        from arcgis_features import get_arcgis_triggers
        arcgis_status = {
            "available": True,
            "endpoints": len(get_arcgis_triggers(client, config))
        }
    except Exception as e:
        arcgis_status["error"] = str(e)

    try:
        from service_validator import ALL_CHECKS
        validator_status = {"available": True, "checks": len(ALL_CHECKS)}
    except Exception as e:
        validator_status["error"] = str(e)

    latency_ms = (time.perf_counter() - start_time) * 1000

    if arcgis_status["available"] and validator_status["available"]:
        status, message = "pass", "All modules loaded"
    elif arcgis_status["available"]:
        status, message = "pass", "Validator unavailable"
    else:
        status, message = "fail", "ArcGIS module unavailable"

    return CheckResult(
        status=status,
        latency_ms=latency_ms,
        message=message,
        details={
            "arcgis_features": arcgis_status,
            "service_validator": validator_status
        }
    )


# ============================================================================
# Main Entry Points
# ============================================================================

async def get_public_health(client: FeatureClient, layer_id: int) -> Dict[str, Any]:
    """
    Get minimal health status for public endpoint.

    Returns only status and timestamp - no internal details.

    Returns:
        Dict with status and timestamp only
    """
    start_time = time.perf_counter()

    service_result = await check_feature_service(client, layer_id)

    if service_result.status == "pass":
        status = HealthStatus.HEALTHY
    else:
        status = HealthStatus.UNHEALTHY

    total_duration = (time.perf_counter() - start_time) * 1000

    logger.info("Public health check completed", extra={
        'custom_dimensions': {
            'status': status.value,
            'duration_ms': round(total_duration, 2),
            'check_type': 'public'
        }
    })

    return {
        "status": status.value,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


async def get_detailed_health(client: FeatureClient, config: AppConfig) -> Dict[str, Any]:
    """
    Get detailed health status for APIM probes and operations.

    SECURITY NOTE: Block this endpoint from external access via APIM policy.

    Returns:
        Dict with full health metrics
    """
    start_time = time.perf_counter()
    request_id = str(uuid.uuid4())[:8]
    layer_id = config.arcgis_default_layer_id

    checks = {}
    critical_failures = []
    non_critical_failures = []

    # Critical: FeatureServer reachable
    service_result = await check_feature_service(client, layer_id)
    checks["feature_service"] = service_result.to_dict()
    if service_result.status == "fail":
        critical_failures.append("feature_service")

    # Non-critical: feature query round trip
    query_result = await check_feature_query(client, layer_id)
    checks["feature_query"] = query_result.to_dict()
    if query_result.status == "fail":
        non_critical_failures.append("feature_query")

    # Non-critical: API modules
    modules_result = check_api_modules(client, config)
    checks["api_modules"] = modules_result.to_dict()
    if modules_result.status == "fail":
        non_critical_failures.append("api_modules")

    if critical_failures:
        status = HealthStatus.UNHEALTHY
    elif non_critical_failures:
        status = HealthStatus.DEGRADED
    else:
        status = HealthStatus.HEALTHY

    total_duration = (time.perf_counter() - start_time) * 1000

    logger.info("Detailed health check completed", extra={
        'custom_dimensions': {
            'status': status.value,
            'duration_ms': round(total_duration, 2),
            'check_type': 'detailed',
            'request_id': request_id,
            'critical_failures': critical_failures,
            'non_critical_failures': non_critical_failures,
            'feature_service_latency_ms': service_result.latency_ms
        }
    })

    return {
        "status": status.value,
        "app": APP_NAME,
        "description": APP_DESCRIPTION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "request_id": request_id,
        "checks": checks,
        "total_duration_ms": round(total_duration, 2)
    }
