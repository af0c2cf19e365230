# ============================================================================
# MODULE CONTEXT - AZURE FUNCTIONS ENTRY POINT
# ============================================================================
# STATUS: Core Infrastructure - Function App Entry Point
# PURPOSE: Main entry point for Azure Functions runtime with the ArcGIS feature API
# EXPORTS: app (FunctionApp instance)
# DEPENDENCIES: azure-functions, arcgis_features, health, config
# ============================================================================

"""
Azure Functions Entry Point for the ArcGIS dashboard API

Registers all HTTP triggers.

Architecture:
    - ArcGIS API: 5 endpoints over one FeatureServer (shared FeatureClient)
    - Health checks: 2 endpoints for monitoring and APIM integration
        - /api/health - Public (minimal response for external callers)
        - /api/health/detailed - Internal (full metrics for APIM probes)

Total: 7 HTTP endpoints (5 API + 2 health check)

Deployment:
    - Local: func start
    - Azure: func azure functionapp publish <app-name> --python --build remote
"""

import json
import logging

import azure.functions as func

from config import build_feature_client, get_app_config, validate_configuration
from health import HealthStatus, get_app_identity, get_detailed_health, get_public_health

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Initialize Azure Function App
app = func.FunctionApp()

validate_configuration()
config = get_app_config()
feature_client = build_feature_client(config)

# ============================================================================
# ArcGIS API - 5 Endpoints
# ============================================================================

from arcgis_features import get_arcgis_triggers

logger.info("Registering ArcGIS API endpoints...")

triggers = get_arcgis_triggers(feature_client, config)


@app.route(route="arcgis/layers/{layer_id}", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
async def arcgis_layer_info(req: func.HttpRequest) -> func.HttpResponse:
    return await triggers[0]['handler'](req)


@app.route(route="arcgis/layers/{layer_id}/features", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
async def arcgis_layer_features(req: func.HttpRequest) -> func.HttpResponse:
    return await triggers[1]['handler'](req)


@app.route(route="arcgis/features", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
async def arcgis_map_features(req: func.HttpRequest) -> func.HttpResponse:
    return await triggers[2]['handler'](req)


@app.route(route="arcgis/test", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
async def arcgis_smoke_test(req: func.HttpRequest) -> func.HttpResponse:
    return await triggers[3]['handler'](req)


@app.route(route="arcgis/validate", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
async def arcgis_validate(req: func.HttpRequest) -> func.HttpResponse:
    return await triggers[4]['handler'](req)


logger.info(f"✅ ArcGIS API registered successfully ({len(triggers)} endpoints)")

# ============================================================================
# Health Check Endpoints - 2 Endpoints (Public + Detailed)
# ============================================================================

@app.route(route="health", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
async def health_check(req: func.HttpRequest) -> func.HttpResponse:
    """
    Public health check endpoint - minimal response for external callers.

    Always returns 200 - status in body indicates health.

    Returns:
        JSON: {"status": "healthy|unhealthy", "timestamp": "..."}
    """
    result = await get_public_health(feature_client, config.arcgis_default_layer_id)

    return func.HttpResponse(
        json.dumps(result, default=str),
        mimetype="application/json",
        status_code=200,
        headers={"Cache-Control": "no-cache, no-store, must-revalidate"}
    )


@app.route(route="health/detailed", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
async def health_detailed(req: func.HttpRequest) -> func.HttpResponse:
    """
    Detailed health check endpoint - for APIM probes and operations.

    Returns 503 if unhealthy, 200 otherwise.

    SECURITY: Block this endpoint from external access via APIM policy.
    """
    result = await get_detailed_health(feature_client, config)

    # Return 503 if unhealthy, 200 otherwise (healthy or degraded)
    status_code = 503 if result["status"] == HealthStatus.UNHEALTHY.value else 200

    return func.HttpResponse(
        json.dumps(result, default=str, indent=2),
        mimetype="application/json",
        status_code=status_code,
        headers={"Cache-Control": "no-cache, no-store, must-revalidate"}
    )

# ============================================================================
# Application Startup
# ============================================================================

_app_identity = get_app_identity()

logger.info("="*60)
logger.info(f"{_app_identity['name']} - {_app_identity['description']}")
logger.info("="*60)
logger.info("Function App initialized successfully")
logger.info("Available endpoints:")
logger.info("  - GET /api/health - Public health check (minimal)")
logger.info("  - GET /api/health/detailed - Detailed health (APIM only)")
logger.info("")
logger.info("ArcGIS API (5 endpoints):")
logger.info("  - GET /api/arcgis/layers/{layer_id} - Layer metadata")
logger.info("  - GET /api/arcgis/layers/{layer_id}/features - Query layer as GeoJSON")
logger.info("  - GET /api/arcgis/features - Map feed (default layer)")
logger.info("  - GET /api/arcgis/test - Smoke test")
logger.info("  - GET /api/arcgis/validate - Validation suite")
logger.info("="*60)
