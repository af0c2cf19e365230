# ============================================================================
# MODULE CONTEXT - ARCGIS FEATURES TRIGGERS
# ============================================================================
# STATUS: Standalone HTTP Triggers - ArcGIS feature endpoints for the dashboard
# PURPOSE: Azure Functions HTTP handlers wrapping FeatureClient
# EXPORTS: get_arcgis_triggers (returns list of trigger configurations)
# INTERFACES: Azure Functions HttpRequest/HttpResponse
# DEPENDENCIES: azure.functions, json, uuid
# SOURCE: HTTP requests from the dashboard map
# PATTERNS: Trigger Pattern, Factory Pattern (get_arcgis_triggers)
# ENTRY_POINTS: Function App route registration via get_arcgis_triggers()
# ============================================================================

"""
ArcGIS Features HTTP Triggers - Azure Functions Handlers

Endpoints:
- GET /api/arcgis/layers/{layer_id}           - Layer metadata
- GET /api/arcgis/layers/{layer_id}/features  - Query a layer, GeoJSON response
- GET /api/arcgis/features                    - Map feed for the default layer
- GET /api/arcgis/test                        - Smoke test of the configured service
- GET /api/arcgis/validate                    - Full validation suite

Error responses carry ``{success: false, error, code, timestamp}``:
- InvalidArgumentError                                    -> 400
- TransportError / RemoteServiceError / MalformedResponse -> 502
- anything else                                           -> 500
"""

import json
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import azure.functions as func

from util_logger import LoggerFactory, ComponentType

from .client import FeatureClient, OBJECT_ID_FIELD
from .errors import ArcGISServiceError, InvalidArgumentError
from .models import QueryResult

if TYPE_CHECKING:
    from config import AppConfig

logger = LoggerFactory.create_logger(ComponentType.TRIGGER, "ArcGISTriggers")

FEATURE_SOURCE = "ArcGIS FeatureServer"
SAMPLE_SIZE = 3


# ============================================================================
# TRIGGER REGISTRY FUNCTION
# ============================================================================

def get_arcgis_triggers(client: FeatureClient, config: "AppConfig") -> List[Dict[str, Any]]:
    """
    Get list of ArcGIS trigger configurations for function_app.py.

    Args:
        client: Shared FeatureClient built at startup
        config: Application configuration (default layer, map feed options)

    Returns:
        List of dicts with keys:
        - route: URL route pattern
        - methods: List of HTTP methods
        - handler: Async callable trigger handler
    """
    return [
        {
            'route': 'arcgis/layers/{layer_id}',
            'methods': ['GET'],
            'handler': LayerInfoTrigger(client, config).handle
        },
        {
            'route': 'arcgis/layers/{layer_id}/features',
            'methods': ['GET'],
            'handler': LayerFeaturesTrigger(client, config).handle
        },
        {
            'route': 'arcgis/features',
            'methods': ['GET'],
            'handler': MapFeaturesTrigger(client, config).handle
        },
        {
            'route': 'arcgis/test',
            'methods': ['GET'],
            'handler': SmokeTestTrigger(client, config).handle
        },
        {
            'route': 'arcgis/validate',
            'methods': ['GET'],
            'handler': ValidationSuiteTrigger(client, config).handle
        }
    ]


# ============================================================================
# BASE TRIGGER CLASS
# ============================================================================

def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class BaseArcGISTrigger:
    """
    Base class for ArcGIS triggers.

    Provides common functionality:
    - Route/query parameter parsing
    - JSON response formatting
    - Error to status code mapping
    """

    def __init__(self, client: FeatureClient, config: "AppConfig"):
        self.client = client
        self.config = config

    def _parse_layer_id(self, req: func.HttpRequest) -> int:
        raw = req.route_params.get('layer_id')
        try:
            return int(raw)
        except (TypeError, ValueError) as e:
            raise InvalidArgumentError(
                f"ArcGIS Service: Invalid layer ID: {raw!r}. Must be a non-negative integer."
            ) from e

    def _geojson_payload(self, result: QueryResult, layer_id: int, layer_name: Optional[str] = None) -> Dict[str, Any]:
        geojson = self.client.convert_to_geojson(
            result.features, result.geometryType.value, result.spatialReference
        )
        metadata = {
            "source": FEATURE_SOURCE,
            "layerId": layer_id,
            "featureCount": len(geojson.features),
            "geometryType": result.geometryType.value,
            "spatialReference": result.spatialReference.model_dump(exclude_none=True)
        }
        if layer_name:
            metadata["layerName"] = layer_name

        return {
            "success": True,
            "geoJSON": geojson.model_dump(mode='json'),
            "metadata": metadata,
            "timestamp": _utc_now()
        }

    def _json_response(self, data: Any, status_code: int = 200) -> func.HttpResponse:
        """
        Create JSON HTTP response.

        Args:
            data: Data to serialize (dict or Pydantic model)
            status_code: HTTP status code
        """
        if hasattr(data, 'model_dump'):
            data = data.model_dump(mode='json', exclude_none=True)

        return func.HttpResponse(
            body=json.dumps(data, indent=2, default=str),
            status_code=status_code,
            mimetype="application/json"
        )

    def _error_response(self, error: Exception, request_id: str) -> func.HttpResponse:
        """
        Map an exception to an error response.

        Args:
            error: Exception raised while handling the request
            request_id: Correlation ID for the logs
        """
        if isinstance(error, InvalidArgumentError):
            status_code = 400
        elif isinstance(error, ArcGISServiceError):
            status_code = 502
        else:
            status_code = 500

        if status_code == 500:
            logger.error(
                f"Unexpected error handling request: {error}",
                exc_info=True,
                extra={'custom_dimensions': {'request_id': request_id}}
            )
        else:
            logger.warning(
                f"Request failed: {error}",
                extra={'custom_dimensions': {
                    'request_id': request_id,
                    'error_code': type(error).__name__,
                    'status_code': status_code
                }}
            )

        body = {
            "success": False,
            "error": str(error) if status_code != 500 else f"Internal server error: {error}",
            "code": type(error).__name__ if isinstance(error, ArcGISServiceError) else "InternalServerError",
            "timestamp": _utc_now()
        }
        return self._json_response(body, status_code=status_code)

    async def handle(self, req: func.HttpRequest) -> func.HttpResponse:
        request_id = str(uuid.uuid4())[:8]
        try:
            return await self.process(req, request_id)
        except Exception as e:
            return self._error_response(e, request_id)

    async def process(self, req: func.HttpRequest, request_id: str) -> func.HttpResponse:
        raise NotImplementedError


# ============================================================================
# ENDPOINT TRIGGERS
# ============================================================================

class LayerInfoTrigger(BaseArcGISTrigger):
    """
    Layer metadata trigger.

    Endpoint: GET /api/arcgis/layers/{layer_id}
    """

    async def process(self, req: func.HttpRequest, request_id: str) -> func.HttpResponse:
        layer_id = self._parse_layer_id(req)
        info = await self.client.get_layer_info(layer_id)
        return self._json_response({
            "success": True,
            "layerInfo": info.model_dump(mode='json'),
            "timestamp": _utc_now()
        })


class LayerFeaturesTrigger(BaseArcGISTrigger):
    """
    Layer query trigger.

    Endpoint: GET /api/arcgis/layers/{layer_id}/features

    Query Parameters:
    - where: SQL filter (default 1=1)
    - outFields: Comma-separated field list (default *)
    - maxRecordCount: Requested record cap (> 0, default 1000)
    - returnGeometry: true/false (default true)
    """

    async def process(self, req: func.HttpRequest, request_id: str) -> func.HttpResponse:
        layer_id = self._parse_layer_id(req)
        options = self._parse_query_options(req)

        result = await self.client.fetch_features(layer_id, options)

        logger.info(
            f"Feature query: layer={layer_id}, returned={len(result.features)}",
            extra={'custom_dimensions': {'request_id': request_id, 'layer_id': layer_id}}
        )
        return self._json_response(self._geojson_payload(result, layer_id))

    def _parse_query_options(self, req: func.HttpRequest) -> Dict[str, Any]:
        """Map query string parameters onto QueryOptions fields (validated by the client)."""
        params: Dict[str, Any] = {}

        if 'where' in req.params:
            params['where'] = req.params['where']

        if 'outFields' in req.params:
            params['out_fields'] = req.params['outFields']

        if 'maxRecordCount' in req.params:
            raw = req.params['maxRecordCount']
            try:
                params['max_record_count'] = int(raw)
            except ValueError as e:
                raise InvalidArgumentError(
                    f"ArcGIS Service: maxRecordCount must be an integer, got {raw!r}"
                ) from e

        if 'returnGeometry' in req.params:
            raw = req.params['returnGeometry'].lower()
            if raw not in ('true', 'false'):
                raise InvalidArgumentError(
                    f"ArcGIS Service: returnGeometry must be true or false, got {raw!r}"
                )
            params['return_geometry'] = raw == 'true'

        return params


class MapFeaturesTrigger(BaseArcGISTrigger):
    """
    Map feed of the configured default layer.

    Endpoint: GET /api/arcgis/features
    """

    async def process(self, req: func.HttpRequest, request_id: str) -> func.HttpResponse:
        layer_id = self.config.arcgis_default_layer_id

        result = await self.client.fetch_features(
            layer_id,
            out_fields=self.config.arcgis_map_out_fields,
            max_record_count=self.config.arcgis_map_max_records
        )

        payload = self._geojson_payload(result, layer_id, self.config.arcgis_default_layer_name)

        logger.info(
            f"Map feed served: {payload['metadata']['featureCount']} features",
            extra={'custom_dimensions': {'request_id': request_id, 'layer_id': layer_id}}
        )
        return self._json_response(payload)


class SmokeTestTrigger(BaseArcGISTrigger):
    """
    Quick end-to-end check of the configured service.

    Endpoint: GET /api/arcgis/test

    Fetches layer info and 10 OBJECTID-only features of the default layer,
    converts them to GeoJSON and returns the first raw features as a sample.
    """

    async def process(self, req: func.HttpRequest, request_id: str) -> func.HttpResponse:
        layer_id = self.config.arcgis_default_layer_id

        info = await self.client.get_layer_info(layer_id)
        result = await self.client.fetch_features(
            layer_id,
            out_fields=OBJECT_ID_FIELD,
            max_record_count=10
        )
        geojson = self.client.convert_to_geojson(
            result.features, result.geometryType.value, result.spatialReference
        )

        return self._json_response({
            "success": True,
            "layerInfo": {
                "name": info.name,
                "geometryType": info.geometryType,
                "maxRecordCount": info.maxRecordCount
            },
            "features": {
                "count": len(result.features),
                "geometryType": result.geometryType.value,
                "spatialReference": result.spatialReference.model_dump(exclude_none=True),
                "sample": [f.model_dump(mode='json') for f in result.features[:SAMPLE_SIZE]],
                "geoJSON": geojson.model_dump(mode='json')
            },
            "timestamp": _utc_now()
        })


class ValidationSuiteTrigger(BaseArcGISTrigger):
    """
    Run the full validation suite against the configured service.

    Endpoint: GET /api/arcgis/validate

    Returns 200 when every check passed and 503 otherwise.
    """

    async def process(self, req: func.HttpRequest, request_id: str) -> func.HttpResponse:
        from service_validator import ValidationExpectations, run_validation_suite

        expectations = ValidationExpectations(
            layer_id=self.config.arcgis_default_layer_id,
            layer_name=self.config.arcgis_default_layer_name
        )
        suite = await run_validation_suite(self.client, expectations)

        return self._json_response(suite.to_dict(), status_code=200 if suite.all_passed else 503)
