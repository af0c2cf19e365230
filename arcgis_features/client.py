# ============================================================================
# MODULE CONTEXT - ARCGIS FEATURE SERVICE CLIENT
# ============================================================================
# STATUS: Service Layer - ArcGIS FeatureServer REST client
# PURPOSE: Validated feature/layer retrieval and GeoJSON conversion for one FeatureServer
# EXPORTS: FeatureClient
# DEPENDENCIES: httpx (async), pydantic
# PORTABLE: Yes - no config imports, base URL is a constructor param
# ============================================================================
"""
ArcGIS FeatureServer Client (ASYNC).

Wraps one FeatureServer base URL, e.g.
    https://services1.arcgis.com/<org>/arcgis/rest/services/<name>/FeatureServer

Operations:
- fetch_features(layer_id, ...)  GET {base}/{layer_id}/query?f=json&...
- get_layer_info(layer_id)       GET {base}/{layer_id}?f=json
- convert_to_geojson(...)        Esri JSON -> GeoJSON FeatureCollection (WGS84)

Each call issues exactly one HTTP request. There is no retry, no backoff
and no caching; the first failure is raised to the caller:
- InvalidArgumentError before any I/O for bad layer ids / options
- TransportError for non-2xx responses or no response
- RemoteServiceError when the body carries an ArcGIS "error" object
- MalformedResponseError when the body fails structural validation

The client keeps no per-request state, so concurrent calls on one
instance are independent.

Usage:
    async with FeatureClient(base_url) as client:
        result = await client.fetch_features(12, out_fields="OBJECTID", max_record_count=10)
        geojson = client.convert_to_geojson(
            result.features, result.geometryType, result.spatialReference
        )
"""

from typing import Any, Dict, Optional, Union

import httpx
from pydantic import ValidationError

from util_logger import LoggerFactory, ComponentType, log_exceptions

from .diagnostics import DiagnosticCode, DiagnosticSink, default_sink
from .errors import (
    InvalidArgumentError,
    MalformedResponseError,
    RemoteServiceError,
    TransportError,
)
from .geojson import convert_to_geojson
from .models import (
    GEOMETRY_MODELS,
    Feature,
    GeoJSONFeatureCollection,
    GeometryType,
    LayerDescriptor,
    QueryOptions,
    QueryResult,
    SpatialReference,
    is_number,
)

logger = LoggerFactory.create_logger(ComponentType.CLIENT, "FeatureClient")

OBJECT_ID_FIELD = "OBJECTID"
USER_AGENT = "arcgis-dashboard-api/1.0"

_base_headers = {"Accept": "application/json", "User-Agent": USER_AGENT}

# Caller mistakes and service-side rejections, logged at WARNING
EXPECTED_ERRORS = (InvalidArgumentError, RemoteServiceError)


def _describe_validation_error(e: ValidationError) -> str:
    parts = []
    for err in e.errors():
        field = ".".join(str(p) for p in err.get("loc", ())) or "options"
        parts.append(f"{field}={err.get('input')!r} ({err.get('msg')})")
    return "; ".join(parts)


class FeatureClient:
    """
    Async HTTP client for one ArcGIS FeatureServer.

    Args:
        base_url: FeatureServer URL (required, trailing slash optional)
        http_client: Optional httpx.AsyncClient to use (not closed by aclose())
        timeout: Request timeout in seconds; None means no timeout
        diagnostics: Sink for advisory warnings (defaults to logging)

    Raises:
        InvalidArgumentError: base_url is empty
    """

    def __init__(
        self,
        base_url: str,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
        diagnostics: Optional[DiagnosticSink] = None
    ):
        if not isinstance(base_url, str) or not base_url.strip():
            raise InvalidArgumentError("ArcGIS Service: Base URL is required")

        self.base_url = base_url.strip().rstrip("/")
        self.timeout = timeout
        self.diagnostics = diagnostics or default_sink()
        self._client = http_client
        self._owns_client = http_client is None

        self._validate_service_configuration()

    def _validate_service_configuration(self) -> None:
        """Advisory checks only; a non-matching URL still works."""
        if "arcgis.com" not in self.base_url:
            self.diagnostics.warn(
                DiagnosticCode.NOT_ARCGIS_URL,
                "ArcGIS Service: Base URL may not be a valid ArcGIS service",
                base_url=self.base_url
            )

        if "FeatureServer" not in self.base_url:
            self.diagnostics.warn(
                DiagnosticCode.NOT_FEATURE_SERVER_URL,
                "ArcGIS Service: Base URL should point to a Feature Server",
                base_url=self.base_url
            )

    # =========================================================================
    # HTTP plumbing
    # =========================================================================

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async HTTP client."""
        if self._client is None or (self._owns_client and self._client.is_closed):
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True
            )
            self._owns_client = True
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client and self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self) -> "FeatureClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def _get_json(self, url: str, params: Dict[str, str]) -> Dict[str, Any]:
        """
        Single GET returning the decoded JSON object.

        Raises:
            TransportError: no response, or non-2xx status
            MalformedResponseError: empty or unparseable body, or not a JSON object
            RemoteServiceError: body carries an ArcGIS error object
        """
        client = self._get_client()

        try:
            response = await client.get(url, params=params, headers=_base_headers)
        except httpx.RequestError as e:
            raise TransportError(
                f"ArcGIS Service: Request failed: {type(e).__name__}: {e}",
                url=url
            ) from e

        if not response.is_success:
            raise TransportError(
                f"HTTP error! status: {response.status_code}",
                status_code=response.status_code,
                url=str(response.url)
            )

        if not response.content.strip():
            raise MalformedResponseError("ArcGIS Service: No response data received")

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponseError("ArcGIS Service: Response body is not valid JSON") from e

        if not isinstance(data, dict):
            raise MalformedResponseError("ArcGIS Service: Response body must be a JSON object")

        if data.get("error") is not None:
            raise RemoteServiceError.from_payload(data["error"])

        return data

    # =========================================================================
    # Input validation
    # =========================================================================

    @staticmethod
    def _validate_layer_id(layer_id: Any) -> None:
        if isinstance(layer_id, bool) or not isinstance(layer_id, int) or layer_id < 0:
            raise InvalidArgumentError(
                f"ArcGIS Service: Invalid layer ID: {layer_id!r}. Must be a non-negative integer."
            )

    @staticmethod
    def _build_query_options(
        options: Union[QueryOptions, Dict[str, Any], None],
        option_kwargs: Dict[str, Any]
    ) -> QueryOptions:
        if options is not None and option_kwargs:
            raise InvalidArgumentError(
                "ArcGIS Service: Pass query options as an object or as keyword arguments, not both"
            )

        if isinstance(options, QueryOptions):
            return options

        raw = options if options is not None else option_kwargs
        if not isinstance(raw, dict):
            raise InvalidArgumentError(
                f"ArcGIS Service: Query options must be a mapping, got {type(raw).__name__}"
            )

        try:
            return QueryOptions.model_validate(raw)
        except ValidationError as e:
            raise InvalidArgumentError(
                f"ArcGIS Service: Invalid query options: {_describe_validation_error(e)}"
            ) from e

    # =========================================================================
    # Response validation
    # =========================================================================

    @staticmethod
    def _validate_feature(raw: Any, index: int) -> None:
        if not isinstance(raw, dict):
            raise MalformedResponseError(
                f"ArcGIS Service: Feature {index} is not an object", feature_index=index
            )

        attributes = raw.get("attributes")
        if not isinstance(attributes, dict):
            raise MalformedResponseError(
                f"ArcGIS Service: Feature {index} missing attributes", feature_index=index
            )

        if raw.get("geometry") is None:
            raise MalformedResponseError(
                f"ArcGIS Service: Feature {index} missing geometry", feature_index=index
            )

        object_id = attributes.get(OBJECT_ID_FIELD)
        if object_id is None:
            raise MalformedResponseError(
                f"ArcGIS Service: Feature {index} missing {OBJECT_ID_FIELD} attribute",
                feature_index=index
            )

        if isinstance(object_id, bool) or not isinstance(object_id, (int, float, str)):
            raise MalformedResponseError(
                f"ArcGIS Service: Feature {index} has a non-scalar {OBJECT_ID_FIELD}",
                feature_index=index
            )

    def _decode_query_result(self, data: Dict[str, Any], layer_id: int) -> QueryResult:
        features = data.get("features")
        if features is None:
            raise MalformedResponseError("ArcGIS Service: Response missing features array")
        if not isinstance(features, list):
            raise MalformedResponseError("ArcGIS Service: Features must be an array")

        tag = data.get("geometryType")
        if not tag:
            raise MalformedResponseError("ArcGIS Service: Response missing geometry type")
        geometry_type = GeometryType.parse(tag)
        if geometry_type is None:
            raise MalformedResponseError(f"ArcGIS Service: Unsupported geometry type: {tag}")

        raw_sr = data.get("spatialReference")
        if not raw_sr:
            raise MalformedResponseError("ArcGIS Service: Response missing spatial reference")
        try:
            spatial_reference = SpatialReference.model_validate(raw_sr)
        except ValidationError as e:
            raise MalformedResponseError(
                f"ArcGIS Service: Invalid spatial reference: {_describe_validation_error(e)}"
            ) from e

        geometry_model = GEOMETRY_MODELS[geometry_type]
        decoded = []
        seen_ids = set()
        dropped = []

        for index, raw in enumerate(features):
            self._validate_feature(raw, index)

            object_id = raw["attributes"][OBJECT_ID_FIELD]
            if object_id in seen_ids:
                raise MalformedResponseError(
                    f"ArcGIS Service: Feature {index} repeats {OBJECT_ID_FIELD} {object_id!r}",
                    feature_index=index
                )
            seen_ids.add(object_id)

            try:
                geometry = geometry_model.model_validate(raw["geometry"])
            except ValidationError as e:
                self.diagnostics.warn(
                    DiagnosticCode.FEATURE_DROPPED,
                    f"Dropping feature {index} ({OBJECT_ID_FIELD}={object_id!r}): "
                    f"geometry is not a valid {geometry_type.value}",
                    index=index,
                    layer_id=layer_id,
                    reason=_describe_validation_error(e)
                )
                dropped.append(object_id)
                continue

            decoded.append(Feature(attributes=raw["attributes"], geometry=geometry))

        return QueryResult(
            features=decoded,
            geometryType=geometry_type,
            spatialReference=spatial_reference,
            dropped_object_ids=dropped
        )

    # =========================================================================
    # Operations
    # =========================================================================

    @log_exceptions(logger=logger, expected=EXPECTED_ERRORS)
    async def fetch_features(
        self,
        layer_id: int,
        options: Union[QueryOptions, Dict[str, Any], None] = None,
        **option_kwargs: Any
    ) -> QueryResult:
        """
        Fetch features from a FeatureServer layer.

        Options may be given as a QueryOptions, as a mapping, or as keyword
        arguments (``where``, ``out_fields``/``outFields``,
        ``return_geometry``/``returnGeometry``,
        ``max_record_count``/``maxRecordCount``).

        The service may return a different number of features than
        ``max_record_count``.

        Args:
            layer_id: Layer number (>= 0)
            options: Query options

        Returns:
            QueryResult whose features all carry attributes, OBJECTID and a
            geometry of the result's geometry type
        """
        self._validate_layer_id(layer_id)
        query = self._build_query_options(options, option_kwargs)

        url = f"{self.base_url}/{layer_id}/query"
        params = query.to_params()

        logger.info(
            f"ArcGIS Service: Fetching from URL: {url}",
            extra={'custom_dimensions': {'layer_id': layer_id, 'params': params}}
        )

        data = await self._get_json(url, params)
        result = self._decode_query_result(data, layer_id)

        logger.info(
            "ArcGIS Service: Successfully fetched data",
            extra={'custom_dimensions': {
                'layer_id': layer_id,
                'feature_count': len(result.features),
                'dropped_count': len(result.dropped_object_ids),
                'received_count': len(data["features"]),
                'geometry_type': result.geometryType.value,
                'spatial_reference': result.spatialReference.model_dump(exclude_none=True)
            }}
        )

        return result

    @log_exceptions(logger=logger, expected=EXPECTED_ERRORS)
    async def get_layer_info(self, layer_id: int) -> LayerDescriptor:
        """
        Get layer metadata.

        Args:
            layer_id: Layer number (>= 0)

        Returns:
            LayerDescriptor with name, geometryType, maxRecordCount and every
            other field the service returned
        """
        self._validate_layer_id(layer_id)

        url = f"{self.base_url}/{layer_id}"
        data = await self._get_json(url, {"f": "json"})

        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            raise MalformedResponseError("ArcGIS Service: Layer info missing name")

        if not data.get("geometryType"):
            raise MalformedResponseError("ArcGIS Service: Layer info missing geometry type")

        if not is_number(data.get("maxRecordCount")):
            raise MalformedResponseError("ArcGIS Service: Layer info missing max record count")

        try:
            descriptor = LayerDescriptor.model_validate(data)
        except ValidationError as e:
            raise MalformedResponseError(
                f"ArcGIS Service: Invalid layer info: {_describe_validation_error(e)}"
            ) from e

        logger.info(
            f"ArcGIS Service: Layer info received for layer {layer_id}",
            extra={'custom_dimensions': {
                'layer_id': layer_id,
                'name': descriptor.name,
                'geometry_type': descriptor.geometryType,
                'max_record_count': descriptor.maxRecordCount
            }}
        )

        return descriptor

    def convert_to_geojson(
        self,
        features: Any,
        geometry_type: Any,
        spatial_reference: Any = None
    ) -> GeoJSONFeatureCollection:
        """Convert features to GeoJSON, reporting through this client's diagnostics sink."""
        return convert_to_geojson(features, geometry_type, spatial_reference, self.diagnostics)
