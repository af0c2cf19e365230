"""
Shared fixtures: an in-process fake FeatureServer behind httpx.MockTransport.

FakeFeatureServer answers the two endpoints the client uses and records
every request it receives, so tests can assert how many calls were made.
"""

from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from arcgis_features import FeatureClient, RecordingDiagnosticSink

BASE_URL = (
    "https://services1.arcgis.com/UN4R3TyArTjDlnhb/arcgis/rest/services/"
    "Permian_CCN_External_Open_House/FeatureServer"
)

LAYER_ID = 12
LAYER_NAME = "BCBH Preliminary Segments"

LAYER_INFO = {
    "id": LAYER_ID,
    "name": LAYER_NAME,
    "type": "Feature Layer",
    "geometryType": "esriGeometryPolyline",
    "maxRecordCount": 2000,
    "objectIdField": "OBJECTID",
    "fields": [
        {"name": "OBJECTID", "type": "esriFieldTypeOID"},
        {"name": "link_id", "type": "esriFieldTypeString"},
    ],
}

WEB_MERCATOR = {"wkid": 102100, "latestWkid": 3857}


def polyline_feature(object_id: int, paths: Optional[List] = None, **attributes: Any) -> Dict[str, Any]:
    """Feature with a two-vertex Web Mercator path near Midland, TX."""
    if paths is None:
        x = -11352000.0 + object_id * 100
        paths = [[[x, 3760000.0], [x + 50.0, 3760050.0]]]
    return {
        "attributes": {"OBJECTID": object_id, "link_id": f"L{object_id:04d}", **attributes},
        "geometry": {"paths": paths},
    }


def query_payload(
    features: List[Dict[str, Any]],
    geometry_type: str = "esriGeometryPolyline",
    spatial_reference: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    return {
        "objectIdFieldName": "OBJECTID",
        "geometryType": geometry_type,
        "spatialReference": spatial_reference or WEB_MERCATOR,
        "fields": [{"name": "OBJECTID", "type": "esriFieldTypeOID"}],
        "features": features,
    }


def arcgis_error(code: int = 400, message: str = "Invalid URL", details: Optional[List[str]] = None) -> Dict[str, Any]:
    return {"error": {"code": code, "message": message, "details": details or []}}


class FakeFeatureServer:
    """Canned FeatureServer that records every request."""

    def __init__(self, feature_count: int = 60):
        self.calls: List[httpx.Request] = []
        self.layers: Dict[int, Dict[str, Any]] = {LAYER_ID: dict(LAYER_INFO)}
        self.features: Dict[int, List[Dict[str, Any]]] = {
            LAYER_ID: [polyline_feature(i) for i in range(1, feature_count + 1)]
        }
        self.override: Optional[Callable[[httpx.Request], httpx.Response]] = None

    def respond_with(self, body: Any = None, status_code: int = 200, content: Optional[bytes] = None) -> None:
        """Answer every following request with this response."""
        def _respond(request: httpx.Request) -> httpx.Response:
            if content is not None:
                return httpx.Response(status_code, content=content)
            return httpx.Response(status_code, json=body)
        self.override = _respond

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)

        if self.override is not None:
            return self.override(request)
        return self.default_response(request)

    def default_response(self, request: httpx.Request) -> httpx.Response:
        prefix = httpx.URL(BASE_URL).path
        parts = request.url.path[len(prefix):].strip("/").split("/")

        try:
            layer_id = int(parts[0])
        except ValueError:
            return httpx.Response(404, text="Not Found")

        if len(parts) == 1:
            info = self.layers.get(layer_id)
            return httpx.Response(200, json=info if info is not None else arcgis_error())

        if len(parts) == 2 and parts[1] == "query":
            if layer_id not in self.features:
                return httpx.Response(200, json=arcgis_error())
            if request.url.params.get("where") == "INVALID_SQL_SYNTAX":
                return httpx.Response(200, json=arcgis_error(
                    400, "Unable to complete operation.", ["'where' parameter is invalid"]
                ))
            limit = int(request.url.params.get("maxRecordCount", "1000"))
            return httpx.Response(200, json=query_payload(self.features[layer_id][:limit]))

        return httpx.Response(404, text="Not Found")


@pytest.fixture
def fake_server() -> FakeFeatureServer:
    return FakeFeatureServer()


@pytest.fixture
def diagnostics() -> RecordingDiagnosticSink:
    return RecordingDiagnosticSink()


@pytest.fixture
async def http_client(fake_server):
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_server.handler)) as client:
        yield client


@pytest.fixture
def client(http_client, diagnostics) -> FeatureClient:
    return FeatureClient(BASE_URL, http_client=http_client, diagnostics=diagnostics)
