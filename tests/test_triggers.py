"""Tests for the Azure Functions HTTP triggers."""

import json
from typing import Dict, Optional

import azure.functions as func
import pytest

from arcgis_features import get_arcgis_triggers
from config import AppConfig

from conftest import BASE_URL, LAYER_ID, LAYER_NAME, polyline_feature, query_payload


def make_request(route: str, route_params: Optional[Dict[str, str]] = None,
                 params: Optional[Dict[str, str]] = None) -> func.HttpRequest:
    return func.HttpRequest(
        method="GET",
        url=f"http://localhost:7071/api/{route}",
        headers={},
        params=params or {},
        route_params=route_params or {},
        body=b"",
    )


def body_of(response: func.HttpResponse) -> dict:
    return json.loads(response.get_body())


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig(arcgis_service_url=BASE_URL)


@pytest.fixture
def handlers(client, app_config):
    return {t['route']: t['handler'] for t in get_arcgis_triggers(client, app_config)}


class TestRegistry:

    def test_routes(self, client, app_config):
        triggers = get_arcgis_triggers(client, app_config)
        assert [t['route'] for t in triggers] == [
            'arcgis/layers/{layer_id}',
            'arcgis/layers/{layer_id}/features',
            'arcgis/features',
            'arcgis/test',
            'arcgis/validate',
        ]
        assert all(t['methods'] == ['GET'] for t in triggers)


class TestLayerInfoTrigger:

    async def test_layer_info(self, handlers):
        response = await handlers['arcgis/layers/{layer_id}'](
            make_request("arcgis/layers/12", {"layer_id": "12"})
        )
        assert response.status_code == 200
        body = body_of(response)
        assert body["success"] is True
        assert body["layerInfo"]["name"] == LAYER_NAME

    async def test_non_numeric_layer_id(self, handlers, fake_server):
        response = await handlers['arcgis/layers/{layer_id}'](
            make_request("arcgis/layers/abc", {"layer_id": "abc"})
        )
        assert response.status_code == 400
        body = body_of(response)
        assert body["success"] is False
        assert body["code"] == "InvalidArgumentError"
        assert fake_server.calls == []

    async def test_missing_layer_is_bad_gateway(self, handlers):
        response = await handlers['arcgis/layers/{layer_id}'](
            make_request("arcgis/layers/99999", {"layer_id": "99999"})
        )
        assert response.status_code == 502
        body = body_of(response)
        assert body["code"] == "RemoteServiceError"
        assert body["error"] == "ArcGIS error: Invalid URL"
        assert body["timestamp"]


class TestLayerFeaturesTrigger:

    async def test_query_parameters_forwarded(self, handlers, fake_server):
        response = await handlers['arcgis/layers/{layer_id}/features'](make_request(
            "arcgis/layers/12/features",
            {"layer_id": "12"},
            {"where": "net_type = 'A'", "outFields": "OBJECTID", "maxRecordCount": "5",
             "returnGeometry": "true"},
        ))

        assert response.status_code == 200
        params = fake_server.calls[0].url.params
        assert params["where"] == "net_type = 'A'"
        assert params["outFields"] == "OBJECTID"
        assert params["maxRecordCount"] == "5"

        body = body_of(response)
        assert body["geoJSON"]["type"] == "FeatureCollection"
        assert len(body["geoJSON"]["features"]) == 5
        assert body["metadata"] == {
            "source": "ArcGIS FeatureServer",
            "layerId": LAYER_ID,
            "featureCount": 5,
            "geometryType": "esriGeometryPolyline",
            "spatialReference": {"wkid": 102100, "latestWkid": 3857},
        }

    @pytest.mark.parametrize("params", [
        {"maxRecordCount": "ten"},
        {"maxRecordCount": "-1"},
        {"returnGeometry": "maybe"},
        {"where": ""},
    ])
    async def test_invalid_query_parameters(self, handlers, fake_server, params):
        response = await handlers['arcgis/layers/{layer_id}/features'](
            make_request("arcgis/layers/12/features", {"layer_id": "12"}, params)
        )
        assert response.status_code == 400
        assert fake_server.calls == []

    async def test_malformed_payload_is_bad_gateway(self, handlers, fake_server):
        fake_server.respond_with(query_payload([polyline_feature(1), polyline_feature(1)]))
        response = await handlers['arcgis/layers/{layer_id}/features'](
            make_request("arcgis/layers/12/features", {"layer_id": "12"})
        )
        assert response.status_code == 502
        assert body_of(response)["code"] == "MalformedResponseError"

    async def test_null_attribute_values_survive(self, handlers, fake_server):
        fake_server.respond_with(query_payload([polyline_feature(1, net_dir=None)]))
        response = await handlers['arcgis/layers/{layer_id}/features'](
            make_request("arcgis/layers/12/features", {"layer_id": "12"})
        )
        [feature] = body_of(response)["geoJSON"]["features"]
        assert feature["properties"] == {"OBJECTID": 1, "link_id": "L0001", "net_dir": None}


class TestMapFeaturesTrigger:

    async def test_map_feed_uses_configured_options(self, handlers, fake_server):
        response = await handlers['arcgis/features'](make_request("arcgis/features"))

        assert response.status_code == 200
        [request] = fake_server.calls
        assert request.url.path.endswith("/FeatureServer/12/query")
        assert request.url.params["outFields"] == "OBJECTID,link_id,net_type,net_dir,SHAPE__Len"
        assert request.url.params["maxRecordCount"] == "100"

        body = body_of(response)
        assert body["success"] is True
        assert body["metadata"]["layerName"] == LAYER_NAME
        assert body["metadata"]["featureCount"] == 60
        lng, lat = body["geoJSON"]["features"][0]["geometry"]["coordinates"][0]
        assert -103 < lng < -101 and 31 < lat < 33

    async def test_transport_failure(self, handlers, fake_server):
        fake_server.respond_with({}, status_code=500)
        response = await handlers['arcgis/features'](make_request("arcgis/features"))
        assert response.status_code == 502
        assert body_of(response)["error"] == "HTTP error! status: 500"


class TestSmokeTestTrigger:

    async def test_smoke_test(self, handlers, fake_server):
        response = await handlers['arcgis/test'](make_request("arcgis/test"))

        assert response.status_code == 200
        body = body_of(response)
        assert body["layerInfo"] == {
            "name": LAYER_NAME,
            "geometryType": "esriGeometryPolyline",
            "maxRecordCount": 2000,
        }
        assert body["features"]["count"] == 10
        assert len(body["features"]["sample"]) == 3
        assert body["features"]["sample"][0]["attributes"]["OBJECTID"] == 1
        assert len(body["features"]["geoJSON"]["features"]) == 10
        assert fake_server.calls[1].url.params["outFields"] == "OBJECTID"


class TestValidationSuiteTrigger:

    async def test_all_checks_pass(self, handlers):
        response = await handlers['arcgis/validate'](make_request("arcgis/validate"))
        assert response.status_code == 200
        body = body_of(response)
        assert body["passed_tests"] == body["total_tests"] == 8

    async def test_failures_return_503(self, handlers, fake_server):
        fake_server.layers[LAYER_ID]["name"] = "Renamed Layer"
        response = await handlers['arcgis/validate'](make_request("arcgis/validate"))
        assert response.status_code == 503
        assert body_of(response)["failed_tests"] == 1
