"""Tests for FeatureClient against the fake FeatureServer."""

import asyncio
import logging

import httpx
import pytest

from arcgis_features import (
    ArcGISServiceError,
    DiagnosticCode,
    FeatureClient,
    GeometryType,
    InvalidArgumentError,
    MalformedResponseError,
    PolylineGeometry,
    QueryOptions,
    RemoteServiceError,
    TransportError,
)

from conftest import BASE_URL, LAYER_ID, LAYER_NAME, arcgis_error, polyline_feature, query_payload


class TestConstruction:

    @pytest.mark.parametrize("url", ["", "   ", None])
    def test_base_url_required(self, url):
        with pytest.raises(InvalidArgumentError, match="Base URL is required"):
            FeatureClient(url)

    def test_trailing_slash_removed(self, diagnostics):
        client = FeatureClient(BASE_URL + "/", diagnostics=diagnostics)
        assert client.base_url == BASE_URL
        assert diagnostics.records == []

    def test_suspicious_url_is_advisory(self, diagnostics):
        client = FeatureClient("https://example.com/rest/MapServer", diagnostics=diagnostics)
        assert client.base_url == "https://example.com/rest/MapServer"
        assert diagnostics.codes() == [
            DiagnosticCode.NOT_ARCGIS_URL,
            DiagnosticCode.NOT_FEATURE_SERVER_URL,
        ]

    async def test_owned_client_closed_on_exit(self, diagnostics):
        async with FeatureClient(BASE_URL, diagnostics=diagnostics) as client:
            http_client = client._get_client()
        assert http_client.is_closed

    async def test_injected_client_left_open(self, client, http_client):
        await client.aclose()
        assert not http_client.is_closed


class TestFetchFeatures:

    async def test_fetch_layer_with_object_ids(self, client, fake_server):
        result = await client.fetch_features(LAYER_ID, out_fields="OBJECTID", max_record_count=10)

        assert result.geometryType is GeometryType.POLYLINE
        assert result.spatialReference.effective_wkid == 102100
        assert 0 < len(result.features) <= 10
        for feature in result.features:
            assert isinstance(feature.geometry, PolylineGeometry)
            assert feature.object_id is not None

    async def test_request_parameters(self, client, fake_server):
        await client.fetch_features(LAYER_ID, where="net_type = 'A'", out_fields="OBJECTID,link_id",
                                    return_geometry=False, max_record_count=25)

        [request] = fake_server.calls
        assert request.method == "GET"
        assert request.url.path.endswith("/FeatureServer/12/query")
        assert dict(request.url.params) == {
            "f": "json",
            "where": "net_type = 'A'",
            "outFields": "OBJECTID,link_id",
            "returnGeometry": "false",
            "maxRecordCount": "25",
        }

    async def test_options_as_model_or_mapping(self, client, fake_server):
        await client.fetch_features(LAYER_ID, QueryOptions(max_record_count=5))
        await client.fetch_features(LAYER_ID, {"outFields": "OBJECTID", "maxRecordCount": 5})
        assert [c.url.params["maxRecordCount"] for c in fake_server.calls] == ["5", "5"]

    async def test_defaults(self, client, fake_server):
        await client.fetch_features(LAYER_ID)
        params = fake_server.calls[0].url.params
        assert params["where"] == "1=1"
        assert params["outFields"] == "*"
        assert params["returnGeometry"] == "true"
        assert params["maxRecordCount"] == "1000"

    @pytest.mark.parametrize("layer_id", [-1, "12", 1.5, True, None])
    async def test_invalid_layer_id_makes_no_request(self, client, fake_server, layer_id):
        with pytest.raises(InvalidArgumentError):
            await client.fetch_features(layer_id)
        assert fake_server.calls == []

    @pytest.mark.parametrize("kwargs", [
        {"max_record_count": -1},
        {"max_record_count": 0},
        {"where": ""},
        {"out_fields": ""},
        {"max_record_count": "10"},
        {"bogus": True},
    ])
    async def test_invalid_options_make_no_request(self, client, fake_server, kwargs):
        with pytest.raises(InvalidArgumentError):
            await client.fetch_features(LAYER_ID, **kwargs)
        assert fake_server.calls == []

    async def test_options_object_and_kwargs_conflict(self, client, fake_server):
        with pytest.raises(InvalidArgumentError):
            await client.fetch_features(LAYER_ID, QueryOptions(), max_record_count=5)
        assert fake_server.calls == []

    async def test_server_may_return_more_than_requested(self, client, fake_server):
        fake_server.respond_with(query_payload([polyline_feature(i) for i in range(1, 31)]))
        result = await client.fetch_features(LAYER_ID, max_record_count=10)
        assert len(result.features) == 30

    async def test_object_id_order_matches_service(self, client, fake_server):
        fake_server.respond_with(query_payload([polyline_feature(i) for i in (42, 7, 19)]))
        result = await client.fetch_features(LAYER_ID)
        assert result.object_ids == [42, 7, 19]

    async def test_multipath_geometry_is_kept(self, client, fake_server):
        paths = [[[0, 0], [1, 1]], [[2, 2], [3, 3]]]
        fake_server.respond_with(query_payload([polyline_feature(1, paths=paths)]))
        result = await client.fetch_features(LAYER_ID)
        assert len(result.features[0].geometry.paths) == 2

    async def test_calls_are_idempotent(self, client):
        first = await client.fetch_features(LAYER_ID, max_record_count=10)
        second = await client.fetch_features(LAYER_ID, max_record_count=10)
        assert first == second

    async def test_concurrent_calls_are_independent(self, client, fake_server):
        results = await asyncio.gather(*[
            client.fetch_features(LAYER_ID, max_record_count=n) for n in (5, 10, 20)
        ])
        assert [len(r.features) for r in results] == [5, 10, 20]
        assert len(fake_server.calls) == 3


class TestFetchFeaturesErrors:

    async def test_http_status_error(self, client, fake_server):
        fake_server.respond_with({"message": "down"}, status_code=503)
        with pytest.raises(TransportError, match="HTTP error! status: 503") as exc_info:
            await client.fetch_features(LAYER_ID)
        assert exc_info.value.status_code == 503
        assert len(fake_server.calls) == 1

    async def test_no_response(self, diagnostics):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(refuse)) as http_client:
            client = FeatureClient(BASE_URL, http_client=http_client, diagnostics=diagnostics)
            with pytest.raises(TransportError) as exc_info:
                await client.fetch_features(LAYER_ID)
        assert exc_info.value.status_code is None

    async def test_remote_error_payload(self, client, fake_server):
        with pytest.raises(RemoteServiceError, match="ArcGIS error: Unable to complete operation.") as exc_info:
            await client.fetch_features(LAYER_ID, where="INVALID_SQL_SYNTAX")
        assert exc_info.value.code == 400
        assert exc_info.value.details == ["'where' parameter is invalid"]

    async def test_remote_error_without_message(self, client, fake_server):
        fake_server.respond_with({"error": {"code": 500}})
        with pytest.raises(RemoteServiceError, match="ArcGIS error: Unknown error"):
            await client.fetch_features(LAYER_ID)

    async def test_missing_layer(self, client):
        with pytest.raises((TransportError, RemoteServiceError)):
            await client.fetch_features(99999)

    @pytest.mark.parametrize("payload, message", [
        ({"geometryType": "esriGeometryPolyline", "spatialReference": {"wkid": 3857}}, "missing features"),
        ({"features": {}, "geometryType": "esriGeometryPolyline", "spatialReference": {"wkid": 3857}},
         "Features must be an array"),
        ({"features": [], "spatialReference": {"wkid": 3857}}, "missing geometry type"),
        ({"features": [], "geometryType": "esriGeometryPolyline"}, "missing spatial reference"),
        ({"features": [], "geometryType": "esriGeometryMultipoint", "spatialReference": {"wkid": 3857}},
         "Unsupported geometry type"),
    ])
    async def test_malformed_envelope(self, client, fake_server, payload, message):
        fake_server.respond_with(payload)
        with pytest.raises(MalformedResponseError, match=message):
            await client.fetch_features(LAYER_ID)

    @pytest.mark.parametrize("feature", [
        "not-an-object",
        {"geometry": {"paths": [[[0, 0], [1, 1]]]}},
        {"attributes": {"OBJECTID": 1}},
        {"attributes": {"OBJECTID": 1}, "geometry": None},
        {"attributes": {"name": "x"}, "geometry": {"paths": [[[0, 0], [1, 1]]]}},
        {"attributes": {"OBJECTID": [1]}, "geometry": {"paths": [[[0, 0], [1, 1]]]}},
    ])
    async def test_malformed_feature_fails_whole_call(self, client, fake_server, feature):
        fake_server.respond_with(query_payload([polyline_feature(1), feature]))
        with pytest.raises(MalformedResponseError) as exc_info:
            await client.fetch_features(LAYER_ID)
        assert exc_info.value.feature_index == 1

    async def test_duplicate_object_id(self, client, fake_server):
        fake_server.respond_with(query_payload([polyline_feature(1), polyline_feature(1)]))
        with pytest.raises(MalformedResponseError, match="repeats OBJECTID"):
            await client.fetch_features(LAYER_ID)

    async def test_invalid_geometry_feature_is_dropped(self, client, fake_server, diagnostics):
        fake_server.respond_with(query_payload([
            polyline_feature(1),
            polyline_feature(2, paths=[]),
            polyline_feature(3),
        ]))
        result = await client.fetch_features(LAYER_ID)
        assert result.object_ids == [1, 3]
        assert result.dropped_object_ids == [2]
        assert diagnostics.codes() == [DiagnosticCode.FEATURE_DROPPED]

    @pytest.mark.parametrize("content", [b"", b"   ", b"<html>error</html>", b"[1, 2]"])
    async def test_unusable_body(self, client, fake_server, content):
        fake_server.respond_with(content=content)
        with pytest.raises(MalformedResponseError):
            await client.fetch_features(LAYER_ID)

    async def test_all_errors_share_a_base(self, client, fake_server):
        fake_server.respond_with({"error": {"message": "boom"}})
        with pytest.raises(ArcGISServiceError):
            await client.fetch_features(LAYER_ID)


class TestErrorLogging:

    @pytest.fixture
    def client_records(self, caplog):
        def collect():
            return [r for r in caplog.records if r.name == "client.FeatureClient"]
        with caplog.at_level(logging.INFO, logger="client.FeatureClient"):
            yield collect

    async def test_caller_mistake_logged_as_warning(self, client, client_records):
        with pytest.raises(InvalidArgumentError):
            await client.fetch_features(LAYER_ID, max_record_count=-1)

        [record] = client_records()
        assert record.levelno == logging.WARNING
        assert record.exc_info is None
        assert record.custom_dimensions["exception_type"] == "InvalidArgumentError"

    async def test_remote_rejection_logged_as_warning(self, client, client_records):
        with pytest.raises(RemoteServiceError):
            await client.get_layer_info(99999)

        assert [r.levelno for r in client_records()] == [logging.WARNING]

    async def test_transport_failure_logged_as_error(self, client, fake_server, client_records):
        fake_server.respond_with({}, status_code=500)
        with pytest.raises(TransportError):
            await client.get_layer_info(LAYER_ID)

        [record] = client_records()
        assert record.levelno == logging.ERROR
        assert record.exc_info is not None


class TestGetLayerInfo:

    async def test_layer_info(self, client, fake_server):
        info = await client.get_layer_info(LAYER_ID)

        assert info.name == LAYER_NAME
        assert info.geometryType == "esriGeometryPolyline"
        assert info.maxRecordCount == 2000
        assert info.model_dump()["objectIdField"] == "OBJECTID"

        [request] = fake_server.calls
        assert request.url.path.endswith("/FeatureServer/12")
        assert dict(request.url.params) == {"f": "json"}

    async def test_missing_layer_raises_remote_error(self, client):
        with pytest.raises(RemoteServiceError, match="ArcGIS error: Invalid URL"):
            await client.get_layer_info(99999)

    async def test_http_404(self, client, fake_server):
        fake_server.respond_with(status_code=404, content=b"Not Found")
        with pytest.raises(TransportError) as exc_info:
            await client.get_layer_info(99999)
        assert exc_info.value.status_code == 404

    async def test_negative_layer_id(self, client, fake_server):
        with pytest.raises(InvalidArgumentError):
            await client.get_layer_info(-1)
        assert fake_server.calls == []

    @pytest.mark.parametrize("payload", [
        {"geometryType": "esriGeometryPolyline", "maxRecordCount": 1000},
        {"name": "", "geometryType": "esriGeometryPolyline", "maxRecordCount": 1000},
        {"name": "Segments", "maxRecordCount": 1000},
        {"name": "Segments", "geometryType": "esriGeometryPolyline"},
        {"name": "Segments", "geometryType": "esriGeometryPolyline", "maxRecordCount": "1000"},
        {"name": "Segments", "geometryType": "esriGeometryPolyline", "maxRecordCount": 0},
        {"name": "Segments", "geometryType": "esriGeometryPolyline", "maxRecordCount": -5},
    ])
    async def test_malformed_layer_info(self, client, fake_server, payload):
        fake_server.respond_with(payload)
        with pytest.raises(MalformedResponseError):
            await client.get_layer_info(LAYER_ID)

    async def test_remote_error_in_layer_info(self, client, fake_server):
        fake_server.respond_with(arcgis_error(498, "Invalid token."))
        with pytest.raises(RemoteServiceError) as exc_info:
            await client.get_layer_info(LAYER_ID)
        assert exc_info.value.to_dict() == {
            "code": "RemoteServiceError",
            "description": "ArcGIS error: Invalid token.",
            "service_code": 498,
        }


class TestClientConversion:

    async def test_fetch_then_convert(self, client, diagnostics):
        result = await client.fetch_features(LAYER_ID, max_record_count=5)
        collection = client.convert_to_geojson(result.features, result.geometryType.value, result.spatialReference)

        assert len(collection.features) == 5
        assert [f.properties["OBJECTID"] for f in collection.features] == result.object_ids
        lng, lat = collection.features[0].geometry.coordinates[0]
        assert -180 <= lng <= 180 and -90 <= lat <= 90
        assert diagnostics.records == []
