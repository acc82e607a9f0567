# tests/test_arcgis.py
# Data API client: request building and error handling (HTTP session mocked)

import json
from unittest.mock import Mock

import pytest
import requests

from mapchat.arcgis import ArcGISClient, ArcGISError, sql_literal


def _session_returning(payload):
    response = Mock()
    response.raise_for_status.return_value = None
    response.json.return_value = payload
    session = Mock()
    session.get.return_value = response
    return session


def test_sql_literal():
    assert sql_literal("123-45-678") == "'123-45-678'"
    assert sql_literal("O'Brien") == "'O''Brien'"
    assert sql_literal(42) == "42"
    assert sql_literal(True) == "1"


def test_envelope_query_params(sample_parcels_fc):
    session = _session_returning(sample_parcels_fc)
    client = ArcGISClient("http://data.test/db/", timeout=5, session=session)

    data = client.envelope_query("parcels", [-112.0, 33.4, -111.9, 33.5], limit=500, county="Maricopa")

    assert len(data["features"]) == 2
    url = session.get.call_args.args[0]
    params = session.get.call_args.kwargs["params"]
    assert url == "http://data.test/db/parcels/query"
    assert session.get.call_args.kwargs["timeout"] == 5
    assert params["geometryType"] == "esriGeometryEnvelope"
    assert params["spatialRel"] == "esriSpatialRelIntersects"
    assert params["resultRecordCount"] == 500
    assert params["county"] == "Maricopa"
    assert params["f"] == "geojson"
    assert json.loads(params["geometry"])["xmin"] == -112.0


def test_radius_query_params(empty_fc):
    session = _session_returning(empty_fc)
    client = ArcGISClient("http://data.test", session=session)

    client.radius_query("ownerindex", [-112.0, 33.45], 800, extra={"koordinatesLayer": None})

    params = session.get.call_args.kwargs["params"]
    assert params["geometryType"] == "esriGeometryPoint"
    assert params["distance"] == 800
    assert params["units"] == "esriSRUnit_Meter"
    assert "koordinatesLayer" not in params
    assert json.loads(params["geometry"]) == {"x": -112.0, "y": 33.45, "spatialReference": {"wkid": 4326}}


def test_where_query_defaults_feature_collection():
    session = _session_returning({})
    client = ArcGISClient("http://data.test", session=session)

    data = client.where_query("leads", "LEAD_ID = 'L-1'", limit=1)

    assert data == {"type": "FeatureCollection", "features": []}
    assert session.get.call_args.kwargs["params"]["where"] == "LEAD_ID = 'L-1'"


def test_error_payload_raises():
    session = _session_returning({"error": {"code": 400, "message": "Invalid where clause"}})
    client = ArcGISClient("http://data.test", session=session)

    with pytest.raises(ArcGISError, match="Invalid where clause"):
        client.where_query("parcels", "bogus")


def test_transport_failure_raises():
    session = Mock()
    session.get.side_effect = requests.ConnectionError("connection refused")
    client = ArcGISClient("http://data.test", session=session)

    with pytest.raises(ArcGISError, match="connection refused"):
        client.point_query("parcels", [-112.0, 33.45])


def test_invalid_json_raises():
    session = _session_returning(None)
    session.get.return_value.json.side_effect = ValueError("no json")
    client = ArcGISClient("http://data.test", session=session)

    with pytest.raises(ArcGISError, match="invalid JSON"):
        client.where_query("parcels", "1=1")


def test_layer_search_ownerindex(empty_fc):
    session = _session_returning(empty_fc)
    client = ArcGISClient("http://data.test", session=session)

    client.layer_search("ownerindex-search", {"pid": "P-9"})

    assert session.get.call_args.args[0] == "http://data.test/ownerindex-search"
    assert session.get.call_args.kwargs["params"] == {"pid": "P-9"}


def test_layer_search_zams(empty_fc):
    session = _session_returning(empty_fc)
    client = ArcGISClient("http://data.test", session=session)

    client.layer_search("zams", {"where": "ZONE = 'R1'", "zamsLayer": 3})

    assert session.get.call_args.kwargs["params"] == {"layer": 3, "where": "ZONE = 'R1'"}


@pytest.mark.parametrize("layer,params,message", [
    ("ownerindex-search", {}, "PID required"),
    ("zams", {"where": "1=1"}, "zamsLayer required"),
    ("transfers", {}, "Unsupported layer search type: transfers"),
])
def test_layer_search_validation(layer, params, message):
    client = ArcGISClient("http://data.test", session=Mock())
    with pytest.raises(ValueError, match=message):
        client.layer_search(layer, params)
