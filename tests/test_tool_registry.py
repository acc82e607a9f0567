# tests/test_tool_registry.py
# Tool name -> handler dispatch

import pytest

import mapchat.functions as fn
from mapchat.tool_registry import TOOL_REGISTRY, call_tool, handler_kwargs, snake_case
from mapchat.tool_specs import all_tools, find_tool, to_openai_tools


def test_every_catalog_tool_has_a_handler():
    assert {t["name"] for t in all_tools} == set(TOOL_REGISTRY)


def test_find_tool():
    assert find_tool("map_search")["name"] == "map_search"
    assert find_tool("missing") is None


def test_openai_tool_shape():
    tool = to_openai_tools([find_tool("map_move")])[0]
    assert tool["function"]["parameters"]["required"] == ["center"]


def test_snake_case():
    assert snake_case("viewBounds") == "view_bounds"
    assert snake_case("koordinatesLayer") == "koordinates_layer"
    assert snake_case("zoom") == "zoom"


def test_handler_kwargs_renames_and_filters():
    fn = TOOL_REGISTRY["arcgis_data_visualize"]
    kwargs = handler_kwargs(fn, {"dataType": "leads", "data": {}, "fitBounds": False, "client_id": "c1"})
    assert kwargs == {"data_type": "leads", "data": {}, "fit_bounds": False}


def test_call_tool_ignores_browser_context():
    result = call_tool("map_initialize", {"center": [-112.0, 33.45], "zoom": 11, "viewBounds": [0, 0, 1, 1]})
    assert result["center"] == [-112.0, 33.45]
    assert result["zoom"] == 11


def test_call_tool_unknown():
    assert call_tool("nonexistent_tool", {}) == {"success": False, "message": "Unknown tool: nonexistent_tool"}


def test_call_tool_missing_argument_is_value_error():
    with pytest.raises(ValueError, match="Invalid input for map_move"):
        call_tool("map_move", {"zoom": 3})


def test_call_tool_keeps_model_zoom_for_map_search(monkeypatch, mock_geocode_location):
    monkeypatch.setattr(fn, "_GEOCODE_CACHE", {})
    monkeypatch.setattr(fn, "geocode", lambda query, **kwargs: mock_geocode_location)
    view = {"viewZoom": 4.2, "viewBounds": [-75.0, 40.0, -73.0, 41.0]}

    asked = call_tool("map_search", {"query": "Central Park", "zoom": 15, **view})
    assert asked["location"]["zoom"] == 15

    default = call_tool("map_search", {"query": "Central Park", **view})
    assert default["location"]["zoom"] == fn.SEARCH_ZOOM


def test_call_tool_throttles_on_view_zoom(use_fake_arcgis):
    result = call_tool("arcgis_bbox_query", {
        "layer": "parcels",
        "bounds": [-112.01, 33.44, -111.98, 33.47],
        "zoom": 15,
        "viewZoom": 9,
        "viewBounds": [-112.01, 33.44, -111.98, 33.47],
    })
    assert result["zoomRequired"] is True
    use_fake_arcgis.envelope_query.assert_not_called()
