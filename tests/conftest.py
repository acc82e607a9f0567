# tests/conftest.py
# Shared pytest fixtures (small synthetic datasets, mocked providers)

import os
import sys
from types import SimpleNamespace
from unittest.mock import Mock

import pytest

# Add project root to import path
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, PROJECT_ROOT)


def _square(x, y, size=0.001):
    return [[
        [x, y],
        [x + size, y],
        [x + size, y + size],
        [x, y + size],
        [x, y],
    ]]


@pytest.fixture
def sample_parcels_fc():
    """
    Two tiny parcels near downtown Phoenix, as the data API returns them.
    """
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "properties": {"APN": "123-45-678", "ACRES": 1.25, "County": "Maricopa"},
                "geometry": {"type": "Polygon", "coordinates": _square(-112.0, 33.45)},
            },
            {
                "type": "Feature",
                "properties": {"APN": "123-45-679", "ACRES": 12.0, "County": "Maricopa"},
                "geometry": {"type": "Polygon", "coordinates": _square(-111.99, 33.46)},
            },
        ],
    }


@pytest.fixture
def empty_fc():
    return {"type": "FeatureCollection", "features": []}


@pytest.fixture
def fake_arcgis_client(sample_parcels_fc):
    """
    Stand-in for ArcGISClient; every query answers with the sample parcels.
    """
    client = Mock()
    client.envelope_query.return_value = sample_parcels_fc
    client.radius_query.return_value = sample_parcels_fc
    client.point_query.return_value = sample_parcels_fc
    client.where_query.return_value = sample_parcels_fc
    client.layer_search.return_value = sample_parcels_fc
    return client


@pytest.fixture
def use_fake_arcgis(monkeypatch, fake_arcgis_client):
    import mapchat.data_tools as dt

    monkeypatch.setattr(dt, "get_client", lambda: fake_arcgis_client)
    return fake_arcgis_client


@pytest.fixture
def mock_openai_client():
    """
    Mock OpenAI client answering with plain text and no tool calls.
    """
    mock_client = Mock()
    mock_response = Mock()
    mock_choice = Mock()
    mock_message = Mock()

    mock_message.content = "Test response"
    mock_message.tool_calls = None
    mock_choice.message = mock_message
    mock_response.choices = [mock_choice]

    mock_client.chat.completions.create.return_value = mock_response

    return mock_client


@pytest.fixture
def openai_tool_call_client(mock_openai_client):
    """
    Mock OpenAI client whose first answer asks for map_search.
    """
    call = SimpleNamespace(
        id="call_1",
        type="function",
        function=SimpleNamespace(name="map_search", arguments='{"query": "Paris", "zoom": 11}'),
    )
    message = mock_openai_client.chat.completions.create.return_value.choices[0].message
    message.content = None
    message.tool_calls = [call]
    return mock_openai_client


@pytest.fixture
def mock_anthropic_client():
    """
    Mock Anthropic client answering with one text block and one tool_use block.
    """
    mock_client = Mock()
    mock_client.messages.create.return_value = SimpleNamespace(
        id="msg_1",
        content=[
            SimpleNamespace(type="text", text="Moving the map."),
            SimpleNamespace(type="tool_use", id="toolu_1", name="map_move", input={"center": [2.35, 48.85]}),
        ],
    )
    return mock_client


@pytest.fixture
def mock_geocode_location():
    """
    Mock geopy Location for Central Park, including the raw Nominatim payload.
    """
    location = Mock()
    location.latitude = 40.7826
    location.longitude = -73.9656
    location.address = "Central Park, Manhattan, New York"
    location.raw = {
        "display_name": "Central Park, Manhattan, New York",
        "type": "park",
        "class": "leisure",
        "boundingbox": ["40.7644", "40.8005", "-73.9818", "-73.9492"],
        "geojson": {
            "type": "Polygon",
            "coordinates": [[
                [-73.9818, 40.7681], [-73.9580, 40.8005], [-73.9492, 40.7968],
                [-73.9730, 40.7644], [-73.9818, 40.7681],
            ]],
        },
    }
    return location
