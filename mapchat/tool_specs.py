# Tool catalog in MCP shape: {name, description, input_schema}.
# The browser executes these against the live map; the LLM can only call what is listed here.

from __future__ import annotations

from typing import Any, Dict, List, Optional


_LNG_LAT = {
    "type": "array",
    "items": {"type": "number"},
    "minItems": 2,
    "maxItems": 2,
}

DATA_LAYERS = ["parcels", "leads", "ownerindex", "transfers", "plss", "koordinates"]


map_tools: List[Dict[str, Any]] = [
    {
        "name": "map_initialize",
        "description": "Initialize a Mapbox map with specified options",
        "input_schema": {
            "type": "object",
            "properties": {
                "center": {**_LNG_LAT, "description": "Longitude and latitude for the center of the map"},
                "zoom": {"type": "number", "description": "Initial zoom level"},
                "style": {"type": "string", "description": "URL or style JSON for the map"},
            },
            "required": ["center", "zoom"],
        },
    },
    {
        "name": "map_move",
        "description": "Move the map to a specified location",
        "input_schema": {
            "type": "object",
            "properties": {
                "center": {**_LNG_LAT, "description": "Longitude and latitude to move the map to"},
                "zoom": {"type": "number", "description": "Zoom level to set"},
                "bearing": {"type": "number", "description": "Map bearing in degrees"},
                "pitch": {"type": "number", "description": "Map pitch in degrees"},
                "animate": {"type": "boolean", "description": "Whether to animate the movement"},
                "duration": {"type": "number", "description": "Duration of animation in milliseconds"},
            },
            "required": ["center"],
        },
    },
    {
        "name": "map_add_layer",
        "description": "Add a new layer to the map",
        "input_schema": {
            "type": "object",
            "properties": {
                "id": {"type": "string", "description": "Unique identifier for the layer"},
                "type": {
                    "type": "string",
                    "enum": ["fill", "line", "symbol", "circle", "heatmap",
                             "fill-extrusion", "raster", "hillshade", "background"],
                    "description": "Type of the layer",
                },
                "source": {
                    "oneOf": [
                        {"type": "string"},
                        {
                            "type": "object",
                            "properties": {
                                "type": {"type": "string"},
                                "data": {"type": "object"},
                            },
                        },
                    ],
                    "description": "Source name or source definition",
                },
                "paint": {"type": "object", "description": "Layer paint properties"},
                "layout": {"type": "object", "description": "Layer layout properties"},
            },
            "required": ["id", "type", "source"],
        },
    },
    {
        "name": "map_remove_layer",
        "description": "Remove a layer from the map",
        "input_schema": {
            "type": "object",
            "properties": {
                "id": {"type": "string", "description": "Identifier of the layer to remove"},
            },
            "required": ["id"],
        },
    },
    {
        "name": "map_get_features",
        "description": "Get features at a point on the map",
        "input_schema": {
            "type": "object",
            "properties": {
                "point": {**_LNG_LAT, "description": "Longitude and latitude of the point"},
                "layers": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Layer IDs to query features from",
                },
            },
            "required": ["point"],
        },
    },
    {
        "name": "map_search",
        "description": "Search for a location by name and fly to it",
        "input_schema": {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "The name of the location to search for (e.g., 'New York', 'Paris', 'Tokyo')",
                },
                "zoom": {"type": "number", "description": "Zoom level to set after finding the location"},
                "animate": {"type": "boolean", "description": "Whether to animate the movement to the location"},
                "duration": {"type": "number", "description": "Duration of animation in milliseconds"},
            },
            "required": ["query"],
        },
    },
    {
        "name": "map_get_bounds",
        "description": "Get the current map bounds (viewport) - useful for spatial queries in the visible area",
        "input_schema": {
            "type": "object",
            "properties": {
                "format": {
                    "type": "string",
                    "enum": ["bbox", "geojson", "bounds"],
                    "description": "Format to return bounds in: 'bbox' [xmin,ymin,xmax,ymax], "
                                   "'geojson' polygon, or 'bounds' object",
                    "default": "bbox",
                },
                "padding": {
                    "type": "number",
                    "description": "Optional padding in pixels to expand the bounds",
                    "default": 0,
                },
            },
        },
    },
    {
        "name": "map_add_polygon",
        "description": "Add a polygon boundary around a geographic area by searching for the area name",
        "input_schema": {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "The name of the geographic area to outline (e.g., 'Lincoln Park Chicago', "
                                   "'Central Park NYC', 'Golden Gate Park')",
                },
                "style": {
                    "type": "object",
                    "description": "Styling options for the polygon",
                    "properties": {
                        "fillColor": {
                            "type": "string",
                            "description": "Fill color for the polygon (hex, rgb, or CSS color name)",
                            "default": "#3498db",
                        },
                        "fillOpacity": {"type": "number", "description": "Fill opacity (0-1)", "default": 0.3},
                        "strokeColor": {
                            "type": "string",
                            "description": "Stroke color for the polygon outline",
                            "default": "#2980b9",
                        },
                        "strokeWidth": {"type": "number", "description": "Stroke width in pixels", "default": 2},
                    },
                },
                "animate": {
                    "type": "boolean",
                    "description": "Whether to animate the movement to the polygon",
                    "default": True,
                },
            },
            "required": ["query"],
        },
    },
    {
        "name": "map_clear_layers",
        "description": "Remove all data, polygon, parcel and lead layers from the map",
        "input_schema": {
            "type": "object",
            "properties": {
                "confirm": {
                    "type": "boolean",
                    "description": "Must be true to clear the layers",
                    "default": True,
                },
            },
        },
    },
]


data_tools: List[Dict[str, Any]] = [
    {
        "name": "arcgis_parcel_search",
        "description": "Search for property parcels by APN (Assessor's Parcel Number) and county",
        "input_schema": {
            "type": "object",
            "properties": {
                "county": {"type": "string", "description": "County name (e.g., 'Maricopa')"},
                "apn": {"type": "string", "description": "Assessor's Parcel Number"},
                "animate": {"type": "boolean", "default": True},
            },
            "required": ["county", "apn"],
        },
    },
    {
        "name": "arcgis_lead_search",
        "description": "Search for research leads data by ID and county",
        "input_schema": {
            "type": "object",
            "properties": {
                "county": {"type": "string", "description": "County name"},
                "id": {"type": "string", "description": "Lead identifier"},
                "animate": {"type": "boolean", "default": True},
            },
            "required": ["county", "id"],
        },
    },
    {
        "name": "arcgis_parcel_query",
        "description": "Query property parcels using filters on fields like acreage, zoning, value, etc.",
        "input_schema": {
            "type": "object",
            "properties": {
                "county": {"type": "string", "description": "County name"},
                "where": {
                    "type": "string",
                    "description": "SQL where clause, e.g. \"ACRES > 10 AND ZONING = 'R-1'\"",
                },
                "animate": {"type": "boolean", "default": True},
            },
            "required": ["county", "where"],
        },
    },
    {
        "name": "arcgis_lead_query",
        "description": "Query research leads using filters on fields like status, property type, price, etc.",
        "input_schema": {
            "type": "object",
            "properties": {
                "county": {"type": "string", "description": "County name"},
                "where": {
                    "type": "string",
                    "description": "SQL where clause, e.g. \"STATUS = 'Active'\"",
                },
                "animate": {"type": "boolean", "default": True},
            },
            "required": ["county", "where"],
        },
    },
    {
        "name": "arcgis_bbox_query",
        "description": "Fetch parcel, lead or other data layer features inside a bounding box. "
                       "Use map_get_bounds first for 'this area' requests.",
        "input_schema": {
            "type": "object",
            "properties": {
                "layer": {"type": "string", "enum": DATA_LAYERS, "description": "Data layer to query"},
                "county": {"type": "string", "description": "County name"},
                "bounds": {
                    "type": "array",
                    "items": {"type": "number"},
                    "minItems": 4,
                    "maxItems": 4,
                    "description": "Bounding box [xmin, ymin, xmax, ymax] in WGS84",
                },
                "animate": {"type": "boolean", "default": True},
            },
            "required": ["layer", "bounds"],
        },
    },
    {
        "name": "arcgis_radius_query",
        "description": "Fetch data layer features within a radius (meters) of a point",
        "input_schema": {
            "type": "object",
            "properties": {
                "layer": {"type": "string", "enum": DATA_LAYERS, "description": "Data layer to query"},
                "center": {**_LNG_LAT, "description": "Longitude and latitude of the center"},
                "radius": {"type": "number", "description": "Radius in meters", "default": 1000},
                "koordinatesLayer": {"type": "string", "description": "Koordinates layer id (koordinates only)"},
                "animate": {"type": "boolean", "default": True},
            },
            "required": ["layer", "center"],
        },
    },
    {
        "name": "arcgis_point_query",
        "description": "Find data layer features at a specific point (e.g. which parcel contains this location)",
        "input_schema": {
            "type": "object",
            "properties": {
                "layer": {"type": "string", "enum": DATA_LAYERS, "description": "Data layer to query"},
                "point": {**_LNG_LAT, "description": "Longitude and latitude of the point"},
                "county": {"type": "string", "description": "County name"},
                "koordinatesLayer": {"type": "string", "description": "Koordinates layer id (koordinates only)"},
                "animate": {"type": "boolean", "default": True},
            },
            "required": ["layer", "point"],
        },
    },
    {
        "name": "arcgis_layer_search",
        "description": "Search the owner index by PID or query ZAMS layers with a where clause",
        "input_schema": {
            "type": "object",
            "properties": {
                "layer": {"type": "string", "enum": ["ownerindex-search", "zams"]},
                "searchParams": {
                    "type": "object",
                    "properties": {
                        "pid": {"type": "string", "description": "Owner PID (ownerindex-search)"},
                        "where": {"type": "string", "description": "Where clause (zams)"},
                        "zamsLayer": {"type": "string", "description": "ZAMS layer id (zams)"},
                    },
                },
                "animate": {"type": "boolean", "default": True},
            },
            "required": ["layer", "searchParams"],
        },
    },
    {
        "name": "arcgis_data_visualize",
        "description": "Draw a GeoJSON FeatureCollection on the map with data-type specific styling",
        "input_schema": {
            "type": "object",
            "properties": {
                "dataType": {
                    "type": "string",
                    "enum": ["parcels", "leads", "ownerindex", "transfers", "plss"],
                },
                "data": {"type": "object", "description": "GeoJSON FeatureCollection"},
                "style": {
                    "type": "object",
                    "properties": {
                        "fillColor": {"type": "string"},
                        "strokeColor": {"type": "string"},
                        "fillOpacity": {"type": "number"},
                        "strokeWidth": {"type": "number"},
                    },
                },
                "fitBounds": {"type": "boolean", "default": True},
            },
            "required": ["dataType", "data"],
        },
    },
]


all_tools: List[Dict[str, Any]] = map_tools + data_tools


def find_tool(name: str, tools: Optional[List[Dict[str, Any]]] = None) -> Optional[Dict[str, Any]]:
    for tool in tools if tools is not None else all_tools:
        if tool["name"] == name:
            return tool
    return None


def to_openai_tools(tools: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """OpenAI function-calling shape."""
    return [
        {
            "type": "function",
            "function": {
                "name": t["name"],
                "description": t["description"],
                "parameters": t["input_schema"],
            },
        }
        for t in tools
    ]


def to_anthropic_tools(tools: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [
        {"name": t["name"], "description": t["description"], "input_schema": t["input_schema"]}
        for t in tools
    ]
