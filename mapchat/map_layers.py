"""
Mapbox GL source/layer JSON builders.

Everything here returns plain dicts that the browser passes verbatim to
map.addSource / map.addLayer.
"""

from __future__ import annotations

import time
from typing import Any, Dict, List, Optional

CLEARABLE_PREFIXES = ("arcgis-", "polygon-", "parcel-", "lead-", "parcels-", "leads-")

LAYER_COLORS = {
    "parcels": "#27ae60",
    "leads": "#e74c3c",
    "ownerindex": "#3498db",
}
DEFAULT_LAYER_COLOR = "#9b59b6"

POLYGON_STYLE_DEFAULTS = {
    "fillColor": "#3498db",
    "fillOpacity": 0.3,
    "strokeColor": "#2980b9",
    "strokeWidth": 2,
}

VISUALIZE_STYLE_DEFAULTS = {
    "parcels": {"fillColor": "#27ae60", "strokeColor": "#2ecc71", "fillOpacity": 0.5},
    "leads": {"fillColor": "#e74c3c", "strokeColor": "#c0392b", "fillOpacity": 0.6},
    "ownerindex": {"fillColor": "#3498db", "strokeColor": "#2980b9", "fillOpacity": 0.4},
    "transfers": {"fillColor": "#9b59b6", "strokeColor": "#8e44ad", "fillOpacity": 0.5},
    "plss": {"fillColor": "#f39c12", "strokeColor": "#e67e22", "fillOpacity": 0.3},
}

_POLYGONS = ["==", "$type", "Polygon"]
_POINTS = ["==", "$type", "Point"]


def _zoom_or(zoom: Optional[float], default: float) -> float:
    return default if zoom is None else zoom


def layer_id(prefix: str, now_ms: Optional[int] = None) -> str:
    """`<prefix>-<epoch ms>`, e.g. arcgis-parcels-1700000000000."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{prefix}-{now_ms}"


def geojson_source(data: Dict[str, Any]) -> Dict[str, Any]:
    return {"type": "geojson", "data": data}


def point_feature(lng: float, lat: float, **properties) -> Dict[str, Any]:
    return {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [lng, lat]},
        "properties": properties,
    }


# --------------------------------------------------
# Spatial query results
# --------------------------------------------------
def bbox_result_layers(lid: str, layer: str, zoom: Optional[float]) -> List[Dict[str, Any]]:
    zoom = _zoom_or(zoom, 14)
    color = LAYER_COLORS.get(layer, DEFAULT_LAYER_COLOR)
    return [
        {
            "id": f"{lid}-fill",
            "type": "fill",
            "source": lid,
            "paint": {"fill-color": color, "fill-opacity": 0.4},
            "filter": _POLYGONS,
        },
        {
            "id": f"{lid}-line",
            "type": "line",
            "source": lid,
            "paint": {"line-color": color, "line-width": 2 if zoom > 14 else 1},
        },
        {
            "id": f"{lid}-circle",
            "type": "circle",
            "source": lid,
            "paint": {
                "circle-radius": 6 if zoom > 12 else 4,
                "circle-color": "#e74c3c" if layer == "leads" else "#3498db",
                "circle-stroke-width": 2 if zoom > 14 else 1,
                "circle-stroke-color": "#ffffff",
            },
            "filter": _POINTS,
        },
    ]


def radius_result_layers(lid: str, zoom: Optional[float]) -> List[Dict[str, Any]]:
    zoom = _zoom_or(zoom, 14)
    return [
        {
            "id": f"{lid}-fill",
            "type": "fill",
            "source": lid,
            "paint": {"fill-color": "#e67e22", "fill-opacity": 0.5},
            "filter": _POLYGONS,
        },
        {
            "id": f"{lid}-circle",
            "type": "circle",
            "source": lid,
            "paint": {
                "circle-radius": 8 if zoom > 12 else 6,
                "circle-color": "#e67e22",
                "circle-stroke-width": 2 if zoom > 14 else 1,
                "circle-stroke-color": "#ffffff",
            },
            "filter": _POINTS,
        },
    ]


def radius_ring_layer(source_id: str, zoom: Optional[float]) -> Dict[str, Any]:
    zoom = _zoom_or(zoom, 14)
    return {
        "id": f"{source_id}-line",
        "type": "line",
        "source": source_id,
        "paint": {
            "line-color": "#34495e",
            "line-width": 2 if zoom > 12 else 1,
            "line-dasharray": [5, 5],
        },
    }


def marker_layer(source_id: str, radius: float = 8) -> Dict[str, Any]:
    return {
        "id": source_id,
        "type": "circle",
        "source": source_id,
        "paint": {
            "circle-radius": radius,
            "circle-color": "#e74c3c",
            "circle-stroke-width": 3,
            "circle-stroke-color": "#ffffff",
        },
    }


def point_result_layers(lid: str, zoom: Optional[float]) -> List[Dict[str, Any]]:
    zoom = _zoom_or(zoom, 16)
    return [
        {
            "id": f"{lid}-fill",
            "type": "fill",
            "source": lid,
            "paint": {"fill-color": "#2ecc71", "fill-opacity": 0.7},
            "filter": _POLYGONS,
        },
        {
            "id": f"{lid}-line",
            "type": "line",
            "source": lid,
            "paint": {"line-color": "#27ae60", "line-width": 3 if zoom > 14 else 2},
        },
    ]


def search_result_layers(lid: str) -> List[Dict[str, Any]]:
    return [
        {
            "id": f"{lid}-fill",
            "type": "fill",
            "source": lid,
            "paint": {"fill-color": "#f39c12", "fill-opacity": 0.6},
            "filter": _POLYGONS,
        },
        {
            "id": f"{lid}-line",
            "type": "line",
            "source": lid,
            "paint": {"line-color": "#e67e22", "line-width": 3},
        },
    ]


# --------------------------------------------------
# Single parcel / lead lookups
# --------------------------------------------------
def parcel_layers(source_id: str = "parcel-source") -> List[Dict[str, Any]]:
    return [
        {
            "id": "parcel-fill",
            "type": "fill",
            "source": source_id,
            "paint": {"fill-color": "#3498db", "fill-opacity": 0.4},
        },
        {
            "id": "parcel-outline",
            "type": "line",
            "source": source_id,
            "paint": {"line-color": "#2980b9", "line-width": 2},
        },
    ]


def lead_layers(source_id: str = "lead-source") -> List[Dict[str, Any]]:
    return [
        {
            "id": "lead-circle",
            "type": "circle",
            "source": source_id,
            "paint": {
                "circle-radius": 10,
                "circle-color": "#e74c3c",
                "circle-opacity": 0.8,
                "circle-stroke-width": 2,
                "circle-stroke-color": "#c0392b",
            },
        },
        {
            "id": "lead-label",
            "type": "symbol",
            "source": source_id,
            "layout": {
                "text-field": ["get", "ProjectName"],
                "text-font": ["Open Sans Bold", "Arial Unicode MS Bold"],
                "text-size": 12,
                "text-offset": [0, 1.5],
                "text-anchor": "top",
            },
            "paint": {"text-color": "#333", "text-halo-color": "#fff", "text-halo-width": 2},
        },
    ]


# --------------------------------------------------
# Attribute queries (many parcels / leads)
# --------------------------------------------------
def parcels_query_layers(source_id: str = "parcels-source") -> List[Dict[str, Any]]:
    return [
        {
            "id": "parcels-fill",
            "type": "fill",
            "source": source_id,
            "paint": {
                "fill-color": [
                    "interpolate", ["linear"], ["get", "ACRES"],
                    1, "#c6dbef",
                    5, "#9ecae1",
                    10, "#6baed6",
                    20, "#4292c6",
                    50, "#2171b5",
                    100, "#084594",
                ],
                "fill-opacity": 0.6,
            },
        },
        {
            "id": "parcels-outline",
            "type": "line",
            "source": source_id,
            "paint": {"line-color": "#2c3e50", "line-width": 1},
        },
        {
            "id": "parcels-symbol",
            "type": "symbol",
            "source": source_id,
            "layout": {
                "text-field": ["get", "APN"],
                "text-font": ["Open Sans Regular", "Arial Unicode MS Regular"],
                "text-size": 10,
                "text-anchor": "center",
            },
            "paint": {"text-color": "#000", "text-halo-color": "#fff", "text-halo-width": 1},
        },
    ]


def leads_query_layers(source_id: str = "leads-source") -> List[Dict[str, Any]]:
    return [
        {
            "id": "leads-circle",
            "type": "circle",
            "source": source_id,
            "paint": {
                "circle-radius": ["interpolate", ["linear"], ["zoom"], 8, 3, 12, 8, 16, 12],
                "circle-color": [
                    "match", ["get", "STATUS"],
                    "Active", "#2ecc71",
                    "Pending", "#f39c12",
                    "Inactive", "#e74c3c",
                    "Closed", "#7f8c8d",
                    "#3498db",
                ],
                "circle-opacity": 0.8,
                "circle-stroke-width": 1,
                "circle-stroke-color": "#fff",
            },
        },
        {
            "id": "leads-label",
            "type": "symbol",
            "source": source_id,
            "layout": {
                "text-field": ["get", "PROJECT_NAME"],
                "text-font": ["Open Sans Bold", "Arial Unicode MS Bold"],
                # no text below zoom 10
                "text-size": ["interpolate", ["linear"], ["zoom"], 10, 0, 12, 8, 16, 12],
                "text-offset": [0, 1.5],
                "text-anchor": "top",
                "text-allow-overlap": False,
                "text-ignore-placement": False,
            },
            "paint": {"text-color": "#333", "text-halo-color": "#fff", "text-halo-width": 2},
        },
    ]


# --------------------------------------------------
# Free-form styling
# --------------------------------------------------
def merge_style(defaults: Dict[str, Any], style: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    merged = dict(defaults)
    for key, value in (style or {}).items():
        if value is not None:
            merged[key] = value
    return merged


def polygon_layers(lid: str, source_id: str, style: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    s = merge_style(POLYGON_STYLE_DEFAULTS, style)
    return [
        {
            "id": f"{lid}-fill",
            "type": "fill",
            "source": source_id,
            "paint": {"fill-color": s["fillColor"], "fill-opacity": s["fillOpacity"]},
        },
        {
            "id": f"{lid}-outline",
            "type": "line",
            "source": source_id,
            "paint": {"line-color": s["strokeColor"], "line-width": s["strokeWidth"]},
        },
    ]


def visualize_style(data_type: str, style: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return merge_style(VISUALIZE_STYLE_DEFAULTS.get(data_type, {}), style)


def visualize_layers(lid: str, applied_style: Dict[str, Any]) -> List[Dict[str, Any]]:
    fill = applied_style.get("fillColor", DEFAULT_LAYER_COLOR)
    return [
        {
            "id": f"{lid}-fill",
            "type": "fill",
            "source": lid,
            "paint": {"fill-color": fill, "fill-opacity": applied_style.get("fillOpacity", 0.5)},
            "filter": _POLYGONS,
        },
        {
            "id": f"{lid}-line",
            "type": "line",
            "source": lid,
            "paint": {
                "line-color": applied_style.get("strokeColor", fill),
                "line-width": applied_style.get("strokeWidth", 2),
            },
        },
        {
            "id": f"{lid}-circle",
            "type": "circle",
            "source": lid,
            "paint": {
                "circle-radius": 6,
                "circle-color": fill,
                "circle-stroke-width": 2,
                "circle-stroke-color": "#ffffff",
            },
            "filter": _POINTS,
        },
    ]
