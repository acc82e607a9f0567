from __future__ import annotations

from typing import Dict, Any, List, Optional, Sequence
import re
import logging

from geopy.geocoders import Nominatim
from geopy.extra.rate_limiter import RateLimiter

from pyproj import CRS, Transformer
from shapely.geometry import Point, mapping, shape
from shapely.ops import transform

from mapchat import config
from mapchat import map_layers
from mapchat.limits import validate_bounds, validate_lng_lat


logger = logging.getLogger(__name__)

DEFAULT_CENTER = [-74.5, 40]  # (lng, lat)
DEFAULT_ZOOM = 9
DEFAULT_STYLE = "mapbox://styles/mapbox/streets-v12"
SEARCH_ZOOM = 12
POLYGON_FALLBACK_RADIUS_M = 1000


# ==================================================
# Geocoding (Nominatim)
# ==================================================

GEOCODER = Nominatim(user_agent=config.NOMINATIM_USER_AGENT)

geocode = RateLimiter(
    GEOCODER.geocode,
    min_delay_seconds=1.1,   # ~1 req/sec
    swallow_exceptions=True
)

_GEOCODE_CACHE: Dict[str, Dict[str, Any]] = {}

_WGS84 = CRS.from_epsg(4326)


def _normalize(text: str) -> str:
    return re.sub(r"\s+", " ", text.strip().lower())


def _nominatim_bbox(raw: Dict[str, Any]) -> Optional[List[float]]:
    # Nominatim orders it [south, north, west, east]
    bb = raw.get("boundingbox")
    if not bb or len(bb) != 4:
        return None
    south, north, west, east = (float(v) for v in bb)
    return [west, south, east, north]


def geocode_place(query: str, with_polygon: bool = False) -> Optional[Dict[str, Any]]:
    """
    Resolve a place name to {name, lng, lat, bbox, type, class, geojson}.
    `geojson` is only requested (and only present) when with_polygon is True.
    """
    key = f"{_normalize(query)}|{int(with_polygon)}"
    if key in _GEOCODE_CACHE:
        return _GEOCODE_CACHE[key]

    kwargs = {"geometry": "geojson"} if with_polygon else {}
    loc = geocode(query, **kwargs)
    if not loc:
        return None

    raw = loc.raw or {}
    place = {
        "name": raw.get("display_name") or loc.address,
        "lng": float(loc.longitude),
        "lat": float(loc.latitude),
        "bbox": _nominatim_bbox(raw),
        "type": raw.get("type"),
        "class": raw.get("class"),
        "geojson": raw.get("geojson"),
    }
    _GEOCODE_CACHE[key] = place
    return place


# ==================================================
# Geometry helpers
# ==================================================

def circle_polygon(lng: float, lat: float, radius_m: float, quad_segs: int = 16) -> Dict[str, Any]:
    """
    Circle of radius_m meters around (lng, lat) as a GeoJSON Polygon.
    Buffered in an azimuthal equidistant projection centred on the point.
    """
    local = CRS.from_proj4(f"+proj=aeqd +lat_0={lat} +lon_0={lng} +x_0=0 +y_0=0 +datum=WGS84 +units=m")
    to_wgs84 = Transformer.from_crs(local, _WGS84, always_xy=True)

    geom = Point(0, 0).buffer(float(radius_m), quad_segs=quad_segs)
    return mapping(transform(to_wgs84.transform, geom))


def geometry_bounds(geometry: Dict[str, Any]) -> List[float]:
    """[west, south, east, north] of a GeoJSON geometry."""
    return list(shape(geometry).bounds)


def sw_ne(bounds: Sequence[float]) -> List[List[float]]:
    w, s, e, n = bounds
    return [[w, s], [e, n]]


def pad_bounds(bounds: Sequence[float], padding_px: float, zoom: float) -> List[float]:
    """Expand bounds by a pixel padding converted to degrees at this zoom."""
    w, s, e, n = validate_bounds(bounds)
    if not padding_px or padding_px <= 0:
        return [w, s, e, n]
    deg = padding_px * (360 / 2 ** (zoom + 8))
    return [w - deg, s - deg, e + deg, n + deg]


def format_bounds(bounds: Sequence[float], fmt: str = "bbox") -> Any:
    w, s, e, n = bounds
    if fmt == "bbox":
        return [w, s, e, n]
    if fmt == "geojson":
        return {
            "type": "Feature",
            "properties": {"name": "Current Map Bounds"},
            "geometry": {
                "type": "Polygon",
                "coordinates": [[[w, s], [e, s], [e, n], [w, n], [w, s]]],
            },
        }
    return {"west": w, "south": s, "east": e, "north": n}


# ==================================================
# Map tools
# ==================================================

def map_initialize(*, center: Optional[Sequence[float]] = None, zoom: Optional[float] = None,
                   style: Optional[str] = None) -> Dict[str, Any]:
    return {
        "center": validate_lng_lat(center, "center") if center else list(DEFAULT_CENTER),
        "zoom": zoom if zoom is not None else DEFAULT_ZOOM,
        "style": style or DEFAULT_STYLE,
        "success": True,
    }


def map_move(*, center: Sequence[float], zoom: Optional[float] = None, bearing: Optional[float] = None,
             pitch: Optional[float] = None, animate: bool = False,
             duration: Optional[float] = None) -> Dict[str, Any]:
    result = {"center": validate_lng_lat(center, "center"), "zoom": zoom, "success": True}
    if bearing is not None:
        result["bearing"] = bearing
    if pitch is not None:
        result["pitch"] = pitch
    if animate:
        result["animate"] = True
        if duration:
            result["duration"] = duration
    return result


def map_add_layer(*, id: str, type: str, source: Any, paint: Optional[Dict[str, Any]] = None,
                  layout: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Normalise an LLM-authored layer. An inline source object becomes `<id>-source`.
    """
    result: Dict[str, Any] = {"id": id, "type": type, "success": True}

    layer: Dict[str, Any] = {"id": id, "type": type}
    if isinstance(source, dict) and source.get("type"):
        source_id = f"{id}-source"
        result["sources"] = {source_id: source}
        layer["source"] = source_id
    elif isinstance(source, str):
        layer["source"] = source
    else:
        raise ValueError("source must be a source id or a source definition with a type")

    if paint:
        layer["paint"] = paint
    if layout:
        layer["layout"] = layout
    result["layers"] = [layer]
    return result


def map_remove_layer(*, id: str) -> Dict[str, Any]:
    return {"id": id, "sourceId": f"{id}-source", "success": True}


def map_get_features(*, point: Sequence[float], layers: Optional[List[str]] = None) -> Dict[str, Any]:
    # rendered features only exist in the browser
    return {"point": validate_lng_lat(point), "layers": layers, "features": [], "success": True}


def map_search(*, query: str, zoom: Optional[float] = None, animate: bool = True,
               duration: Optional[float] = None) -> Dict[str, Any]:
    zoom = zoom or SEARCH_ZOOM
    place = geocode_place(query)
    if not place:
        return {"query": query, "success": False, "message": f'Location "{query}" not found'}

    logger.info("Geocoded %r -> %s, %s", query, place["lng"], place["lat"])
    return {
        "query": query,
        "success": True,
        "location": {
            "name": place["name"],
            "coordinates": [place["lng"], place["lat"]],
            "bbox": place["bbox"],
            "zoom": zoom,
        },
        "animate": animate is not False,
        "duration": duration or 2000,
    }


def map_get_bounds(*, format: str = "bbox", padding: float = 0, bounds: Optional[Sequence[float]] = None,
                   zoom: Optional[float] = None) -> Dict[str, Any]:
    """
    Without viewport bounds this is an acknowledgement; the browser reads the viewport.
    With bounds (and zoom) the formatting and padding are done here.
    """
    if format not in ("bbox", "geojson", "bounds"):
        format = "bounds"

    if bounds is None:
        return {
            "format": format,
            "padding": padding or 0,
            "success": True,
            "message": "Map bounds retrieval initiated - will be processed by frontend",
        }

    adjusted = pad_bounds(bounds, padding or 0, zoom if zoom is not None else 0)
    w, s, e, n = adjusted
    return {
        "success": True,
        "bounds": format_bounds(adjusted, format),
        "format": format,
        "center": [(w + e) / 2, (s + n) / 2],
        "zoom": zoom,
        "padding": padding or 0,
        "area": {"width": abs(e - w), "height": abs(n - s)},
        "message": f"Current map bounds retrieved in {format} format",
    }


def map_add_polygon(*, query: str, style: Optional[Dict[str, Any]] = None,
                    animate: bool = True) -> Dict[str, Any]:
    place = geocode_place(query, with_polygon=True)
    if not place:
        return {"query": query, "success": False, "message": f'Area "{query}" not found'}

    geometry = place.get("geojson")
    approximate = not geometry or geometry.get("type") not in ("Polygon", "MultiPolygon")
    if approximate:
        geometry = circle_polygon(place["lng"], place["lat"], POLYGON_FALLBACK_RADIUS_M)

    feature = {
        "type": "Feature",
        "properties": {"name": place["name"], "type": place["type"], "class": place["class"]},
        "geometry": geometry,
    }

    lid = map_layers.layer_id("polygon")
    source_id = f"{lid}-source"

    return {
        "query": query,
        "success": True,
        "name": place["name"],
        "type": place["type"],
        "approximate": approximate,
        "layerId": lid,
        "sources": {source_id: map_layers.geojson_source(feature)},
        "layers": map_layers.polygon_layers(lid, source_id, style),
        "bounds": sw_ne(geometry_bounds(geometry)),
        "animate": animate is not False,
    }


def map_clear_layers(*, confirm: bool = True) -> Dict[str, Any]:
    if confirm is False:
        return {"confirm": False, "success": False, "message": "Layer clearing cancelled - confirmation required"}
    return {
        "confirm": True,
        "success": True,
        "prefixes": list(map_layers.CLEARABLE_PREFIXES),
        "message": "Map layer clearing initiated",
    }
