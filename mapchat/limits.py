"""
Zoom-dependent throttling applied before a query reaches the data API.

Tiers are (zoom_below, value) pairs; the first tier whose zoom_below is greater
than the current zoom wins, and a final (None, value) tier catches the rest.
A zoom of None means the caller has no viewport context, so the top tier applies.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple

Tiers = Sequence[Tuple[Optional[float], float]]

_PARCEL_TIERS: Tiers = ((10, 0), (12, 500), (14, 2000), (16, 5000), (None, 10000))

BBOX_FEATURE_TIERS: Dict[str, Tiers] = {
    "parcels": _PARCEL_TIERS,
    "leads": _PARCEL_TIERS,
    "ownerindex": ((11, 0), (13, 1000), (None, 5000)),
}
DEFAULT_BBOX_FEATURE_TIERS: Tiers = ((8, 0), (10, 1000), (12, 3000), (None, 5000))

RADIUS_FEATURE_TIERS: Dict[str, Tiers] = {
    "ownerindex": ((10, 0), (12, 500), (14, 2000), (None, 5000)),
    "koordinates": ((8, 0), (10, 1000), (12, 3000), (None, 5000)),
}
DEFAULT_RADIUS_FEATURE_TIERS: Tiers = ((None, 1000),)

# square degrees
MAX_BBOX_AREA = {
    "parcels": 0.1,
    "leads": 0.5,
    "ownerindex": 0.2,
}
DEFAULT_MAX_BBOX_AREA = 1.0

# meters
MAX_RADIUS_TIERS: Dict[str, Tiers] = {
    "ownerindex": ((12, 5000), (14, 10000), (None, 20000)),
    "koordinates": ((10, 10000), (12, 50000), (None, 100000)),
}
DEFAULT_MAX_RADIUS = 50000

POINT_QUERY_MIN_ZOOM = {"parcels": 12}

# query bounds larger than this multiple of the viewport fall back to the viewport
VIEW_OVERFETCH_FACTOR = 4


def tier_value(tiers: Tiers, zoom: Optional[float]) -> float:
    for below, value in tiers:
        if below is None or (zoom is not None and zoom < below):
            return value
    return tiers[-1][1]


def min_zoom(tiers: Tiers) -> float:
    """Lowest zoom at which the tiers allow any features."""
    floor = 0
    for below, value in tiers:
        if value:
            return floor
        floor = below
    return floor


def feature_limit(layer: str, zoom: Optional[float]) -> int:
    return int(tier_value(BBOX_FEATURE_TIERS.get(layer, DEFAULT_BBOX_FEATURE_TIERS), zoom))


def radius_feature_limit(layer: str, zoom: Optional[float]) -> int:
    return int(tier_value(RADIUS_FEATURE_TIERS.get(layer, DEFAULT_RADIUS_FEATURE_TIERS), zoom))


def max_radius(layer: str, zoom: Optional[float]) -> float:
    tiers = MAX_RADIUS_TIERS.get(layer)
    if tiers is None:
        return DEFAULT_MAX_RADIUS
    return tier_value(tiers, zoom)


def validate_bounds(bounds: Any) -> List[float]:
    try:
        xmin, ymin, xmax, ymax = (float(v) for v in bounds)
    except (TypeError, ValueError):
        raise ValueError("bounds must be [xmin, ymin, xmax, ymax]")
    return [xmin, ymin, xmax, ymax]


def validate_lng_lat(value: Any, name: str = "point") -> List[float]:
    try:
        lng, lat = (float(v) for v in value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be [longitude, latitude]")
    return [lng, lat]


def bbox_area(bounds: Sequence[float]) -> float:
    """Rough area in square degrees."""
    xmin, ymin, xmax, ymax = bounds
    return abs(xmax - xmin) * abs(ymax - ymin)


def _zoom_required(layer: str, level: float) -> Dict[str, Any]:
    return {
        "ok": False,
        "success": False,
        "message": f"Zoom in to at least level {level:g} to view {layer} data",
        "featureCount": 0,
        "zoomRequired": True,
    }


def plan_bbox_query(
    layer: str,
    bounds: Sequence[float],
    zoom: Optional[float] = None,
    view_bounds: Optional[Sequence[float]] = None,
) -> Dict[str, Any]:
    bounds = validate_bounds(bounds)

    limit = feature_limit(layer, zoom)
    if limit == 0:
        return _zoom_required(layer, min_zoom(BBOX_FEATURE_TIERS.get(layer, DEFAULT_BBOX_FEATURE_TIERS)))

    area = bbox_area(bounds)
    if area > MAX_BBOX_AREA.get(layer, DEFAULT_MAX_BBOX_AREA):
        return {
            "ok": False,
            "success": False,
            "message": f"Query area too large for {layer} data. Please zoom in or select a smaller area.",
            "featureCount": 0,
            "areaTooLarge": True,
        }

    query_bounds = bounds
    if view_bounds is not None:
        view_bounds = validate_bounds(view_bounds)
        if area > bbox_area(view_bounds) * VIEW_OVERFETCH_FACTOR:
            query_bounds = view_bounds

    return {"ok": True, "limit": limit, "bounds": query_bounds}


def plan_radius_query(layer: str, radius: float, zoom: Optional[float] = None) -> Dict[str, Any]:
    try:
        radius = float(radius)
    except (TypeError, ValueError):
        raise ValueError("radius must be a number")
    if radius <= 0:
        raise ValueError("radius must be positive")

    limit = radius_feature_limit(layer, zoom)
    if limit == 0:
        return _zoom_required(layer, min_zoom(RADIUS_FEATURE_TIERS.get(layer, DEFAULT_RADIUS_FEATURE_TIERS)))

    allowed = max_radius(layer, zoom)
    if radius > allowed:
        return {
            "ok": False,
            "success": False,
            "message": (
                f"Radius too large for {layer} data at this zoom level. "
                f"Maximum: {allowed:g}m. Please zoom in or use a smaller radius."
            ),
            "featureCount": 0,
            "radiusTooLarge": True,
        }

    return {"ok": True, "limit": limit, "radius": radius}


def plan_point_query(layer: str, zoom: Optional[float] = None) -> Dict[str, Any]:
    required = POINT_QUERY_MIN_ZOOM.get(layer)
    if required is not None and zoom is not None and zoom < required:
        plan = _zoom_required(layer, required)
        plan["message"] = f"Zoom in to at least level {required} to query {layer} data at specific points"
        return plan
    return {"ok": True}


def is_limited(count: int, limit: Optional[int]) -> bool:
    return bool(limit) and count >= limit


def limited_message(base: str, count: int, limit: Optional[int], hint: str = "area") -> str:
    if is_limited(count, limit):
        return f"{base} (limited to {limit}). Zoom in for more detail or use a smaller {hint}."
    return base
