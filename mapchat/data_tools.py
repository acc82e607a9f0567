from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Dict, List, Optional, Sequence

import geopandas as gpd

from mapchat import config
from mapchat import map_layers
from mapchat.arcgis import ArcGISClient, sql_literal
from mapchat.functions import circle_polygon, sw_ne
from mapchat.limits import (
    is_limited,
    limited_message,
    plan_bbox_query,
    plan_point_query,
    plan_radius_query,
    validate_lng_lat,
)


logger = logging.getLogger(__name__)

PARCEL_LAYER = "parcels"
LEAD_LAYER = "leads"
PARCEL_APN_FIELD = "APN"
LEAD_ID_FIELD = "LEAD_ID"

MAX_QUERY_FEATURES = 5000     # hard cap for attribute (where) queries
PARCEL_ZOOM = 16
LEAD_ZOOM = 14


@lru_cache(maxsize=1)
def get_client() -> ArcGISClient:
    """One shared client (and HTTP session) per process."""
    return ArcGISClient(config.ARCGIS_BASE_URL, timeout=config.ARCGIS_TIMEOUT)


def summarize_features(fc: Dict[str, Any]) -> Dict[str, Any]:
    """
    Count features and compute their [w, s, e, n] extent and centre.
    Features without geometry are counted but do not contribute to the extent.
    """
    features = fc.get("features") or []
    located = [
        {"type": "Feature", "geometry": f["geometry"], "properties": f.get("properties") or {}}
        for f in features
        if f.get("geometry")
    ]
    if not located:
        return {"count": len(features), "bounds": None, "center": None}

    gdf = gpd.GeoDataFrame.from_features(located, crs="EPSG:4326")
    w, s, e, n = (float(v) for v in gdf.total_bounds)
    return {
        "count": len(features),
        "bounds": [w, s, e, n],
        "center": [(w + e) / 2, (s + n) / 2],
    }


def _effective_zoom(zoom: Optional[float], view_zoom: Optional[float]) -> Optional[float]:
    # the live viewport zoom wins over a zoom passed in the tool input
    return view_zoom if view_zoom is not None else zoom


def _cap(plan_limit: int, requested: Optional[int]) -> int:
    if requested:
        return min(int(requested), plan_limit)
    return plan_limit


def _rejected(plan: Dict[str, Any], **context) -> Dict[str, Any]:
    result = {k: v for k, v in plan.items() if k != "ok"}
    result.update(context)
    return result


# ==================================================
# Spatial queries
# ==================================================

def arcgis_bbox_query(*, layer: str, bounds: Sequence[float], county: Optional[str] = None,
                      zoom: Optional[float] = None, view_zoom: Optional[float] = None,
                      view_bounds: Optional[Sequence[float]] = None,
                      limit: Optional[int] = None, animate: bool = True) -> Dict[str, Any]:
    zoom = _effective_zoom(zoom, view_zoom)
    plan = plan_bbox_query(layer, bounds, zoom, view_bounds)
    if not plan["ok"]:
        return _rejected(plan, layer=layer, county=county, bounds=list(bounds))

    max_features = _cap(plan["limit"], limit)
    query_bounds = plan["bounds"]
    logger.info("Fetching %s in %s (limit %s, zoom %s)", layer, query_bounds, max_features, zoom)

    data = get_client().envelope_query(layer, query_bounds, limit=max_features, county=county)
    count = len(data["features"])
    limited = is_limited(count, max_features)

    result = {
        "success": True,
        "layer": layer,
        "county": county,
        "bounds": query_bounds,
        "featureCount": count,
        "maxFeatures": max_features,
        "isLimited": limited,
        "currentZoom": zoom,
        "message": limited_message(f"Found {count} {layer} features", count, max_features, "area"),
        "replacePrefix": f"arcgis-{layer}-",
        "sources": {},
        "layers": [],
    }
    if count:
        lid = map_layers.layer_id(f"arcgis-{layer}")
        result["layerId"] = lid
        result["data"] = data
        result["sources"] = {lid: map_layers.geojson_source(data)}
        result["layers"] = map_layers.bbox_result_layers(lid, layer, zoom)
        if animate and not limited:
            result["fit"] = {"bounds": sw_ne(query_bounds)}
    return result


def arcgis_radius_query(*, layer: str, center: Sequence[float], radius: float = 1000,
                        koordinates_layer: Optional[str] = None, zoom: Optional[float] = None,
                        view_zoom: Optional[float] = None, limit: Optional[int] = None,
                        animate: bool = True) -> Dict[str, Any]:
    zoom = _effective_zoom(zoom, view_zoom)
    lng, lat = validate_lng_lat(center, "center")
    plan = plan_radius_query(layer, radius, zoom)
    if not plan["ok"]:
        return _rejected(plan, layer=layer, center=[lng, lat], radius=radius)

    max_features = _cap(plan["limit"], limit)
    radius = plan["radius"]
    logger.info("Fetching %s within %sm of %s, %s (limit %s)", layer, radius, lng, lat, max_features)

    extra = {"koordinatesLayer": koordinates_layer} if koordinates_layer else None
    data = get_client().radius_query(layer, [lng, lat], radius, limit=max_features, extra=extra)
    count = len(data["features"])
    limited = is_limited(count, max_features)

    lid = map_layers.layer_id(f"arcgis-radius-{layer}")
    ring_id = f"{lid}-radius"
    center_id = f"{lid}-center"

    sources = {
        ring_id: map_layers.geojson_source(circle_polygon(lng, lat, radius)),
        center_id: map_layers.geojson_source(map_layers.point_feature(lng, lat, type="center")),
    }
    layers: List[Dict[str, Any]] = []
    if count:
        sources[lid] = map_layers.geojson_source(data)
        layers.extend(map_layers.radius_result_layers(lid, zoom))
    layers.append(map_layers.radius_ring_layer(ring_id, zoom))
    layers.append(map_layers.marker_layer(center_id))

    result = {
        "success": True,
        "layer": layer,
        "center": [lng, lat],
        "radius": radius,
        "featureCount": count,
        "maxFeatures": max_features,
        "isLimited": limited,
        "currentZoom": zoom,
        "message": limited_message(f"Found {count} {layer} features within {radius:g}m",
                                   count, max_features, "radius"),
        "layerId": lid,
        "replacePrefix": f"arcgis-radius-{layer}-",
        "sources": sources,
        "layers": layers,
    }
    if count:
        result["data"] = data
    if animate and not limited:
        result["fit"] = {"center": [lng, lat], "zoom": max(zoom or 0, 14)}
    return result


def arcgis_point_query(*, layer: str, point: Sequence[float], county: Optional[str] = None,
                       koordinates_layer: Optional[str] = None, zoom: Optional[float] = None,
                       view_zoom: Optional[float] = None, animate: bool = True) -> Dict[str, Any]:
    zoom = _effective_zoom(zoom, view_zoom)
    lng, lat = validate_lng_lat(point)
    plan = plan_point_query(layer, zoom)
    if not plan["ok"]:
        return _rejected(plan, layer=layer, point=[lng, lat], county=county)

    logger.info("Querying %s at %s, %s", layer, lng, lat)
    extra = {"koordinatesLayer": koordinates_layer} if koordinates_layer else None
    data = get_client().point_query(layer, [lng, lat], county=county, extra=extra)
    count = len(data["features"])

    lid = map_layers.layer_id(f"arcgis-point-{layer}")
    marker_id = f"{lid}-point"
    big_marker = zoom is not None and zoom > 14

    sources = {marker_id: map_layers.geojson_source(map_layers.point_feature(lng, lat, query="point"))}
    layers = [map_layers.marker_layer(marker_id, 10 if big_marker else 8)]
    if count:
        sources[lid] = map_layers.geojson_source(data)
        layers.extend(map_layers.point_result_layers(lid, zoom))

    if count:
        message = f"Found {count} {layer} feature(s) at this location"
    else:
        message = f"No {layer} features found at this location"

    result = {
        "success": True,
        "layer": layer,
        "point": [lng, lat],
        "county": county,
        "featureCount": count,
        "currentZoom": zoom,
        "message": message,
        "layerId": lid,
        "replacePrefix": f"arcgis-point-{layer}-",
        "sources": sources,
        "layers": layers,
    }
    if count:
        result["data"] = data
    if animate:
        result["fit"] = {"center": [lng, lat], "zoom": max(zoom or 0, 16)}
    return result


def arcgis_layer_search(*, layer: str, search_params: Dict[str, Any],
                        animate: bool = True) -> Dict[str, Any]:
    data = get_client().layer_search(layer, search_params)
    summary = summarize_features(data)

    result = {
        "success": True,
        "layer": layer,
        "searchParams": search_params,
        "featureCount": summary["count"],
        "sources": {},
        "layers": [],
    }
    if summary["count"]:
        lid = map_layers.layer_id(f"arcgis-search-{layer}")
        result["layerId"] = lid
        result["data"] = data
        result["sources"] = {lid: map_layers.geojson_source(data)}
        result["layers"] = map_layers.search_result_layers(lid)
        if animate and summary["bounds"]:
            result["fit"] = {"bounds": sw_ne(summary["bounds"])}
    return result


# ==================================================
# Attribute lookups
# ==================================================

def _single_feature_result(kind: str, data: Dict[str, Any], zoom: int, animate: bool,
                           layers: List[Dict[str, Any]], **context) -> Dict[str, Any]:
    features = data["features"]
    if not features:
        return {"success": False, "message": f"No {kind} found", **context}

    feature = features[0]
    summary = summarize_features({"features": [feature]})
    result = {
        "success": True,
        **context,
        "center": summary["center"],
        "zoom": zoom,
        "properties": feature.get("properties") or {},
        kind: feature,
        "replacePrefix": f"{kind}-",
        "sources": {f"{kind}-source": map_layers.geojson_source(feature)},
        "layers": layers,
    }
    if animate and summary["center"]:
        result["fit"] = {"center": summary["center"], "zoom": zoom}
    return result


def arcgis_parcel_search(*, county: str, apn: str, animate: bool = True) -> Dict[str, Any]:
    data = get_client().where_query(
        PARCEL_LAYER, f"{PARCEL_APN_FIELD} = {sql_literal(apn)}", county=county, limit=1,
    )
    return _single_feature_result("parcel", data, PARCEL_ZOOM, animate, map_layers.parcel_layers(),
                                  apn=apn, county=county)


def arcgis_lead_search(*, county: str, id: str, animate: bool = True) -> Dict[str, Any]:
    data = get_client().where_query(
        LEAD_LAYER, f"{LEAD_ID_FIELD} = {sql_literal(id)}", county=county, limit=1,
    )
    return _single_feature_result("lead", data, LEAD_ZOOM, animate, map_layers.lead_layers(),
                                  id=id, county=county)


def _where_query_result(kind: str, county: str, where: str, animate: bool,
                        layers: List[Dict[str, Any]]) -> Dict[str, Any]:
    data = get_client().where_query(kind, where, county=county, limit=MAX_QUERY_FEATURES)
    summary = summarize_features(data)
    count = summary["count"]

    if not count:
        return {
            "success": True,
            "county": county,
            "where": where,
            "count": 0,
            "message": f"No {kind} found matching the query criteria",
        }

    bounds = sw_ne(summary["bounds"]) if summary["bounds"] else None
    result = {
        "success": True,
        "county": county,
        "where": where,
        "center": summary["center"],
        "bounds": bounds,
        "count": count,
        "isLimited": is_limited(count, MAX_QUERY_FEATURES),
        "message": limited_message(f"Found {count} {kind}", count, MAX_QUERY_FEATURES, "area"),
        "data": data,
        "replacePrefix": f"{kind}-",
        "sources": {f"{kind}-source": map_layers.geojson_source(data)},
        "layers": layers,
    }
    if animate and bounds:
        result["fit"] = {"bounds": bounds}
    return result


def arcgis_parcel_query(*, county: str, where: str, animate: bool = True) -> Dict[str, Any]:
    return _where_query_result("parcels", county, where, animate, map_layers.parcels_query_layers())


def arcgis_lead_query(*, county: str, where: str, animate: bool = True) -> Dict[str, Any]:
    return _where_query_result("leads", county, where, animate, map_layers.leads_query_layers())


# ==================================================
# Visualisation of caller-supplied GeoJSON
# ==================================================

def arcgis_data_visualize(*, data_type: str, data: Dict[str, Any], style: Optional[Dict[str, Any]] = None,
                          fit_bounds: bool = True) -> Dict[str, Any]:
    if not isinstance(data, dict) or not isinstance(data.get("features"), list):
        raise ValueError("Invalid GeoJSON data provided")

    lid = map_layers.layer_id(f"arcgis-viz-{data_type}")
    applied = map_layers.visualize_style(data_type, style)
    summary = summarize_features(data)

    result = {
        "success": True,
        "dataType": data_type,
        "layerId": lid,
        "featureCount": summary["count"],
        "style": applied,
        "sources": {lid: map_layers.geojson_source(data)},
        "layers": map_layers.visualize_layers(lid, applied),
    }
    if fit_bounds and summary["bounds"]:
        result["fit"] = {"bounds": sw_ne(summary["bounds"])}
    return result
