from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional, Sequence

import requests


logger = logging.getLogger(__name__)

SEARCH_LAYERS = ("ownerindex-search", "zams")


class ArcGISError(RuntimeError):
    """The data API was unreachable or answered with an error payload."""


def sql_literal(value: Any) -> str:
    """Quote a value for an ArcGIS where clause."""
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, float)):
        return str(value)
    return "'" + str(value).replace("'", "''") + "'"


class ArcGISClient:
    """
    Thin client for the parcel / lead data API.

    Every data layer answers ArcGIS REST `query` requests at {base_url}/{layer}/query
    and returns GeoJSON when asked with f=geojson.
    """

    def __init__(self, base_url: str, timeout: float = 30, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _get(self, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        logger.debug("GET %s %s", url, params)
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as exc:
            raise ArcGISError(f"Data API request failed: {exc}") from exc
        except ValueError as exc:
            raise ArcGISError("Data API returned invalid JSON") from exc

        if isinstance(payload, dict) and "error" in payload:
            err = payload["error"]
            message = err.get("message") if isinstance(err, dict) else str(err)
            raise ArcGISError(f"Data API error: {message}")

        if not isinstance(payload, dict):
            raise ArcGISError("Data API returned an unexpected payload")

        payload.setdefault("type", "FeatureCollection")
        payload.setdefault("features", [])
        return payload

    def query(
        self,
        layer: str,
        *,
        where: str = "1=1",
        geometry: Optional[Dict[str, Any]] = None,
        geometry_type: Optional[str] = None,
        distance: Optional[float] = None,
        limit: Optional[int] = None,
        county: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "where": where,
            "outFields": "*",
            "returnGeometry": "true",
            "inSR": 4326,
            "outSR": 4326,
            "f": "geojson",
        }
        if geometry is not None:
            params["geometry"] = json.dumps(geometry)
            params["geometryType"] = geometry_type
            params["spatialRel"] = "esriSpatialRelIntersects"
        if distance is not None:
            params["distance"] = distance
            params["units"] = "esriSRUnit_Meter"
        if limit:
            params["resultRecordCount"] = int(limit)
        if county:
            params["county"] = county
        if extra:
            params.update({k: v for k, v in extra.items() if v is not None})

        return self._get(f"{self.base_url}/{layer}/query", params)

    def envelope_query(self, layer: str, bounds: Sequence[float], **kwargs) -> Dict[str, Any]:
        xmin, ymin, xmax, ymax = bounds
        geometry = {
            "xmin": xmin, "ymin": ymin, "xmax": xmax, "ymax": ymax,
            "spatialReference": {"wkid": 4326},
        }
        return self.query(layer, geometry=geometry, geometry_type="esriGeometryEnvelope", **kwargs)

    def radius_query(self, layer: str, center: Sequence[float], radius_m: float, **kwargs) -> Dict[str, Any]:
        return self.query(layer, geometry=_esri_point(center), geometry_type="esriGeometryPoint",
                          distance=radius_m, **kwargs)

    def point_query(self, layer: str, point: Sequence[float], **kwargs) -> Dict[str, Any]:
        return self.query(layer, geometry=_esri_point(point), geometry_type="esriGeometryPoint", **kwargs)

    def where_query(self, layer: str, where: str, **kwargs) -> Dict[str, Any]:
        return self.query(layer, where=where, **kwargs)

    def layer_search(self, layer: str, search_params: Dict[str, Any]) -> Dict[str, Any]:
        search_params = search_params or {}
        if layer == "ownerindex-search":
            if not search_params.get("pid"):
                raise ValueError("PID required for ownerindex-search")
            params = {"pid": search_params["pid"]}
        elif layer == "zams":
            if not search_params.get("where") or not search_params.get("zamsLayer"):
                raise ValueError("where clause and zamsLayer required for ZAMS queries")
            params = {"layer": search_params["zamsLayer"], "where": search_params["where"]}
        else:
            raise ValueError(f"Unsupported layer search type: {layer}")

        return self._get(f"{self.base_url}/{layer}", params)


def _esri_point(lng_lat: Sequence[float]) -> Dict[str, Any]:
    lng, lat = lng_lat
    return {"x": lng, "y": lat, "spatialReference": {"wkid": 4326}}
