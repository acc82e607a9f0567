from __future__ import annotations
from typing import Dict, Any, Callable
import inspect
import re


from mapchat.functions import (
    map_initialize,
    map_move,
    map_add_layer,
    map_remove_layer,
    map_get_features,
    map_search,
    map_get_bounds,
    map_add_polygon,
    map_clear_layers,
)
from mapchat.data_tools import (
    arcgis_parcel_search,
    arcgis_lead_search,
    arcgis_parcel_query,
    arcgis_lead_query,
    arcgis_bbox_query,
    arcgis_radius_query,
    arcgis_point_query,
    arcgis_layer_search,
    arcgis_data_visualize,
)


ToolFn = Callable[..., Dict[str, Any]]

TOOL_REGISTRY: Dict[str, ToolFn] = {
    "map_initialize": map_initialize,
    "map_move": map_move,
    "map_add_layer": map_add_layer,
    "map_remove_layer": map_remove_layer,
    "map_get_features": map_get_features,
    "map_search": map_search,
    "map_get_bounds": map_get_bounds,
    "map_add_polygon": map_add_polygon,
    "map_clear_layers": map_clear_layers,
    "arcgis_parcel_search": arcgis_parcel_search,
    "arcgis_lead_search": arcgis_lead_search,
    "arcgis_parcel_query": arcgis_parcel_query,
    "arcgis_lead_query": arcgis_lead_query,
    "arcgis_bbox_query": arcgis_bbox_query,
    "arcgis_radius_query": arcgis_radius_query,
    "arcgis_point_query": arcgis_point_query,
    "arcgis_layer_search": arcgis_layer_search,
    "arcgis_data_visualize": arcgis_data_visualize,
}

_CAMEL = re.compile(r"(?<!^)(?=[A-Z])")


def snake_case(name: str) -> str:
    return _CAMEL.sub("_", name).lower()


def handler_kwargs(fn: ToolFn, args: Dict[str, Any]) -> Dict[str, Any]:
    """
    camelCase keys from the LLM or browser become snake_case; keys the handler
    does not accept are dropped.
    """
    params = inspect.signature(fn).parameters
    kwargs = {}
    for key, value in (args or {}).items():
        name = snake_case(key)
        if name in params:
            kwargs[name] = value
    return kwargs


def call_tool(tool_name: str, args: Dict[str, Any]) -> Dict[str, Any]:
    if tool_name not in TOOL_REGISTRY:
        return {"success": False, "message": f"Unknown tool: {tool_name}"}

    fn = TOOL_REGISTRY[tool_name]
    kwargs = handler_kwargs(fn, args)
    try:
        inspect.signature(fn).bind(**kwargs)
    except TypeError as e:
        raise ValueError(f"Invalid input for {tool_name}: {e}") from e
    return fn(**kwargs)
