from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

import anthropic
from openai import OpenAI

from mapchat import config
from mapchat.tool_specs import all_tools, to_anthropic_tools, to_openai_tools


logger = logging.getLogger(__name__)


SYSTEM_PROMPT = """
You are a helpful assistant that helps users control a Mapbox map.
You have access to map and data tools with performance safeguards.

Map tools:
- map_search: Search for locations and fly to them.
- map_add_polygon: Draw polygon boundaries around geographic areas (parks, neighborhoods, cities).
  Use this when users ask to "draw", "show", "outline", or "where is" an area.
- map_get_bounds: Get the current viewport bounds. Use this when users say "in this area",
  "here" or "current view", or want to query the visible area.
- map_initialize / map_move: Initialize the map or move it to coordinates.
- map_add_layer / map_remove_layer: Add or remove map layers.
- map_clear_layers: Remove data layers when the map gets cluttered or slow.

Data tools:
- arcgis_parcel_search / arcgis_lead_search: Look up one parcel by APN or one lead by id.
- arcgis_parcel_query / arcgis_lead_query: Filter parcels or leads with a where clause.
- arcgis_bbox_query / arcgis_radius_query / arcgis_point_query: Spatial queries on data layers.
- arcgis_layer_search: Owner index or ZAMS lookups.
- arcgis_data_visualize: Draw GeoJSON you already have.

Performance limits:
- Zoom-based limits: no parcel or lead data below zoom 10.
- At most 5000 features per query at typical zoom levels.
- Very large areas or radii are rejected; ask the user to zoom in.
- Old result layers are replaced when new ones are added.

Guidelines:
- "Where is Central Park" -> map_add_polygon. "Go to Paris" -> map_search.
- Always explain what data was found and any limits that were applied.
- Tell users when they need to zoom in for more detail.
- Never invent parcel, lead or owner data.

Always use tools when appropriate and respond conversationally about what you've done.
""".strip()


class ProviderNotConfigured(RuntimeError):
    pass


def is_claude(model: Optional[str]) -> bool:
    return bool(model) and "claude" in model


def tool_name_for(result: Dict[str, Any]) -> str:
    """Name echoed by the client, else the prefix of ids shaped like 'name:n'."""
    return result.get("name") or str(result.get("id", "")).split(":")[0]


# map payloads the browser already rendered; the model only needs the summary
MODEL_OMIT_KEYS = ("data", "sources", "layers", "parcel", "lead")


def model_output(output: Any) -> Any:
    if isinstance(output, dict):
        return {k: v for k, v in output.items() if k not in MODEL_OMIT_KEYS}
    return output


def tool_result_text(result: Dict[str, Any]) -> str:
    if result.get("error"):
        return f"Error: {result['error']}"
    return json.dumps(model_output(result.get("output")))


class ChatRelay:
    """
    Relays one chat turn (or one tool-results turn) to OpenAI or Anthropic.
    Stateless: every call carries everything the provider needs.
    """

    def __init__(
        self,
        openai_api_key: Optional[str],
        anthropic_api_key: Optional[str] = None,
        tools: Optional[List[Dict[str, Any]]] = None,
        openai_client: Any = None,
        anthropic_client: Any = None,
    ):
        self.openai_api_key = openai_api_key
        self.anthropic_api_key = anthropic_api_key
        self.available_tools = list(tools) if tools is not None else list(all_tools)
        self._openai = openai_client
        self._anthropic = anthropic_client

    # --------------------------------------------------
    # Clients
    # --------------------------------------------------
    @property
    def openai(self):
        if self._openai is None:
            self._openai = OpenAI(api_key=self.openai_api_key)
        return self._openai

    @property
    def anthropic(self):
        if self._anthropic is None:
            if not self.anthropic_api_key:
                raise ProviderNotConfigured("Anthropic API key not provided for Claude model")
            self._anthropic = anthropic.Anthropic(api_key=self.anthropic_api_key)
        return self._anthropic

    def register_tool(self, tool: Dict[str, Any]) -> None:
        self.available_tools.append(tool)

    def register_tools(self, tools: List[Dict[str, Any]]) -> None:
        self.available_tools.extend(tools)

    # --------------------------------------------------
    # PHASE 1: tool decision
    # --------------------------------------------------
    def process_request(self, request: Dict[str, Any]) -> Dict[str, Any]:
        tools = request.get("tools") or self.available_tools
        if is_claude(request.get("model")):
            return self._claude_request(request, tools)
        return self._openai_request(request, tools)

    def _openai_request(self, request: Dict[str, Any], tools: List[Dict[str, Any]]) -> Dict[str, Any]:
        model = request.get("model") or config.OPENAI_MODEL
        logger.info("OpenAI request (%s): %s", model, request.get("message"))

        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": request["message"]},
        ]
        kwargs: Dict[str, Any] = {"model": model, "messages": messages}
        if tools:
            kwargs["tools"] = to_openai_tools(tools)
            kwargs["tool_choice"] = "auto"

        response = self.openai.chat.completions.create(**kwargs)
        msg = response.choices[0].message

        tool_calls = []
        for tc in getattr(msg, "tool_calls", None) or []:
            logger.debug("Tool call: %s", tc.function.name)
            tool_calls.append({
                "id": tc.id,
                "name": tc.function.name,
                "input": json.loads(tc.function.arguments or "{}"),
            })

        return {"id": request.get("id"), "message": msg.content or "", "tool_calls": tool_calls}

    def _claude_request(self, request: Dict[str, Any], tools: List[Dict[str, Any]]) -> Dict[str, Any]:
        client = self.anthropic
        logger.info("Anthropic request (%s): %s", request["model"], request.get("message"))

        response = client.messages.create(
            model=request["model"],
            max_tokens=config.ANTHROPIC_MAX_TOKENS,
            system=SYSTEM_PROMPT,
            messages=[{"role": "user", "content": request["message"]}],
            tools=to_anthropic_tools(tools),
        )

        tool_calls = [
            {"id": block.id, "name": block.name, "input": block.input}
            for block in response.content
            if block.type == "tool_use"
        ]
        text = "".join(block.text for block in response.content if block.type == "text")

        return {"id": request.get("id"), "message": text, "tool_calls": tool_calls}

    # --------------------------------------------------
    # PHASE 2: follow-up response (with tool results)
    # --------------------------------------------------
    def process_tool_results(
        self,
        request_id: str,
        results: List[Dict[str, Any]],
        original_message: str,
        model: Optional[str] = None,
    ) -> Dict[str, Any]:
        if is_claude(model):
            return self._claude_tool_results(request_id, results, original_message, model)
        return self._openai_tool_results(request_id, results, original_message, model)

    def _openai_tool_results(self, request_id, results, original_message, model) -> Dict[str, Any]:
        messages: List[Dict[str, Any]] = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": original_message},
        ]

        if results:
            messages.append({
                "role": "assistant",
                "content": None,
                "tool_calls": [
                    {
                        "id": r["id"],
                        "type": "function",
                        "function": {
                            "name": tool_name_for(r),
                            "arguments": json.dumps(r.get("input") or {}),
                        },
                    }
                    for r in results
                ],
            })
            for r in results:
                messages.append({"role": "tool", "tool_call_id": r["id"], "content": tool_result_text(r)})

        response = self.openai.chat.completions.create(
            model=model or config.OPENAI_MODEL,
            messages=messages,
        )
        return {"id": request_id, "message": response.choices[0].message.content or ""}

    def _claude_tool_results(self, request_id, results, original_message, model) -> Dict[str, Any]:
        client = self.anthropic

        messages: List[Dict[str, Any]] = [{"role": "user", "content": original_message}]
        if results:
            messages.append({
                "role": "assistant",
                "content": [
                    {"type": "tool_use", "id": r["id"], "name": tool_name_for(r), "input": r.get("input") or {}}
                    for r in results
                ],
            })
            messages.append({
                "role": "user",
                "content": [
                    {
                        "type": "tool_result",
                        "tool_use_id": r["id"],
                        "content": tool_result_text(r),
                        "is_error": bool(r.get("error")),
                    }
                    for r in results
                ],
            })

        response = client.messages.create(
            model=model,
            max_tokens=config.ANTHROPIC_MAX_TOKENS,
            system=SYSTEM_PROMPT,
            messages=messages,
            tools=to_anthropic_tools(self.available_tools),
        )
        text = "".join(block.text for block in response.content if block.type == "text")
        return {"id": request_id, "message": text}
