import json
import time
import uuid
import logging

from flask import Flask, Response, render_template, request, jsonify, stream_with_context
from flask_cors import CORS

from mapchat import config
from mapchat.arcgis import ArcGISError
from mapchat.relay import ChatRelay
from mapchat.tool_registry import TOOL_REGISTRY, call_tool
from mapchat.tool_specs import all_tools, find_tool


config.configure_logging()
logger = logging.getLogger(__name__)

# --------------------------------------------------
# Flask setup
# --------------------------------------------------
app = Flask(__name__)
app.secret_key = config.FLASK_SECRET_KEY

CORS(
    app,
    origins="*",
    send_wildcard=True,
    methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    expose_headers=["Content-Length"],
    max_age=86400,
)


def get_relay() -> ChatRelay:
    return ChatRelay(config.OPENAI_API_KEY, config.ANTHROPIC_API_KEY, all_tools)


def relay_error(message: str, exc: Exception):
    return jsonify({"id": "error_id", "message": message, "error": str(exc) or "Unknown error"}), 500


def run_tool(name: str, args: dict):
    """
    Returns (body, status). Bad input (ValueError) is a 400; a failing data API
    is a 502. Anything else propagates.
    """
    try:
        return call_tool(name, args or {}), 200
    except ValueError as e:
        logger.warning("Invalid input for %s: %s", name, e)
        return {"success": False, "error": str(e)}, 400
    except ArcGISError as e:
        logger.error("Data API failure for %s: %s", name, e)
        return {"success": False, "error": str(e)}, 502


def sse_event(payload: dict) -> str:
    return f"event: message\ndata: {json.dumps(payload)}\n\n"


def sse_stream(client_id: str, interval: float = config.SSE_PING_SECONDS):
    yield sse_event({"type": "connected", "client_id": client_id})
    try:
        while True:
            time.sleep(interval)
            yield sse_event({"type": "ping"})
    finally:
        logger.info("Client %s disconnected", client_id)


# --------------------------------------------------
# Chat relay
# --------------------------------------------------
@app.post("/api/mcp/chat")
def api_chat():
    payload = request.get_json(force=True, silent=True) or {}
    message = (payload.get("message") or "").strip()
    if not message:
        return jsonify({"id": payload.get("id") or "error_id", "message": "Empty message", "error": "Empty message"}), 400

    try:
        response = get_relay().process_request({**payload, "message": message})
    except Exception as e:
        logger.exception("Error processing chat request")
        return relay_error("Failed to process chat request. Check server logs for details.", e)

    return jsonify(response)


@app.post("/api/mcp/tool-results")
def api_tool_results():
    payload = request.get_json(force=True, silent=True) or {}

    try:
        response = get_relay().process_tool_results(
            payload.get("requestId"),
            payload.get("results") or [],
            payload.get("originalMessage") or "",
            payload.get("model"),
        )
    except Exception as e:
        logger.exception("Error processing tool results")
        return relay_error("Failed to process tool results. Check server logs for details.", e)

    return jsonify(response)


# --------------------------------------------------
# Config / health
# --------------------------------------------------
@app.get("/api/mapbox-config")
def api_mapbox_config():
    return jsonify({"mapboxToken": config.MAPBOX_ACCESS_TOKEN})


@app.get("/api/health")
def api_health():
    return jsonify({"status": "ok"})


# --------------------------------------------------
# MCP endpoints
# --------------------------------------------------
@app.get("/sse")
def sse():
    client_id = str(uuid.uuid4())
    return Response(
        stream_with_context(sse_stream(client_id)),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@app.get("/tools")
def tools():
    return jsonify({"tools": all_tools})


@app.post("/invoke")
def invoke():
    payload = request.get_json(force=True, silent=True) or {}
    name = payload.get("name")
    logger.info("Tool invocation from client %s: %s", payload.get("client_id"), name)

    if find_tool(name) is None:
        return jsonify({"error": f"Tool '{name}' not found"}), 404
    if name not in TOOL_REGISTRY:
        return jsonify({"error": f"Tool '{name}' has no implementation"}), 501

    try:
        body, status = run_tool(name, payload.get("input") or {})
    except Exception as e:
        logger.exception("Error processing tool invocation")
        return jsonify({"error": str(e) or "Unknown error"}), 500

    if status != 200:
        return jsonify({"error": body["error"]}), status
    return jsonify({"result": body})


# --------------------------------------------------
# Data API proxy (browser-side tool execution)
# --------------------------------------------------
def _proxy(tool_name: str):
    body, status = run_tool(tool_name, request.get_json(force=True, silent=True) or {})
    return jsonify(body), status


@app.post("/api/arcgis/bbox-query")
def arcgis_bbox():
    return _proxy("arcgis_bbox_query")


@app.post("/api/arcgis/radius-query")
def arcgis_radius():
    return _proxy("arcgis_radius_query")


@app.post("/api/arcgis/point-query")
def arcgis_point():
    return _proxy("arcgis_point_query")


@app.post("/api/arcgis/layer-search")
def arcgis_layer_search():
    return _proxy("arcgis_layer_search")


# --------------------------------------------------
# Client
# --------------------------------------------------
@app.get("/")
def index():
    return render_template("index.html")


if __name__ == "__main__":
    app.run(port=config.PORT, debug=True)
