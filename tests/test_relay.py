# tests/test_relay.py
# Unit tests for the OpenAI / Anthropic chat relay (providers mocked)

import json
from types import SimpleNamespace

import pytest

from mapchat.relay import (
    ChatRelay,
    ProviderNotConfigured,
    SYSTEM_PROMPT,
    is_claude,
    model_output,
    tool_name_for,
    tool_result_text,
)
from mapchat.tool_specs import all_tools, map_tools


def test_is_claude():
    assert is_claude("claude-3-5-sonnet-latest") is True
    assert is_claude("gpt-4o") is False
    assert is_claude(None) is False


def test_tool_name_for_prefers_echoed_name():
    assert tool_name_for({"id": "call_1", "name": "map_search"}) == "map_search"
    assert tool_name_for({"id": "map_move:3"}) == "map_move"


def test_tool_result_text_strips_map_payloads():
    text = tool_result_text({
        "id": "call_1",
        "output": {"success": True, "featureCount": 3, "data": {"features": [1, 2, 3]},
                   "sources": {"a": {}}, "layers": [{}]},
    })
    assert json.loads(text) == {"success": True, "featureCount": 3}


def test_tool_result_text_error():
    assert tool_result_text({"id": "x", "error": "Layer not found"}) == "Error: Layer not found"


def test_model_output_passes_non_dicts_through():
    assert model_output([1, 2]) == [1, 2]
    assert model_output(None) is None


# ============================================================
# OpenAI
# ============================================================
def test_openai_request_sends_tools(mock_openai_client):
    relay = ChatRelay("sk-test", tools=all_tools, openai_client=mock_openai_client)

    response = relay.process_request({"id": "req_1", "message": "hello", "model": "gpt-4o-mini"})

    assert response == {"id": "req_1", "message": "Test response", "tool_calls": []}
    kwargs = mock_openai_client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "gpt-4o-mini"
    assert kwargs["tool_choice"] == "auto"
    assert kwargs["messages"][0] == {"role": "system", "content": SYSTEM_PROMPT}
    assert kwargs["messages"][1] == {"role": "user", "content": "hello"}
    assert len(kwargs["tools"]) == len(all_tools)
    assert kwargs["tools"][0]["type"] == "function"


def test_openai_request_uses_request_tools(mock_openai_client):
    relay = ChatRelay("sk-test", tools=all_tools, openai_client=mock_openai_client)

    relay.process_request({"id": "req_1", "message": "hello", "tools": map_tools[:1]})

    kwargs = mock_openai_client.chat.completions.create.call_args.kwargs
    assert [t["function"]["name"] for t in kwargs["tools"]] == ["map_initialize"]


def test_openai_request_without_tools_omits_tool_choice(mock_openai_client):
    relay = ChatRelay("sk-test", tools=[], openai_client=mock_openai_client)

    relay.process_request({"id": "req_1", "message": "hello"})

    kwargs = mock_openai_client.chat.completions.create.call_args.kwargs
    assert "tools" not in kwargs
    assert "tool_choice" not in kwargs


def test_openai_request_parses_tool_calls(openai_tool_call_client):
    relay = ChatRelay("sk-test", openai_client=openai_tool_call_client)

    response = relay.process_request({"id": "req_2", "message": "Go to Paris"})

    assert response["message"] == ""
    assert response["tool_calls"] == [{"id": "call_1", "name": "map_search", "input": {"query": "Paris", "zoom": 11}}]


def test_openai_tool_results_conversation(mock_openai_client):
    mock_openai_client.chat.completions.create.return_value.choices[0].message.content = "Done."
    relay = ChatRelay("sk-test", openai_client=mock_openai_client)

    results = [
        {"id": "call_1", "name": "map_search", "input": {"query": "Paris"}, "output": {"success": True}},
        {"id": "call_2", "name": "map_move", "input": {"center": [2.35, 48.85]}, "error": "Map not ready"},
    ]
    response = relay.process_tool_results("req_3", results, "Go to Paris", "gpt-4o")

    assert response == {"id": "req_3", "message": "Done."}
    messages = mock_openai_client.chat.completions.create.call_args.kwargs["messages"]
    assert [m["role"] for m in messages] == ["system", "user", "assistant", "tool", "tool"]

    assistant = messages[2]
    assert [c["function"]["name"] for c in assistant["tool_calls"]] == ["map_search", "map_move"]
    assert json.loads(assistant["tool_calls"][0]["function"]["arguments"]) == {"query": "Paris"}

    assert messages[3] == {"role": "tool", "tool_call_id": "call_1", "content": '{"success": true}'}
    assert messages[4]["content"] == "Error: Map not ready"


def test_openai_tool_results_with_no_results(mock_openai_client):
    relay = ChatRelay("sk-test", openai_client=mock_openai_client)

    relay.process_tool_results("req_4", [], "hi")

    messages = mock_openai_client.chat.completions.create.call_args.kwargs["messages"]
    assert [m["role"] for m in messages] == ["system", "user"]


# ============================================================
# Anthropic
# ============================================================
def test_claude_requires_key():
    relay = ChatRelay("sk-test", anthropic_api_key=None)
    with pytest.raises(ProviderNotConfigured, match="Anthropic API key not provided"):
        relay.process_request({"id": "r", "message": "hi", "model": "claude-3-5-sonnet-latest"})


def test_claude_request(mock_anthropic_client):
    relay = ChatRelay("sk-test", "sk-ant-test", tools=all_tools, anthropic_client=mock_anthropic_client)

    response = relay.process_request({"id": "req_5", "message": "Show Paris", "model": "claude-3-5-sonnet-latest"})

    assert response == {
        "id": "req_5",
        "message": "Moving the map.",
        "tool_calls": [{"id": "toolu_1", "name": "map_move", "input": {"center": [2.35, 48.85]}}],
    }
    kwargs = mock_anthropic_client.messages.create.call_args.kwargs
    assert kwargs["system"] == SYSTEM_PROMPT
    assert kwargs["messages"] == [{"role": "user", "content": "Show Paris"}]
    assert {t["name"] for t in kwargs["tools"]} == {t["name"] for t in all_tools}
    assert "input_schema" in kwargs["tools"][0]


def test_claude_tool_results(mock_anthropic_client):
    mock_anthropic_client.messages.create.return_value = SimpleNamespace(
        content=[SimpleNamespace(type="text", text="The map now shows Paris.")]
    )
    relay = ChatRelay("sk-test", "sk-ant-test", anthropic_client=mock_anthropic_client)

    results = [{"id": "toolu_1", "name": "map_move", "input": {"center": [2.35, 48.85]}, "output": {"success": True}}]
    response = relay.process_tool_results("req_6", results, "Show Paris", "claude-3-5-sonnet-latest")

    assert response == {"id": "req_6", "message": "The map now shows Paris."}
    messages = mock_anthropic_client.messages.create.call_args.kwargs["messages"]
    assert [m["role"] for m in messages] == ["user", "assistant", "user"]
    assert messages[1]["content"][0] == {
        "type": "tool_use", "id": "toolu_1", "name": "map_move", "input": {"center": [2.35, 48.85]},
    }
    tool_result = messages[2]["content"][0]
    assert tool_result["tool_use_id"] == "toolu_1"
    assert tool_result["is_error"] is False


def test_register_tools():
    relay = ChatRelay("sk-test", tools=[])
    relay.register_tool(map_tools[0])
    relay.register_tools(map_tools[1:3])
    assert [t["name"] for t in relay.available_tools] == ["map_initialize", "map_move", "map_add_layer"]
