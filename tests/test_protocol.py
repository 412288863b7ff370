import json

import pytest

from mcphub.protocol import (
    InitializeResult,
    JsonRpcNotification,
    JsonRpcResponse,
    McpPrompt,
    McpResource,
    McpTool,
    PingRequest,
    PromptsListResult,
    ProtocolError,
    ResourcesListResult,
    ToolsListResult,
    initialize_request,
    prompts_list_request,
    resources_list_request,
    tools_list_request,
)


def test_ping_request_serialization():
    text = PingRequest(42).to_json()
    assert '"jsonrpc":"2.0"' in text
    assert '"method":"ping"' in text
    assert '"id":42' in text


def test_ping_request_id_zero():
    assert '"id":0' in PingRequest(0).to_json()


def test_ping_request_large_id():
    big = 2**64 - 1
    assert str(big) in PingRequest(big).to_json()


def test_successful_ping_response():
    resp = JsonRpcResponse.from_json('{"jsonrpc":"2.0","result":{},"id":1}')
    assert resp.id == 1
    assert resp.result == {}
    assert resp.error is None


def test_error_ping_response():
    resp = JsonRpcResponse.from_json(
        '{"jsonrpc":"2.0","error":{"code":-32601,"message":"Method not found"},"id":1}'
    )
    assert resp.id == 1
    assert resp.error == {"code": -32601, "message": "Method not found"}
    assert resp.result is None


def test_ping_response_missing_result_field():
    resp = JsonRpcResponse.from_json('{"jsonrpc":"2.0","id":5}')
    assert resp.id == 5
    assert resp.result is None
    assert resp.error is None


@pytest.mark.parametrize(
    "text",
    [
        "not json",
        "[1, 2]",
        '{"jsonrpc":"2.0","result":{}}',
        '{"id":-1}',
        '{"id":"7"}',
        '{"id":1.5}',
        '{"id":true}',
    ],
)
def test_invalid_responses_raise(text):
    with pytest.raises(ProtocolError):
        JsonRpcResponse.from_json(text)


def test_initialize_request_shape():
    data = initialize_request(3).to_dict()
    assert data["jsonrpc"] == "2.0"
    assert data["method"] == "initialize"
    assert data["id"] == 3
    assert data["params"]["protocolVersion"] == "2024-11-05"
    assert data["params"]["capabilities"] == {}
    assert data["params"]["clientInfo"]["name"] == "mcp-hub"
    assert json.loads(initialize_request(3).to_json()) == data


@pytest.mark.parametrize(
    "builder, method",
    [
        (tools_list_request, "tools/list"),
        (resources_list_request, "resources/list"),
        (prompts_list_request, "prompts/list"),
    ],
)
def test_list_requests_omit_params(builder, method):
    data = builder(9).to_dict()
    assert data == {"jsonrpc": "2.0", "method": method, "id": 9}


def test_initialized_notification_has_no_id():
    note = JsonRpcNotification.initialized()
    assert note.to_dict() == {"jsonrpc": "2.0", "method": "notifications/initialized"}
    assert '"id"' not in note.to_json()


def test_initialize_result_parsing():
    result = InitializeResult.from_dict(
        {
            "protocolVersion": "2024-11-05",
            "capabilities": {"tools": {"listChanged": True}, "prompts": None},
            "serverInfo": {"name": "demo"},
        }
    )
    assert result.protocol_version == "2024-11-05"
    assert result.capabilities.tools == {"listChanged": True}
    assert result.capabilities.resources is None
    assert result.capabilities.prompts is None
    assert result.server_info.name == "demo"
    assert result.server_info.version is None


def test_initialize_result_without_server_info():
    result = InitializeResult.from_dict({"protocolVersion": "x", "capabilities": {}})
    assert result.server_info is None


@pytest.mark.parametrize(
    "data",
    [
        {"capabilities": {}},
        {"protocolVersion": "x"},
        {"protocolVersion": "x", "capabilities": []},
        {"protocolVersion": "x", "capabilities": {}, "serverInfo": {"version": "1"}},
    ],
)
def test_initialize_result_errors(data):
    with pytest.raises(ProtocolError):
        InitializeResult.from_dict(data)


def test_tools_list_parsing_and_round_trip():
    listing = ToolsListResult.from_dict(
        {
            "tools": [
                {"name": "search", "description": "Find", "inputSchema": {"type": "object"}},
                {"name": "bare"},
            ]
        }
    )
    assert [t.name for t in listing.tools] == ["search", "bare"]
    assert listing.tools[0].input_schema == {"type": "object"}
    assert listing.tools[1].description is None
    for tool in listing.tools:
        assert McpTool.from_dict(tool.to_dict()) == tool


def test_resources_list_parsing_and_round_trip():
    listing = ResourcesListResult.from_dict(
        {"resources": [{"uri": "file:///a", "name": "a", "mimeType": "text/plain"}]}
    )
    resource = listing.resources[0]
    assert resource.uri == "file:///a"
    assert resource.mime_type == "text/plain"
    assert resource.to_dict()["mimeType"] == "text/plain"
    assert McpResource.from_dict(resource.to_dict()) == resource


def test_prompts_list_parsing_and_round_trip():
    listing = PromptsListResult.from_dict(
        {
            "prompts": [
                {
                    "name": "greet",
                    "arguments": [{"name": "who", "required": True}],
                },
                {"name": "plain"},
            ]
        }
    )
    greet, plain = listing.prompts
    assert greet.arguments[0].name == "who"
    assert greet.arguments[0].required is True
    assert plain.arguments is None
    assert McpPrompt.from_dict(greet.to_dict()) == greet


@pytest.mark.parametrize(
    "parser, data",
    [
        (ToolsListResult.from_dict, {}),
        (ToolsListResult.from_dict, {"tools": [{"description": "no name"}]}),
        (ResourcesListResult.from_dict, {"resources": [{"name": "no uri"}]}),
        (PromptsListResult.from_dict, {"prompts": "nope"}),
    ],
)
def test_list_result_errors(parser, data):
    with pytest.raises(ProtocolError):
        parser(data)