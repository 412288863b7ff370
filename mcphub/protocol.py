"""JSON-RPC 2.0 message types used to talk to MCP servers over stdio."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Any

JSONRPC_VERSION = "2.0"
MCP_PROTOCOL_VERSION = "2024-11-05"
CLIENT_NAME = "mcp-hub"
CLIENT_VERSION = "0.1.0"

_U64_MAX = 2**64 - 1


class ProtocolError(ValueError):
    """Raised when a JSON-RPC or MCP message cannot be decoded."""


def _dumps(obj: Any) -> str:
    return json.dumps(obj, separators=(",", ":"))


def _require_mapping(data: Any, what: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise ProtocolError(f"{what} must be a JSON object, got {type(data).__name__}")
    return data


def _require_str(data: dict[str, Any], key: str, what: str) -> str:
    if key not in data:
        raise ProtocolError(f"{what}: missing field '{key}'")
    value = data[key]
    if not isinstance(value, str):
        raise ProtocolError(f"{what}: field '{key}' must be a string")
    return value


def _optional_str(data: dict[str, Any], key: str, what: str) -> str | None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ProtocolError(f"{what}: field '{key}' must be a string or null")
    return value


def _optional_bool(data: dict[str, Any], key: str, what: str) -> bool | None:
    value = data.get(key)
    if value is not None and not isinstance(value, bool):
        raise ProtocolError(f"{what}: field '{key}' must be a boolean or null")
    return value


def _require_list(data: dict[str, Any], key: str, what: str) -> list[Any]:
    if key not in data:
        raise ProtocolError(f"{what}: missing field '{key}'")
    value = data[key]
    if not isinstance(value, list):
        raise ProtocolError(f"{what}: field '{key}' must be an array")
    return value


def _require_id(data: dict[str, Any]) -> int:
    if "id" not in data:
        raise ProtocolError("response: missing field 'id'")
    value = data["id"]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ProtocolError("response: field 'id' must be an unsigned integer")
    if not 0 <= value <= _U64_MAX:
        raise ProtocolError(f"response: id {value} is out of range")
    return value


# ─── Requests and notifications ──────────────────────────────────────────────


@dataclass(frozen=True)
class JsonRpcRequest:
    """A JSON-RPC 2.0 request with optional params."""

    method: str
    id: int
    params: Any = None
    jsonrpc: str = JSONRPC_VERSION

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"jsonrpc": self.jsonrpc, "method": self.method, "id": self.id}
        if self.params is not None:
            to_dict = getattr(self.params, "to_dict", None)
            data["params"] = to_dict() if callable(to_dict) else self.params
        return data

    def to_json(self) -> str:
        return _dumps(self.to_dict())


@dataclass(frozen=True)
class JsonRpcNotification:
    """A JSON-RPC 2.0 notification: no id, no response expected."""

    method: str
    jsonrpc: str = JSONRPC_VERSION

    @classmethod
    def initialized(cls) -> JsonRpcNotification:
        """The notification sent after a successful ``initialize`` handshake."""
        return cls(method="notifications/initialized")

    def to_dict(self) -> dict[str, Any]:
        return {"jsonrpc": self.jsonrpc, "method": self.method}

    def to_json(self) -> str:
        return _dumps(self.to_dict())


@dataclass(frozen=True)
class PingRequest:
    """The MCP ``ping`` request used for health checks."""

    id: int
    method: str = "ping"
    jsonrpc: str = JSONRPC_VERSION

    def to_dict(self) -> dict[str, Any]:
        return {"jsonrpc": self.jsonrpc, "method": self.method, "id": self.id}

    def to_json(self) -> str:
        return _dumps(self.to_dict())


@dataclass(frozen=True)
class JsonRpcResponse:
    """A JSON-RPC 2.0 response; ``result`` and ``error`` may both be absent."""

    id: int
    result: Any = None
    error: Any = None

    @classmethod
    def from_dict(cls, data: Any) -> JsonRpcResponse:
        mapping = _require_mapping(data, "response")
        return cls(
            id=_require_id(mapping),
            result=mapping.get("result"),
            error=mapping.get("error"),
        )

    @classmethod
    def from_json(cls, text: str | bytes) -> JsonRpcResponse:
        try:
            data = json.loads(text)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ProtocolError(f"invalid JSON: {exc}") from exc
        return cls.from_dict(data)


# ─── Initialize ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ClientInfo:
    """Identifies this client to the server during ``initialize``."""

    name: str
    version: str


@dataclass(frozen=True)
class InitializeParams:
    """Params of the MCP ``initialize`` request."""

    protocol_version: str
    client_info: ClientInfo
    capabilities: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "protocolVersion": self.protocol_version,
            "capabilities": dict(self.capabilities),
            "clientInfo": asdict(self.client_info),
        }


@dataclass(frozen=True)
class ServerInfo:
    """Human-readable identity of an MCP server."""

    name: str
    version: str | None = None


@dataclass(frozen=True)
class ServerCapabilities:
    """Capability families a server declares in its ``initialize`` result."""

    tools: Any = None
    resources: Any = None
    prompts: Any = None


@dataclass(frozen=True)
class InitializeResult:
    """The result of a successful ``initialize`` request."""

    protocol_version: str
    capabilities: ServerCapabilities
    server_info: ServerInfo | None = None

    @classmethod
    def from_dict(cls, data: Any) -> InitializeResult:
        what = "initialize result"
        mapping = _require_mapping(data, what)
        protocol_version = _require_str(mapping, "protocolVersion", what)
        if "capabilities" not in mapping:
            raise ProtocolError(f"{what}: missing field 'capabilities'")
        caps = _require_mapping(mapping["capabilities"], "capabilities")
        capabilities = ServerCapabilities(
            tools=caps.get("tools"),
            resources=caps.get("resources"),
            prompts=caps.get("prompts"),
        )
        raw_info = mapping.get("serverInfo")
        server_info = None
        if raw_info is not None:
            info = _require_mapping(raw_info, "serverInfo")
            server_info = ServerInfo(
                name=_require_str(info, "name", "serverInfo"),
                version=_optional_str(info, "version", "serverInfo"),
            )
        return cls(
            protocol_version=protocol_version,
            capabilities=capabilities,
            server_info=server_info,
        )


# ─── Tools, resources, prompts ───────────────────────────────────────────────


@dataclass(frozen=True)
class McpTool:
    """A tool exposed by an MCP server."""

    name: str
    description: str | None = None
    input_schema: Any = None

    @classmethod
    def from_dict(cls, data: Any) -> McpTool:
        mapping = _require_mapping(data, "tool")
        return cls(
            name=_require_str(mapping, "name", "tool"),
            description=_optional_str(mapping, "description", "tool"),
            input_schema=mapping.get("inputSchema"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


@dataclass(frozen=True)
class McpResource:
    """A resource exposed by an MCP server."""

    uri: str
    name: str
    description: str | None = None
    mime_type: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> McpResource:
        mapping = _require_mapping(data, "resource")
        return cls(
            uri=_require_str(mapping, "uri", "resource"),
            name=_require_str(mapping, "name", "resource"),
            description=_optional_str(mapping, "description", "resource"),
            mime_type=_optional_str(mapping, "mimeType", "resource"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "uri": self.uri,
            "name": self.name,
            "description": self.description,
            "mimeType": self.mime_type,
        }


@dataclass(frozen=True)
class PromptArgument:
    """An argument accepted by a prompt template."""

    name: str
    description: str | None = None
    required: bool | None = None

    @classmethod
    def from_dict(cls, data: Any) -> PromptArgument:
        mapping = _require_mapping(data, "prompt argument")
        return cls(
            name=_require_str(mapping, "name", "prompt argument"),
            description=_optional_str(mapping, "description", "prompt argument"),
            required=_optional_bool(mapping, "required", "prompt argument"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "description": self.description, "required": self.required}


@dataclass(frozen=True)
class McpPrompt:
    """A prompt template exposed by an MCP server."""

    name: str
    description: str | None = None
    arguments: tuple[PromptArgument, ...] | None = None

    @classmethod
    def from_dict(cls, data: Any) -> McpPrompt:
        mapping = _require_mapping(data, "prompt")
        raw_args = mapping.get("arguments")
        arguments = None
        if raw_args is not None:
            if not isinstance(raw_args, list):
                raise ProtocolError("prompt: field 'arguments' must be an array or null")
            arguments = tuple(PromptArgument.from_dict(arg) for arg in raw_args)
        return cls(
            name=_require_str(mapping, "name", "prompt"),
            description=_optional_str(mapping, "description", "prompt"),
            arguments=arguments,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "arguments": None
            if self.arguments is None
            else [arg.to_dict() for arg in self.arguments],
        }


@dataclass(frozen=True)
class ToolsListResult:
    """The result of a ``tools/list`` request."""

    tools: list[McpTool]

    @classmethod
    def from_dict(cls, data: Any) -> ToolsListResult:
        mapping = _require_mapping(data, "tools/list result")
        items = _require_list(mapping, "tools", "tools/list result")
        return cls(tools=[McpTool.from_dict(item) for item in items])


@dataclass(frozen=True)
class ResourcesListResult:
    """The result of a ``resources/list`` request."""

    resources: list[McpResource]

    @classmethod
    def from_dict(cls, data: Any) -> ResourcesListResult:
        mapping = _require_mapping(data, "resources/list result")
        items = _require_list(mapping, "resources", "resources/list result")
        return cls(resources=[McpResource.from_dict(item) for item in items])


@dataclass(frozen=True)
class PromptsListResult:
    """The result of a ``prompts/list`` request."""

    prompts: list[McpPrompt]

    @classmethod
    def from_dict(cls, data: Any) -> PromptsListResult:
        mapping = _require_mapping(data, "prompts/list result")
        items = _require_list(mapping, "prompts", "prompts/list result")
        return cls(prompts=[McpPrompt.from_dict(item) for item in items])


# ─── Request constructors ────────────────────────────────────────────────────


def initialize_request(request_id: int) -> JsonRpcRequest:
    """Build an ``initialize`` request for protocol version 2024-11-05."""
    params = InitializeParams(
        protocol_version=MCP_PROTOCOL_VERSION,
        client_info=ClientInfo(name=CLIENT_NAME, version=CLIENT_VERSION),
    )
    return JsonRpcRequest(method="initialize", id=request_id, params=params)


def tools_list_request(request_id: int) -> JsonRpcRequest:
    """Build a ``tools/list`` request."""
    return JsonRpcRequest(method="tools/list", id=request_id)


def resources_list_request(request_id: int) -> JsonRpcRequest:
    """Build a ``resources/list`` request."""
    return JsonRpcRequest(method="resources/list", id=request_id)


def prompts_list_request(request_id: int) -> JsonRpcRequest:
    """Build a ``prompts/list`` request."""
    return JsonRpcRequest(method="prompts/list", id=request_id)