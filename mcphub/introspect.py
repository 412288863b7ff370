"""MCP capability introspection.

Runs the ``initialize`` handshake, then asks concurrently for the tools,
resources and prompts the server declared, and stores them in its snapshot.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, TypeVar

from mcphub.dispatcher import Dispatcher, DispatchError, IdAllocator
from mcphub.protocol import (
    InitializeResult,
    JsonRpcNotification,
    JsonRpcResponse,
    McpPrompt,
    McpResource,
    McpTool,
    PromptsListResult,
    ProtocolError,
    ResourcesListResult,
    ServerCapabilities,
    ToolsListResult,
    initialize_request,
    prompts_list_request,
    resources_list_request,
    tools_list_request,
)
from mcphub.types import McpCapabilities, ServerSnapshot, SnapshotWatch

log = logging.getLogger(__name__)

INITIALIZE_TIMEOUT_SECS = 10
LIST_TIMEOUT_SECS = 10

_Item = TypeVar("_Item")
_Outcome = JsonRpcResponse | DispatchError | None


class IntrospectionError(RuntimeError):
    """The ``initialize`` handshake with a server failed."""


async def run_introspection(
    server_name: str,
    dispatcher: Dispatcher,
    id_alloc: IdAllocator,
    snapshot: SnapshotWatch,
) -> McpCapabilities:
    """Introspect a server and store the discovered capabilities in ``snapshot``.

    Raises :class:`IntrospectionError` if the handshake fails. Failures of the
    individual list requests only leave that family empty.
    """
    init_id = id_alloc.next_id()
    try:
        response = await dispatcher.send_request(
            init_id, initialize_request(init_id), INITIALIZE_TIMEOUT_SECS
        )
    except DispatchError as exc:
        raise IntrospectionError(f"initialize request failed: {exc}") from exc

    if response.result is None:
        if response.error is not None:
            raise IntrospectionError(f"Server returned error on initialize: {response.error}")
        raise IntrospectionError("Server returned empty initialize response")

    try:
        init_result = InitializeResult.from_dict(response.result)
    except ProtocolError as exc:
        raise IntrospectionError(f"Failed to parse initialize result: {exc}") from exc

    log.info(
        "MCP initialize handshake complete for %s (protocol %s, server %s)",
        server_name,
        init_result.protocol_version,
        init_result.server_info.name if init_result.server_info else None,
    )

    try:
        await dispatcher.send_notification(JsonRpcNotification.initialized())
    except DispatchError as exc:
        raise IntrospectionError(f"Failed to send initialized notification: {exc}") from exc

    capabilities = await fetch_capabilities(
        server_name, dispatcher, id_alloc, init_result.capabilities
    )

    def store(snap: ServerSnapshot) -> None:
        snap.capabilities = capabilities

    snapshot.modify(store)

    log.info(
        "Introspection complete for %s: %d tools, %d resources, %d prompts",
        server_name,
        len(capabilities.tools),
        len(capabilities.resources),
        len(capabilities.prompts),
    )
    return capabilities


async def _request_if(
    declared: bool, dispatcher: Dispatcher, request_id: int, request: Any
) -> _Outcome:
    if not declared:
        return None
    try:
        return await dispatcher.send_request(request_id, request, LIST_TIMEOUT_SECS)
    except DispatchError as exc:
        return exc


def _parse_list(
    server_name: str,
    method: str,
    outcome: _Outcome,
    extract: Callable[[Any], list[_Item]],
) -> list[_Item]:
    if outcome is None:
        return []
    if isinstance(outcome, DispatchError):
        log.warning("%s: %s request failed: %s", server_name, method, outcome)
        return []
    if outcome.error is not None:
        log.warning("%s: %s returned error: %s", server_name, method, outcome.error)
        return []
    if outcome.result is None:
        log.warning("%s: %s returned empty result", server_name, method)
        return []
    try:
        return extract(outcome.result)
    except ProtocolError as exc:
        log.warning("%s: failed to parse %s result: %s", server_name, method, exc)
        return []


def _tools(data: Any) -> list[McpTool]:
    return ToolsListResult.from_dict(data).tools


def _resources(data: Any) -> list[McpResource]:
    return ResourcesListResult.from_dict(data).resources


def _prompts(data: Any) -> list[McpPrompt]:
    return PromptsListResult.from_dict(data).prompts


async def fetch_capabilities(
    server_name: str,
    dispatcher: Dispatcher,
    id_alloc: IdAllocator,
    server_caps: ServerCapabilities,
) -> McpCapabilities:
    """Concurrently list the capability families the server declared.

    A family that fails to load, or was not declared, comes back empty.
    """
    tools_id = id_alloc.next_id()
    resources_id = id_alloc.next_id()
    prompts_id = id_alloc.next_id()

    tools_out, resources_out, prompts_out = await asyncio.gather(
        _request_if(
            server_caps.tools is not None, dispatcher, tools_id, tools_list_request(tools_id)
        ),
        _request_if(
            server_caps.resources is not None,
            dispatcher,
            resources_id,
            resources_list_request(resources_id),
        ),
        _request_if(
            server_caps.prompts is not None,
            dispatcher,
            prompts_id,
            prompts_list_request(prompts_id),
        ),
    )

    return McpCapabilities(
        tools=_parse_list(server_name, "tools/list", tools_out, _tools),
        resources=_parse_list(server_name, "resources/list", resources_out, _resources),
        prompts=_parse_list(server_name, "prompts/list", prompts_out, _prompts),
        introspected_at=time.monotonic(),
    )