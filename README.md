# mcphub

An asyncio library for talking to MCP (Model Context Protocol) servers that
speak newline-delimited JSON-RPC 2.0 over stdio. It matches responses to
requests by id, pings servers to track their health, discovers the tools,
resources and prompts they offer, and turns server snapshots into view data
for a dashboard.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

Python 3.11 or newer is required. The package has no third-party runtime
dependencies.

## Modules

- `mcphub.protocol` — JSON-RPC 2.0 messages (`JsonRpcRequest`,
  `JsonRpcNotification`, `PingRequest`, `JsonRpcResponse`), the `initialize`
  types (`InitializeParams`, `InitializeResult`, `ServerCapabilities`,
  `ServerInfo`, `ClientInfo`), the capability records (`McpTool`,
  `McpResource`, `McpPrompt`, `PromptArgument`) and their list results, and
  the builders `initialize_request`, `tools_list_request`,
  `resources_list_request` and `prompts_list_request`. Malformed input raises
  `ProtocolError`.
- `mcphub.types` — `ProcessState` / `ProcessKind`, `HealthStatus` /
  `HealthKind`, `BackoffConfig`, `McpCapabilities`, `ServerSnapshot`, and
  `SnapshotWatch`, which holds the latest snapshot, hands out copies with
  `get()`, applies changes with `modify(func)` and lets tasks await the next
  change with `wait_for_change(timeout)`. Also `compute_health_status` and
  `format_uptime` (`HH:MM:SS`, hours may exceed 24).
- `mcphub.dispatcher` — `Dispatcher` wraps a stream writer (such as a
  subprocess's stdin); `read_responses(reader)` reads its stdout and resolves
  pending requests by id, discarding lines that are not responses, and fails
  every remaining request with `DispatchError` when the stream closes.
  `send_request` raises `RequestTimeout` when no response arrives in time.
  `IdAllocator` hands out request ids starting at 1.
- `mcphub.health` — `ping_server` returns the round-trip latency in
  milliseconds; `run_health_check_loop` pings at a fixed interval (the first
  ping at once) until its cancel event is set, marking the server healthy on
  success, degraded after 2–6 consecutive misses and failed after 7 or more.
- `mcphub.introspect` — `run_introspection` performs the `initialize`
  handshake, sends `notifications/initialized`, then fetches the declared
  tools, resources and prompts concurrently and stores them in the snapshot.
  A failed handshake raises `IntrospectionError`; a failed list request only
  leaves that family empty.
- `mcphub.dashboard` — view data built from objects with `name` and
  `snapshot` (a `SnapshotWatch`) attributes: `status_cards`, `healthy_count`,
  `tools_overview`, `tool_detail` (raises `ServerNotFound`), `logs_view`, and
  `health_response`, whose overall status is `healthy` when there are no
  servers or all are healthy, `failed` when any has failed, and `degraded`
  otherwise.

## Example

```python
import asyncio

from mcphub.dispatcher import Dispatcher, IdAllocator
from mcphub.health import ping_server
from mcphub.introspect import run_introspection
from mcphub.types import SnapshotWatch


async def main() -> None:
    proc = await asyncio.create_subprocess_exec(
        "my-mcp-server",
        stdin=asyncio.subprocess.PIPE,
        stdout=asyncio.subprocess.PIPE,
    )
    dispatcher = Dispatcher(proc.stdin)
    reader = asyncio.create_task(dispatcher.read_responses(proc.stdout))
    ids = IdAllocator()
    snapshot = SnapshotWatch()

    latency = await ping_server(dispatcher, ids.next_id())
    caps = await run_introspection("files", dispatcher, ids, snapshot)
    print(f"{latency} ms, {len(caps.tools)} tools")

    proc.terminate()
    await proc.wait()
    await reader


asyncio.run(main())
```

## What it does not do

`mcphub` does not start, restart or stop server processes itself: spawning,
backoff and shutdown are left to the caller, as in the example above.
`BackoffConfig` and the process states only describe such a policy. There is
no command-line program, no status-table printer and no web server; the
`dashboard` module produces data for pages and a health endpoint but does
not render or serve them.