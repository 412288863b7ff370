"""View data for the web dashboard: status cards, tools browser, logs and health."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Iterable, Protocol

from mcphub.types import (
    HealthKind,
    HealthStatus,
    ProcessKind,
    ServerSnapshot,
    SnapshotWatch,
    format_uptime,
)


class _HasSnapshot(Protocol):
    name: str
    snapshot: SnapshotWatch


class ServerNotFound(LookupError):
    """No managed server has the requested name."""


def _tool_count(snapshot: ServerSnapshot) -> str:
    caps = snapshot.capabilities
    if caps.introspected_at is None:
        return "-"
    return f"{len(caps.tools)}T/{len(caps.resources)}R/{len(caps.prompts)}P"


@dataclass(frozen=True)
class ServerCardData:
    """One server card on the status page."""

    name: str
    state_class: str
    state: str
    health_class: str
    health: str
    pid: str
    uptime: str
    restart_count: int
    tool_count: str

    @classmethod
    def from_snapshot(cls, name: str, snapshot: ServerSnapshot) -> ServerCardData:
        uptime = (
            format_uptime(max(0.0, time.monotonic() - snapshot.uptime_since))
            if snapshot.uptime_since is not None
            else "-"
        )
        return cls(
            name=name,
            state_class=snapshot.process_state.kind.value,
            state=str(snapshot.process_state),
            health_class=snapshot.health.kind.value,
            health=str(snapshot.health),
            pid=str(snapshot.pid) if snapshot.pid is not None else "-",
            uptime=uptime,
            restart_count=snapshot.restart_count,
            tool_count=_tool_count(snapshot),
        )


@dataclass(frozen=True)
class ServerHealthEntry:
    """Per-server entry of the health endpoint's response."""

    name: str
    process_state: str
    health: str
    pid: int | None
    restart_count: int


@dataclass(frozen=True)
class HealthResponse:
    """Body of the health endpoint: overall status and one entry per server."""

    status: str
    servers: list[ServerHealthEntry] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "servers": [
                {
                    "name": entry.name,
                    "process_state": entry.process_state,
                    "health": entry.health,
                    "pid": entry.pid,
                    "restart_count": entry.restart_count,
                }
                for entry in self.servers
            ],
        }


@dataclass(frozen=True)
class ServerToolsData:
    """Summary row of the tools browser for one server."""

    name: str
    tool_count: int
    resource_count: int
    prompt_count: int
    has_been_introspected: bool


@dataclass(frozen=True)
class ToolDetail:
    name: str
    description: str


@dataclass(frozen=True)
class ResourceDetail:
    name: str
    uri: str
    description: str


@dataclass(frozen=True)
class PromptDetail:
    name: str
    description: str


@dataclass(frozen=True)
class ServerFilterPill:
    """A server filter on the logs page; ``active`` marks the current filter."""

    name: str
    active: bool


@dataclass(frozen=True)
class ToolDetailView:
    """Tools, resources and prompts of a single server."""

    server_name: str
    tools: list[ToolDetail]
    resources: list[ResourceDetail]
    prompts: list[PromptDetail]


@dataclass(frozen=True)
class LogsView:
    """Data for the logs page, including the URL of the live log stream."""

    servers: list[ServerFilterPill]
    active_filter: str | None
    sse_url: str


def status_cards(handles: Iterable[_HasSnapshot]) -> list[ServerCardData]:
    """One status card per handle, in handle order."""
    return [ServerCardData.from_snapshot(h.name, h.snapshot.get()) for h in handles]


def healthy_count(cards: Iterable[ServerCardData]) -> int:
    """Number of cards whose health is healthy."""
    return sum(1 for card in cards if card.health_class == HealthKind.HEALTHY.value)


def tools_overview(handles: Iterable[_HasSnapshot]) -> list[ServerToolsData]:
    """Capability counts for every server, in handle order."""
    rows = []
    for handle in handles:
        caps = handle.snapshot.get().capabilities
        rows.append(
            ServerToolsData(
                name=handle.name,
                tool_count=len(caps.tools),
                resource_count=len(caps.resources),
                prompt_count=len(caps.prompts),
                has_been_introspected=caps.introspected_at is not None,
            )
        )
    return rows


def tool_detail(handles: Iterable[_HasSnapshot], server_name: str) -> ToolDetailView:
    """Capability details of one server; raises :class:`ServerNotFound` if absent."""
    handle = next((h for h in handles if h.name == server_name), None)
    if handle is None:
        raise ServerNotFound(f"Server '{server_name}' not found")
    caps = handle.snapshot.get().capabilities
    return ToolDetailView(
        server_name=server_name,
        tools=[ToolDetail(t.name, t.description or "") for t in caps.tools],
        resources=[ResourceDetail(r.name, r.uri, r.description or "") for r in caps.resources],
        prompts=[PromptDetail(p.name, p.description or "") for p in caps.prompts],
    )


def logs_view(handles: Iterable[_HasSnapshot], server: str | None = None) -> LogsView:
    """Filter pills for every server and the stream URL for the chosen filter."""
    pills = [ServerFilterPill(h.name, server is not None and server == h.name) for h in handles]
    sse_url = f"/logs/stream?server={server}" if server is not None else "/logs/stream"
    return LogsView(servers=pills, active_filter=server, sse_url=sse_url)


def _overall_status(entries: list[ServerHealthEntry]) -> str:
    if not entries:
        return "healthy"
    if any(e.health.startswith("failed") for e in entries):
        return "failed"
    if all(e.health == str(HealthStatus.healthy(0, 0.0)) for e in entries):
        return "healthy"
    return "degraded"


def health_response(handles: Iterable[_HasSnapshot]) -> HealthResponse:
    """Overall health (healthy, degraded or failed) with per-server entries."""
    entries = []
    for handle in handles:
        snap = handle.snapshot.get()
        entries.append(
            ServerHealthEntry(
                name=handle.name,
                process_state=str(snap.process_state),
                health=str(snap.health),
                pid=snap.pid,
                restart_count=snap.restart_count,
            )
        )
    return HealthResponse(status=_overall_status(entries), servers=entries)


__all__ = [
    "HealthResponse",
    "LogsView",
    "PromptDetail",
    "ProcessKind",
    "ResourceDetail",
    "ServerCardData",
    "ServerFilterPill",
    "ServerHealthEntry",
    "ServerNotFound",
    "ServerToolsData",
    "ToolDetail",
    "ToolDetailView",
    "health_response",
    "healthy_count",
    "logs_view",
    "status_cards",
    "tool_detail",
    "tools_overview",
]