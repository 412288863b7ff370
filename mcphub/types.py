"""Process, health and snapshot types shared by the supervisor and its views."""

from __future__ import annotations

import asyncio
import copy
import enum
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Callable

from mcphub.protocol import McpPrompt, McpResource, McpTool


class ProcessKind(enum.Enum):
    """Lifecycle stage of a managed server process."""

    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    BACKOFF = "backoff"
    FATAL = "fatal"
    STOPPING = "stopping"


@dataclass(frozen=True)
class ProcessState:
    """Lifecycle state; backoff carries the attempt number and a monotonic deadline."""

    kind: ProcessKind
    attempt: int = 0
    until: float | None = None

    @classmethod
    def backoff(cls, attempt: int, until: float) -> ProcessState:
        return cls(ProcessKind.BACKOFF, attempt=attempt, until=until)

    def __str__(self) -> str:
        if self.kind is ProcessKind.BACKOFF:
            return f"backoff ({self.attempt})"
        return self.kind.value


class HealthKind(enum.Enum):
    """Health classification derived from ping results."""

    UNKNOWN = "unknown"
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    FAILED = "failed"


@dataclass(frozen=True)
class HealthStatus:
    """Health of a server; times are ``time.monotonic()`` readings."""

    kind: HealthKind = HealthKind.UNKNOWN
    latency_ms: int | None = None
    last_checked: float | None = None
    consecutive_misses: int = 0
    last_success: float | None = None

    @classmethod
    def healthy(cls, latency_ms: int, last_checked: float) -> HealthStatus:
        return cls(HealthKind.HEALTHY, latency_ms=latency_ms, last_checked=last_checked)

    @classmethod
    def degraded(cls, consecutive_misses: int, last_success: float | None = None) -> HealthStatus:
        return cls(
            HealthKind.DEGRADED,
            consecutive_misses=consecutive_misses,
            last_success=last_success,
        )

    @classmethod
    def failed(cls, consecutive_misses: int) -> HealthStatus:
        return cls(HealthKind.FAILED, consecutive_misses=consecutive_misses)

    def __str__(self) -> str:
        if self.kind in (HealthKind.DEGRADED, HealthKind.FAILED):
            return f"{self.kind.value} ({self.consecutive_misses} missed)"
        return self.kind.value


@dataclass(frozen=True)
class BackoffConfig:
    """Exponential backoff settings for restarting crashed servers."""

    base_delay_secs: float = 1.0
    max_delay_secs: float = 60.0
    jitter_factor: float = 0.3
    max_attempts: int = 10
    stable_window_secs: int = 60


@dataclass
class McpCapabilities:
    """Tools, resources and prompts discovered by introspection."""

    tools: list[McpTool] = field(default_factory=list)
    resources: list[McpResource] = field(default_factory=list)
    prompts: list[McpPrompt] = field(default_factory=list)
    introspected_at: float | None = None


@dataclass
class ServerSnapshot:
    """Point-in-time view of a managed server's state, health and metadata."""

    process_state: ProcessState = ProcessState(ProcessKind.STOPPED)
    health: HealthStatus = HealthStatus()
    pid: int | None = None
    uptime_since: float | None = None
    restart_count: int = 0
    transport: str = "stdio"
    capabilities: McpCapabilities = field(default_factory=McpCapabilities)


class SnapshotWatch:
    """Holds the latest ServerSnapshot and wakes tasks waiting for it to change."""

    def __init__(self, initial: ServerSnapshot | None = None) -> None:
        self._value = initial if initial is not None else ServerSnapshot()
        self._changed = asyncio.Event()

    def get(self) -> ServerSnapshot:
        """Return an independent copy of the current snapshot."""
        return copy.deepcopy(self._value)

    def modify(self, func: Callable[[ServerSnapshot], None]) -> None:
        """Mutate the snapshot in place with ``func`` and notify waiters."""
        func(self._value)
        event, self._changed = self._changed, asyncio.Event()
        event.set()

    async def wait_for_change(self, timeout: float | None = None) -> ServerSnapshot:
        """Wait for the next modification and return the new snapshot.

        Raises ``TimeoutError`` if nothing changes within ``timeout`` seconds.
        """
        event = self._changed
        await asyncio.wait_for(event.wait(), timeout)
        return self.get()


def compute_health_status(consecutive_misses: int, current: HealthStatus) -> HealthStatus:
    """Next health status after a failed ping.

    One miss keeps the current status; 2–6 misses mean degraded (or stay failed);
    7 or more mean failed.
    """
    if consecutive_misses >= 7:
        return HealthStatus.failed(consecutive_misses)
    if consecutive_misses < 2:
        return current
    match current.kind:
        case HealthKind.FAILED:
            return HealthStatus.failed(consecutive_misses)
        case HealthKind.DEGRADED:
            return HealthStatus.degraded(consecutive_misses, current.last_success)
        case HealthKind.HEALTHY:
            return HealthStatus.degraded(consecutive_misses, current.last_checked)
        case _:
            return HealthStatus.degraded(consecutive_misses, None)


def format_uptime(elapsed: float | timedelta) -> str:
    """Format elapsed seconds as ``HH:MM:SS``; hours may exceed 24."""
    seconds = elapsed.total_seconds() if isinstance(elapsed, timedelta) else elapsed
    if seconds < 0:
        raise ValueError("elapsed time cannot be negative")
    hours, rest = divmod(int(seconds), 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02}:{minutes:02}:{secs:02}"