import asyncio
from datetime import timedelta

import pytest

from mcphub.protocol import McpTool
from mcphub.types import (
    BackoffConfig,
    HealthKind,
    HealthStatus,
    McpCapabilities,
    ProcessKind,
    ProcessState,
    ServerSnapshot,
    SnapshotWatch,
    compute_health_status,
    format_uptime,
)


@pytest.mark.parametrize("kind", list(ProcessKind))
def test_process_state_display_for_plain_kinds(kind):
    if kind is ProcessKind.BACKOFF:
        assert str(ProcessState.backoff(3, 0.0)) == "backoff (3)"
    else:
        assert str(ProcessState(kind)) == kind.value


def test_process_state_backoff_fields():
    state = ProcessState.backoff(4, 12.5)
    assert state.kind is ProcessKind.BACKOFF
    assert state.attempt == 4
    assert state.until == 12.5


def test_health_status_display():
    assert str(HealthStatus()) == "unknown"
    assert str(HealthStatus.healthy(10, 1.0)) == "healthy"
    assert str(HealthStatus.degraded(3)) == "degraded (3 missed)"
    assert str(HealthStatus.failed(7)) == "failed (7 missed)"


def test_backoff_defaults():
    cfg = BackoffConfig()
    assert cfg.base_delay_secs == 1.0
    assert cfg.max_delay_secs == 60.0
    assert cfg.jitter_factor == 0.3
    assert cfg.max_attempts == 10
    assert cfg.stable_window_secs == 60


def test_snapshot_defaults():
    snap = ServerSnapshot()
    assert snap.process_state.kind is ProcessKind.STOPPED
    assert snap.health.kind is HealthKind.UNKNOWN
    assert snap.pid is None
    assert snap.restart_count == 0
    assert snap.transport == "stdio"
    assert snap.capabilities.introspected_at is None
    assert snap.capabilities.tools == []


def test_snapshot_capabilities_not_shared():
    first, second = ServerSnapshot(), ServerSnapshot()
    first.capabilities.tools.append(McpTool(name="t"))
    assert second.capabilities.tools == []


@pytest.mark.parametrize(
    "current",
    [HealthStatus(), HealthStatus.healthy(5, 2.0), HealthStatus.degraded(3, 1.0)],
)
def test_one_miss_keeps_current(current):
    assert compute_health_status(1, current) == current
    assert compute_health_status(0, current) == current


@pytest.mark.parametrize("misses", [2, 6])
def test_misses_from_healthy_degrade_with_last_success(misses):
    current = HealthStatus.healthy(5, 42.0)
    result = compute_health_status(misses, current)
    assert result == HealthStatus.degraded(misses, 42.0)


def test_misses_from_unknown_degrade_without_last_success():
    result = compute_health_status(2, HealthStatus())
    assert result.kind is HealthKind.DEGRADED
    assert result.last_success is None


def test_degraded_keeps_last_success_and_updates_count():
    result = compute_health_status(5, HealthStatus.degraded(2, 9.0))
    assert result == HealthStatus.degraded(5, 9.0)


def test_failed_stays_failed_below_threshold():
    result = compute_health_status(3, HealthStatus.failed(8))
    assert result == HealthStatus.failed(3)


@pytest.mark.parametrize(
    "current", [HealthStatus(), HealthStatus.healthy(1, 1.0), HealthStatus.degraded(6)]
)
@pytest.mark.parametrize("misses", [7, 20])
def test_seven_or_more_misses_fail(current, misses):
    assert compute_health_status(misses, current) == HealthStatus.failed(misses)


def test_format_uptime_documented_example():
    assert format_uptime(90061) == "25:01:01"
    assert format_uptime(timedelta(seconds=90061.9)) == "25:01:01"


def test_format_uptime_under_a_minute():
    assert format_uptime(59.99) == "00:00:59"


def test_format_uptime_rejects_negative():
    with pytest.raises(ValueError):
        format_uptime(-1)


def test_watch_get_returns_copy():
    watch = SnapshotWatch()
    copy = watch.get()
    copy.restart_count = 9
    copy.capabilities.tools.append(McpTool(name="x"))
    fresh = watch.get()
    assert fresh.restart_count == 0
    assert fresh.capabilities.tools == []


def test_watch_modify_applies_change():
    watch = SnapshotWatch(ServerSnapshot(transport="http"))
    watch.modify(lambda s: setattr(s, "pid", 321))
    snap = watch.get()
    assert snap.pid == 321
    assert snap.transport == "http"


@pytest.mark.asyncio
async def test_wait_for_change_wakes_on_modify():
    watch = SnapshotWatch()
    waiter = asyncio.create_task(watch.wait_for_change(2.0))
    await asyncio.sleep(0)
    watch.modify(lambda s: setattr(s, "restart_count", 4))
    snap = await waiter
    assert snap.restart_count == 4


@pytest.mark.asyncio
async def test_wait_for_change_times_out():
    watch = SnapshotWatch()
    with pytest.raises(TimeoutError):
        await watch.wait_for_change(0.01)


@pytest.mark.asyncio
async def test_wait_ignores_changes_before_call():
    watch = SnapshotWatch()
    watch.modify(lambda s: setattr(s, "restart_count", 1))
    with pytest.raises(TimeoutError):
        await watch.wait_for_change(0.01)
    assert watch.get().restart_count == 1


def test_capabilities_hold_introspection_time():
    caps = McpCapabilities(tools=[McpTool(name="a")], introspected_at=3.5)
    assert caps.introspected_at == 3.5
    assert [t.name for t in caps.tools] == ["a"]