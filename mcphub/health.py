"""Periodic MCP ping health checks that update a server's snapshot."""

from __future__ import annotations

import asyncio
import logging
import time

from mcphub.dispatcher import Dispatcher, DispatchError, IdAllocator
from mcphub.protocol import PingRequest
from mcphub.types import (
    HealthKind,
    HealthStatus,
    ServerSnapshot,
    SnapshotWatch,
    compute_health_status,
)

log = logging.getLogger(__name__)

DEFAULT_HEALTH_CHECK_INTERVAL_SECS = 30
PING_TIMEOUT_SECS = 5


async def ping_server(dispatcher: Dispatcher, request_id: int) -> int:
    """Send one ``ping`` and return the round-trip latency in milliseconds.

    Raises :class:`DispatchError` on timeout, write failure or an error response.
    """
    start = time.monotonic()
    response = await dispatcher.send_request(request_id, PingRequest(request_id), PING_TIMEOUT_SECS)
    if response.error is not None:
        raise DispatchError(
            f"Server returned error response to ping id={request_id}: {response.error!r}"
        )
    return int((time.monotonic() - start) * 1000)


async def _cancelled_within(cancel: asyncio.Event, delay: float) -> bool:
    if cancel.is_set():
        return True
    if delay <= 0:
        return False
    try:
        await asyncio.wait_for(cancel.wait(), delay)
    except TimeoutError:
        return False
    return True


def _set_health(status: HealthStatus):
    def apply(snapshot: ServerSnapshot) -> None:
        snapshot.health = status

    return apply


async def run_health_check_loop(
    server_name: str,
    interval_secs: float,
    dispatcher: Dispatcher,
    id_alloc: IdAllocator,
    snapshot: SnapshotWatch,
    cancel: asyncio.Event,
) -> None:
    """Ping the server every ``interval_secs`` until ``cancel`` is set.

    The first ping is sent immediately; ticks missed while a ping is in flight
    are skipped. Success marks the server healthy; consecutive misses move it
    through degraded to failed.
    """
    if interval_secs <= 0:
        raise ValueError("interval_secs must be positive")

    loop = asyncio.get_running_loop()
    next_tick = loop.time()
    consecutive_misses = 0

    while True:
        if await _cancelled_within(cancel, next_tick - loop.time()):
            log.debug("Health check loop cancelled for %s", server_name)
            return
        now = loop.time()
        steps = max(1, int((now - next_tick) // interval_secs) + 1)
        next_tick += steps * interval_secs

        request_id = id_alloc.next_id()
        try:
            latency_ms = await ping_server(dispatcher, request_id)
        except DispatchError as err:
            consecutive_misses += 1
            log.warning(
                "Ping failed for %s (%d consecutive misses): %s",
                server_name,
                consecutive_misses,
                err,
            )
            current = snapshot.get().health
            new_health = compute_health_status(consecutive_misses, current)
            if current.kind is not HealthKind.DEGRADED and new_health.kind is HealthKind.DEGRADED:
                log.info(
                    "Health of %s transitioned to Degraded after %d misses",
                    server_name,
                    consecutive_misses,
                )
            elif current.kind is not HealthKind.FAILED and new_health.kind is HealthKind.FAILED:
                log.info(
                    "Health of %s transitioned to Failed after %d misses",
                    server_name,
                    consecutive_misses,
                )
            snapshot.modify(_set_health(new_health))
        else:
            if consecutive_misses > 0:
                log.info(
                    "Health of %s recovered after %d missed pings (latency %d ms)",
                    server_name,
                    consecutive_misses,
                    latency_ms,
                )
            consecutive_misses = 0
            snapshot.modify(_set_health(HealthStatus.healthy(latency_ms, time.monotonic())))