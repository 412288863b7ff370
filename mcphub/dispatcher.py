"""Routes JSON-RPC responses from a server's stdout to the requests awaiting them.

One reader loop owns the server's stdout and resolves pending requests by id.
Callers write requests through the dispatcher, which serialises writes to stdin
and waits for the matching response with a timeout.
"""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
from typing import Any, Protocol

from mcphub.protocol import JsonRpcResponse, ProtocolError

log = logging.getLogger(__name__)


class DispatchError(RuntimeError):
    """A request or notification could not be delivered or answered."""


class RequestTimeout(DispatchError):
    """No response arrived within the allowed time."""


class LineWriter(Protocol):
    """The writing half of a byte stream, such as ``asyncio.StreamWriter``."""

    def write(self, data: bytes) -> None: ...

    async def drain(self) -> None: ...


class LineReader(Protocol):
    """The reading half of a byte stream, such as ``asyncio.StreamReader``."""

    async def readline(self) -> bytes: ...


class IdAllocator:
    """Hands out monotonically increasing request ids, starting at 1."""

    def __init__(self) -> None:
        self._counter = itertools.count(1)

    def next_id(self) -> int:
        return next(self._counter)


def _encode(message: Any) -> bytes:
    to_json = getattr(message, "to_json", None)
    try:
        text = to_json() if callable(to_json) else json.dumps(message, separators=(",", ":"))
    except (TypeError, ValueError) as exc:
        raise DispatchError(f"Failed to serialize message: {exc}") from exc
    return (text + "\n").encode("utf-8")


class Dispatcher:
    """Sends newline-delimited JSON-RPC messages and matches responses by id."""

    def __init__(self, writer: LineWriter) -> None:
        self._writer = writer
        self._write_lock = asyncio.Lock()
        self._pending: dict[int, asyncio.Future[JsonRpcResponse]] = {}

    def pending_count(self) -> int:
        """Number of requests still waiting for a response."""
        return len(self._pending)

    async def read_responses(self, reader: LineReader) -> None:
        """Read lines until the stream closes, resolving pending requests by id.

        Lines that are not JSON-RPC responses are discarded. When the stream
        ends, every request still waiting fails with :class:`DispatchError`.
        """
        try:
            while True:
                try:
                    line = await reader.readline()
                except (ValueError, OSError) as exc:
                    log.debug("Stopped reading server output: %s", exc)
                    break
                if not line:
                    break
                self._route(line)
        finally:
            self._fail_pending()
            log.debug("Reader exiting: stdout closed, pending requests drained")

    def _route(self, line: bytes) -> None:
        try:
            response = JsonRpcResponse.from_json(line.strip())
        except ProtocolError:
            log.debug("Non-JSON-RPC stdout line (discarded)")
            return
        future = self._pending.pop(response.id, None)
        if future is None:
            log.debug("Received response with no pending waiter: id=%s", response.id)
            return
        if not future.done():
            future.set_result(response)

    def _fail_pending(self) -> None:
        pending, self._pending = self._pending, {}
        for request_id, future in pending.items():
            if not future.done():
                future.set_exception(
                    DispatchError(f"Reader closed before response for id={request_id}")
                )

    def _discard(self, request_id: int, future: asyncio.Future[JsonRpcResponse]) -> None:
        if self._pending.get(request_id) is future:
            del self._pending[request_id]

    async def _write(self, payload: bytes) -> None:
        async with self._write_lock:
            try:
                self._writer.write(payload)
                await self._writer.drain()
            except OSError as exc:
                raise DispatchError(f"Failed to write to server stdin: {exc}") from exc

    async def send_request(self, request_id: int, request: Any, timeout: float) -> JsonRpcResponse:
        """Write ``request`` and wait up to ``timeout`` seconds for its response.

        The waiter is registered before writing so no response can be missed.
        Raises :class:`RequestTimeout` on timeout and :class:`DispatchError`
        when writing fails or the reader closes first.
        """
        payload = _encode(request)
        future: asyncio.Future[JsonRpcResponse] = asyncio.get_running_loop().create_future()

        previous = self._pending.get(request_id)
        if previous is not None and not previous.done():
            previous.set_exception(DispatchError(f"Request id={request_id} was superseded"))
        self._pending[request_id] = future

        try:
            await self._write(payload)
        except DispatchError:
            self._discard(request_id, future)
            raise

        try:
            return await asyncio.wait_for(future, timeout)
        except TimeoutError:
            self._discard(request_id, future)
            raise RequestTimeout(f"Request id={request_id} timed out after {timeout}s") from None

    async def send_notification(self, notification: Any) -> None:
        """Write a notification; no response is expected."""
        await self._write(_encode(notification))