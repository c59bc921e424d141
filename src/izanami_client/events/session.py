"""One connection lifetime of the event stream.

A session sends a single streaming request, pushes the body through the
line framer and event assembler, and reports how the connection ended.
It never retries; reconnecting is the watcher's job.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

import httpx

from ..errors import (
    MSG_FAILED_TO_CONNECT_TO_EVENT_STREAM,
    ServerRejectedError,
    StreamReadError,
    TransportError,
    WatchCancelledError,
)
from ..types import StreamEvent, WatchRequest
from .assembler import EventAssembler
from .framing import aiter_lines

logger = logging.getLogger(__name__)

EVENTS_PATH = "/api/v2/events"
LAST_EVENT_ID_HEADER = "Last-Event-Id"

Deliver = Callable[[StreamEvent], Awaitable[None]]


class SessionOutcome(str, Enum):
    """How a connection ended."""

    ENDED_CLEAN = "ended_clean"  # Server closed the stream without error
    FAILED = "failed"  # Connect, status or read failure
    CALLBACK_STOPPED = "callback_stopped"  # Caller's callback raised


@dataclass
class SessionResult:
    """Outcome of one session plus the server's retry hint, if it sent one."""

    outcome: SessionOutcome
    retry_hint: float | None = None
    error: BaseException | None = None


class ConnectionSession:
    """Owns exactly one streaming HTTP request."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        request: WatchRequest,
        cursor: str = "",
        *,
        auth: httpx.Auth | None = None,
        timeout: httpx.Timeout | None = None,
        cancel_event: asyncio.Event | None = None,
    ):
        self._http = http_client
        self._request = request
        self._cursor = cursor
        self._auth = auth
        self._timeout = timeout
        self._cancel_event = cancel_event

    def build_headers(self) -> dict[str, str]:
        headers = {
            "Accept": "text/event-stream",
            "Cache-Control": "no-cache",
        }
        if self._cursor:
            headers[LAST_EVENT_ID_HEADER] = self._cursor
        if self._request.payload:
            headers["Content-Type"] = "application/json"
        return headers

    async def run(
        self,
        deliver: Deliver,
        on_connected: Callable[[], None] | None = None,
    ) -> SessionResult:
        """Stream until the connection ends.

        Args:
            deliver: Awaited once per assembled event, in order
            on_connected: Called once the server accepted the stream

        Raises:
            WatchCancelledError: If the cancellation event is set mid-stream
        """
        kwargs: dict = {
            "params": self._request.to_query_params(),
            "headers": self.build_headers(),
        }
        if self._request.payload:
            kwargs["content"] = self._request.payload.encode("utf-8")
        if self._auth is not None:
            kwargs["auth"] = self._auth
        if self._timeout is not None:
            kwargs["timeout"] = self._timeout

        try:
            async with self._http.stream(self._request.method, EVENTS_PATH, **kwargs) as response:
                return await self._consume(response, deliver, on_connected)
        except httpx.RequestError as e:
            return SessionResult(
                SessionOutcome.FAILED,
                error=TransportError(f"{MSG_FAILED_TO_CONNECT_TO_EVENT_STREAM}: {e}"),
            )

    async def _consume(
        self,
        response: httpx.Response,
        deliver: Deliver,
        on_connected: Callable[[], None] | None,
    ) -> SessionResult:
        if response.status_code != httpx.codes.OK:
            # Don't try to frame an error body
            return SessionResult(
                SessionOutcome.FAILED,
                error=ServerRejectedError(response.status_code),
            )

        if on_connected is not None:
            on_connected()

        assembler = EventAssembler()
        try:
            async with contextlib.aclosing(aiter_lines(response.aiter_bytes())) as lines:
                async for line in lines:
                    self._check_cancelled()
                    event = assembler.feed(line)
                    if event is None:
                        continue
                    try:
                        await deliver(event)
                    except Exception as e:
                        return SessionResult(SessionOutcome.CALLBACK_STOPPED, assembler.retry_hint, e)
        except StreamReadError as e:
            return SessionResult(SessionOutcome.FAILED, assembler.retry_hint, e)

        return SessionResult(SessionOutcome.ENDED_CLEAN, assembler.retry_hint)

    def _check_cancelled(self) -> None:
        if self._cancel_event is not None and self._cancel_event.is_set():
            raise WatchCancelledError()
