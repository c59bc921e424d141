"""Reconnecting event watcher.

State machine:

    CONNECTING -> STREAMING -> BACKOFF -> CONNECTING -> ...
                                 |
                             CANCELLED (only terminal state)

Transport failures, rejected connections and malformed lines never end
the watch. It ends only when the caller's callback raises (re-raised
unchanged) or when the cancellation event is set (WatchCancelledError).
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from collections.abc import Awaitable, Callable, Coroutine
from dataclasses import dataclass
from enum import Enum
from typing import Any, NoReturn, TypeVar

import httpx

from ..errors import WatchCancelledError
from ..types import StreamEvent, WatchRequest
from .session import ConnectionSession, SessionOutcome, SessionResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

EventCallback = Callable[[StreamEvent], None] | Callable[[StreamEvent], Awaitable[None]]


class WatchState(str, Enum):
    """Watcher lifecycle."""

    IDLE = "idle"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    BACKOFF = "backoff"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class BackoffConfig:
    """Reconnection timing, in seconds."""

    min_delay: float = 1.0
    max_delay: float = 60.0
    clean_disconnect_delay: float = 2.0
    factor: float = 2.0


class BackoffState:
    """Adaptive delay between reconnection attempts.

    Consecutive failures wait min, min*factor, min*factor^2 ... capped at
    max. A clean disconnect always waits ``clean_disconnect_delay``. A
    successful connect clears any accumulated penalty.
    """

    def __init__(self, config: BackoffConfig | None = None):
        self.config = config or BackoffConfig()
        self.current = self.config.min_delay

    def reset(self) -> None:
        self.current = self.config.min_delay

    def on_connected(self) -> None:
        self.reset()

    def next_delay(self, outcome: SessionOutcome) -> float:
        """Return how long to wait after a session ended with ``outcome``."""
        if outcome == SessionOutcome.ENDED_CLEAN:
            self.reset()
            return max(self.config.clean_disconnect_delay, 0.0)

        delay = self.current
        self.current = min(self.current * self.config.factor, self.config.max_delay)
        return max(delay, 0.0)


class EventWatcher:
    """Watches the event stream for one caller, reconnecting forever.

    Cursor and backoff state belong to this instance only; create a new
    watcher for every watch.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        request: WatchRequest,
        callback: EventCallback,
        *,
        auth: httpx.Auth | None = None,
        timeout: httpx.Timeout | None = None,
        backoff: BackoffConfig | None = None,
        cancel_event: asyncio.Event | None = None,
    ):
        self._http = http_client
        self._request = request
        self._callback = callback
        self._auth = auth
        self._timeout = timeout
        self._cancel_event = cancel_event
        self.backoff = BackoffState(backoff)
        self.cursor = ""
        self.state = WatchState.IDLE
        self.connections = 0

    @property
    def cancelled(self) -> bool:
        return self._cancel_event is not None and self._cancel_event.is_set()

    async def run(self) -> NoReturn:
        """Watch until cancelled or the callback fails.

        Raises:
            WatchCancelledError: When the cancellation event is set
            Exception: Whatever the callback raised
        """
        try:
            while True:
                self._raise_if_cancelled()

                self.state = WatchState.CONNECTING
                self.connections += 1
                logger.info(
                    f"Connecting to event stream (attempt {self.connections}"
                    f"{', resuming after ' + self.cursor if self.cursor else ''})"
                )
                session = ConnectionSession(
                    self._http,
                    self._request,
                    self.cursor,
                    auth=self._auth,
                    timeout=self._timeout,
                    cancel_event=self._cancel_event,
                )
                result = await self._until_cancelled(session.run(self._deliver, self._on_connected))

                if result.outcome == SessionOutcome.CALLBACK_STOPPED and result.error is not None:
                    raise result.error

                delay = self._delay_after(result)
                self.state = WatchState.BACKOFF
                await self._pause(delay)
        except WatchCancelledError:
            self.state = WatchState.CANCELLED
            raise

    def _delay_after(self, result: SessionResult) -> float:
        delay = self.backoff.next_delay(result.outcome)
        if result.outcome == SessionOutcome.ENDED_CLEAN:
            logger.info(f"Event stream closed by server. Reconnecting in {delay}s...")
        else:
            logger.warning(f"Event stream connection lost: {result.error}. Reconnecting in {delay}s...")

        if result.retry_hint is not None:
            # One-shot override; the computed backoff state is left as is
            logger.info(f"Server requested retry delay of {result.retry_hint}s")
            delay = result.retry_hint
        return delay

    def _on_connected(self) -> None:
        self.state = WatchState.STREAMING
        self.backoff.on_connected()
        logger.info("Event stream connected")

    async def _deliver(self, event: StreamEvent) -> None:
        result = self._callback(event)
        if inspect.isawaitable(result):
            await result
        if event.id:
            self.cursor = event.id

    async def _pause(self, delay: float) -> None:
        """Wait out the backoff delay, returning early only to cancel."""
        if self._cancel_event is None:
            await asyncio.sleep(delay)
            return
        try:
            await asyncio.wait_for(self._cancel_event.wait(), timeout=delay)
        except TimeoutError:
            return
        raise WatchCancelledError()

    async def _until_cancelled(self, coro: Coroutine[Any, Any, T]) -> T:
        """Run ``coro`` but abandon it as soon as the cancellation event fires."""
        if self._cancel_event is None:
            return await coro

        task = asyncio.ensure_future(coro)
        waiter = asyncio.ensure_future(self._cancel_event.wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not task.done():
                task.cancel()
                # The session's context managers release the connection here
                with contextlib.suppress(asyncio.CancelledError):
                    await task

        if task.cancelled():
            raise WatchCancelledError()
        return task.result()

    def _raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise WatchCancelledError()
