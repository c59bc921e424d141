"""Server-push event channel: framing, assembly, sessions and reconnection."""

from .assembler import EventAssembler, parse_field, parse_retry
from .framing import LineFramer, aiter_lines
from .session import (
    EVENTS_PATH,
    LAST_EVENT_ID_HEADER,
    ConnectionSession,
    SessionOutcome,
    SessionResult,
)
from .watcher import BackoffConfig, BackoffState, EventCallback, EventWatcher, WatchState

__all__ = [
    # Framing & assembly
    "LineFramer",
    "aiter_lines",
    "EventAssembler",
    "parse_field",
    "parse_retry",
    # Connection
    "ConnectionSession",
    "SessionOutcome",
    "SessionResult",
    "EVENTS_PATH",
    "LAST_EVENT_ID_HEADER",
    # Reconnection
    "EventWatcher",
    "EventCallback",
    "WatchState",
    "BackoffConfig",
    "BackoffState",
]
