"""Exception types raised by the Izanami client.

Only two of these ever escape a running event watch:
- The caller's own callback exception (re-raised unchanged)
- WatchCancelledError, when the caller's cancellation event is set

Everything transport-related is recovered inside the watcher.
"""

from __future__ import annotations

MSG_FAILED_TO_CONNECT_TO_EVENT_STREAM = "failed to connect to event stream"
MSG_EVENT_STREAM_RETURNED_STATUS = "event stream returned status {status}"
MSG_ERROR_READING_EVENT_STREAM = "error reading event stream"
MSG_WATCH_CANCELLED = "event watch cancelled"


class IzanamiError(Exception):
    """Base class for all client errors."""


class ConfigError(IzanamiError):
    """Client configuration is missing or invalid."""


class APIError(IzanamiError):
    """Non-success response from a regular (non-streaming) endpoint."""

    def __init__(self, status_code: int, message: str, raw_body: str = ""):
        super().__init__(f"API error ({status_code}): {message}")
        self.status_code = status_code
        self.message = message
        self.raw_body = raw_body


class TransportError(IzanamiError):
    """Connection could not be established or was lost."""


class StreamReadError(TransportError):
    """Reading the event stream body failed with an I/O error."""

    def __init__(self, message: str = MSG_ERROR_READING_EVENT_STREAM):
        super().__init__(message)


class ServerRejectedError(TransportError):
    """The event stream endpoint answered with a non-success status."""

    def __init__(self, status_code: int):
        super().__init__(MSG_EVENT_STREAM_RETURNED_STATUS.format(status=status_code))
        self.status_code = status_code


class WatchCancelledError(IzanamiError):
    """The watch loop was stopped through its cancellation event."""

    def __init__(self, message: str = MSG_WATCH_CANCELLED):
        super().__init__(message)
