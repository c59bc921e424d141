"""Event assembly from framed lines.

Wire format (one field per line, blank line ends an event):

    : comment, ignored
    id: 42
    event: FEATURE_UPDATED
    data: {"id": "...",
    data:  "active": true}
    retry: 5000

Only ``id``, ``event``, ``data`` and ``retry`` are understood; other
field names and lines without a ``:`` separator are skipped.
"""

from __future__ import annotations

import logging

from ..types import StreamEvent

logger = logging.getLogger(__name__)

FIELD_ID = "id"
FIELD_EVENT = "event"
FIELD_DATA = "data"
FIELD_RETRY = "retry"


def parse_field(line: str) -> tuple[str, str] | None:
    """Split a ``name: value`` line.

    Returns None for comments and lines without a separator. At most one
    space after the colon belongs to the separator.
    """
    if line.startswith(":"):
        return None
    name, sep, value = line.partition(":")
    if not sep:
        return None
    if value.startswith(" "):
        value = value[1:]
    return name, value


def parse_retry(value: str) -> float | None:
    """Convert a ``retry`` value (integer milliseconds) to seconds."""
    try:
        millis = int(value.strip())
    except ValueError:
        return None
    if millis <= 0:
        return None
    return millis / 1000.0


class EventAssembler:
    """Accumulates fields into one in-progress event.

    One assembler lives for one connection: a partially assembled event
    is dropped along with it when the connection ends.
    """

    def __init__(self) -> None:
        self._id = ""
        self._type = ""
        self._data = ""
        self.retry_hint: float | None = None

    def _reset(self) -> None:
        self._id = ""
        self._type = ""
        self._data = ""

    def feed(self, line: str) -> StreamEvent | None:
        """Apply one line; return an event when a boundary completes one."""
        if line == "":
            event = None
            if self._data:
                event = StreamEvent(id=self._id, type=self._type, data=self._data)
            self._reset()
            return event

        field = parse_field(line)
        if field is None:
            if not line.startswith(":"):
                logger.debug(f"Skipping malformed event stream line: {line[:50]!r}")
            return None

        name, value = field
        if name == FIELD_ID:
            self._id = value
        elif name == FIELD_EVENT:
            self._type = value
        elif name == FIELD_DATA:
            if self._data:
                self._data += "\n"
            self._data += value
        elif name == FIELD_RETRY:
            delay = parse_retry(value)
            if delay is None:
                logger.debug(f"Ignoring invalid retry value: {value!r}")
            else:
                self.retry_hint = delay
        return None
