"""Izanami client - feature checks and a resilient live event stream.

The interesting part is ``izanami_client.events``: a server-push channel
that survives disconnects, resumes from the last delivered event and
backs off adaptively. ``FeatureCheckClient`` is the entry point.
"""

from .auth import ClientKeyAuth
from .client import FeatureCheckClient
from .config import ClientConfig
from .errors import (
    APIError,
    ConfigError,
    IzanamiError,
    ServerRejectedError,
    StreamReadError,
    TransportError,
    WatchCancelledError,
)
from .events import BackoffConfig, EventWatcher, WatchState
from .observer import RedactingObserver, redact_headers
from .types import CheckFeaturesRequest, StreamEvent, WatchRequest

__all__ = [
    # Client
    "FeatureCheckClient",
    "ClientConfig",
    "ClientKeyAuth",
    # Events
    "EventWatcher",
    "WatchState",
    "BackoffConfig",
    # Types
    "StreamEvent",
    "WatchRequest",
    "CheckFeaturesRequest",
    # Diagnostics
    "RedactingObserver",
    "redact_headers",
    # Errors
    "IzanamiError",
    "ConfigError",
    "APIError",
    "TransportError",
    "StreamReadError",
    "ServerRejectedError",
    "WatchCancelledError",
]
