"""Izanami client API (``/api/v2``) - feature checks and live events.

Usage:
    config = ClientConfig.load(base_url="http://localhost:9000",
                               client_id="...", client_secret="...")
    async with FeatureCheckClient(config) as client:
        result = await client.check_feature("my-feature", user="alice")

        await client.watch_events(WatchRequest(projects=["my-project"]), print,
                                  cancel_event=stop)
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, NoReturn
from urllib.parse import quote

import httpx

from .auth import ClientKeyAuth
from .config import ClientConfig
from .errors import APIError
from .events.watcher import BackoffConfig, EventCallback, EventWatcher
from .observer import RedactingObserver
from .types import CheckFeaturesRequest, WatchRequest, normalize_context_path

logger = logging.getLogger(__name__)

FEATURES_PATH = "/api/v2/features"


class FeatureCheckClient:
    """Client for feature activation checks and event streaming.

    Authenticates with a client key pair. Each ``watch_events`` call gets
    its own watcher, so concurrent watches share nothing but the
    connection pool.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        auth: httpx.Auth | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        config.validate_client_auth()
        self.config = config
        self._auth = auth or ClientKeyAuth(config.client_id, config.client_secret)
        self._transport = transport
        self._http_client: httpx.AsyncClient | None = None
        self._observer = RedactingObserver() if config.verbose else None

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Ensure client is initialized."""
        if self._http_client is None:
            kwargs: dict[str, Any] = {
                "base_url": self.config.effective_url,
                "timeout": httpx.Timeout(self.config.timeout),
                "auth": self._auth,
            }
            if self._transport is not None:
                kwargs["transport"] = self._transport
            if self._observer is not None:
                kwargs["event_hooks"] = self._observer.event_hooks()
            self._http_client = httpx.AsyncClient(**kwargs)
        return self._http_client

    async def _fetch(
        self,
        path: str,
        params: dict[str, str] | None = None,
        payload: str = "",
    ) -> httpx.Response:
        """GET, or POST with a JSON body when ``payload`` is given."""
        client = await self._ensure_client()
        if payload:
            response = await client.post(
                path,
                params=params,
                content=payload.encode("utf-8"),
                headers={"Content-Type": "application/json"},
            )
        else:
            response = await client.get(path, params=params)

        if response.status_code != httpx.codes.OK:
            raise _api_error(response)
        return response

    async def check_feature(
        self,
        feature_id: str,
        *,
        user: str = "",
        context: str = "",
        payload: str = "",
    ) -> dict[str, Any]:
        """Check whether a single feature is active.

        Args:
            feature_id: Feature UUID
            user: User the activation is evaluated for
            context: Context path, e.g. ``PROD`` or ``/prod/eu``
            payload: JSON document for script features (switches to POST)
        """
        params: dict[str, str] = {}
        if user:
            params["user"] = user
        if context:
            params["context"] = normalize_context_path(context)

        path = f"{FEATURES_PATH}/{quote(feature_id, safe='')}"
        response = await self._fetch(path, params, payload)
        return response.json()

    async def check_features(self, request: CheckFeaturesRequest) -> dict[str, Any]:
        """Check activation for every feature matching ``request``."""
        response = await self._fetch(FEATURES_PATH, request.to_query_params(), request.payload)
        return response.json()

    async def watch_events(
        self,
        request: WatchRequest,
        callback: EventCallback,
        *,
        cancel_event: asyncio.Event | None = None,
        backoff: BackoffConfig | None = None,
    ) -> NoReturn:
        """Watch live events until cancelled or the callback raises.

        Reconnects on every transport failure, resuming after the last
        delivered event id.

        Raises:
            WatchCancelledError: When ``cancel_event`` is set
            Exception: Whatever ``callback`` raised, unchanged
        """
        await self._ensure_client()
        watcher = self.create_watcher(request, callback, cancel_event=cancel_event, backoff=backoff)
        await watcher.run()

    def create_watcher(
        self,
        request: WatchRequest,
        callback: EventCallback,
        *,
        cancel_event: asyncio.Event | None = None,
        backoff: BackoffConfig | None = None,
    ) -> EventWatcher:
        """Build a watcher without starting it (to inspect its cursor later)."""
        if self._http_client is None:
            raise RuntimeError("client not opened; use 'async with' or call open() first")
        return EventWatcher(
            self._http_client,
            request,
            callback,
            timeout=httpx.Timeout(self.config.timeout, read=None),  # No read timeout for SSE
            backoff=backoff,
            cancel_event=cancel_event,
        )

    async def open(self) -> FeatureCheckClient:
        await self._ensure_client()
        return self

    async def close(self) -> None:
        """Close the client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> FeatureCheckClient:
        return await self.open()

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


def _api_error(response: httpx.Response) -> APIError:
    """Build an APIError, preferring the JSON ``message`` field."""
    raw_body = response.text
    message = raw_body
    try:
        body = json.loads(raw_body)
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        message = str(body["message"])
    return APIError(response.status_code, message, raw_body)
