"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from dataclasses import dataclass, field

import httpx
import pytest

from izanami_client.config import ClientConfig
from izanami_client.events.watcher import BackoffConfig

TEST_URL = "http://izanami.test"

FAST_BACKOFF = BackoffConfig(
    min_delay=0.01,
    max_delay=0.04,
    clean_disconnect_delay=0.01,
)


@pytest.fixture
def config() -> ClientConfig:
    return ClientConfig(
        base_url=TEST_URL,
        client_id="test-client",
        client_secret="test-secret",
        timeout=5.0,
    )


@pytest.fixture
def fast_backoff() -> BackoffConfig:
    return FAST_BACKOFF


# =============================================================================
# Fake event stream server
# =============================================================================


@dataclass
class Script:
    """How the fake server answers one connection."""

    chunks: list[bytes] = field(default_factory=list)
    status: int = 200
    connect_error: bool = False
    error: Exception | None = None
    read_error: bool = False
    hang: bool = False
    stall: bool = False
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)


class FakeEventServer:
    """Scripted ``httpx.MockTransport`` handler for the events endpoint.

    Each connection consumes the next script; once scripts run out every
    connection gets an empty stream that stays open until cancelled.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.scripts: list[Script] = []
        self.responses: list[httpx.Response] = []

    def stream(self, *chunks: str | bytes, hang: bool = False) -> FakeEventServer:
        self.scripts.append(Script(chunks=[_b(c) for c in chunks], hang=hang))
        return self

    def gzip_stream(self, raw: bytes) -> FakeEventServer:
        """Claim a gzip body but send ``raw`` bytes as is."""
        self.scripts.append(Script(chunks=[raw], headers={"content-encoding": "gzip"}))
        return self

    def broken_stream(self, *chunks: str | bytes) -> FakeEventServer:
        self.scripts.append(Script(chunks=[_b(c) for c in chunks], read_error=True))
        return self

    def stall(self) -> FakeEventServer:
        """Accept the connection but never answer it."""
        self.scripts.append(Script(stall=True))
        return self

    def refuse(self, error: Exception | None = None) -> FakeEventServer:
        self.scripts.append(Script(connect_error=True, error=error))
        return self

    def reject(self, status: int, body: bytes = b'{"message":"nope"}') -> FakeEventServer:
        self.scripts.append(Script(status=status, body=body))
        return self

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        index = len(self.requests)
        self.requests.append(request)
        script = self.scripts[index] if index < len(self.scripts) else Script(hang=True)

        if script.stall:
            await asyncio.Event().wait()
        if script.connect_error:
            raise script.error or httpx.ConnectError("connection refused", request=request)
        if script.status != 200:
            return httpx.Response(
                script.status,
                headers={"content-type": "application/json"},
                content=script.body,
            )
        response = httpx.Response(
            200,
            headers={"content-type": "text/event-stream", **script.headers},
            content=self._body(script),
        )
        self.responses.append(response)
        return response

    async def _body(self, script: Script) -> AsyncIterator[bytes]:
        for chunk in script.chunks:
            yield chunk
            await asyncio.sleep(0)
        if script.read_error:
            raise httpx.ReadError("connection reset by peer")
        if script.hang:
            await asyncio.Event().wait()

    @property
    def all_streams_closed(self) -> bool:
        return all(response.is_closed for response in self.responses)


def _b(value: str | bytes) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else value


@pytest.fixture
def server() -> FakeEventServer:
    return FakeEventServer()
