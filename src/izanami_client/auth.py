"""Credential attachment for client API calls."""

from __future__ import annotations

from collections.abc import Generator

import httpx

CLIENT_ID_HEADER = "Izanami-Client-Id"
CLIENT_SECRET_HEADER = "Izanami-Client-Secret"


class ClientKeyAuth(httpx.Auth):
    """Attach an Izanami client key pair as two request headers.

    The streaming core only ever sees this as an opaque ``httpx.Auth``,
    so any other credential scheme can be swapped in.
    """

    def __init__(self, client_id: str, client_secret: str):
        self.client_id = client_id
        self.client_secret = client_secret

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        request.headers[CLIENT_ID_HEADER] = self.client_id
        request.headers[CLIENT_SECRET_HEADER] = self.client_secret
        yield request

    def __repr__(self) -> str:
        return f"ClientKeyAuth(client_id={self.client_id!r}, client_secret='***')"
