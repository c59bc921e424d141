"""Verbose HTTP diagnostics with credential redaction.

The observer plugs into ``httpx`` as request/response event hooks, so it
sees every request after credentials were attached but cannot change
what the client does. Event-stream bodies are never read here: they are
logged as a ``[streaming...]`` placeholder.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from typing import Any

import httpx

REDACTED = "[REDACTED]"
STREAMING_PLACEHOLDER = "[streaming...]"
NO_CONTENT = "***** NO CONTENT *****"
DEFAULT_MAX_BODY = 2048

SENSITIVE_HEADERS = frozenset(
    {
        "cookie",
        "set-cookie",
        "authorization",
        "izanami-client-secret",
        "izanami-client-id",
        "x-api-key",
        "authentication",
        "www-authenticate",
    }
)

_RULE = "=" * 78
_THIN_RULE = "-" * 78


def redact_headers(
    headers: Mapping[str, str] | Iterable[tuple[str, str]],
    sensitive: frozenset[str] = SENSITIVE_HEADERS,
) -> dict[str, str]:
    """Copy headers, masking every value whose name is on the deny-list."""
    items = headers.items() if isinstance(headers, Mapping) else headers
    result: dict[str, str] = {}
    for key, value in items:
        result[key] = REDACTED if key.lower() in sensitive else value
    return result


def truncate_body(body: str, max_len: int = DEFAULT_MAX_BODY) -> str:
    if not body:
        return NO_CONTENT
    if len(body) > max_len:
        return f"{body[:max_len]}... [TRUNCATED: {len(body) - max_len} more bytes]"
    return body


def is_event_stream(headers: httpx.Headers) -> bool:
    content_type = headers.get("content-type", "")
    return content_type.split(";")[0].strip().lower() == "text/event-stream"


class RedactingObserver:
    """Logs request/response metadata for every HTTP exchange."""

    def __init__(
        self,
        logger: logging.Logger | None = None,
        max_body: int = DEFAULT_MAX_BODY,
    ):
        self._logger = logger or logging.getLogger("izanami_client.http")
        self._max_body = max_body

    def event_hooks(self) -> dict[str, list[Any]]:
        """Hooks in the shape ``httpx.AsyncClient(event_hooks=...)`` expects."""
        return {"request": [self.on_request], "response": [self.on_response]}

    async def on_request(self, request: httpx.Request) -> None:
        stream_request = is_event_stream_request(request)
        title = "REQUEST (SSE)" if stream_request else "REQUEST"
        lines = [
            _RULE,
            f"~~~ {title} ~~~",
            f"{request.method}  {request.url.raw_path.decode('ascii', errors='replace')}",
            f"HOST   : {request.url.host}",
            "HEADERS:",
        ]
        lines.extend(f"\t{k}: {v}" for k, v in redact_headers(request.headers.multi_items()).items())
        lines.append("BODY   :")
        lines.append(self._request_body(request))
        lines.append(_THIN_RULE)
        self._logger.info("\n".join(lines))

    async def on_response(self, response: httpx.Response) -> None:
        stream_request = is_event_stream_request(response.request)
        streaming = is_event_stream(response.headers) or (stream_request and response.is_success)
        title = "RESPONSE (SSE)" if stream_request else "RESPONSE"
        lines = [
            f"~~~ {title} ~~~",
            f"STATUS       : {response.status_code} {response.reason_phrase}",
            f"PROTO        : {response.http_version}",
            f"RECEIVED AT  : {datetime.now(UTC).isoformat()}",
            "HEADERS      :",
        ]
        lines.extend(f"\t{k}: {v}" for k, v in redact_headers(response.headers.multi_items()).items())
        lines.append("BODY         :")
        if streaming:
            lines.append(STREAMING_PLACEHOLDER)
        else:
            # Error bodies of a stream request are small; reading them here
            # leaves them cached on the response for the caller.
            await response.aread()
            lines.append(truncate_body(response.text, self._max_body))
        lines.append(_RULE)
        self._logger.info("\n".join(lines))

    def _request_body(self, request: httpx.Request) -> str:
        try:
            content = request.content
        except httpx.RequestNotRead:
            return STREAMING_PLACEHOLDER
        return truncate_body(content.decode("utf-8", errors="replace"), self._max_body)


def is_event_stream_request(request: httpx.Request) -> bool:
    return "text/event-stream" in request.headers.get("accept", "")
