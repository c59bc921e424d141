"""Client-side type definitions."""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict


def normalize_context_path(path: str) -> str:
    """Return a context path with exactly one leading slash.

    Izanami addresses contexts as ``/parent/child``; users commonly type
    ``parent/child`` or ``PROD``.
    """
    if not path:
        return path
    return "/" + path.lstrip("/")


class StreamEvent(BaseModel):
    """One event received from the server-push channel."""

    model_config = ConfigDict(frozen=True)

    id: str = ""
    type: str = ""
    data: str = ""

    def json_data(self) -> Any:
        """Decode the payload as JSON.

        Raises:
            ValueError: If the payload is not valid JSON
        """
        return json.loads(self.data)


class CheckFeaturesRequest(BaseModel):
    """Selection for a bulk feature activation check."""

    model_config = ConfigDict(frozen=True)

    user: str = ""
    context: str = ""
    features: tuple[str, ...] = ()
    projects: tuple[str, ...] = ()
    conditions: bool = False
    date: str = ""
    one_tag_in: tuple[str, ...] = ()
    all_tags_in: tuple[str, ...] = ()
    no_tag_in: tuple[str, ...] = ()
    payload: str = ""

    def to_query_params(self) -> dict[str, str]:
        """Build query parameters, skipping every unset filter."""
        params: dict[str, str] = {}
        if self.user:
            params["user"] = self.user
        if self.context:
            params["context"] = normalize_context_path(self.context)
        if self.features:
            params["features"] = ",".join(self.features)
        if self.projects:
            params["projects"] = ",".join(self.projects)
        if self.conditions:
            params["conditions"] = "true"
        if self.date:
            params["date"] = self.date
        if self.one_tag_in:
            params["oneTagIn"] = ",".join(self.one_tag_in)
        if self.all_tags_in:
            params["allTagsIn"] = ",".join(self.all_tags_in)
        if self.no_tag_in:
            params["noTagIn"] = ",".join(self.no_tag_in)
        return params


class WatchRequest(BaseModel):
    """Filters and keep-alive hints for one event watch.

    ``payload`` is a JSON document evaluated by server-side script
    features; when present the stream is opened with POST instead of GET.
    Interval hints are in seconds, 0 means "server default".
    """

    model_config = ConfigDict(frozen=True)

    user: str = ""
    context: str = ""
    features: tuple[str, ...] = ()
    projects: tuple[str, ...] = ()
    conditions: bool = False
    date: str = ""
    one_tag_in: tuple[str, ...] = ()
    all_tags_in: tuple[str, ...] = ()
    no_tag_in: tuple[str, ...] = ()
    refresh_interval: int = 0
    keep_alive_interval: int = 0
    payload: str = ""

    @property
    def method(self) -> str:
        return "POST" if self.payload else "GET"

    def to_query_params(self) -> dict[str, str]:
        """Build query parameters, each present only when its filter is set."""
        params: dict[str, str] = {}
        if self.user:
            params["user"] = self.user
        if self.context:
            params["context"] = normalize_context_path(self.context)
        if self.features:
            params["features"] = ",".join(self.features)
        if self.projects:
            params["projects"] = ",".join(self.projects)
        if self.conditions:
            params["conditions"] = "true"
        if self.date:
            params["date"] = self.date
        if self.one_tag_in:
            params["oneTagIn"] = ",".join(self.one_tag_in)
        if self.all_tags_in:
            # The events endpoint spells this parameter in the singular.
            params["allTagIn"] = ",".join(self.all_tags_in)
        if self.no_tag_in:
            params["noTagIn"] = ",".join(self.no_tag_in)
        if self.refresh_interval > 0:
            params["refreshInterval"] = str(self.refresh_interval)
        if self.keep_alive_interval > 0:
            params["keepAliveInterval"] = str(self.keep_alive_interval)
        return params
