"""Unit tests for client types."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from izanami_client.types import (
    CheckFeaturesRequest,
    StreamEvent,
    WatchRequest,
    normalize_context_path,
)


class TestNormalizeContextPath:
    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("prod", "/prod"),
            ("/prod", "/prod"),
            ("//prod/eu", "/prod/eu"),
            ("", ""),
        ],
    )
    def test_normalize(self, path: str, expected: str) -> None:
        assert normalize_context_path(path) == expected


class TestStreamEvent:
    def test_defaults(self) -> None:
        event = StreamEvent()
        assert (event.id, event.type, event.data) == ("", "", "")

    def test_json_data(self) -> None:
        event = StreamEvent(data='{"name": "feature-1", "active": true}')
        assert event.json_data() == {"name": "feature-1", "active": True}

    def test_json_data_invalid(self) -> None:
        with pytest.raises(ValueError):
            StreamEvent(data="not json").json_data()

    def test_frozen(self) -> None:
        event = StreamEvent(id="1")
        with pytest.raises(ValidationError):
            event.id = "2"


class TestWatchRequest:
    """Tests for event stream query building."""

    def test_empty_request_has_no_params(self) -> None:
        request = WatchRequest()
        assert request.to_query_params() == {}
        assert request.method == "GET"

    def test_payload_switches_to_post(self) -> None:
        assert WatchRequest(payload='{"key":"value"}').method == "POST"

    def test_all_params(self) -> None:
        request = WatchRequest(
            user="user123",
            context="prod",
            features=["f1", "f2"],
            projects=["p1"],
            conditions=True,
            date="2024-01-01T00:00:00Z",
            one_tag_in=["t1", "t2"],
            all_tags_in=["t3"],
            no_tag_in=["t4"],
            refresh_interval=30,
            keep_alive_interval=25,
        )
        assert request.to_query_params() == {
            "user": "user123",
            "context": "/prod",
            "features": "f1,f2",
            "projects": "p1",
            "conditions": "true",
            "date": "2024-01-01T00:00:00Z",
            "oneTagIn": "t1,t2",
            "allTagIn": "t3",
            "noTagIn": "t4",
            "refreshInterval": "30",
            "keepAliveInterval": "25",
        }

    def test_zero_intervals_are_omitted(self) -> None:
        params = WatchRequest(refresh_interval=0, keep_alive_interval=0, conditions=False).to_query_params()
        assert params == {}

    def test_lists_become_tuples(self) -> None:
        request = WatchRequest(features=["a"])
        assert request.features == ("a",)

    def test_frozen(self) -> None:
        request = WatchRequest(user="a")
        with pytest.raises(ValidationError):
            request.user = "b"


class TestCheckFeaturesRequest:
    def test_all_tags_param_name(self) -> None:
        params = CheckFeaturesRequest(all_tags_in=["t"], context="dev").to_query_params()
        assert params == {"allTagsIn": "t", "context": "/dev"}
