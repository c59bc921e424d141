"""Unit tests for reconnection backoff."""

from __future__ import annotations

from izanami_client.events.session import SessionOutcome
from izanami_client.events.watcher import BackoffConfig, BackoffState


class TestBackoffConfig:
    def test_defaults(self) -> None:
        config = BackoffConfig()
        assert config.min_delay == 1.0
        assert config.max_delay == 60.0
        assert config.clean_disconnect_delay == 2.0
        assert config.factor == 2.0


class TestBackoffState:
    """Tests for delay computation between reconnects."""

    def test_failures_double_from_min_and_cap(self) -> None:
        backoff = BackoffState()
        delays = [backoff.next_delay(SessionOutcome.FAILED) for _ in range(9)]
        assert delays == [1.0, 2.0, 4.0, 8.0, 16.0, 32.0, 60.0, 60.0, 60.0]

    def test_current_stays_within_bounds(self) -> None:
        backoff = BackoffState()
        for _ in range(20):
            backoff.next_delay(SessionOutcome.FAILED)
            assert backoff.config.min_delay <= backoff.current <= backoff.config.max_delay

    def test_connect_resets_to_min(self) -> None:
        backoff = BackoffState()
        for _ in range(5):
            backoff.next_delay(SessionOutcome.FAILED)

        backoff.on_connected()

        assert backoff.next_delay(SessionOutcome.FAILED) == 1.0

    def test_clean_disconnect_ignores_prior_penalty(self) -> None:
        backoff = BackoffState()
        for _ in range(6):
            backoff.next_delay(SessionOutcome.FAILED)

        assert backoff.next_delay(SessionOutcome.ENDED_CLEAN) == 2.0
        # Penalty is cleared as well
        assert backoff.next_delay(SessionOutcome.FAILED) == 1.0

    def test_clean_disconnect_from_fresh_state(self) -> None:
        assert BackoffState().next_delay(SessionOutcome.ENDED_CLEAN) == 2.0

    def test_custom_config(self) -> None:
        backoff = BackoffState(BackoffConfig(min_delay=0.5, max_delay=3.0, factor=3.0))
        delays = [backoff.next_delay(SessionOutcome.FAILED) for _ in range(4)]
        assert delays == [0.5, 1.5, 3.0, 3.0]

    def test_negative_delays_clamp_to_zero(self) -> None:
        backoff = BackoffState(BackoffConfig(min_delay=-1.0, clean_disconnect_delay=-1.0))
        assert backoff.next_delay(SessionOutcome.FAILED) == 0.0
        assert backoff.next_delay(SessionOutcome.ENDED_CLEAN) == 0.0
