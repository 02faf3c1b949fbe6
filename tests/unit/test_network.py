"""Tests for content_api/core/network.py - Fetch primitives and retry policy."""
from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import requests

from content_api.core.network import (
    MAX_ATTEMPTS,
    RetryPolicy,
    build_session,
    fetch_text,
    fetch_with_retry,
    get_session,
)
from content_api.core.timings import FetchTimings
from content_api.errors import ResponseNotOkError, RetriesExhaustedError


class TestRetryPolicy:
    """Tests for RetryPolicy dataclass."""

    def test_defaults(self):
        policy = RetryPolicy()

        assert policy.max_attempts == MAX_ATTEMPTS == 5
        assert policy.backoff_s == 0.0

    def test_no_backoff_by_default(self):
        policy = RetryPolicy()

        assert [policy.delay_for(a) for a in range(5)] == [0.0] * 5

    def test_exponential_backoff_is_capped(self):
        policy = RetryPolicy(backoff_s=1.0, backoff_multiplier=2.0, max_backoff_s=5.0)

        assert [policy.delay_for(a) for a in range(5)] == [1.0, 2.0, 4.0, 5.0, 5.0]

    def test_from_config_defaults(self):
        assert RetryPolicy.from_config() == RetryPolicy()

    def test_from_config_reads_network_section(self):
        net = {"max_attempts": 3, "backoff_s": 0.5, "backoff_multiplier": 2.0, "max_backoff_s": 4.0}
        with patch("content_api.core.network.get_network_config", return_value=net):
            policy = RetryPolicy.from_config()

        assert policy == RetryPolicy(max_attempts=3, backoff_s=0.5, backoff_multiplier=2.0, max_backoff_s=4.0)


class TestSession:
    """Tests for session construction."""

    @pytest.fixture(autouse=True)
    def reset_session(self):
        from content_api.core import network
        original = network._SESSION
        network._SESSION = None
        yield
        network._SESSION = original

    def test_build_session_disables_transport_retries(self):
        session = build_session()

        adapter = session.get_adapter("https://api.ft.com/")
        assert adapter.max_retries.total == 0

    def test_build_session_adds_configured_headers(self):
        net = {"headers": {"X-Team": "labs"}}
        with patch("content_api.core.network.get_network_config", return_value=net):
            session = build_session()

        assert session.headers["X-Team"] == "labs"

    def test_get_session_is_cached(self):
        assert get_session() is get_session()


class TestFetchWithRetry:
    """Tests for fetch_with_retry coroutine."""

    @pytest.mark.asyncio
    async def test_returns_first_ok_response(self, mock_session, mock_response):
        good = mock_response(200, {"ok": True})
        mock_session.request.return_value = good

        result = await fetch_with_retry("https://api.example.com/x", session=mock_session)

        assert result is good
        assert mock_session.request.call_count == 1

    @pytest.mark.asyncio
    async def test_succeeds_on_final_attempt(self, mock_session, mock_response):
        """Four failures then a success resolves with the fifth response."""
        bad = mock_response(500)
        good = mock_response(200, {"n": 5})
        mock_session.request.side_effect = [bad, bad, bad, bad, good]

        result = await fetch_with_retry("https://api.example.com/x", session=mock_session)

        assert result is good
        assert mock_session.request.call_count == 5

    @pytest.mark.asyncio
    async def test_raises_after_exactly_max_attempts(self, mock_session, mock_response):
        mock_session.request.return_value = mock_response(503)

        with pytest.raises(RetriesExhaustedError) as exc_info:
            await fetch_with_retry("https://api.example.com/x", session=mock_session)

        assert mock_session.request.call_count == 5
        assert exc_info.value.attempts == 5
        assert "5" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_transport_errors_are_retried(self, mock_session, mock_response):
        good = mock_response(200)
        mock_session.request.side_effect = [
            requests.exceptions.ConnectionError("boom"),
            requests.exceptions.Timeout("slow"),
            good,
        ]

        result = await fetch_with_retry("https://api.example.com/x", session=mock_session)

        assert result is good
        assert mock_session.request.call_count == 3

    @pytest.mark.asyncio
    async def test_none_response_is_retried(self, mock_session, mock_response):
        good = mock_response(200)
        mock_session.request.side_effect = [None, good]

        result = await fetch_with_retry("https://api.example.com/x", session=mock_session)

        assert result is good

    @pytest.mark.asyncio
    async def test_custom_attempt_ceiling(self, mock_session, mock_response):
        mock_session.request.return_value = mock_response(500)

        with pytest.raises(RetriesExhaustedError):
            await fetch_with_retry(
                "https://api.example.com/x", policy=RetryPolicy(max_attempts=2), session=mock_session
            )

        assert mock_session.request.call_count == 2

    @pytest.mark.asyncio
    async def test_no_sleep_without_backoff(self, mock_session, mock_response):
        mock_session.request.return_value = mock_response(500)

        with patch("content_api.core.network.asyncio.sleep") as mock_sleep:
            with pytest.raises(RetriesExhaustedError):
                await fetch_with_retry("https://api.example.com/x", session=mock_session)

        mock_sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_sleeps_between_attempts_with_backoff(self, mock_session, mock_response):
        mock_session.request.return_value = mock_response(500)
        policy = RetryPolicy(max_attempts=3, backoff_s=0.01, backoff_multiplier=2.0)

        async def fake_sleep(delay):
            return None

        with patch("content_api.core.network.asyncio.sleep", side_effect=fake_sleep) as mock_sleep:
            with pytest.raises(RetriesExhaustedError):
                await fetch_with_retry("https://api.example.com/x", policy=policy, session=mock_session)

        # No sleep after the final attempt
        assert [c.args[0] for c in mock_sleep.call_args_list] == [0.01, 0.02]

    @pytest.mark.asyncio
    async def test_logs_attempt_and_options(self, mock_session, mock_response, caplog):
        mock_session.request.side_effect = [mock_response(500), mock_response(200)]
        options = {"method": "POST", "body": '{"queryString": "x"}'}

        with caplog.at_level("WARNING", logger="content_api.core.network"):
            await fetch_with_retry("https://api.example.com/x", options, session=mock_session)

        assert "attempt=0" in caplog.text
        assert "queryString" in caplog.text

    @pytest.mark.asyncio
    async def test_passes_method_body_and_headers(self, mock_session, mock_response):
        mock_session.request.return_value = mock_response(200)
        options = {"method": "post", "body": "{}", "headers": {"Content-Type": "application/json"}}

        await fetch_with_retry("https://api.example.com/x", options, session=mock_session)

        call = mock_session.request.call_args
        assert call.args == ("POST", "https://api.example.com/x")
        assert call.kwargs["data"] == "{}"
        assert call.kwargs["headers"] == {"Content-Type": "application/json"}

    @pytest.mark.asyncio
    async def test_records_timings_per_attempt(self, mock_session, mock_response):
        mock_session.request.side_effect = [mock_response(500), mock_response(200)]
        timings = FetchTimings()

        await fetch_with_retry(
            "https://api.example.com/x?apiKey=secret", session=mock_session, kind="search", timings=timings
        )

        assert [(r.attempt, r.ok, r.status) for r in timings.records] == [(0, False, 500), (1, True, 200)]
        assert all("secret" not in r.url for r in timings.records)


class TestFetchText:
    """Tests for fetch_text coroutine."""

    @pytest.mark.asyncio
    async def test_returns_body_text(self, mock_session, mock_response):
        mock_session.request.return_value = mock_response(200, text='{"a": 1}')

        text = await fetch_text("https://api.example.com/x", session=mock_session)

        assert text == '{"a": 1}'

    @pytest.mark.asyncio
    async def test_single_attempt_on_failure(self, mock_session, mock_response):
        mock_session.request.return_value = mock_response(500, reason="Server Error")
        options = {"method": "POST", "body": "{}"}

        with pytest.raises(ResponseNotOkError) as exc_info:
            await fetch_text("https://api.example.com/x", options, session=mock_session)

        err = exc_info.value
        assert mock_session.request.call_count == 1
        assert err.status == 500
        assert err.reason == "Server Error"
        assert "url=https://api.example.com/x" in str(err)
        assert '"method": "POST"' in str(err)

    @pytest.mark.asyncio
    async def test_missing_response_is_not_ok(self, mock_session):
        mock_session.request.return_value = None

        with pytest.raises(ResponseNotOkError) as exc_info:
            await fetch_text("https://api.example.com/x", session=mock_session)

        assert exc_info.value.status is None

    @pytest.mark.asyncio
    async def test_transport_error_propagates(self, mock_session):
        mock_session.request.side_effect = requests.exceptions.ConnectionError("down")

        with pytest.raises(requests.exceptions.ConnectionError):
            await fetch_text("https://api.example.com/x", session=mock_session)

    @pytest.mark.asyncio
    async def test_uses_configured_timeout(self, mock_session, mock_response):
        mock_session.request.return_value = mock_response(200)
        with patch("content_api.core.network.get_network_config", return_value={"timeout_s": 7}):
            await fetch_text("https://api.example.com/x", session=mock_session)

        assert mock_session.request.call_args.kwargs["timeout"] == 7
