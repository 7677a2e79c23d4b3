"""Tests for tgstack.retry module."""

from __future__ import annotations

import logging
from unittest.mock import MagicMock, patch

import pytest

from tgstack.options import OptionsError
from tgstack.retry import MaxRetriesExceeded, do_with_retryable_errors
from tgstack.runner import RunnerError

RETRYABLE = {".*TLS handshake timeout.*": "Transient network error."}


def _transient() -> RunnerError:
    return RunnerError(["terragrunt"], 1, "Error: net/http: TLS handshake timeout")


@pytest.fixture(autouse=True)
def no_sleep():
    with patch("tgstack.retry.time.sleep") as sleep:
        yield sleep


class TestDoWithRetryableErrors:
    def test_success_first_try(self) -> None:
        action = MagicMock(return_value="ok")
        assert do_with_retryable_errors("cmd", RETRYABLE, 3, 1, action) == "ok"
        assert action.call_count == 1

    def test_retry_then_success(self, no_sleep: MagicMock) -> None:
        action = MagicMock(side_effect=[_transient(), "ok"])
        assert do_with_retryable_errors("cmd", RETRYABLE, 3, 2.5, action) == "ok"
        assert action.call_count == 2
        no_sleep.assert_called_once_with(2.5)

    def test_budget_of_two_means_three_attempts(self, no_sleep: MagicMock) -> None:
        action = MagicMock(side_effect=_transient())
        with pytest.raises(MaxRetriesExceeded) as excinfo:
            do_with_retryable_errors("cmd", RETRYABLE, 2, 1, action)
        assert action.call_count == 3
        assert no_sleep.call_count == 2
        assert "TLS handshake timeout" in str(excinfo.value)

    def test_exhaustion_carries_last_error(self) -> None:
        first = _transient()
        last = RunnerError(["terragrunt"], 2, "TLS handshake timeout again")
        action = MagicMock(side_effect=[first, last])
        with pytest.raises(MaxRetriesExceeded) as excinfo:
            do_with_retryable_errors("cmd", RETRYABLE, 1, 0, action)
        assert excinfo.value.last_error is last
        assert excinfo.value.__cause__ is last

    def test_zero_retries_single_attempt(self) -> None:
        action = MagicMock(side_effect=_transient())
        with pytest.raises(MaxRetriesExceeded):
            do_with_retryable_errors("cmd", RETRYABLE, 0, 0, action)
        assert action.call_count == 1

    def test_unmatched_error_raised_immediately(self, no_sleep: MagicMock) -> None:
        error = RunnerError(["terragrunt"], 1, "Error: invalid configuration")
        action = MagicMock(side_effect=error)
        with pytest.raises(RunnerError) as excinfo:
            do_with_retryable_errors("cmd", RETRYABLE, 5, 1, action)
        assert excinfo.value is error
        assert action.call_count == 1
        no_sleep.assert_not_called()

    def test_other_exceptions_not_retried(self) -> None:
        action = MagicMock(side_effect=ValueError("TLS handshake timeout"))
        with pytest.raises(ValueError):
            do_with_retryable_errors("cmd", RETRYABLE, 5, 1, action)
        assert action.call_count == 1

    def test_pattern_spans_lines(self) -> None:
        retryable = {"Could not download module.*error: 429": "Rate limited."}
        error = RunnerError(
            ["terragrunt"], 1, "Could not download module\nThe requested URL returned error: 429"
        )
        action = MagicMock(side_effect=[error, "ok"])
        assert do_with_retryable_errors("cmd", retryable, 1, 0, action) == "ok"

    def test_negative_budget_is_config_error(self) -> None:
        action = MagicMock(return_value="ok")
        with pytest.raises(OptionsError, match="max_retries"):
            do_with_retryable_errors("cmd", RETRYABLE, -1, 0, action)
        action.assert_not_called()

    def test_invalid_pattern_is_config_error(self) -> None:
        action = MagicMock(return_value="ok")
        with pytest.raises(OptionsError, match="Invalid retryable error pattern"):
            do_with_retryable_errors("cmd", {"(": "bad"}, 1, 0, action)
        action.assert_not_called()

    def test_logs_retry_reason(self, caplog: pytest.LogCaptureFixture) -> None:
        action = MagicMock(side_effect=[_transient(), "ok"])
        with caplog.at_level(logging.INFO):
            do_with_retryable_errors("terragrunt stack run", RETRYABLE, 1, 0, action)
        assert "Transient network error." in caplog.text
        assert "terragrunt stack run" in caplog.text
