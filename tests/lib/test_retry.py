"""
Unit tests for galib.retry — bounded exponential-backoff retry.
"""

import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, NoCredentialsError

sys.path.insert(0, str(Path(__file__).parent.parent.parent))
from galib.retry import (
    RetryError,
    backoff_delay,
    is_retryable,
    retry_call,
    retry_describe,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _client_error(code):
    return ClientError({"Error": {"Code": code, "Message": code}}, "TestOperation")


@pytest.fixture
def no_sleep():
    with patch("galib.retry.time.sleep") as sleep:
        yield sleep


# ---------------------------------------------------------------------------
# backoff_delay
# ---------------------------------------------------------------------------


class TestBackoffDelay:
    def test_doubles_from_initial_delay(self):
        assert [backoff_delay(n, 2) for n in (1, 2, 3, 4)] == [2, 4, 8, 16]

    def test_describe_schedule(self):
        assert [backoff_delay(n, 30) for n in (1, 2, 3, 4)] == [30, 60, 120, 240]


# ---------------------------------------------------------------------------
# is_retryable
# ---------------------------------------------------------------------------


class TestIsRetryable:
    def test_throttling_is_retryable(self):
        assert is_retryable(_client_error("ThrottlingException")) is True

    def test_not_found_is_not_retryable(self):
        assert is_retryable(_client_error("AcceleratorNotFoundException")) is False
        assert is_retryable(_client_error("NoSuchHostedZone")) is False

    def test_missing_credentials_not_retryable(self):
        assert is_retryable(NoCredentialsError()) is False

    def test_generic_exception_is_retryable(self):
        assert is_retryable(RuntimeError("network blip")) is True


# ---------------------------------------------------------------------------
# retry_call
# ---------------------------------------------------------------------------


class TestRetryCall:
    def test_returns_on_first_success(self, no_sleep):
        func = MagicMock(return_value="ok")
        assert retry_call(func, 1, key="v", max_attempts=3) == "ok"
        func.assert_called_once_with(1, key="v")
        no_sleep.assert_not_called()

    def test_retries_until_success(self, no_sleep):
        func = MagicMock(side_effect=[RuntimeError("a"), RuntimeError("b"), "done"])
        assert retry_call(func, max_attempts=3, initial_delay=2) == "done"
        assert func.call_count == 3
        assert [c.args[0] for c in no_sleep.call_args_list] == [2, 4]

    def test_raises_retry_error_after_budget(self, no_sleep):
        last = RuntimeError("still broken")
        func = MagicMock(side_effect=[RuntimeError("first"), RuntimeError("second"), last])

        with pytest.raises(RetryError) as excinfo:
            retry_call(func, max_attempts=3, error_msg="Creating thing failed")

        assert excinfo.value.attempts == 3
        assert excinfo.value.last_exception is last
        assert excinfo.value.__cause__ is last
        assert "Creating thing failed after 3 attempts" in str(excinfo.value)
        # no sleep after the final attempt
        assert no_sleep.call_count == 2

    def test_non_retryable_error_raised_immediately(self, no_sleep):
        func = MagicMock(side_effect=_client_error("AccessDenied"))

        with pytest.raises(ClientError):
            retry_call(func, max_attempts=5)

        func.assert_called_once()
        no_sleep.assert_not_called()

    def test_default_attempts_from_environment(self, no_sleep, monkeypatch):
        monkeypatch.setenv("RETRY_ATTEMPTS", "2")
        func = MagicMock(side_effect=RuntimeError("x"))

        with pytest.raises(RetryError):
            retry_call(func)

        assert func.call_count == 2

    def test_zero_attempts_still_calls_once(self, no_sleep):
        func = MagicMock(return_value=1)
        assert retry_call(func, max_attempts=0) == 1


class TestRetryDescribe:
    def test_uses_five_attempts_starting_at_thirty_seconds(self, no_sleep):
        func = MagicMock(side_effect=RuntimeError("IN_PROGRESS"))

        with pytest.raises(RetryError) as excinfo:
            retry_describe(func)

        assert func.call_count == 5
        assert [c.args[0] for c in no_sleep.call_args_list] == [30, 60, 120, 240]
        assert "Accelerator deployment check failed" in str(excinfo.value)
