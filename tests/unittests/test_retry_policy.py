"""Tests for the fixed-delay retry policy."""

from unittest.mock import Mock

import pytest

from errors import RetryExhaustedError, TransientConnectionError
from retry_policy import with_retry


class TestWithRetry:

    def test_success_first_try(self):
        operation = Mock(return_value=[1, 2])
        sleep = Mock()

        assert with_retry(operation, max_attempts=3, delay=2.0, sleep=sleep) == [1, 2]
        assert operation.call_count == 1
        sleep.assert_not_called()

    def test_success_after_failures(self):
        operation = Mock(side_effect=[
            TransientConnectionError("refused"),
            TransientConnectionError("refused"),
            "ok",
        ])
        sleep = Mock()

        assert with_retry(operation, max_attempts=3, delay=2.0, sleep=sleep) == "ok"
        assert operation.call_count == 3
        assert sleep.call_count == 2
        sleep.assert_called_with(2.0)

    def test_exhausted_raises(self):
        error = TransientConnectionError("refused")
        operation = Mock(side_effect=error)
        sleep = Mock()

        with pytest.raises(RetryExhaustedError) as exc_info:
            with_retry(operation, max_attempts=3, delay=0.5, sleep=sleep)

        # First attempt plus three retries
        assert operation.call_count == 4
        assert sleep.call_count == 3
        assert exc_info.value.attempts == 4
        assert exc_info.value.last_error is error

    def test_zero_retries_single_attempt(self):
        operation = Mock(side_effect=TransientConnectionError("refused"))
        sleep = Mock()

        with pytest.raises(RetryExhaustedError):
            with_retry(operation, max_attempts=0, delay=1.0, sleep=sleep)

        assert operation.call_count == 1
        sleep.assert_not_called()

    def test_exit_on_exhaustion(self):
        operation = Mock(side_effect=TransientConnectionError("refused"))

        with pytest.raises(SystemExit) as exc_info:
            with_retry(operation, max_attempts=1, delay=0.0,
                       exit_on_exhaustion=True, sleep=Mock())

        assert exc_info.value.code == 0
        assert operation.call_count == 2

    def test_other_errors_propagate(self):
        operation = Mock(side_effect=ValueError("bad"))
        sleep = Mock()

        with pytest.raises(ValueError):
            with_retry(operation, max_attempts=3, delay=1.0, sleep=sleep)

        assert operation.call_count == 1
        sleep.assert_not_called()

    def test_custom_retry_on(self):
        operation = Mock(side_effect=[TimeoutError(), "done"])

        result = with_retry(operation, max_attempts=1, delay=0.0,
                            retry_on=(TimeoutError,), sleep=Mock())

        assert result == "done"

    def test_negative_attempts_rejected(self):
        operation = Mock(return_value="ok")

        with pytest.raises(ValueError):
            with_retry(operation, max_attempts=-1, delay=0.0, sleep=Mock())

        operation.assert_not_called()
