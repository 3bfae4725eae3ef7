"""
Unit tests for the retry module.

Tests cover:
- RetryPolicy validation and backoff schedule
- Retry on file lock errors, immediate propagation otherwise
- Exhaustion re-raises the last error unchanged
- Diagnostics for retries and exhaustion
"""

import errno
import logging
from unittest.mock import Mock, patch

import pytest

from chocokit.core.retry import (
    DEFAULT_RETRY_POLICY,
    RetryExecutor,
    RetryPolicy,
    backoff_schedule,
    with_file_lock_retry,
)


def busy_error():
    return OSError(errno.EBUSY, "Resource temporarily unavailable")


class FailingOperation:
    """Fails with the given errors in order, then returns result."""

    def __init__(self, errors, result="ok"):
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


class TestRetryPolicy:
    """Tests for RetryPolicy."""

    def test_defaults(self):
        """Test default policy matches Chocolatey provider values."""
        assert DEFAULT_RETRY_POLICY.max_retries == 5
        assert DEFAULT_RETRY_POLICY.base_delay == 0.5
        assert DEFAULT_RETRY_POLICY.total_attempts == 6

    def test_backoff_schedule_doubles(self):
        """Test delays double from base_delay."""
        policy = RetryPolicy(max_retries=4, base_delay=0.5)
        assert backoff_schedule(policy) == [0.5, 1.0, 2.0, 4.0]
        assert policy.delays() == [0.5, 1.0, 2.0, 4.0]

    def test_zero_retries_has_empty_schedule(self):
        """Test no retries means no delays."""
        policy = RetryPolicy(max_retries=0, base_delay=1.0)
        assert policy.delays() == []
        assert policy.total_attempts == 1

    def test_negative_retries_rejected(self):
        """Test negative max_retries is rejected."""
        with pytest.raises(ValueError, match="cannot be negative"):
            RetryPolicy(max_retries=-1)

    @pytest.mark.parametrize("delay", [0, -0.5])
    def test_non_positive_delay_rejected(self, delay):
        """Test base_delay must be positive."""
        with pytest.raises(ValueError, match="must be positive"):
            RetryPolicy(base_delay=delay)

    @pytest.mark.parametrize("value", [1.5, "3", True])
    def test_non_int_retries_rejected(self, value):
        """Test max_retries must be an int."""
        with pytest.raises(TypeError):
            RetryPolicy(max_retries=value)

    def test_policy_is_immutable(self):
        """Test policies cannot be modified."""
        policy = RetryPolicy()
        with pytest.raises(AttributeError):
            policy.max_retries = 10


class TestRetryExecutor:
    """Tests for RetryExecutor.execute."""

    def test_success_first_attempt(self, fake_sleep):
        """Test a successful operation runs once without sleeping."""
        operation = FailingOperation([])
        executor = RetryExecutor(sleep=fake_sleep)

        assert executor.execute(operation, RetryPolicy(3, 0.5), "test") == "ok"
        assert operation.calls == 1
        assert fake_sleep.delays == []

    @pytest.mark.parametrize("failures", [1, 2, 3])
    def test_success_after_transient_failures(self, fake_sleep, failures):
        """Test k lock failures followed by success sleep exactly k times."""
        operation = FailingOperation([busy_error() for _ in range(failures)])
        executor = RetryExecutor(sleep=fake_sleep)

        result = executor.execute(operation, RetryPolicy(3, 0.5), "test")

        assert result == "ok"
        assert operation.calls == failures + 1
        assert fake_sleep.delays == [0.5, 1.0, 2.0][:failures]

    def test_exhaustion_uses_full_schedule(self, fake_sleep):
        """Test persistent lock errors run N+1 attempts with N doubling sleeps."""
        operation = FailingOperation([busy_error() for _ in range(10)])
        executor = RetryExecutor(sleep=fake_sleep)

        with pytest.raises(OSError):
            executor.execute(operation, RetryPolicy(max_retries=3, base_delay=0.5), "test")

        assert operation.calls == 4
        assert fake_sleep.delays == [0.5, 1.0, 2.0]

    def test_exhaustion_reraises_last_error(self, fake_sleep):
        """Test the last observed error is re-raised unchanged."""
        errors = [busy_error() for _ in range(3)]
        operation = FailingOperation(errors)
        executor = RetryExecutor(sleep=fake_sleep)

        with pytest.raises(OSError) as exc_info:
            executor.execute(operation, RetryPolicy(max_retries=2, base_delay=1), "test")

        assert exc_info.value is errors[-1]
        assert exc_info.value.errno == errno.EBUSY

    def test_permanent_error_propagates_immediately(self, fake_sleep):
        """Test non-lock errors are raised on first occurrence."""
        error = FileNotFoundError(errno.ENOENT, "Package not found")
        operation = FailingOperation([error])
        executor = RetryExecutor(sleep=fake_sleep)

        with pytest.raises(FileNotFoundError) as exc_info:
            executor.execute(operation, RetryPolicy(5, 0.5), "test")

        assert exc_info.value is error
        assert operation.calls == 1
        assert fake_sleep.delays == []

    def test_permanent_error_after_transient_error(self, fake_sleep):
        """Test a permanent error stops retrying mid-way."""
        operation = FailingOperation([busy_error(), ValueError("Invalid package format")])
        executor = RetryExecutor(sleep=fake_sleep)

        with pytest.raises(ValueError, match="Invalid package format"):
            executor.execute(operation, RetryPolicy(5, 0.5), "test")

        assert operation.calls == 2
        assert fake_sleep.delays == [0.5]

    def test_zero_retries(self, fake_sleep):
        """Test max_retries=0 runs once and re-raises the lock error."""
        operation = FailingOperation([busy_error()])
        executor = RetryExecutor(sleep=fake_sleep)

        with pytest.raises(OSError):
            executor.execute(operation, RetryPolicy(max_retries=0, base_delay=1), "test")

        assert operation.calls == 1
        assert fake_sleep.delays == []

    def test_custom_classifier(self, fake_sleep):
        """Test the injected classifier decides what is retried."""
        operation = FailingOperation([KeyError("retry me")])
        executor = RetryExecutor(
            classifier=lambda e: isinstance(e, KeyError), sleep=fake_sleep
        )

        assert executor.execute(operation, RetryPolicy(1, 0.25), "test") == "ok"
        assert fake_sleep.delays == [0.25]

    def test_keyboard_interrupt_not_retried(self, fake_sleep):
        """Test KeyboardInterrupt passes straight through."""
        operation = FailingOperation([KeyboardInterrupt()])
        executor = RetryExecutor(classifier=lambda e: True, sleep=fake_sleep)

        with pytest.raises(KeyboardInterrupt):
            executor.execute(operation, RetryPolicy(3, 0.5), "test")

        assert fake_sleep.delays == []


class TestRetryDiagnostics:
    """Tests for retry diagnostics."""

    def test_exhaustion_diagnostics(self, fake_sleep):
        """Test 5 retry notices and 1 exhaustion warning for max_retries=5."""
        diagnostics = Mock(spec=logging.Logger)
        operation = FailingOperation([busy_error() for _ in range(6)])
        executor = RetryExecutor(sleep=fake_sleep, diagnostics=diagnostics)

        with pytest.raises(OSError):
            executor.execute(operation, RetryPolicy(5, 0.5), "waiting for testpackage")

        assert operation.calls == 6
        assert diagnostics.debug.call_count == 5
        assert diagnostics.warning.call_count == 1

        for call in diagnostics.debug.call_args_list:
            assert "Chocolatey file lock detected" in call.args[0]
            assert "retrying" in call.args[0]

        warning = diagnostics.warning.call_args.args[0]
        assert warning.startswith("Failed waiting for testpackage")
        assert "after 5 retries" in warning

    def test_retry_notice_names_attempt_and_description(self, fake_sleep, chocokit_logs):
        """Test the retry notice includes attempt number and description."""
        operation = FailingOperation([busy_error()])
        executor = RetryExecutor(sleep=fake_sleep)

        executor.execute(operation, RetryPolicy(5, 0.5), "listing packages")

        assert "during listing packages (attempt 1/6)" in chocokit_logs.text
        assert "retrying in 0.5s" in chocokit_logs.text

    def test_no_diagnostics_on_permanent_error(self, fake_sleep):
        """Test permanent errors produce no retry diagnostics."""
        diagnostics = Mock(spec=logging.Logger)
        executor = RetryExecutor(sleep=fake_sleep, diagnostics=diagnostics)

        with pytest.raises(ValueError):
            executor.execute(FailingOperation([ValueError("Network timeout")]))

        diagnostics.debug.assert_not_called()
        diagnostics.warning.assert_not_called()


class TestWithFileLockRetry:
    """Tests for the with_file_lock_retry helper."""

    def test_uses_correct_delay_intervals(self):
        """Test delays of 0.5, 1.0, 2.0 and 4 attempts for max_retries=3."""
        calls = []

        def operation():
            calls.append(1)
            raise PermissionError(
                errno.EACCES, "Cannot access file because it is being used by another process"
            )

        with patch("chocokit.core.retry.time.sleep") as mock_sleep:
            with pytest.raises(PermissionError):
                with_file_lock_retry("test operation", operation, max_retries=3, base_delay=0.5)

        assert len(calls) == 4
        assert [c.args[0] for c in mock_sleep.call_args_list] == [0.5, 1.0, 2.0]

    def test_returns_result(self):
        """Test the result of a successful operation is returned."""
        assert with_file_lock_retry("noop", lambda: 42) == 42
