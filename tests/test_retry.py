"""
Tests for the retry policy and the polling helper.
"""

import threading
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from tagreaper.core.exceptions import OperationCancelledError
from tagreaper.core.retry import RetryPolicy, is_not_found
from tagreaper.core.waiter import wait_until


def client_error(code, status=400, operation="DeleteSubnet"):
    return ClientError(
        {
            "Error": {"Code": code, "Message": f"{code} message"},
            "ResponseMetadata": {"HTTPStatusCode": status},
        },
        operation,
    )


class TestShouldRetry:
    """Tests for RetryPolicy.should_retry."""

    @pytest.mark.parametrize(
        "code",
        ["DependencyViolation", "InvalidNetworkInterface.InUse", "ResourceInUse"],
    )
    def test_dependency_errors_are_retried(self, code):
        """Blocking dependencies are expected to clear."""
        assert RetryPolicy().should_retry(client_error(code), 0)

    def test_throttling_is_retried(self):
        """Throttled requests are retried."""
        assert RetryPolicy().should_retry(client_error("RequestLimitExceeded"), 3)

    def test_server_errors_are_retried(self):
        """5xx responses are retried whatever their code."""
        assert RetryPolicy().should_retry(client_error("InternalError", status=503), 0)

    @pytest.mark.parametrize(
        "code",
        ["InvalidSubnetID.NotFound", "NoSuchEntity", "ExpiredToken", "InvalidParameterValue"],
    )
    def test_other_errors_are_not_retried(self, code):
        """Not-found, credential and validation errors are returned at once."""
        assert not RetryPolicy().should_retry(client_error(code), 0)

    def test_retries_are_bounded(self):
        """No retry once max_retries attempts have failed."""
        policy = RetryPolicy(max_retries=2)
        assert policy.should_retry(client_error("DependencyViolation"), 1)
        assert not policy.should_retry(client_error("DependencyViolation"), 2)

    def test_non_client_errors_are_not_retried(self):
        """Only botocore ClientErrors are retried."""
        assert not RetryPolicy().should_retry(ValueError("boom"), 0)

    def test_not_found_suffix(self):
        """Any code ending in NotFound means the resource is gone."""
        assert is_not_found(client_error("InvalidVpcID.NotFound"))
        assert not is_not_found(client_error("DependencyViolation"))


class TestRetryPolicyCall:
    """Tests for RetryPolicy.call."""

    def test_delay_grows_and_is_capped(self):
        """Delays double per attempt up to max_delay."""
        policy = RetryPolicy(base_delay=1.0, max_delay=5.0)
        assert [policy.delay(a) for a in range(4)] == [1.0, 2.0, 4.0, 5.0]

    def test_retry_then_success(self):
        """A retryable error is retried after the backoff delay."""
        operation = MagicMock(side_effect=[client_error("DependencyViolation"), "ok"])
        sleeps = []

        result = RetryPolicy(base_delay=0.5).call(operation, sleep=sleeps.append, SubnetId="subnet-1")

        assert result == "ok"
        assert sleeps == [0.5]
        assert operation.call_count == 2
        operation.assert_called_with(SubnetId="subnet-1")

    def test_last_error_raised_when_exhausted(self):
        """After max_retries retries the last error propagates."""
        operation = MagicMock(side_effect=client_error("DependencyViolation"))

        with pytest.raises(ClientError):
            RetryPolicy(max_retries=2, base_delay=0).call(operation, sleep=lambda s: None)

        assert operation.call_count == 3

    def test_non_retryable_error_raised_immediately(self):
        """Validation errors are not retried."""
        operation = MagicMock(side_effect=client_error("InvalidParameterValue"))

        with pytest.raises(ClientError):
            RetryPolicy().call(operation, sleep=lambda s: None)

        assert operation.call_count == 1

    def test_cancel_event_aborts_retry(self):
        """A set cancel event stops the retry loop."""
        operation = MagicMock(side_effect=client_error("DependencyViolation"))
        cancel_event = threading.Event()
        cancel_event.set()

        with pytest.raises(OperationCancelledError):
            RetryPolicy().call(operation, cancel_event=cancel_event)

        assert operation.call_count == 1


class TestWaitUntil:
    """Tests for the wait_until polling helper."""

    def test_returns_empty_when_done(self):
        """Polling stops as soon as nothing is pending."""
        poll = MagicMock(side_effect=[["i-1"], []])

        pending = wait_until(poll, timeout=60, interval=0)

        assert pending == set()
        assert poll.call_count == 2

    def test_returns_pending_on_timeout(self):
        """Names still pending at the deadline are returned."""
        clock = iter([0.0, 5.0, 11.0]).__next__

        pending = wait_until(lambda: ["i-1", "i-2"], timeout=10, interval=0, clock=clock)

        assert pending == {"i-1", "i-2"}

    def test_cancel_event_aborts_wait(self):
        """A set cancel event raises with the pending names."""
        cancel_event = threading.Event()
        cancel_event.set()

        with pytest.raises(OperationCancelledError) as exc_info:
            wait_until(lambda: ["nat-1"], timeout=60, interval=1, cancel_event=cancel_event)

        assert exc_info.value.details["pending"] == ["nat-1"]
