"""
Retry Policy
============

Classifies failed AWS calls and retries the ones worth retrying.

A call is retried when AWS reports a blocking dependency that is expected to
clear on its own (``DependencyViolation``, an interface still in use), when
the request was throttled, or when AWS answered with a 5xx status. Validation
errors, permission errors and not-found errors are returned to the caller
immediately; not-found is treated as "already deleted" by the deleters.

Delays grow exponentially from ``base_delay`` and are capped at
``max_delay``; after ``max_retries`` retries the last error is raised.

Example
-------
>>> from tagreaper.core.retry import RetryPolicy
>>>
>>> policy = RetryPolicy(max_retries=5, base_delay=0.5)
>>> policy.call(ec2.delete_subnet, SubnetId="subnet-1")
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, FrozenSet, Optional

from botocore.exceptions import ClientError

from tagreaper.core.exceptions import OperationCancelledError

logger = logging.getLogger(__name__)

# Codes meaning a dependent resource still exists or is still settling
DEPENDENCY_ERROR_CODES = frozenset(
    {
        "DependencyViolation",
        "InvalidNetworkInterface.InUse",
        "ResourceInUse",
        "InvalidIPAddress.InUse",
    }
)

THROTTLE_ERROR_CODES = frozenset(
    {
        "Throttling",
        "ThrottlingException",
        "ThrottledException",
        "RequestThrottled",
        "RequestThrottledException",
        "RequestLimitExceeded",
        "TooManyRequestsException",
        "ProvisionedThroughputExceededException",
        "PriorRequestNotComplete",
        "SlowDown",
        "EC2ThrottledException",
        "BandwidthLimitExceeded",
    }
)

NOT_FOUND_ERROR_CODES = frozenset(
    {
        "NoSuchEntity",
        "NoSuchBucket",
        "NoSuchKey",
        "NoSuchHostedZone",
        "LoadBalancerNotFound",
        "InvalidAssociationID.NotFound",
        "InvalidAllocationID.NotFound",
    }
)

# Credential failures end the run even when errors are ignored
FATAL_ERROR_CODES = frozenset(
    {
        "AuthFailure",
        "ExpiredToken",
        "ExpiredTokenException",
        "InvalidClientTokenId",
        "SignatureDoesNotMatch",
        "UnrecognizedClientException",
    }
)


def error_code(error: ClientError) -> str:
    """Return the AWS error code of a ClientError."""
    return error.response.get("Error", {}).get("Code", "Unknown")


def error_message(error: ClientError) -> str:
    """Return the AWS error message of a ClientError."""
    return error.response.get("Error", {}).get("Message", str(error))


def status_code(error: ClientError) -> int:
    return error.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0)


def is_not_found(error: ClientError) -> bool:
    """True if the error means the resource does not exist (anymore)."""
    code = error_code(error)
    return code in NOT_FOUND_ERROR_CODES or code.endswith("NotFound")


def is_throttle(error: ClientError) -> bool:
    return error_code(error) in THROTTLE_ERROR_CODES


def is_server_error(error: ClientError) -> bool:
    return status_code(error) >= 500


def is_fatal(error: ClientError) -> bool:
    """True if the error invalidates the whole run (credentials)."""
    return error_code(error) in FATAL_ERROR_CODES


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded exponential backoff for AWS calls.

    Parameters
    ----------
    max_retries : int, default=8
        Retries after the first attempt.
    base_delay : float, default=1.0
        Delay before the first retry, in seconds.
    max_delay : float, default=30.0
        Upper bound of a single delay, in seconds.
    retryable_codes : frozenset of str
        Error codes retried in addition to throttling and 5xx responses.
    """

    max_retries: int = 8
    base_delay: float = 1.0
    max_delay: float = 30.0
    retryable_codes: FrozenSet[str] = field(default=DEPENDENCY_ERROR_CODES)

    def should_retry(self, error: Exception, attempt: int) -> bool:
        """
        Decide whether the failed ``attempt`` (0-based) is retried.

        Only ClientErrors are retried; anything else propagates.
        """
        if attempt >= self.max_retries or not isinstance(error, ClientError):
            return False
        if is_not_found(error) or is_fatal(error):
            return False
        return (
            error_code(error) in self.retryable_codes
            or is_throttle(error)
            or is_server_error(error)
        )

    def delay(self, attempt: int) -> float:
        """Seconds to wait before retrying the failed ``attempt``."""
        return min(self.max_delay, self.base_delay * (2 ** attempt))

    def call(
        self,
        operation: Callable[..., Any],
        *args: Any,
        cancel_event: Optional[threading.Event] = None,
        sleep: Callable[[float], Any] = time.sleep,
        **kwargs: Any,
    ) -> Any:
        """
        Invoke ``operation`` until it succeeds or stops being retryable.

        Parameters
        ----------
        operation : callable
            Usually a bound boto3 client method.
        cancel_event : threading.Event, optional
            When given, delays wait on the event and a set event aborts.
        sleep : callable, default=time.sleep
            Used for delays when no cancel event is given.

        Raises
        ------
        botocore.exceptions.ClientError
            The last error, once retries are exhausted or not allowed.
        OperationCancelledError
            If ``cancel_event`` is set while waiting.
        """
        attempt = 0
        while True:
            try:
                return operation(*args, **kwargs)
            except ClientError as e:
                if not self.should_retry(e, attempt):
                    raise
                wait = self.delay(attempt)
                logger.debug(
                    f"Retrying {getattr(operation, '__name__', 'call')} after "
                    f"{error_code(e)} (attempt {attempt + 1}/{self.max_retries}, "
                    f"sleeping {wait:.1f}s)"
                )
                if cancel_event is not None:
                    if cancel_event.wait(wait):
                        raise OperationCancelledError("Cancelled while retrying") from e
                else:
                    sleep(wait)
                attempt += 1
