"""
galib.retry — Bounded exponential-backoff retry for remote calls.

Every AWS call in the provisioning steps goes through ``retry_call``. The
delay before attempt n+1 is ``initial_delay * 2 ** (n - 1)``; once the attempt
budget is spent the last exception is wrapped in ``RetryError``.
"""

import logging
import time
from typing import Any, Callable, Optional, TypeVar

from botocore.exceptions import ClientError, NoCredentialsError

from galib.config import setting

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_INITIAL_DELAY = 2
DESCRIBE_MAX_ATTEMPTS = 5
DESCRIBE_INITIAL_DELAY = 30

# AWS error codes that cannot succeed on a later attempt
NON_RETRYABLE_ERROR_CODES = frozenset(
    {
        "AccessDenied",
        "AccessDeniedException",
        "AcceleratorNotFoundException",
        "ListenerNotFoundException",
        "EndpointGroupNotFoundException",
        "EndpointGroupAlreadyExistsException",
        "InvalidArgumentException",
        "InvalidPortRangeException",
        "InvalidInstanceID.NotFound",
        "InvalidInstanceID.Malformed",
        "NoSuchHostedZone",
        "InvalidChangeBatch",
        "InvalidInput",
        "NoSuchEntity",
        "EntityAlreadyExists",
        "MalformedPolicyDocument",
        "ValidationError",
        "ValidationException",
        "UnauthorizedOperation",
    }
)


class RetryError(Exception):
    """Raised when a call still fails after all retry attempts."""

    def __init__(self, message: str, attempts: int, last_exception: BaseException):
        super().__init__(message)
        self.attempts = attempts
        self.last_exception = last_exception


def is_retryable(exc: BaseException) -> bool:
    """Return False for errors that another attempt cannot fix."""
    if isinstance(exc, NoCredentialsError):
        return False
    if isinstance(exc, ClientError):
        code = exc.response.get("Error", {}).get("Code", "")
        return code not in NON_RETRYABLE_ERROR_CODES
    return True


def backoff_delay(attempt: int, initial_delay: float) -> float:
    """Seconds to sleep after failed attempt number ``attempt`` (1-based)."""
    return initial_delay * (2 ** (attempt - 1))


def retry_call(
    func: Callable[..., T],
    *args: Any,
    max_attempts: Optional[int] = None,
    initial_delay: float = DEFAULT_INITIAL_DELAY,
    error_msg: str = "Command failed",
    **kwargs: Any,
) -> T:
    """
    Call ``func(*args, **kwargs)`` until it succeeds or attempts run out.

    Args:
        func: The remote call to make
        max_attempts: Attempt budget (default: the ``retry_attempts`` setting)
        initial_delay: Delay in seconds after the first failure
        error_msg: Message logged and raised once attempts are exhausted

    Returns:
        Whatever ``func`` returns

    Raises:
        RetryError: When every attempt failed
        Exception: Non-retryable errors are re-raised unchanged on first sight
    """
    if max_attempts is None:
        max_attempts = setting("retry_attempts")
    max_attempts = max(1, int(max_attempts))

    attempt = 1
    while True:
        try:
            return func(*args, **kwargs)
        except Exception as e:
            if not is_retryable(e):
                raise

            if attempt >= max_attempts:
                logger.error("ERROR: %s after %d attempts: %s", error_msg, max_attempts, e)
                raise RetryError(
                    f"{error_msg} after {max_attempts} attempts", max_attempts, e
                ) from e

            delay = backoff_delay(attempt, initial_delay)
            logger.warning("Attempt %d failed (%s), retrying in %ss...", attempt, e, delay)
            time.sleep(delay)
            attempt += 1


def retry_describe(
    func: Callable[..., T],
    *args: Any,
    error_msg: str = "Accelerator deployment check failed",
    **kwargs: Any,
) -> T:
    """Long-wait variant for accelerator status polling: 5 attempts starting at 30s."""
    return retry_call(
        func,
        *args,
        max_attempts=DESCRIBE_MAX_ATTEMPTS,
        initial_delay=DESCRIBE_INITIAL_DELAY,
        error_msg=error_msg,
        **kwargs,
    )
