"""
galib.errors — Standardized AWS error handling.

Provides the ``aws_error_handler`` decorator and the ``handle_aws_operation``
context manager. Both log NoCredentialsError and ClientError with their AWS
error code and either re-raise or hand back a default value.
"""

from contextlib import contextmanager
from functools import wraps
from typing import Any, Callable, Optional, TypeVar

from botocore.exceptions import ClientError, NoCredentialsError

from galib.log import log_error

T = TypeVar("T")


def client_error_code(exc: BaseException) -> Optional[str]:
    """Return the AWS error code of a ClientError, or None for other exceptions."""
    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Code")
    return None


def _log_aws_exception(operation_name: str, e: Exception) -> None:
    if isinstance(e, NoCredentialsError):
        log_error(
            f"{operation_name}: No AWS credentials found. "
            "Attach an instance role or configure credentials via environment variables."
        )
    elif isinstance(e, ClientError):
        error_code = e.response.get("Error", {}).get("Code", "Unknown")
        error_msg = e.response.get("Error", {}).get("Message", str(e))
        log_error(f"{operation_name}: AWS error [{error_code}]: {error_msg}")
    else:
        log_error(f"{operation_name}: Unexpected error", e)


def aws_error_handler(
    operation_name: str,
    default_return: Any = None,
    reraise: bool = False,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator for standardized AWS error handling.

    Args:
        operation_name: Human-readable operation description for logging
        default_return: Value to return on error (if not reraising)
        reraise: Whether to re-raise the exception after logging

    Example:
        @aws_error_handler("Looking up accelerator DNS name", default_return=None)
        def lookup(arn):
            return get_dns_name(arn)
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                _log_aws_exception(operation_name, e)
                if reraise:
                    raise
                return default_return

        return wrapper
    return decorator


@contextmanager
def handle_aws_operation(operation_name: str, suppress_errors: bool = False):
    """
    Context manager for AWS operations with standardized error handling.

    Errors raised inside the block are logged; they propagate unless
    ``suppress_errors`` is set.

    Example:
        with handle_aws_operation("Removing Route 53 record", suppress_errors=True):
            delete_cname_record(zone_id, record_name)
    """
    try:
        yield
    except Exception as e:
        _log_aws_exception(operation_name, e)
        if not suppress_errors:
            raise
