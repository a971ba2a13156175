"""
galib.aws_client — boto3 client factory and region utilities.

Clients get explicit timeouts. SDK-level retries are capped at a single
attempt by default because galib.retry owns the backoff policy.
"""

import logging
import re
from typing import Optional, Tuple

import boto3
from botocore.config import Config

from galib.config import GA_API_REGION, config_value

logger = logging.getLogger(__name__)

_REGION_PATTERN = re.compile(r"^[a-z]{2}(-gov)?-[a-z]+-[0-9]+$")


# ---------------------------------------------------------------------------
# Region validation
# ---------------------------------------------------------------------------


def is_aws_region(region: str) -> bool:
    """
    Check if a region name looks like an AWS region.

    Args:
        region: AWS region name

    Returns:
        bool: True if valid, False otherwise
    """
    return bool(region) and bool(_REGION_PATTERN.match(region))


def validate_aws_region(region: Optional[str]) -> bool:
    """Validate a region and log a helpful error if it is not one."""
    if not region or not is_aws_region(region):
        logger.error("Invalid AWS region: %s", region)
        logger.error("Valid AWS regions look like: us-east-1, eu-west-1, ap-southeast-2")
        return False
    return True


# ---------------------------------------------------------------------------
# Session and client factory
# ---------------------------------------------------------------------------


def get_aws_session(region_name: Optional[str] = None):
    """Create a boto3 session for the specified region."""
    return boto3.Session(region_name=region_name)


def get_boto3_client(service: str, region_name: Optional[str] = None, **kwargs):
    """
    Create boto3 client with standard timeouts and retry configuration.

    Args:
        service: AWS service name (e.g., 'ec2', 'route53', 'globalaccelerator')
        region_name: AWS region name (optional)
        **kwargs: Additional arguments to pass to client creation

    Returns:
        boto3.client: Configured boto3 client
    """
    retry_config = config_value("retries", {"max_attempts": 1, "mode": "standard"}, section="aws_sdk_config")
    connect_timeout = config_value("connect_timeout", 10, section="aws_sdk_config")
    read_timeout = config_value("read_timeout", 60, section="aws_sdk_config")

    config = Config(
        retries=retry_config,
        connect_timeout=connect_timeout,
        read_timeout=read_timeout,
    )

    session = get_aws_session(region_name)
    return session.client(service, config=config, **kwargs)


def get_globalaccelerator_client():
    """Global Accelerator client bound to its API region (us-west-2)."""
    return get_boto3_client("globalaccelerator", region_name=GA_API_REGION)


def get_route53_client():
    # Route 53 is global; the region only selects the endpoint partition
    return get_boto3_client("route53", region_name="us-east-1")


# ---------------------------------------------------------------------------
# Credential validation
# ---------------------------------------------------------------------------


def validate_aws_credentials(region_name: str = "us-east-1") -> Tuple[bool, Optional[str], Optional[str]]:
    """
    Validate AWS credentials with an STS identity call.

    Returns:
        tuple: (is_valid, account_id, error_message)
    """
    try:
        sts = get_boto3_client("sts", region_name=region_name)
        response = sts.get_caller_identity()
        return True, response["Account"], None
    except Exception as e:
        return False, None, str(e)
