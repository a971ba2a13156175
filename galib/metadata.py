"""
galib.metadata — EC2 instance identity via IMDSv2 and the EC2 API.

Resolves the local instance id (and, when not supplied, its region) from the
instance metadata service, then looks up the primary network interface, which
becomes the Global Accelerator endpoint.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from galib.aws_client import get_boto3_client
from galib.retry import retry_call

logger = logging.getLogger(__name__)

IMDS_BASE_URL = "http://169.254.169.254/latest"
TOKEN_TTL_SECONDS = 21600
# (connect, read) seconds
IMDS_TIMEOUT = (5, 10)


class MetadataError(Exception):
    """Raised when instance identity cannot be resolved."""
    pass


@dataclass
class InstanceMetadata:
    instance_id: str
    primary_eni_id: str
    region: str


def get_imds_token(session: Optional[requests.Session] = None) -> str:
    """Fetch an IMDSv2 session token."""
    http = session or requests
    try:
        response = http.put(
            f"{IMDS_BASE_URL}/api/token",
            headers={"X-aws-ec2-metadata-token-ttl-seconds": str(TOKEN_TTL_SECONDS)},
            timeout=IMDS_TIMEOUT,
        )
        response.raise_for_status()
    except requests.RequestException as e:
        raise MetadataError(f"Failed to get IMDSv2 token (timeout or connection failed): {e}") from e

    token = response.text.strip()
    if not token:
        raise MetadataError("Failed to get IMDSv2 token (empty response)")
    return token


def get_metadata_value(path: str, token: str, session: Optional[requests.Session] = None) -> str:
    """GET ``/latest/meta-data/<path>`` with the session token."""
    http = session or requests
    try:
        response = http.get(
            f"{IMDS_BASE_URL}/meta-data/{path}",
            headers={"X-aws-ec2-metadata-token": token},
            timeout=IMDS_TIMEOUT,
        )
        response.raise_for_status()
    except requests.RequestException as e:
        raise MetadataError(f"Failed to get metadata '{path}': {e}") from e

    value = response.text.strip()
    if not value:
        raise MetadataError(f"Metadata '{path}' is empty")
    return value


def get_instance_id(token: str, session: Optional[requests.Session] = None) -> str:
    return get_metadata_value("instance-id", token, session)


def get_instance_region(token: str, session: Optional[requests.Session] = None) -> str:
    return get_metadata_value("placement/region", token, session)


def select_primary_interface(interfaces: List[Dict[str, Any]]) -> Optional[str]:
    """
    Pick the primary ENI: the one attached at device index 0, else the first listed.
    """
    for eni in interfaces:
        if eni.get("Attachment", {}).get("DeviceIndex") == 0:
            return eni.get("NetworkInterfaceId")
    if interfaces:
        return interfaces[0].get("NetworkInterfaceId")
    return None


def get_primary_eni(instance_id: str, region: str) -> str:
    """
    Look up the primary network interface id of an instance.

    Raises:
        MetadataError: The instance has no network interfaces
    """
    ec2 = get_boto3_client("ec2", region_name=region)
    response = retry_call(
        ec2.describe_instances,
        InstanceIds=[instance_id],
        error_msg="Describing instance failed",
    )

    reservations = response.get("Reservations", [])
    instances = reservations[0].get("Instances", []) if reservations else []
    interfaces = instances[0].get("NetworkInterfaces", []) if instances else []

    eni_id = select_primary_interface(interfaces)
    if not eni_id:
        raise MetadataError(f"Could not find primary ENI for instance {instance_id}")
    return eni_id


def get_instance_metadata(region: Optional[str] = None) -> InstanceMetadata:
    """
    Resolve instance id, region and primary ENI of the local instance.

    Args:
        region: Instance region; read from IMDS when not given
    """
    logger.info("Retrieving EC2 instance metadata...")

    with requests.Session() as session:
        token = get_imds_token(session)
        instance_id = get_instance_id(token, session)
        logger.info("Instance ID: %s", instance_id)

        if not region:
            region = get_instance_region(token, session)
            logger.info("Region from instance metadata: %s", region)

    primary_eni_id = get_primary_eni(instance_id, region)
    logger.info("Primary ENI: %s", primary_eni_id)

    return InstanceMetadata(instance_id=instance_id, primary_eni_id=primary_eni_id, region=region)
