"""
galib.dns — Route 53 CNAME management for the accelerator hostname.

A record is created with UPSERT. Route 53 only accepts a DELETE whose record
set matches the live one exactly, so deletion first reads the current value
and TTL and replays them.
"""

import logging
import re
from typing import Any, Dict, Optional

from galib.aws_client import get_route53_client
from galib.retry import retry_call
from galib.state import StateStore

logger = logging.getLogger(__name__)

DEFAULT_TTL = 300
MIN_TTL = 60
MAX_TTL = 86400

HOSTED_ZONE_ID_PATTERN = re.compile(r"^Z[A-Z0-9]{10,32}$")
RECORD_NAME_PATTERN = re.compile(
    r"^[a-zA-Z0-9]([a-zA-Z0-9\-]{0,61}[a-zA-Z0-9])?(\.[a-zA-Z0-9]([a-zA-Z0-9\-]{0,61}[a-zA-Z0-9])?)*$"
)


class DnsError(Exception):
    """Raised when a Route 53 record cannot be managed."""
    pass


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def normalize_zone_id(hosted_zone_id: str) -> str:
    """'/hostedzone/Z123' -> 'Z123'."""
    return hosted_zone_id.strip().split("/")[-1]


def normalize_record_name(record_name: str) -> str:
    return record_name.strip().rstrip(".").lower()


def is_valid_hosted_zone_id(hosted_zone_id: str) -> bool:
    return bool(HOSTED_ZONE_ID_PATTERN.match(normalize_zone_id(hosted_zone_id)))


def is_valid_record_name(record_name: str) -> bool:
    return bool(RECORD_NAME_PATTERN.match(record_name.strip().rstrip(".")))


def is_valid_ttl(ttl: Any) -> bool:
    try:
        value = int(ttl)
    except (TypeError, ValueError):
        return False
    return MIN_TTL <= value <= MAX_TTL


def validate_parameters(hosted_zone_id: str, record_name: str) -> bool:
    """
    Validate DNS parameters, logging each problem.

    Args:
        hosted_zone_id: Route 53 hosted zone ID (bare or /hostedzone/ form)
        record_name: Fully qualified record name

    Returns:
        bool: True if both are well formed
    """
    valid = True
    if not hosted_zone_id or not is_valid_hosted_zone_id(hosted_zone_id):
        logger.error("Invalid hosted zone ID format: %s", hosted_zone_id)
        valid = False
    if not record_name or not is_valid_record_name(record_name):
        logger.error("Invalid record name format: %s", record_name)
        valid = False
    if valid:
        logger.info("DNS parameters validated successfully")
    return valid


def _change_batch(action: str, record_name: str, value: str, ttl: int) -> Dict[str, Any]:
    return {
        "Changes": [
            {
                "Action": action,
                "ResourceRecordSet": {
                    "Name": record_name,
                    "Type": "CNAME",
                    "TTL": int(ttl),
                    "ResourceRecords": [{"Value": value}],
                },
            }
        ]
    }


# ---------------------------------------------------------------------------
# Record manager
# ---------------------------------------------------------------------------


class DnsRecordManager:
    """CNAME create/delete against one Route 53 client."""

    def __init__(self, client=None, state: Optional[StateStore] = None):
        self.client = client or get_route53_client()
        self.state = state or StateStore()

    def find_cname_record(self, hosted_zone_id: str, record_name: str) -> Optional[Dict[str, Any]]:
        """Return the CNAME record set named ``record_name``, or None."""
        zone_id = normalize_zone_id(hosted_zone_id)
        wanted = normalize_record_name(record_name)

        paginator = self.client.get_paginator("list_resource_record_sets")
        pages = retry_call(
            lambda: list(paginator.paginate(HostedZoneId=zone_id)),
            error_msg="Listing Route 53 records failed",
        )
        for page in pages:
            for record_set in page.get("ResourceRecordSets", []):
                if record_set.get("Type") != "CNAME":
                    continue
                if normalize_record_name(record_set.get("Name", "")) == wanted:
                    return record_set
        return None

    def create_cname_record(
        self,
        hosted_zone_id: str,
        record_name: str,
        target_dns: str,
        ttl: int = DEFAULT_TTL,
    ) -> str:
        """
        Create or update the CNAME ``record_name -> target_dns``.

        Returns:
            str: The Route 53 change id
        """
        if not hosted_zone_id or not record_name or not target_dns:
            raise DnsError("hosted_zone_id, record_name and target_dns are required")
        if not is_valid_ttl(ttl):
            raise DnsError(f"TTL must be a number between {MIN_TTL} and {MAX_TTL} seconds")

        zone_id = normalize_zone_id(hosted_zone_id)
        logger.info("Creating/updating CNAME record: %s -> %s", record_name, target_dns)

        response = retry_call(
            self.client.change_resource_record_sets,
            HostedZoneId=zone_id,
            ChangeBatch=_change_batch("UPSERT", record_name, target_dns, ttl),
            error_msg="Creating CNAME record failed",
        )
        change_id = response.get("ChangeInfo", {}).get("Id")
        if not change_id:
            raise DnsError(f"Failed to create/update CNAME record: {record_name}")

        logger.info("Route 53 change submitted: %s", change_id)
        self.state.store_dns_record(zone_id, record_name)
        return change_id

    def delete_cname_record(self, hosted_zone_id: str, record_name: str) -> bool:
        """
        Delete the CNAME using its current value and TTL.

        Returns:
            bool: True if a record was deleted, False if none existed
        """
        if not hosted_zone_id or not record_name:
            raise DnsError("hosted_zone_id and record_name are required")

        zone_id = normalize_zone_id(hosted_zone_id)
        logger.info("Deleting CNAME record: %s", record_name)

        record_set = self.find_cname_record(zone_id, record_name)
        if record_set is None:
            logger.info("CNAME record not found or already deleted: %s", record_name)
            return False

        records = record_set.get("ResourceRecords", [])
        current_value = records[0].get("Value") if records else None
        if not current_value:
            raise DnsError(f"Could not determine current CNAME value for {record_name}")
        current_ttl = record_set.get("TTL", DEFAULT_TTL)

        retry_call(
            self.client.change_resource_record_sets,
            HostedZoneId=zone_id,
            ChangeBatch=_change_batch("DELETE", record_set["Name"], current_value, current_ttl),
            error_msg="Deleting CNAME record failed",
        )
        logger.info("CNAME record deleted successfully: %s", record_name)
        return True
