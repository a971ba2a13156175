"""
galib.state — Small key files in the state directory.

Each fact (an ARN, a role name, ``zone:record``) lives in its own file so a
later invocation, typically the shutdown run, can find what the boot run
created.
"""

import logging
import os
from pathlib import Path
from typing import Optional, Tuple

from galib.config import get_state_dir

logger = logging.getLogger(__name__)

ACCELERATOR_ARN = "accelerator-arn"
LISTENER_ARN = "listener-arn"
ENDPOINT_GROUP_ARN = "endpoint-group-arn"
DNS_RECORD = "accelerator-dns-record"
ROLE_NAME = "role-name"
POLICY_NAME = "policy-name"
README = "README.txt"

README_TEXT = (
    "Files created by AWS Global Accelerator automation scripts for managing "
    "accelerator endpoints and Route 53 DNS records.\n"
)


class StateStore:
    """
    File-per-key store rooted at the state directory.

    Example:
        >>> store = StateStore()
        >>> store.store(ACCELERATOR_ARN, arn)
        >>> store.load(ACCELERATOR_ARN)
        'arn:aws:globalaccelerator::123456789012:accelerator/...'
        >>> store.clear(ACCELERATOR_ARN)
    """

    def __init__(self, state_dir: Optional[Path] = None):
        self.state_dir = Path(state_dir) if state_dir else get_state_dir()

    def path(self, key: str) -> Path:
        return self.state_dir / key

    def store(self, key: str, value: str) -> None:
        """Write ``value`` to the key file atomically (.tmp then os.replace)."""
        self.state_dir.mkdir(parents=True, exist_ok=True)
        target = self.path(key)
        tmp_path = target.with_name(target.name + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(f"{value}\n")
        os.replace(tmp_path, target)
        logger.info("Stored %s: %s", key, value)

    def load(self, key: str) -> Optional[str]:
        """Return the stripped file content, or None when missing or empty."""
        target = self.path(key)
        if not target.exists():
            logger.debug("No stored %s found", key)
            return None

        value = target.read_text(encoding="utf-8").strip()
        if not value:
            logger.info("Empty %s", key)
            return None

        logger.debug("Loaded %s: %s", key, value)
        return value

    def clear(self, key: str) -> bool:
        """Remove the key file. Returns True if a file was removed."""
        target = self.path(key)
        if target.exists():
            target.unlink()
            logger.info("Cleaned up %s", key)
            return True
        return False

    def write_readme(self) -> None:
        self.state_dir.mkdir(parents=True, exist_ok=True)
        self.path(README).write_text(README_TEXT, encoding="utf-8")

    # -----------------------------------------------------------------------
    # Typed accessors
    # -----------------------------------------------------------------------

    def store_accelerator_arn(self, arn: str) -> None:
        self.store(ACCELERATOR_ARN, arn)

    def load_accelerator_arn(self) -> Optional[str]:
        return self.load(ACCELERATOR_ARN)

    def clear_accelerator(self) -> None:
        """Forget the accelerator and its child resources."""
        for key in (ACCELERATOR_ARN, LISTENER_ARN, ENDPOINT_GROUP_ARN):
            self.clear(key)

    def store_dns_record(self, hosted_zone_id: str, record_name: str) -> None:
        self.store(DNS_RECORD, format_dns_record(hosted_zone_id, record_name))

    def load_dns_record(self) -> Optional[Tuple[str, str]]:
        """Return (hosted_zone_id, record_name), or None if absent or malformed."""
        raw = self.load(DNS_RECORD)
        if raw is None:
            return None
        parsed = parse_dns_record(raw)
        if parsed is None:
            logger.warning("Invalid DNS record information format: %s", raw)
        return parsed


def format_dns_record(hosted_zone_id: str, record_name: str) -> str:
    return f"{hosted_zone_id}:{record_name}"


def parse_dns_record(raw: str) -> Optional[Tuple[str, str]]:
    """Split ``zone:record`` on the first colon; both halves must be non-empty."""
    zone_id, sep, record_name = raw.strip().partition(":")
    if not sep or not zone_id or not record_name:
        return None
    return zone_id, record_name
