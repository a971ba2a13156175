#!/usr/bin/env python3
"""
===================================
= EC2 GLOBAL ACCELERATOR TEARDOWN =
===================================

Title: Destroy Global Accelerator Endpoint
Version: v1.0.0

Description:
Removes the Route 53 CNAME recorded by a previous run (if any) and then the
Global Accelerator whose ARN is in the state directory. Meant to run at
instance shutdown. A state file is only removed once the resource it points
to is gone, so a failed run can simply be repeated.
"""

import argparse
import datetime
import os
import sys
from pathlib import Path
from typing import List, Optional

try:
    import galib.config  # noqa: F401
except ImportError:
    sys.path.append(str(Path(__file__).parent.parent.absolute()))

from galib.accelerator import AcceleratorManager
from galib.dns import DnsRecordManager
from galib.log import log_error, log_info, log_script_end, log_script_start, log_success, log_warning, setup_logging
from galib.state import DNS_RECORD, StateStore

SCRIPT_NAME = "destroy_accelerator.py"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Destroy the Global Accelerator created for this instance")
    parser.add_argument("--retry-attempts", type=int, help="Number of retry attempts (default: 3)")
    parser.add_argument("--keep-dns", action="store_true", help="Leave the recorded Route 53 CNAME in place")
    return parser


def remove_dns_record(state: StateStore) -> None:
    """Delete the recorded CNAME. Failures are warnings; the state file then stays."""
    record = state.load_dns_record()
    if record is None:
        return

    hosted_zone_id, record_name = record
    log_info(f"Removing Route 53 CNAME record: {record_name}")
    try:
        deleted = DnsRecordManager(state=state).delete_cname_record(hosted_zone_id, record_name)
    except Exception as e:
        log_warning(f"Failed to delete Route 53 record {record_name}: {e}")
        return

    if deleted:
        log_info("Route 53 record deleted successfully")
    else:
        log_info("Route 53 record not found or already deleted")
    state.clear(DNS_RECORD)


def main(argv: Optional[List[str]] = None) -> int:
    start_time = datetime.datetime.now()
    setup_logging("destroy-accelerator")
    log_script_start(SCRIPT_NAME, "Destroy Global Accelerator endpoint")

    try:
        return run(build_parser().parse_args(argv))
    except KeyboardInterrupt:
        log_error("Operation cancelled by user")
        return 1
    finally:
        log_script_end(SCRIPT_NAME, start_time)


def run(args: argparse.Namespace) -> int:
    if args.retry_attempts is not None:
        os.environ["RETRY_ATTEMPTS"] = str(args.retry_attempts)

    log_info("Starting Global Accelerator cleanup...")
    state = StateStore()

    accelerator_arn = state.load_accelerator_arn()
    if not accelerator_arn:
        # a CNAME left behind by an earlier failed run is still retried
        if not args.keep_dns:
            remove_dns_record(state)
        log_info("No accelerator ARN found, nothing to cleanup")
        return 0

    log_info(f"Cleaning up accelerator: {accelerator_arn}")

    if not args.keep_dns:
        remove_dns_record(state)

    try:
        AcceleratorManager(state=state).delete_accelerator(accelerator_arn)
    except Exception as e:
        log_error("Failed to delete Global Accelerator", e)
        return 1

    state.clear_accelerator()
    log_success("Global Accelerator cleanup completed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
