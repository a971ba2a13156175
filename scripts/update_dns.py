#!/usr/bin/env python3
"""
=============================
= ROUTE 53 CNAME MANAGEMENT =
=============================

Title: Standalone DNS management for Global Accelerator endpoints
Version: v1.0.0

Description:
Creates, updates, deletes or validates a Route 53 CNAME record. The target
can be given explicitly or taken from the accelerator recorded by
create_accelerator.py (--use-accelerator).

Exit codes:
    0    Success
    1    General error
    2    Invalid arguments
    3    DNS operation failed
    4    Validation failed
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
from galib.config import setting
from galib.dns import DnsRecordManager, MAX_TTL, MIN_TTL, is_valid_ttl, validate_parameters
from galib.errors import aws_error_handler
from galib.log import (
    log_error,
    log_info,
    log_script_end,
    log_script_start,
    log_success,
    log_warning,
    setup_logging,
)
from galib.state import DNS_RECORD, StateStore

SCRIPT_NAME = "update_dns.py"
VERSION = "1.0.0"

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INVALID_ARGS = 2
EXIT_DNS_FAILED = 3
EXIT_VALIDATION_FAILED = 4

EPILOG = """\
environment variables:
  HOSTED_ZONE_ID   Route 53 hosted zone ID
  RECORD_NAME      DNS record name
  TARGET_DNS       Target DNS name for CNAME
  DNS_RECORD_TTL   TTL for DNS records

examples:
  update_dns.py create -z Z1234567890ABC -r app.example.com -t my-accelerator-123.awsglobalaccelerator.com
  update_dns.py create -z Z1234567890ABC -r app.example.com --use-accelerator -l 600
  update_dns.py delete -z Z1234567890ABC -r app.example.com
  update_dns.py validate -z Z1234567890ABC -r app.example.com
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="DNS Management Script for Route 53 CNAME Records",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("action", choices=["create", "delete", "validate"], help="Action to perform")
    parser.add_argument("-z", "--hosted-zone-id", help="Route 53 hosted zone ID (required)")
    parser.add_argument("-r", "--record-name", help="DNS record name (required)")
    parser.add_argument("-t", "--target-dns", help="Target DNS name for the CNAME (required for create)")
    parser.add_argument("-l", "--ttl", help="TTL for the DNS record (default: 300)")
    parser.add_argument("--use-accelerator", action="store_true",
                        help="Use the DNS name of the stored Global Accelerator as target")
    parser.add_argument("-v", "--version", action="version", version=f"%(prog)s version {VERSION}")
    return parser


@aws_error_handler("Looking up stored accelerator DNS name", default_return=None)
def lookup_accelerator_dns(state: StateStore) -> Optional[str]:
    accelerator_arn = state.load_accelerator_arn()
    if not accelerator_arn:
        log_error("No stored accelerator ARN found; run create_accelerator.py first")
        return None
    return AcceleratorManager(state=state).get_dns_name(accelerator_arn)


def load_environment(args: argparse.Namespace) -> None:
    """Fill options not given on the command line from the environment."""
    args.hosted_zone_id = args.hosted_zone_id or os.environ.get("HOSTED_ZONE_ID")
    args.record_name = args.record_name or os.environ.get("RECORD_NAME")
    args.target_dns = args.target_dns or os.environ.get("TARGET_DNS")
    if args.ttl is None:
        args.ttl = os.environ.get("DNS_RECORD_TTL") or setting("dns_record_ttl")


def validate_arguments(args: argparse.Namespace) -> List[str]:
    """Return a list of problems; empty when the arguments are usable."""
    errors = []
    if not args.hosted_zone_id:
        errors.append("Hosted zone ID is required. Use --hosted-zone-id or set HOSTED_ZONE_ID.")
    if not args.record_name:
        errors.append(f"Record name is required for {args.action} action. Use --record-name or set RECORD_NAME.")
    if args.action == "create":
        if not args.target_dns and not args.use_accelerator:
            errors.append("Target DNS is required for create action. Use --target-dns, --use-accelerator or set TARGET_DNS.")
        if not is_valid_ttl(args.ttl):
            errors.append(f"TTL must be a number between {MIN_TTL} and {MAX_TTL} seconds.")
    return errors


def display_summary(args: argparse.Namespace) -> None:
    log_info("=== DNS Operation Summary ===")
    log_info(f"Action: {args.action}")
    log_info(f"Hosted Zone ID: {args.hosted_zone_id}")
    log_info(f"Record Name: {args.record_name}")
    if args.action == "create":
        log_info(f"Target DNS: {args.target_dns or '<stored accelerator>'}")
        log_info(f"TTL: {args.ttl} seconds")
    log_info("=============================")


def perform_create(args: argparse.Namespace, state: StateStore) -> int:
    target_dns = args.target_dns
    if args.use_accelerator:
        target_dns = lookup_accelerator_dns(state)
        if not target_dns:
            return EXIT_ERROR

    log_info(f"Creating CNAME record: {args.record_name} -> {target_dns} (TTL: {args.ttl})")
    try:
        DnsRecordManager(state=state).create_cname_record(
            args.hosted_zone_id, args.record_name, target_dns, int(args.ttl)
        )
    except Exception as e:
        log_error("Failed to create CNAME record", e)
        return EXIT_DNS_FAILED

    log_success("Created/updated CNAME record; stored for future cleanup")
    return EXIT_OK


def perform_delete(args: argparse.Namespace, state: StateStore) -> int:
    log_info(f"Deleting CNAME record: {args.record_name}")
    try:
        DnsRecordManager(state=state).delete_cname_record(args.hosted_zone_id, args.record_name)
    except Exception as e:
        log_error("Failed to delete CNAME record", e)
        return EXIT_DNS_FAILED

    if state.clear(DNS_RECORD):
        log_info("Cleaned up stored DNS record information")
    else:
        log_warning("No stored DNS record information to clean up")
    log_success("Deleted CNAME record")
    return EXIT_OK


def perform_validate(args: argparse.Namespace) -> int:
    log_info("Validating DNS parameters")
    if validate_parameters(args.hosted_zone_id, args.record_name):
        log_info("DNS parameters are valid")
        return EXIT_OK
    log_error("DNS parameter validation failed")
    return EXIT_VALIDATION_FAILED


def main(argv: Optional[List[str]] = None) -> int:
    start_time = datetime.datetime.now()
    setup_logging("update-dns")
    log_script_start(SCRIPT_NAME, f"Route 53 CNAME management (version {VERSION})")

    try:
        parser = build_parser()
        try:
            args = parser.parse_args(argv)
        except SystemExit as e:
            # --help/--version exit 0, usage errors exit 2
            return e.code if isinstance(e.code, int) else EXIT_INVALID_ARGS

        try:
            load_environment(args)
        except ValueError as e:
            log_error("Invalid configuration", e)
            return EXIT_INVALID_ARGS

        problems = validate_arguments(args)
        if problems:
            for problem in problems:
                log_error(problem)
            parser.print_usage(sys.stderr)
            return EXIT_INVALID_ARGS

        display_summary(args)
        state = StateStore()

        if args.action == "create":
            result = perform_create(args, state)
        elif args.action == "delete":
            result = perform_delete(args, state)
        else:
            result = perform_validate(args)

        if result == EXIT_OK:
            log_info("DNS operation completed successfully")
        return result
    except KeyboardInterrupt:
        log_error("Operation cancelled by user")
        return EXIT_ERROR
    finally:
        log_script_end(SCRIPT_NAME, start_time)


if __name__ == "__main__":
    sys.exit(main())
