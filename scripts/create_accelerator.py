#!/usr/bin/env python3
"""
===============================
= EC2 GLOBAL ACCELERATOR SETUP =
===============================

Title: Create Global Accelerator Endpoint
Version: v1.0.0

Description:
Creates (or completes) a Global Accelerator with one listener and one endpoint
group whose only endpoint is this instance's primary network interface.
Meant to run on the instance itself at boot. Optionally points a Route 53
CNAME at the accelerator.

The accelerator DNS name is printed on stdout; progress goes to stderr and to
accelerator.log in the state directory.
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

from galib.accelerator import AcceleratorManager, default_accelerator_name
from galib.aws_client import validate_aws_region
from galib.config import AcceleratorSettings, setting
from galib.dns import DnsRecordManager, is_valid_ttl, validate_parameters
from galib.log import (
    log_debug,
    log_error,
    log_info,
    log_script_end,
    log_script_start,
    log_section,
    log_success,
    setup_logging,
)
from galib.metadata import MetadataError, get_instance_metadata
from galib.state import StateStore

SCRIPT_NAME = "create_accelerator.py"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Create a Global Accelerator endpoint for this EC2 instance")
    parser.add_argument("--region", help="AWS region where the EC2 instance is located (default: AWS_REGION, then instance metadata)")
    parser.add_argument("--accelerator-name", help="Name for the Global Accelerator (default: ec2-accelerator-<instance-id>)")
    parser.add_argument("--ip-address-type", type=str.upper, choices=["IPV4", "DUAL_STACK"],
                        help="IP address type (default: IPV4)")
    parser.add_argument("--protocol", type=str.upper, choices=["TCP", "UDP"], help="Listener protocol (default: TCP)")
    parser.add_argument("--port", type=int, help="Listener port (default: 22)")
    parser.add_argument("--health-check-port", type=int, help="Health check port (default: 80)")
    parser.add_argument("--health-check-path", help="Health check path for HTTP(S) checks (default: /health)")
    parser.add_argument("--health-check-protocol", type=str.upper, choices=["TCP", "HTTP", "HTTPS"],
                        help="Health check protocol (default: TCP)")
    parser.add_argument("--retry-attempts", type=int, help="Number of retry attempts (default: 3)")
    parser.add_argument("--hosted-zone-id", help="Route 53 hosted zone for an optional CNAME to the accelerator")
    parser.add_argument("--record-name", help="Record name for the optional CNAME")
    parser.add_argument("--ttl", type=int, help="TTL of the optional CNAME (default: 300)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    start_time = datetime.datetime.now()
    setup_logging("create-accelerator")
    log_script_start(SCRIPT_NAME, "Create Global Accelerator endpoint")

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

    wants_dns = bool(args.hosted_zone_id or args.record_name)
    if wants_dns and not (args.hosted_zone_id and args.record_name):
        log_error("--hosted-zone-id and --record-name must be given together")
        return 1

    try:
        settings = AcceleratorSettings.resolve(
            ip_address_type=args.ip_address_type,
            protocol=args.protocol,
            port=args.port,
            health_check_port=args.health_check_port,
            health_check_path=args.health_check_path,
            health_check_protocol=args.health_check_protocol,
        )
        ttl = setting("dns_record_ttl", args.ttl)
    except ValueError as e:
        log_error("Invalid configuration", e)
        return 1

    if wants_dns and not (validate_parameters(args.hosted_zone_id, args.record_name) and is_valid_ttl(ttl)):
        log_error("Invalid DNS parameters; TTL must be between 60 and 86400 seconds")
        return 1

    region = args.region or os.environ.get("AWS_REGION")
    if region and not validate_aws_region(region):
        return 1

    log_info("Starting Global Accelerator creation...")
    try:
        metadata = get_instance_metadata(region)
    except MetadataError as e:
        log_error("Failed to get EC2 instance metadata", e)
        log_error("Ensure this script is running on an EC2 instance with IMDSv2 enabled")
        return 1
    except Exception as e:
        log_error("Failed to resolve primary network interface", e)
        return 1

    accelerator_name = args.accelerator_name or default_accelerator_name(metadata.instance_id)

    log_section("CONFIGURATION")
    log_debug(f"Resolved settings: {settings}, DNS record TTL: {ttl}")
    log_info(f"  Instance ID: {metadata.instance_id}")
    log_info(f"  Primary ENI: {metadata.primary_eni_id}")
    log_info(f"  Accelerator Name: {accelerator_name}")
    log_info(f"  Endpoint Region: {metadata.region}")
    log_info(f"  IP Address Type: {settings.ip_address_type}")
    log_info(f"  Protocol: {settings.protocol}")
    log_info(f"  Port: {settings.port}")
    log_info(f"  Health Check: {settings.health_check_protocol} port {settings.health_check_port}")
    if settings.health_check_protocol in ("HTTP", "HTTPS"):
        log_info(f"  Health Check Path: {settings.health_check_path}")

    state = StateStore()
    state.write_readme()

    log_section("GLOBAL ACCELERATOR")
    try:
        manager = AcceleratorManager(state=state)
        setup = manager.create_complete_setup(
            accelerator_name, settings, metadata.region, metadata.primary_eni_id
        )
    except Exception as e:
        log_error("Failed to create Global Accelerator setup", e)
        return 1

    log_info("Global Accelerator created successfully:")
    log_info(f"  ARN: {setup.accelerator_arn}")
    log_info(f"  DNS Name: {setup.dns_name}")
    log_info("  Status: Provisioning (may take 2-3 minutes to become active)")

    if wants_dns:
        log_section("ROUTE 53")
        try:
            DnsRecordManager(state=state).create_cname_record(
                args.hosted_zone_id, args.record_name, setup.dns_name, ttl
            )
        except Exception as e:
            log_error(f"Failed to point {args.record_name} at the accelerator", e)
            return 1
        log_info(f"  CNAME: {args.record_name} -> {setup.dns_name}")

    log_success(f"Your service will be accessible via: {args.record_name if wants_dns else setup.dns_name}")
    log_info("Use destroy_accelerator.py to clean up when no longer needed")
    print(setup.dns_name)
    return 0


if __name__ == "__main__":
    sys.exit(main())
