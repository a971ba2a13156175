#!/usr/bin/env python3
"""
Title: Setup IAM role for Global Accelerator and Route 53 automation
Version: v1.0.0

Description:
Creates the EC2-assumable role and managed policy needed by
create_accelerator.py, destroy_accelerator.py and update_dns.py. Run once
from a workstation with IAM permissions; attach the role to the instance
through an instance profile afterwards. Does nothing if the recorded role
still exists.
"""

import argparse
import datetime
import sys
from pathlib import Path
from typing import List, Optional

try:
    import galib.config  # noqa: F401
except ImportError:
    sys.path.append(str(Path(__file__).parent.parent.absolute()))

from galib.aws_client import validate_aws_credentials
from galib.errors import handle_aws_operation
from galib.iam import setup_iam_role
from galib.log import log_error, log_info, log_script_end, log_script_start, log_success, setup_logging

SCRIPT_NAME = "setup_iam_role.py"


def main(argv: Optional[List[str]] = None) -> int:
    argparse.ArgumentParser(description="Create the IAM role used by the accelerator scripts").parse_args(argv)

    start_time = datetime.datetime.now()
    setup_logging("setup-iam-role")
    log_script_start(SCRIPT_NAME, "IAM role for Global Accelerator and Route 53")

    try:
        is_valid, account_id, error_message = validate_aws_credentials()
        if not is_valid:
            log_error(f"AWS credentials validation failed: {error_message}")
            log_info("Configure credentials with an instance role, AWS_PROFILE or AWS_ACCESS_KEY_ID/AWS_SECRET_ACCESS_KEY")
            return 1
        log_success(f"AWS credentials validated for account {account_id}")

        with handle_aws_operation("Setting up IAM role"):
            result = setup_iam_role()
    except KeyboardInterrupt:
        log_error("Operation cancelled by user")
        return 1
    except Exception:
        # already logged by handle_aws_operation
        return 1
    finally:
        log_script_end(SCRIPT_NAME, start_time)

    if result.created:
        log_success(f"IAM role {result.role_name} and policy {result.policy_name} created")
    else:
        log_info(f"IAM role {result.role_name} already exists")
    print(result.role_name)
    return 0


if __name__ == "__main__":
    sys.exit(main())
