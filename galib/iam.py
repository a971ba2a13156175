"""
galib.iam — Instance role for the accelerator automation.

Creates a role assumable by EC2 with a managed policy covering the Global
Accelerator, Route 53 and EC2 calls the scripts make. Role and policy names
carry a random suffix and are kept in the state store, which is how a rerun
recognises an existing setup.
"""

import json
import logging
import secrets
from dataclasses import dataclass
from typing import Optional

from botocore.exceptions import ClientError

from galib.aws_client import get_boto3_client
from galib.errors import client_error_code
from galib.retry import retry_call
from galib.state import POLICY_NAME, ROLE_NAME, StateStore

logger = logging.getLogger(__name__)

ROLE_PREFIX = "ec2-global-accelerator-r53"
POLICY_PREFIX = "GlobalAcceleratorRoute53Policy"

TRUST_POLICY = {
    "Version": "2012-10-17",
    "Statement": [
        {
            "Effect": "Allow",
            "Principal": {"Service": "ec2.amazonaws.com"},
            "Action": "sts:AssumeRole",
        }
    ],
}

PERMISSIONS_POLICY = {
    "Version": "2012-10-17",
    "Statement": [
        {
            "Effect": "Allow",
            "Action": [
                "globalaccelerator:*",
                "route53:ChangeResourceRecordSets",
                "route53:GetChange",
                "route53:ListResourceRecordSets",
                "ec2:DescribeNetworkInterfaces",
                "ec2:DescribeInstances",
            ],
            "Resource": "*",
        }
    ],
}


@dataclass
class RoleSetup:
    role_name: str
    policy_name: str
    policy_arn: Optional[str]
    created: bool


def _role_exists(iam, role_name: str) -> bool:
    try:
        retry_call(iam.get_role, RoleName=role_name, error_msg="Checking IAM role failed")
    except ClientError as e:
        if client_error_code(e) == "NoSuchEntity":
            return False
        raise
    return True


def setup_iam_role(client=None, state: Optional[StateStore] = None) -> RoleSetup:
    """
    Ensure the automation role exists, creating role and policy if needed.

    Returns:
        RoleSetup describing the role; ``created`` is False when it already existed
    """
    iam = client or get_boto3_client("iam", region_name="us-east-1")
    state = state or StateStore()

    stored_role = state.load(ROLE_NAME)
    if stored_role and _role_exists(iam, stored_role):
        logger.info("IAM role %s already exists", stored_role)
        return RoleSetup(stored_role, state.load(POLICY_NAME) or "", None, created=False)

    unique_id = secrets.token_hex(4)
    role_name = f"{ROLE_PREFIX}-{unique_id}"
    policy_name = f"{POLICY_PREFIX}-{unique_id}"

    logger.info("Creating IAM policy: %s", policy_name)
    policy_arn = retry_call(
        iam.create_policy,
        PolicyName=policy_name,
        PolicyDocument=json.dumps(PERMISSIONS_POLICY),
        error_msg="Creating IAM policy failed",
    )["Policy"]["Arn"]

    logger.info("Creating IAM role: %s", role_name)
    retry_call(
        iam.create_role,
        RoleName=role_name,
        AssumeRolePolicyDocument=json.dumps(TRUST_POLICY),
        error_msg="Creating IAM role failed",
    )
    retry_call(
        iam.attach_role_policy,
        RoleName=role_name,
        PolicyArn=policy_arn,
        error_msg="Attaching IAM policy failed",
    )

    state.write_readme()
    state.store(ROLE_NAME, role_name)
    state.store(POLICY_NAME, policy_name)

    logger.info("IAM role %s and policy %s created successfully", role_name, policy_name)
    return RoleSetup(role_name, policy_name, policy_arn, created=True)
