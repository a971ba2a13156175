"""
Unit tests for galib.aws_client — client factory and region utilities.
"""

import sys
from pathlib import Path
from unittest.mock import MagicMock, Mock, patch

sys.path.insert(0, str(Path(__file__).parent.parent.parent))
from galib.aws_client import (
    get_boto3_client,
    get_globalaccelerator_client,
    is_aws_region,
    validate_aws_credentials,
    validate_aws_region,
)


class TestIsAwsRegion:
    def test_valid_commercial(self):
        assert is_aws_region("us-east-1") is True
        assert is_aws_region("ap-southeast-2") is True

    def test_valid_govcloud(self):
        assert is_aws_region("us-gov-west-1") is True

    def test_invalid(self):
        assert is_aws_region("not-a-region") is False
        assert is_aws_region("") is False


class TestValidateAwsRegion:
    def test_valid_region(self):
        assert validate_aws_region("eu-west-1") is True

    def test_invalid_region(self):
        assert validate_aws_region("invalid") is False

    def test_none(self):
        assert validate_aws_region(None) is False


class TestGetBoto3Client:
    def test_sdk_retries_capped_by_default(self):
        mock_session = MagicMock()

        with patch("galib.aws_client.boto3.Session", return_value=mock_session):
            with patch("galib.config.get_config", return_value={}):
                get_boto3_client("route53", region_name="us-east-1")

        config = mock_session.client.call_args[1]["config"]
        assert config.retries == {"max_attempts": 1, "mode": "standard"}
        assert config.connect_timeout == 10
        assert config.read_timeout == 60

    def test_sdk_config_from_settings(self):
        mock_session = MagicMock()
        sdk = {"aws_sdk_config": {"retries": {"max_attempts": 4, "mode": "adaptive"}, "read_timeout": 5}}

        with patch("galib.aws_client.boto3.Session", return_value=mock_session):
            with patch("galib.config.get_config", return_value=sdk):
                get_boto3_client("ec2", region_name="us-east-1")

        config = mock_session.client.call_args[1]["config"]
        assert config.retries == {"max_attempts": 4, "mode": "adaptive"}
        assert config.read_timeout == 5

    def test_globalaccelerator_uses_us_west_2(self):
        with patch("galib.aws_client.get_boto3_client") as factory:
            get_globalaccelerator_client()
        factory.assert_called_once_with("globalaccelerator", region_name="us-west-2")


class TestValidateAwsCredentials:
    def test_success(self):
        mock_sts = Mock()
        mock_sts.get_caller_identity.return_value = {"Account": "123456789012"}

        with patch("galib.aws_client.get_boto3_client", return_value=mock_sts):
            valid, account_id, error = validate_aws_credentials()

        assert (valid, account_id, error) == (True, "123456789012", None)

    def test_failure(self):
        with patch("galib.aws_client.get_boto3_client", side_effect=Exception("no creds")):
            valid, account_id, error = validate_aws_credentials()

        assert valid is False
        assert account_id is None
        assert error == "no creds"
