"""
Unit tests for galib.accelerator — accelerator/listener/endpoint-group lifecycle.

moto does not emulate Global Accelerator, so the client is a MagicMock.
"""

import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError

sys.path.insert(0, str(Path(__file__).parent.parent.parent))
from galib.accelerator import (
    AcceleratorError,
    AcceleratorManager,
    AcceleratorSetup,
    default_accelerator_name,
)
from galib.config import AcceleratorSettings
from galib.retry import RetryError
from galib.state import ENDPOINT_GROUP_ARN, LISTENER_ARN, StateStore

ACC_ARN = "arn:aws:globalaccelerator::123456789012:accelerator/acc-1"
LISTENER = f"{ACC_ARN}/listener/l-1"
GROUP = f"{LISTENER}/endpoint-group/g-1"
DNS_NAME = "a1234567890abcdef.awsglobalaccelerator.com"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.delenv("RETRY_ATTEMPTS", raising=False)
    with patch("galib.retry.time.sleep") as sleep:
        yield sleep


@pytest.fixture
def state(tmp_path):
    return StateStore(tmp_path)


@pytest.fixture
def settings():
    return AcceleratorSettings(
        ip_address_type="IPV4",
        protocol="TCP",
        port=22,
        health_check_port=80,
        health_check_path="/health",
        health_check_protocol="TCP",
    )


def _accelerator(status="DEPLOYED", enabled=True):
    return {
        "Accelerator": {
            "AcceleratorArn": ACC_ARN,
            "Status": status,
            "Enabled": enabled,
            "DnsName": DNS_NAME,
        }
    }


def _not_found():
    return ClientError(
        {"Error": {"Code": "AcceleratorNotFoundException", "Message": "not found"}},
        "DescribeAccelerator",
    )


@pytest.fixture
def client():
    ga = MagicMock()
    ga.create_accelerator.return_value = {"Accelerator": {"AcceleratorArn": ACC_ARN}}
    ga.describe_accelerator.return_value = _accelerator()
    ga.list_listeners.return_value = {"Listeners": []}
    ga.create_listener.return_value = {"Listener": {"ListenerArn": LISTENER}}
    ga.list_endpoint_groups.return_value = {"EndpointGroups": []}
    ga.create_endpoint_group.return_value = {"EndpointGroup": {"EndpointGroupArn": GROUP}}
    return ga


# ---------------------------------------------------------------------------
# Individual resources
# ---------------------------------------------------------------------------

class TestCreateAccelerator:
    def test_default_name(self):
        assert default_accelerator_name("i-0abc") == "ec2-accelerator-i-0abc"

    def test_creates_enabled_and_stores_arn(self, client, state):
        manager = AcceleratorManager(client, state)

        assert manager.create_accelerator("ec2-accelerator-i-0abc", "IPV4") == ACC_ARN

        client.create_accelerator.assert_called_once_with(
            Name="ec2-accelerator-i-0abc", IpAddressType="IPV4", Enabled=True
        )
        assert state.load_accelerator_arn() == ACC_ARN

    def test_waits_until_deployed(self, client, state, no_sleep):
        client.describe_accelerator.side_effect = [
            _accelerator(status="IN_PROGRESS"),
            _accelerator(status="IN_PROGRESS"),
            _accelerator(),
        ]
        AcceleratorManager(client, state).create_accelerator("n")

        assert client.describe_accelerator.call_count == 3
        assert [c.args[0] for c in no_sleep.call_args_list] == [30, 60]

    def test_never_deployed_raises_retry_error(self, client, state):
        client.describe_accelerator.return_value = _accelerator(status="IN_PROGRESS")

        with pytest.raises(RetryError):
            AcceleratorManager(client, state).create_accelerator("n")

        # ARN kept so destroy can clean up
        assert state.load_accelerator_arn() == ACC_ARN

    def test_missing_arn_in_response(self, client, state):
        client.create_accelerator.return_value = {"Accelerator": {}}

        with pytest.raises(AcceleratorError):
            AcceleratorManager(client, state).create_accelerator("n")


class TestFindAccelerator:
    def test_not_found_returns_none(self, client, state):
        client.describe_accelerator.side_effect = _not_found()
        manager = AcceleratorManager(client, state)

        assert manager.find_accelerator(ACC_ARN) is None
        assert manager.accelerator_exists(ACC_ARN) is False
        # not-found is never retried
        assert client.describe_accelerator.call_count == 2

    def test_other_errors_propagate(self, client, state):
        client.describe_accelerator.side_effect = ClientError(
            {"Error": {"Code": "AccessDeniedException", "Message": "no"}}, "DescribeAccelerator"
        )
        with pytest.raises(ClientError):
            AcceleratorManager(client, state).find_accelerator(ACC_ARN)


class TestListener:
    def test_create_listener_single_port(self, client, state):
        arn = AcceleratorManager(client, state).create_listener(ACC_ARN, "UDP", 53)

        assert arn == LISTENER
        client.create_listener.assert_called_once_with(
            AcceleratorArn=ACC_ARN,
            Protocol="UDP",
            PortRanges=[{"FromPort": 53, "ToPort": 53}],
        )
        client.describe_listener.assert_called_once_with(ListenerArn=LISTENER)

    def test_find_listener_matches_protocol_and_port(self, client, state):
        client.list_listeners.return_value = {
            "Listeners": [
                {"ListenerArn": "other", "Protocol": "UDP", "PortRanges": [{"FromPort": 22, "ToPort": 22}]},
                {"ListenerArn": LISTENER, "Protocol": "TCP", "PortRanges": [{"FromPort": 22, "ToPort": 22}]},
            ]
        }
        manager = AcceleratorManager(client, state)

        assert manager.find_listener(ACC_ARN, "TCP", 22) == LISTENER
        assert manager.find_listener(ACC_ARN, "TCP", 443) is None

    def test_listing_follows_next_token(self, client, state):
        client.list_listeners.side_effect = [
            {"Listeners": [{"ListenerArn": "a"}], "NextToken": "t1"},
            {"Listeners": [{"ListenerArn": "b"}]},
        ]
        listeners = AcceleratorManager(client, state).list_listeners(ACC_ARN)

        assert [item["ListenerArn"] for item in listeners] == ["a", "b"]
        assert client.list_listeners.call_args_list[1].kwargs["NextToken"] == "t1"


class TestEndpointGroup:
    def test_tcp_health_check_omits_path(self, client, state):
        AcceleratorManager(client, state).create_endpoint_group(LISTENER, "us-east-1", "eni-123")

        client.create_endpoint_group.assert_called_once_with(
            ListenerArn=LISTENER,
            EndpointGroupRegion="us-east-1",
            EndpointConfigurations=[{"EndpointId": "eni-123", "Weight": 100}],
            HealthCheckPort=80,
            HealthCheckProtocol="TCP",
        )

    def test_http_health_check_sends_path(self, client, state):
        AcceleratorManager(client, state).create_endpoint_group(
            LISTENER, "us-east-1", "eni-123", 8080, "/ready", "HTTP"
        )

        kwargs = client.create_endpoint_group.call_args.kwargs
        assert kwargs["HealthCheckPath"] == "/ready"
        assert kwargs["HealthCheckPort"] == 8080


# ---------------------------------------------------------------------------
# Composite lifecycle
# ---------------------------------------------------------------------------

class TestCreateCompleteSetup:
    def test_fresh_setup(self, client, state, settings):
        setup = AcceleratorManager(client, state).create_complete_setup(
            "ec2-accelerator-i-0abc", settings, "us-east-1", "eni-123"
        )

        assert setup == AcceleratorSetup(ACC_ARN, LISTENER, GROUP, DNS_NAME)
        assert state.load_accelerator_arn() == ACC_ARN
        assert state.load(LISTENER_ARN) == LISTENER
        assert state.load(ENDPOINT_GROUP_ARN) == GROUP

    def test_reuses_existing_resources(self, client, state, settings):
        state.store_accelerator_arn(ACC_ARN)
        client.list_listeners.return_value = {
            "Listeners": [{"ListenerArn": LISTENER, "Protocol": "TCP", "PortRanges": [{"FromPort": 22, "ToPort": 22}]}]
        }
        client.list_endpoint_groups.return_value = {
            "EndpointGroups": [{"EndpointGroupArn": GROUP, "EndpointGroupRegion": "us-east-1"}]
        }

        setup = AcceleratorManager(client, state).create_complete_setup("n", settings, "us-east-1", "eni-123")

        assert setup.accelerator_arn == ACC_ARN
        client.create_accelerator.assert_not_called()
        client.create_listener.assert_not_called()
        client.create_endpoint_group.assert_not_called()

    def test_re_enables_disabled_accelerator(self, client, state, settings):
        state.store_accelerator_arn(ACC_ARN)
        client.describe_accelerator.side_effect = [
            _accelerator(enabled=False),
            _accelerator(enabled=True),
            _accelerator(enabled=True),
        ]

        AcceleratorManager(client, state).create_complete_setup("n", settings, "us-east-1", "eni-123")

        client.update_accelerator.assert_called_once_with(AcceleratorArn=ACC_ARN, Enabled=True)
        client.create_accelerator.assert_not_called()

    def test_stale_arn_is_replaced(self, client, state, settings):
        state.store_accelerator_arn("arn:stale")
        state.store(LISTENER_ARN, "arn:stale/listener")
        client.describe_accelerator.side_effect = [_not_found(), _accelerator(), _accelerator()]

        setup = AcceleratorManager(client, state).create_complete_setup("n", settings, "us-east-1", "eni-123")

        client.create_accelerator.assert_called_once()
        assert setup.accelerator_arn == ACC_ARN
        assert state.load(LISTENER_ARN) == LISTENER


class TestDeleteAccelerator:
    def test_missing_accelerator_is_noop(self, client, state):
        client.describe_accelerator.side_effect = _not_found()

        AcceleratorManager(client, state).delete_accelerator(ACC_ARN)

        client.update_accelerator.assert_not_called()
        client.delete_accelerator.assert_not_called()

    def test_full_teardown_order(self, client, state):
        client.describe_accelerator.side_effect = [
            _accelerator(enabled=True),
            _accelerator(enabled=False),
        ]
        client.list_listeners.return_value = {"Listeners": [{"ListenerArn": LISTENER}]}
        client.list_endpoint_groups.return_value = {"EndpointGroups": [{"EndpointGroupArn": GROUP}]}

        AcceleratorManager(client, state).delete_accelerator(ACC_ARN)

        client.delete_endpoint_group.assert_called_once_with(EndpointGroupArn=GROUP)
        client.delete_listener.assert_called_once_with(ListenerArn=LISTENER)
        client.update_accelerator.assert_called_once_with(AcceleratorArn=ACC_ARN, Enabled=False)
        client.delete_accelerator.assert_called_once_with(AcceleratorArn=ACC_ARN)

        calls = [name for name, _, _ in client.mock_calls]
        assert calls.index("delete_listener") < calls.index("update_accelerator")
        assert calls.index("update_accelerator") < calls.index("delete_accelerator")

    def test_waits_for_disabled_state(self, client, state, no_sleep):
        client.describe_accelerator.side_effect = [
            _accelerator(enabled=True),
            _accelerator(status="IN_PROGRESS", enabled=False),
            _accelerator(enabled=False),
        ]

        AcceleratorManager(client, state).delete_accelerator(ACC_ARN)

        assert [c.args[0] for c in no_sleep.call_args_list] == [30]
        client.delete_accelerator.assert_called_once()
