"""
galib.accelerator — Global Accelerator lifecycle for a single EC2 endpoint.

The accelerator, its listener and its endpoint group are managed as one
composite resource. Creation checks for each piece before creating it, so
re-running after a partial failure completes the setup instead of
duplicating it. The accelerator ARN is persisted as soon as it exists so a
later destroy run can always find it.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from botocore.exceptions import ClientError

from galib.aws_client import get_globalaccelerator_client
from galib.config import AcceleratorSettings
from galib.errors import client_error_code
from galib.retry import retry_call, retry_describe
from galib.state import ENDPOINT_GROUP_ARN, LISTENER_ARN, StateStore

logger = logging.getLogger(__name__)

DEPLOYED = "DEPLOYED"
ENDPOINT_WEIGHT = 100
HTTP_HEALTH_CHECK_PROTOCOLS = ("HTTP", "HTTPS")


class AcceleratorError(Exception):
    """Raised when an accelerator resource cannot be created or removed."""
    pass


class AcceleratorNotReadyError(AcceleratorError):
    """The accelerator has not reached the expected status yet."""
    pass


@dataclass
class AcceleratorSetup:
    accelerator_arn: str
    listener_arn: str
    endpoint_group_arn: str
    dns_name: str


def default_accelerator_name(instance_id: str) -> str:
    return f"ec2-accelerator-{instance_id}"


def _list_all(method: Callable[..., Dict[str, Any]], key: str, **kwargs) -> List[Dict[str, Any]]:
    """Follow NextToken pagination of a Global Accelerator list call."""
    items: List[Dict[str, Any]] = []
    next_token = None
    while True:
        params = dict(kwargs)
        if next_token:
            params["NextToken"] = next_token
        response = retry_call(method, **params, error_msg=f"Listing {key} failed")
        items.extend(response.get(key, []))
        next_token = response.get("NextToken")
        if not next_token:
            return items


class AcceleratorManager:
    """
    Create and destroy the accelerator + listener + endpoint group triple.

    Example:
        >>> manager = AcceleratorManager()
        >>> setup = manager.create_complete_setup(
        ...     "ec2-accelerator-i-0abc", AcceleratorSettings.resolve(), "us-east-1", "eni-0123"
        ... )
        >>> setup.dns_name
        'a1234567890abcdef.awsglobalaccelerator.com'
    """

    def __init__(self, client=None, state: Optional[StateStore] = None):
        self.client = client or get_globalaccelerator_client()
        self.state = state or StateStore()

    # -----------------------------------------------------------------------
    # Accelerator
    # -----------------------------------------------------------------------

    def describe(self, accelerator_arn: str) -> Dict[str, Any]:
        response = retry_call(
            self.client.describe_accelerator,
            AcceleratorArn=accelerator_arn,
            error_msg="Describing accelerator failed",
        )
        return response["Accelerator"]

    def find_accelerator(self, accelerator_arn: str) -> Optional[Dict[str, Any]]:
        """Describe the accelerator, or None if it does not exist."""
        try:
            return self.describe(accelerator_arn)
        except ClientError as e:
            if client_error_code(e) == "AcceleratorNotFoundException":
                return None
            raise

    def accelerator_exists(self, accelerator_arn: str) -> bool:
        return self.find_accelerator(accelerator_arn) is not None

    def _check_status(self, accelerator_arn: str, enabled: Optional[bool] = None) -> Dict[str, Any]:
        accelerator = self.describe(accelerator_arn)
        status = accelerator.get("Status")
        if status != DEPLOYED:
            raise AcceleratorNotReadyError(f"Accelerator status is {status}, waiting for {DEPLOYED}")
        if enabled is not None and accelerator.get("Enabled") != enabled:
            raise AcceleratorNotReadyError(
                f"Accelerator Enabled={accelerator.get('Enabled')}, waiting for Enabled={enabled}"
            )
        return accelerator

    def wait_until_deployed(self, accelerator_arn: str, enabled: Optional[bool] = None) -> Dict[str, Any]:
        """Poll (5 attempts from 30s) until Status is DEPLOYED and, if given, Enabled matches."""
        return retry_describe(self._check_status, accelerator_arn, enabled=enabled)

    def create_accelerator(self, name: str, ip_address_type: str = "IPV4") -> str:
        """
        Create an enabled accelerator and wait for it to deploy.

        The ARN is stored before waiting so an interrupted run can be cleaned up.
        """
        logger.info("Creating Global Accelerator: %s", name)
        response = retry_call(
            self.client.create_accelerator,
            Name=name,
            IpAddressType=ip_address_type,
            Enabled=True,
            error_msg="Creating accelerator failed",
        )
        accelerator_arn = response.get("Accelerator", {}).get("AcceleratorArn")
        if not accelerator_arn:
            raise AcceleratorError("Failed to create Global Accelerator: no ARN returned")

        logger.info("Created Global Accelerator: %s", accelerator_arn)
        self.state.store_accelerator_arn(accelerator_arn)

        logger.info("Waiting for accelerator deployment...")
        self.wait_until_deployed(accelerator_arn)
        logger.info("Global Accelerator deployed successfully")
        return accelerator_arn

    def get_dns_name(self, accelerator_arn: str) -> str:
        dns_name = self.describe(accelerator_arn).get("DnsName")
        if not dns_name:
            raise AcceleratorError(f"Accelerator {accelerator_arn} has no DNS name")
        logger.info("Accelerator DNS name: %s", dns_name)
        return dns_name

    # -----------------------------------------------------------------------
    # Listener
    # -----------------------------------------------------------------------

    def list_listeners(self, accelerator_arn: str) -> List[Dict[str, Any]]:
        return _list_all(self.client.list_listeners, "Listeners", AcceleratorArn=accelerator_arn)

    def find_listener(self, accelerator_arn: str, protocol: str, port: int) -> Optional[str]:
        """Return the ARN of a listener serving exactly ``protocol``/``port``, if any."""
        for listener in self.list_listeners(accelerator_arn):
            if listener.get("Protocol") != protocol:
                continue
            for port_range in listener.get("PortRanges", []):
                if port_range.get("FromPort") == port and port_range.get("ToPort") == port:
                    return listener["ListenerArn"]
        return None

    def create_listener(self, accelerator_arn: str, protocol: str = "TCP", port: int = 22) -> str:
        logger.info("Creating %s listener on port %d...", protocol, port)
        response = retry_call(
            self.client.create_listener,
            AcceleratorArn=accelerator_arn,
            Protocol=protocol,
            PortRanges=[{"FromPort": port, "ToPort": port}],
            error_msg="Creating listener failed",
        )
        listener_arn = response.get("Listener", {}).get("ListenerArn")
        if not listener_arn:
            raise AcceleratorError("Failed to create listener: no ARN returned")

        logger.info("Created listener: %s", listener_arn)
        logger.info("Waiting for listener to be ready...")
        retry_call(
            self.client.describe_listener,
            ListenerArn=listener_arn,
            error_msg="Listener readiness check failed",
        )
        return listener_arn

    # -----------------------------------------------------------------------
    # Endpoint group
    # -----------------------------------------------------------------------

    def list_endpoint_groups(self, listener_arn: str) -> List[Dict[str, Any]]:
        return _list_all(self.client.list_endpoint_groups, "EndpointGroups", ListenerArn=listener_arn)

    def find_endpoint_group(self, listener_arn: str, endpoint_region: str) -> Optional[str]:
        for group in self.list_endpoint_groups(listener_arn):
            if group.get("EndpointGroupRegion") == endpoint_region:
                return group["EndpointGroupArn"]
        return None

    def create_endpoint_group(
        self,
        listener_arn: str,
        endpoint_region: str,
        eni_id: str,
        health_check_port: int = 80,
        health_check_path: str = "/health",
        health_check_protocol: str = "TCP",
    ) -> str:
        """Create an endpoint group in ``endpoint_region`` with the ENI as its only endpoint."""
        logger.info("Creating endpoint group in region %s for ENI %s...", endpoint_region, eni_id)

        params: Dict[str, Any] = {
            "ListenerArn": listener_arn,
            "EndpointGroupRegion": endpoint_region,
            "EndpointConfigurations": [{"EndpointId": eni_id, "Weight": ENDPOINT_WEIGHT}],
            "HealthCheckPort": health_check_port,
            "HealthCheckProtocol": health_check_protocol,
        }
        # Path is only meaningful for HTTP(S) checks
        if health_check_protocol in HTTP_HEALTH_CHECK_PROTOCOLS:
            params["HealthCheckPath"] = health_check_path

        response = retry_call(
            self.client.create_endpoint_group,
            **params,
            error_msg="Creating endpoint group failed",
        )
        endpoint_group_arn = response.get("EndpointGroup", {}).get("EndpointGroupArn")
        if not endpoint_group_arn:
            raise AcceleratorError("Failed to create endpoint group: no ARN returned")

        logger.info("Created endpoint group: %s", endpoint_group_arn)
        return endpoint_group_arn

    # -----------------------------------------------------------------------
    # Composite lifecycle
    # -----------------------------------------------------------------------

    def _reusable_accelerator(self) -> Optional[str]:
        stored_arn = self.state.load_accelerator_arn()
        if not stored_arn:
            return None

        accelerator = self.find_accelerator(stored_arn)
        if accelerator is not None:
            logger.warning("Found existing accelerator ARN: %s, reusing it", stored_arn)
            if not accelerator.get("Enabled", True):
                # left disabled by an interrupted destroy
                logger.info("Re-enabling accelerator...")
                retry_call(
                    self.client.update_accelerator,
                    AcceleratorArn=stored_arn,
                    Enabled=True,
                    error_msg="Enabling accelerator failed",
                )
            return stored_arn

        logger.warning("Stored accelerator %s no longer exists, clearing stale state", stored_arn)
        self.state.clear_accelerator()
        return None

    def create_complete_setup(
        self,
        accelerator_name: str,
        settings: AcceleratorSettings,
        endpoint_region: str,
        eni_id: str,
    ) -> AcceleratorSetup:
        """
        Create (or complete) accelerator, listener and endpoint group.

        Returns:
            AcceleratorSetup with the three ARNs and the accelerator DNS name
        """
        accelerator_arn = self._reusable_accelerator()
        if accelerator_arn:
            self.wait_until_deployed(accelerator_arn, enabled=True)
        else:
            accelerator_arn = self.create_accelerator(accelerator_name, settings.ip_address_type)

        listener_arn = self.find_listener(accelerator_arn, settings.protocol, settings.port)
        if listener_arn:
            logger.info("Reusing listener: %s", listener_arn)
        else:
            listener_arn = self.create_listener(accelerator_arn, settings.protocol, settings.port)
        self.state.store(LISTENER_ARN, listener_arn)

        endpoint_group_arn = self.find_endpoint_group(listener_arn, endpoint_region)
        if endpoint_group_arn:
            logger.info("Reusing endpoint group: %s", endpoint_group_arn)
        else:
            endpoint_group_arn = self.create_endpoint_group(
                listener_arn,
                endpoint_region,
                eni_id,
                health_check_port=settings.health_check_port,
                health_check_path=settings.health_check_path,
                health_check_protocol=settings.health_check_protocol,
            )
        self.state.store(ENDPOINT_GROUP_ARN, endpoint_group_arn)

        dns_name = self.get_dns_name(accelerator_arn)
        logger.info("Complete Global Accelerator setup created successfully")
        return AcceleratorSetup(accelerator_arn, listener_arn, endpoint_group_arn, dns_name)

    def delete_accelerator(self, accelerator_arn: str) -> None:
        """
        Remove endpoint groups and listeners, disable, wait, then delete the accelerator.

        An accelerator that no longer exists counts as deleted.
        """
        logger.info("Checking if accelerator exists: %s", accelerator_arn)
        if not self.accelerator_exists(accelerator_arn):
            logger.info("Global Accelerator not found or already deleted")
            return

        for listener in self.list_listeners(accelerator_arn):
            listener_arn = listener["ListenerArn"]
            for group in self.list_endpoint_groups(listener_arn):
                logger.info("Deleting endpoint group: %s", group["EndpointGroupArn"])
                retry_call(
                    self.client.delete_endpoint_group,
                    EndpointGroupArn=group["EndpointGroupArn"],
                    error_msg="Deleting endpoint group failed",
                )
            logger.info("Deleting listener: %s", listener_arn)
            retry_call(
                self.client.delete_listener,
                ListenerArn=listener_arn,
                error_msg="Deleting listener failed",
            )

        logger.info("Disabling Global Accelerator...")
        retry_call(
            self.client.update_accelerator,
            AcceleratorArn=accelerator_arn,
            Enabled=False,
            error_msg="Disabling accelerator failed",
        )
        logger.info("Waiting for accelerator to be disabled...")
        self.wait_until_deployed(accelerator_arn, enabled=False)

        logger.info("Deleting Global Accelerator...")
        retry_call(
            self.client.delete_accelerator,
            AcceleratorArn=accelerator_arn,
            error_msg="Deleting accelerator failed",
        )
        logger.info("Global Accelerator deleted successfully")
