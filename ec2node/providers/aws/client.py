"""Thin call surface over the EC2 instance API.

Every method is a single direct provider call. Nothing here retries: the
lifecycle owns the polling policy. botocore failures surface as
:class:`~ec2node.core.exceptions.ProviderError` with the AWS message kept
verbatim.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from functools import cached_property
from typing import TYPE_CHECKING, Any

from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from ec2node.constants import DEFAULT_SECURITY_GROUP, INSTANCE_NOT_FOUND_CODE, InstanceState
from ec2node.core.exceptions import ProviderError
from ec2node.types import Credentials, InstanceDescriptor

if TYPE_CHECKING:
    from mypy_boto3_ec2 import EC2Client as Boto3EC2Client

log = logger.bind(component="ec2-client")


@contextmanager
def _provider_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except ClientError as e:
        error = e.response.get("Error", {})
        code = error.get("Code", "")
        log.debug("{op} failed with {code}", op=operation, code=code)
        raise ProviderError(error.get("Message") or str(e), code=code) from e
    except BotoCoreError as e:
        log.debug("{op} failed: {err}", op=operation, err=e)
        raise ProviderError(str(e)) from e


class EC2Client:
    """EC2 operations needed to run a single image-backed instance.

    Args:
        credentials: Access key, secret key and region for the account.
        client: Pre-built boto3 EC2 client. Built lazily from ``credentials``
            when omitted.
    """

    def __init__(self, credentials: Credentials, client: Any | None = None) -> None:
        self.credentials = credentials
        if client is not None:
            self.__dict__["_ec2"] = client

    @cached_property
    def _ec2(self) -> Boto3EC2Client:
        import boto3

        return boto3.client(
            "ec2",
            region_name=self.credentials.region,
            aws_access_key_id=self.credentials.access_key,
            aws_secret_access_key=self.credentials.secret_key,
        )

    # =========================================================================
    # Instance Lifecycle
    # =========================================================================

    def launch(self, descriptor: InstanceDescriptor) -> str:
        """Request exactly one instance and return its id."""
        request: dict[str, Any] = {
            "ImageId": descriptor.image_id,
            "InstanceType": descriptor.instance_type,
            "KeyName": descriptor.key_pair_name,
            "MinCount": 1,
            "MaxCount": 1,
            "SecurityGroups": [descriptor.security_group or DEFAULT_SECURITY_GROUP],
        }
        if descriptor.availability_zone:
            request["Placement"] = {"AvailabilityZone": descriptor.availability_zone}

        with _provider_errors("run_instances"):
            response = self._ec2.run_instances(**request)

        instance_id = response["Instances"][0]["InstanceId"]
        log.info(
            "Launched {instance_id} from {ami}",
            instance_id=instance_id,
            ami=descriptor.image_id,
        )
        return instance_id

    def _describe(self, instance_id: str) -> dict[str, Any]:
        with _provider_errors("describe_instances"):
            response = self._ec2.describe_instances(InstanceIds=[instance_id])

        for reservation in response.get("Reservations", []):
            for instance in reservation.get("Instances", []):
                return dict(instance)
        raise ProviderError(
            f"The instance ID '{instance_id}' does not exist",
            code=INSTANCE_NOT_FOUND_CODE,
        )

    def describe_state(self, instance_id: str) -> InstanceState:
        instance = self._describe(instance_id)
        return InstanceState.from_api(instance.get("State", {}).get("Name"))

    def describe_public_address(self, instance_id: str) -> str:
        """Public DNS name, else public IP, else empty while unassigned."""
        instance = self._describe(instance_id)
        return instance.get("PublicDnsName") or instance.get("PublicIpAddress") or ""

    def terminate(self, instance_id: str) -> None:
        """Request termination. Unknown or already-gone instances are ignored."""
        try:
            with _provider_errors("terminate_instances"):
                self._ec2.terminate_instances(InstanceIds=[instance_id])
        except ProviderError as e:
            if e.code != INSTANCE_NOT_FOUND_CODE:
                raise
            log.debug("Instance {instance_id} already gone", instance_id=instance_id)

    # =========================================================================
    # Catalog Queries (configuration-time validation only)
    # =========================================================================

    def list_availability_zones(self) -> list[str]:
        with _provider_errors("describe_availability_zones"):
            response = self._ec2.describe_availability_zones()
        return [z["ZoneName"] for z in response.get("AvailabilityZones", [])]

    def list_security_groups(self) -> list[str]:
        with _provider_errors("describe_security_groups"):
            response = self._ec2.describe_security_groups()
        return [g["GroupName"] for g in response.get("SecurityGroups", [])]

    def describe_image(self, image_id: str) -> dict[str, Any] | None:
        """Image record for ``image_id``, or None if the provider has no such image."""
        try:
            with _provider_errors("describe_images"):
                response = self._ec2.describe_images(ImageIds=[image_id])
        except ProviderError as e:
            if e.code.startswith("InvalidAMIID"):
                return None
            raise
        images = response.get("Images", [])
        return dict(images[0]) if images else None
