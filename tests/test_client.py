"""Tests for the EC2 call surface, stubbed at the botocore layer."""

from __future__ import annotations

from unittest.mock import patch

import boto3
import pytest
from botocore.stub import Stubber

from ec2node.constants import InstanceState
from ec2node.core.exceptions import ProviderError
from ec2node.providers.aws.client import EC2Client
from ec2node.types import InstanceDescriptor

pytestmark = [pytest.mark.unit]


def _instance(state: str = "running", **extra: str) -> dict:
    return {
        "Reservations": [
            {"Instances": [{"InstanceId": "i-0abc", "State": {"Code": 16, "Name": state}, **extra}]}
        ]
    }


@pytest.fixture
def stubbed(credentials):
    raw = boto3.client(
        "ec2",
        region_name="us-east-1",
        aws_access_key_id="AKIATEST",
        aws_secret_access_key="s3cr3t",
    )
    with Stubber(raw) as stubber:
        yield EC2Client(credentials, client=raw), stubber
        stubber.assert_no_pending_responses()


class TestLaunch:
    def test_requests_one_instance_in_default_group(self, stubbed, descriptor):
        client, stubber = stubbed
        stubber.add_response(
            "run_instances",
            {"Instances": [{"InstanceId": "i-0abc"}]},
            {
                "ImageId": "ami-12345678",
                "InstanceType": "t3.micro",
                "KeyName": "ci-key",
                "MinCount": 1,
                "MaxCount": 1,
                "SecurityGroups": ["default"],
            },
        )

        assert client.launch(descriptor) == "i-0abc"

    def test_passes_group_and_zone(self, stubbed):
        client, stubber = stubbed
        descriptor = InstanceDescriptor(
            image_id="ami-1",
            instance_type="m5.large",
            key_pair_name="k",
            security_group="builders",
            availability_zone="us-east-1b",
        )
        stubber.add_response(
            "run_instances",
            {"Instances": [{"InstanceId": "i-0def"}]},
            {
                "ImageId": "ami-1",
                "InstanceType": "m5.large",
                "KeyName": "k",
                "MinCount": 1,
                "MaxCount": 1,
                "SecurityGroups": ["builders"],
                "Placement": {"AvailabilityZone": "us-east-1b"},
            },
        )

        assert client.launch(descriptor) == "i-0def"

    def test_rejection_becomes_provider_error(self, stubbed, descriptor):
        client, stubber = stubbed
        stubber.add_client_error(
            "run_instances",
            service_error_code="InstanceLimitExceeded",
            service_message="You have requested more instances than your current instance limit allows.",
        )

        with pytest.raises(ProviderError) as exc_info:
            client.launch(descriptor)

        assert exc_info.value.code == "InstanceLimitExceeded"
        assert str(exc_info.value) == "You have requested more instances than your current instance limit allows."


class TestDescribe:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("pending", InstanceState.PENDING),
            ("running", InstanceState.RUNNING),
            ("shutting-down", InstanceState.SHUTTING_DOWN),
            ("terminated", InstanceState.TERMINATED),
            ("stopped", InstanceState.STOPPED),
        ],
    )
    def test_state(self, stubbed, name, expected):
        client, stubber = stubbed
        stubber.add_response("describe_instances", _instance(name), {"InstanceIds": ["i-0abc"]})

        assert client.describe_state("i-0abc") is expected

    def test_unknown_instance_raises(self, stubbed):
        client, stubber = stubbed
        stubber.add_client_error(
            "describe_instances",
            service_error_code="InvalidInstanceID.NotFound",
            service_message="The instance ID 'i-0abc' does not exist",
        )

        with pytest.raises(ProviderError) as exc_info:
            client.describe_state("i-0abc")

        assert exc_info.value.code == "InvalidInstanceID.NotFound"

    def test_empty_reservations_raise(self, stubbed):
        client, stubber = stubbed
        stubber.add_response("describe_instances", {"Reservations": []})

        with pytest.raises(ProviderError):
            client.describe_state("i-0abc")

    def test_public_dns_name(self, stubbed):
        client, stubber = stubbed
        stubber.add_response(
            "describe_instances",
            _instance(PublicDnsName="ec2-1-2-3-4.compute-1.amazonaws.com", PublicIpAddress="1.2.3.4"),
        )

        assert client.describe_public_address("i-0abc") == "ec2-1-2-3-4.compute-1.amazonaws.com"

    def test_public_ip_fallback(self, stubbed):
        client, stubber = stubbed
        stubber.add_response("describe_instances", _instance(PublicDnsName="", PublicIpAddress="1.2.3.4"))

        assert client.describe_public_address("i-0abc") == "1.2.3.4"

    def test_unassigned_address_is_empty(self, stubbed):
        client, stubber = stubbed
        stubber.add_response("describe_instances", _instance("pending"))

        assert client.describe_public_address("i-0abc") == ""


class TestTerminate:
    def test_terminate(self, stubbed):
        client, stubber = stubbed
        stubber.add_response("terminate_instances", {"TerminatingInstances": []}, {"InstanceIds": ["i-0abc"]})

        client.terminate("i-0abc")

    def test_terminate_missing_instance_is_quiet(self, stubbed):
        client, stubber = stubbed
        stubber.add_client_error(
            "terminate_instances",
            service_error_code="InvalidInstanceID.NotFound",
            service_message="The instance ID 'i-0abc' does not exist",
        )

        client.terminate("i-0abc")

    def test_terminate_other_errors_raise(self, stubbed):
        client, stubber = stubbed
        stubber.add_client_error("terminate_instances", service_error_code="UnauthorizedOperation")

        with pytest.raises(ProviderError):
            client.terminate("i-0abc")


class TestCatalog:
    def test_availability_zones_in_order(self, stubbed):
        client, stubber = stubbed
        stubber.add_response(
            "describe_availability_zones",
            {"AvailabilityZones": [{"ZoneName": "us-east-1a"}, {"ZoneName": "us-east-1b"}]},
        )

        assert client.list_availability_zones() == ["us-east-1a", "us-east-1b"]

    def test_security_groups_in_order(self, stubbed):
        client, stubber = stubbed
        stubber.add_response(
            "describe_security_groups",
            {"SecurityGroups": [{"GroupName": "default"}, {"GroupName": "builders"}]},
        )

        assert client.list_security_groups() == ["default", "builders"]

    def test_describe_image(self, stubbed):
        client, stubber = stubbed
        stubber.add_response(
            "describe_images",
            {"Images": [{"ImageId": "ami-1", "Name": "ubuntu-24.04"}]},
            {"ImageIds": ["ami-1"]},
        )

        assert client.describe_image("ami-1") == {"ImageId": "ami-1", "Name": "ubuntu-24.04"}

    def test_describe_missing_image(self, stubbed):
        client, stubber = stubbed
        stubber.add_client_error("describe_images", service_error_code="InvalidAMIID.NotFound")

        assert client.describe_image("ami-1") is None


class TestClientConstruction:
    def test_boto3_client_built_lazily_from_credentials(self, credentials):
        with patch("boto3.client") as factory:
            client = EC2Client(credentials)
            factory.assert_not_called()

            client.list_availability_zones()

        factory.assert_called_once_with(
            "ec2",
            region_name="us-east-1",
            aws_access_key_id="AKIATEST",
            aws_secret_access_key="s3cr3t",
        )

    def test_secret_key_not_in_repr(self, credentials):
        assert "s3cr3t" not in repr(credentials)
