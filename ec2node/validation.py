"""Configuration-time checks against the EC2 API.

These report a result and a human message; they are independent of the
launch lifecycle and never raise for provider failures.
"""

from __future__ import annotations

from dataclasses import dataclass

from ec2node.core.exceptions import ProviderError
from ec2node.providers.aws.client import EC2Client


@dataclass(frozen=True, slots=True)
class ValidationResult:
    ok: bool
    message: str

    @classmethod
    def success(cls, message: str) -> ValidationResult:
        return cls(ok=True, message=message)

    @classmethod
    def failure(cls, message: str) -> ValidationResult:
        return cls(ok=False, message=message)


def check_credentials(client: EC2Client) -> ValidationResult:
    """Verify credentials by listing availability zones."""
    try:
        zones = client.list_availability_zones()
    except ProviderError as e:
        return ValidationResult.failure(str(e))
    return ValidationResult.success(f"Credentials verified ({len(zones)} availability zones)")


def check_image_id(client: EC2Client, image_id: str) -> ValidationResult:
    if not image_id:
        return ValidationResult.failure("Image id is required")
    try:
        image = client.describe_image(image_id)
    except ProviderError as e:
        return ValidationResult.failure(str(e))
    if image is None:
        return ValidationResult.failure(f"Image {image_id} was not found")
    return ValidationResult.success(f"Found image {image.get('Name') or image_id}")


def check_availability_zone(client: EC2Client, zone: str) -> ValidationResult:
    if not zone:
        return ValidationResult.success("Provider will choose the availability zone")
    try:
        zones = client.list_availability_zones()
    except ProviderError as e:
        return ValidationResult.failure(str(e))
    if zone not in zones:
        return ValidationResult.failure(f"Unknown availability zone {zone}. Valid: {', '.join(zones)}")
    return ValidationResult.success(f"Availability zone {zone} is available")


def check_security_group(client: EC2Client, group: str) -> ValidationResult:
    if not group:
        return ValidationResult.success("The default security group will be used")
    try:
        groups = client.list_security_groups()
    except ProviderError as e:
        return ValidationResult.failure(str(e))
    if group not in groups:
        return ValidationResult.failure(f"Unknown security group {group}. Valid: {', '.join(groups)}")
    return ValidationResult.success(f"Security group {group} exists")
