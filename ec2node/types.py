"""Value types for EC2 image nodes.

Persisted configuration lives here as immutable dataclasses. Runtime state
(held instance id, readiness flag, live launcher) belongs to
:class:`ec2node.lifecycle.LauncherSession` and is never stored on these.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Final

from ec2node.constants import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_REGION,
    DEFAULT_RETRY_INTERVAL_SECONDS,
)


@dataclass(frozen=True, slots=True)
class Credentials:
    """AWS credentials used to build an EC2 client."""

    access_key: str
    secret_key: str = field(repr=False)
    region: str = DEFAULT_REGION


@dataclass(frozen=True, slots=True)
class InstanceDescriptor:
    """Everything needed to launch one instance from a machine image.

    Empty ``security_group`` means the provider default group, empty
    ``availability_zone`` lets the provider choose the placement.
    """

    image_id: str
    instance_type: str
    key_pair_name: str
    security_group: str = ""
    availability_zone: str = ""


# Fields that may not change while an instance from the active launcher runs.
IDENTIFYING_FIELDS: Final = ("secret_key", "access_key", "image_id", "instance_type", "key_pair_name")


@dataclass(frozen=True, slots=True)
class NodeConfig:
    """Persisted configuration of an EC2 image node.

    Args:
        name: Node name.
        credentials: AWS credentials for the node's account.
        descriptor: Launch parameters for the instance.
        connector: Name of the connector that attaches to the instance once running.
        connector_options: Keyword arguments for the connector factory.
        retry_interval_seconds: Seconds between state polls while pending.
        max_retries: Maximum number of state polls before giving up.
    """

    name: str
    credentials: Credentials
    descriptor: InstanceDescriptor
    connector: str = ""
    connector_options: MappingProxyType[str, Any] = field(
        default_factory=lambda: MappingProxyType({})
    )
    retry_interval_seconds: int = DEFAULT_RETRY_INTERVAL_SECONDS
    max_retries: int = DEFAULT_MAX_RETRIES

    def identifying_values(self) -> dict[str, str]:
        """Return the identifying fields keyed by their configuration name."""
        return {
            "secret_key": self.credentials.secret_key,
            "access_key": self.credentials.access_key,
            "image_id": self.descriptor.image_id,
            "instance_type": self.descriptor.instance_type,
            "key_pair_name": self.descriptor.key_pair_name,
        }
