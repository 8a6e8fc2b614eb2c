"""Centralized constants and enums for ec2node.

All magic strings and configuration defaults are defined here
to ensure consistency and enable type-safe usage throughout the codebase.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Final

# =============================================================================
# EC2 Instance States
# =============================================================================


class InstanceState(StrEnum):
    """EC2 instance state names.

    ABSENT and UNKNOWN are local: the first means no instance is held,
    the second covers any name the API returns that is not listed here.
    """

    ABSENT = "absent"
    PENDING = "pending"
    RUNNING = "running"
    SHUTTING_DOWN = "shutting-down"
    TERMINATED = "terminated"
    STOPPING = "stopping"
    STOPPED = "stopped"
    UNKNOWN = "unknown"

    @classmethod
    def from_api(cls, name: str | None) -> InstanceState:
        try:
            return cls(name or "")
        except ValueError:
            return cls.UNKNOWN


# States after which a fresh instance has to be launched.
RELAUNCH_STATES: Final = frozenset({InstanceState.TERMINATED, InstanceState.SHUTTING_DOWN})


# =============================================================================
# Launch Defaults
# =============================================================================

DEFAULT_REGION: Final = "us-east-1"
DEFAULT_SECURITY_GROUP: Final = "default"
DEFAULT_RETRY_INTERVAL_SECONDS: Final = 10
DEFAULT_MAX_RETRIES: Final = 60

INSTANCE_NOT_FOUND_CODE: Final = "InvalidInstanceID.NotFound"


# =============================================================================
# Configuration Files
# =============================================================================

PROJECT_CONFIG_NAME: Final = "ec2node.toml"
GLOBAL_CONFIG_DIR: Final = ".ec2node"
GLOBAL_CONFIG_NAME: Final = "defaults.toml"

ENV_ACCESS_KEY: Final = "AWS_ACCESS_KEY_ID"
ENV_SECRET_KEY: Final = "AWS_SECRET_ACCESS_KEY"
ENV_REGION: Final = "AWS_REGION"
