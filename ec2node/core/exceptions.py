"""Custom exception hierarchy for ec2node.

All ec2node-specific exceptions inherit from EC2NodeError, enabling
users to catch all ec2node exceptions with a single except clause.
"""

from __future__ import annotations


class EC2NodeError(Exception):
    """Base exception for all ec2node errors."""


class ProviderError(EC2NodeError):
    """Raised when the EC2 API rejects or fails a call.

    The provider message is kept verbatim so it can be surfaced to users.
    """

    def __init__(self, message: str, code: str = "") -> None:
        self.code = code
        super().__init__(message)


class LaunchError(EC2NodeError):
    """Base for failures that abort a single launch attempt."""


class UnexpectedStateError(LaunchError):
    """Raised when an instance is observed in a state the launcher cannot handle."""

    def __init__(self, instance_id: str, state: str, message: str | None = None) -> None:
        self.instance_id = instance_id
        self.state = state
        super().__init__(
            message
            or f"instance [{instance_id}] encountered unexpected state [{state}]. Aborting launch"
        )


class RetryExhaustedError(LaunchError):
    """Raised when an instance stays pending for every allowed poll."""

    def __init__(self, max_retries: int) -> None:
        self.max_retries = max_retries
        super().__init__(f"Maximum number of retries {max_retries} exceeded. Aborting launch")


class InterruptedError(LaunchError):  # noqa: A001
    """Raised when a launch is cancelled while waiting for the instance."""

    def __init__(self, instance_id: str | None = None) -> None:
        self.instance_id = instance_id
        target = f" for instance [{instance_id}]" if instance_id else ""
        super().__init__(f"Launch interrupted while waiting{target}")


class ConfigurationError(EC2NodeError):
    """Raised for invalid configuration or missing required settings."""


class FormValidationError(ConfigurationError):
    """Raised when a configuration edit is rejected for a specific field."""

    def __init__(self, message: str, field: str) -> None:
        self.field = field
        super().__init__(message)
