from ec2node.core.exceptions import (
    ConfigurationError,
    EC2NodeError,
    FormValidationError,
    InterruptedError,
    LaunchError,
    ProviderError,
    RetryExhaustedError,
    UnexpectedStateError,
)

__all__ = [
    "ConfigurationError",
    "EC2NodeError",
    "FormValidationError",
    "InterruptedError",
    "LaunchError",
    "ProviderError",
    "RetryExhaustedError",
    "UnexpectedStateError",
]
