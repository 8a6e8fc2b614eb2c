"""ec2node - run a node on an EC2 instance launched from a machine image.

Example:
    from ec2node import ConnectorRegistry, ConsoleProgress, EC2ImageNode, resolve_node

    registry = ConnectorRegistry({"ssh": make_ssh_connector})
    node = EC2ImageNode.from_config(resolve_node("builder"), registry)

    launcher = node.get_launcher()
    launcher.launch(computer, ConsoleProgress())
    ...
    launcher.after_disconnect(computer, ConsoleProgress())
"""

from loguru import logger

from ec2node.config import load_config, resolve_node
from ec2node.connector import Connector, ConnectorRegistry, Launcher, LauncherDescriptor
from ec2node.constants import InstanceState
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
from ec2node.lifecycle import InstanceLauncher, LauncherPhase, LauncherSession
from ec2node.logging import LogConfig, setup_logging, teardown_logging
from ec2node.node import EC2ImageNode
from ec2node.progress import ConsoleProgress, LoggingProgress, ProgressSink, StreamProgress
from ec2node.providers.aws.client import EC2Client
from ec2node.types import Credentials, InstanceDescriptor, NodeConfig
from ec2node.validation import ValidationResult

# Library default: silent until setup_logging() is called.
logger.disable("ec2node")

__all__ = [
    "ConfigurationError",
    "Connector",
    "ConnectorRegistry",
    "ConsoleProgress",
    "Credentials",
    "EC2Client",
    "EC2ImageNode",
    "EC2NodeError",
    "FormValidationError",
    "InstanceDescriptor",
    "InstanceLauncher",
    "InstanceState",
    "InterruptedError",
    "LaunchError",
    "Launcher",
    "LauncherDescriptor",
    "LauncherPhase",
    "LauncherSession",
    "LogConfig",
    "LoggingProgress",
    "NodeConfig",
    "ProgressSink",
    "ProviderError",
    "RetryExhaustedError",
    "StreamProgress",
    "UnexpectedStateError",
    "ValidationResult",
    "load_config",
    "resolve_node",
    "setup_logging",
    "teardown_logging",
]
