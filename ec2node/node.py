"""EC2 image node: a node bound to an instance launched from a machine image.

The node owns the persisted :class:`~ec2node.types.NodeConfig` and the
user-selected connector. Every call to :meth:`EC2ImageNode.get_launcher`
builds a fresh :class:`~ec2node.lifecycle.InstanceLauncher` from the current
configuration, so edits take effect on the next launcher.

Example:
    >>> node = EC2ImageNode.from_config(resolve_node("builder"), registry)
    >>> launcher = node.get_launcher()
    >>> launcher.launch(computer, ConsoleProgress())
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace

from loguru import logger

from ec2node.connector import Connector, ConnectorRegistry
from ec2node.core.exceptions import FormValidationError
from ec2node.lifecycle import InstanceLauncher
from ec2node.providers.aws.client import EC2Client
from ec2node.types import IDENTIFYING_FIELDS, Credentials, NodeConfig

type ClientFactory = Callable[[Credentials], EC2Client]

RUNNING_EDIT_MESSAGE = "You cannot change EC2 configuration while the instance is running."


class EC2ImageNode:
    """Node whose launcher provisions its own EC2 instance.

    Args:
        config: Persisted node configuration.
        connector: Connector that attaches to the instance once it is running.
        client_factory: Builds the EC2 client for the configured credentials.
    """

    def __init__(
        self,
        config: NodeConfig,
        connector: Connector,
        client_factory: ClientFactory = EC2Client,
    ) -> None:
        self._config = config
        self._connector = connector
        self._client_factory = client_factory
        self._launcher: InstanceLauncher | None = None
        self._log = logger.bind(component="node", node=config.name)

    @classmethod
    def from_config(
        cls,
        config: NodeConfig,
        registry: ConnectorRegistry,
        client_factory: ClientFactory = EC2Client,
    ) -> EC2ImageNode:
        connector = registry.create(config.connector, **dict(config.connector_options))
        return cls(config, connector, client_factory)

    @property
    def config(self) -> NodeConfig:
        return self._config

    @property
    def connector(self) -> Connector:
        return self._connector

    @property
    def active_launcher(self) -> InstanceLauncher | None:
        return self._launcher

    def get_launcher(self) -> InstanceLauncher:
        """Build a launcher bound to the current configuration and make it active."""
        config = self._config
        self._launcher = InstanceLauncher(
            self._connector,
            self._client_factory(config.credentials),
            config.descriptor,
            retry_interval_seconds=config.retry_interval_seconds,
            max_retries=config.max_retries,
            node=config.name,
        )
        self._log.debug("Created launcher for {ami}", ami=config.descriptor.image_id)
        return self._launcher

    def reconfigure(self, config: NodeConfig, connector: Connector | None = None) -> None:
        """Replace the persisted configuration.

        Raises:
            FormValidationError: An identifying field changed while the active
                launcher's instance is running.
        """
        if self._launcher is not None and self._launcher.instance_is_running():
            current = self._config.identifying_values()
            proposed = config.identifying_values()
            for name in IDENTIFYING_FIELDS:
                if current[name] != proposed[name]:
                    self._log.warning("Rejected edit of {field} while running", field=name)
                    raise FormValidationError(RUNNING_EDIT_MESSAGE, name)

        self._config = config
        if connector is not None:
            self._connector = connector
        self._log = logger.bind(component="node", node=config.name)

    def update(self, **changes: object) -> None:
        """Shorthand for :meth:`reconfigure` with top-level fields replaced."""
        self.reconfigure(replace(self._config, **changes))
