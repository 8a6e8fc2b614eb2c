"""Handoff contracts between the instance lifecycle and remote connectors.

Once an instance is running, a :class:`Connector` turns its public address
into a :class:`Launcher` that actually starts the remote agent. Both the
instance launcher and the connector-produced launchers implement the same
:class:`Launcher` protocol, so a scheduler can drive either one uniformly.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from loguru import logger

from ec2node.core.exceptions import ConfigurationError
from ec2node.progress import ProgressSink

log = logger.bind(component="connector")


@dataclass(frozen=True, slots=True)
class LauncherDescriptor:
    """Describes a launcher kind for display and lookup."""

    name: str
    display_name: str


@runtime_checkable
class Launcher(Protocol):
    """Capability to bring a remote agent up and down for a computer."""

    @property
    def descriptor(self) -> LauncherDescriptor: ...

    def launch(self, computer: Any, progress: ProgressSink) -> None: ...
    def before_disconnect(self, computer: Any, progress: ProgressSink) -> None: ...
    def after_disconnect(self, computer: Any, progress: ProgressSink) -> None: ...
    def is_launch_supported(self) -> bool: ...


@runtime_checkable
class Connector(Protocol):
    """Factory for launchers bound to a resolved host address."""

    def launch(self, host: str, progress: ProgressSink) -> Launcher: ...


type ConnectorFactory = Callable[..., Connector]


class ConnectorRegistry:
    """Read-only catalog of connector factories, keyed by name.

    Example:
        >>> registry = ConnectorRegistry({"ssh": make_ssh_connector})
        >>> connector = registry.create("ssh", user="ubuntu")
    """

    def __init__(self, factories: Mapping[str, ConnectorFactory] | None = None) -> None:
        self._factories: dict[str, ConnectorFactory] = dict(factories or {})

    def register(self, name: str, factory: ConnectorFactory) -> None:
        if name in self._factories:
            raise ConfigurationError(f"Connector '{name}' is already registered")
        self._factories[name] = factory

    def names(self) -> tuple[str, ...]:
        return tuple(sorted(self._factories))

    def create(self, name: str, /, **options: Any) -> Connector:
        factory = self._factories.get(name)
        if factory is None:
            valid = ", ".join(self.names()) or "none registered"
            raise ConfigurationError(f"Unknown connector '{name}'. Valid: {valid}")
        log.debug("Creating connector {name}", name=name)
        return factory(**options)

    def __contains__(self, name: object) -> bool:
        return name in self._factories

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())

    def __len__(self) -> int:
        return len(self._factories)
