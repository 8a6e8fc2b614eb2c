from __future__ import annotations

import threading
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any
from unittest.mock import MagicMock

import pytest

from ec2node.connector import LauncherDescriptor
from ec2node.constants import InstanceState
from ec2node.core.exceptions import ProviderError
from ec2node.types import Credentials, InstanceDescriptor, NodeConfig


class FakeEC2Client:
    """In-memory EC2 client with scripted state sequences per instance.

    Each launched instance walks through ``script`` one state per
    ``describe_state`` call; the last state repeats once exhausted.
    """

    def __init__(self, script: Iterable[InstanceState] = (InstanceState.RUNNING,)) -> None:
        self.script = list(script)
        self.launch_error: ProviderError | None = None
        self.terminate_error: ProviderError | None = None
        self.calls: list[tuple[str, str]] = []
        self.launched: list[str] = []
        self.terminated: list[str] = []
        self._states: dict[str, list[InstanceState]] = {}

    def launch(self, descriptor: InstanceDescriptor) -> str:
        self.calls.append(("launch", descriptor.image_id))
        if self.launch_error is not None:
            raise self.launch_error
        instance_id = f"i-{len(self.launched) + 1:04d}"
        self.launched.append(instance_id)
        self._states[instance_id] = list(self.script)
        return instance_id

    def set_states(self, instance_id: str, *states: InstanceState) -> None:
        self._states[instance_id] = list(states)

    def describe_state(self, instance_id: str) -> InstanceState:
        self.calls.append(("describe_state", instance_id))
        states = self._states.get(instance_id)
        if not states:
            raise ProviderError(
                f"The instance ID '{instance_id}' does not exist",
                code="InvalidInstanceID.NotFound",
            )
        return states.pop(0) if len(states) > 1 else states[0]

    def describe_public_address(self, instance_id: str) -> str:
        self.calls.append(("describe_public_address", instance_id))
        return f"ec2-{instance_id}.compute.amazonaws.com"

    def terminate(self, instance_id: str) -> None:
        self.calls.append(("terminate", instance_id))
        self.terminated.append(instance_id)
        if self.terminate_error is not None:
            raise self.terminate_error

    def count(self, name: str) -> int:
        return sum(1 for call, _ in self.calls if call == name)


@dataclass
class RecordingProgress:
    lines: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def print(self, message: str) -> None:
        self.lines.append(message)

    def error(self, message: str) -> None:
        self.errors.append(message)


@dataclass
class RecordingLauncher:
    host: str
    supported: bool = True
    disconnect_error: Exception | None = None
    calls: list[str] = field(default_factory=list)

    @property
    def descriptor(self) -> LauncherDescriptor:
        return LauncherDescriptor(name="recording", display_name="Recording Launcher")

    def launch(self, computer: Any, progress: Any) -> None:
        self.calls.append("launch")

    def before_disconnect(self, computer: Any, progress: Any) -> None:
        self.calls.append("before_disconnect")

    def after_disconnect(self, computer: Any, progress: Any) -> None:
        self.calls.append("after_disconnect")
        if self.disconnect_error is not None:
            raise self.disconnect_error

    def is_launch_supported(self) -> bool:
        return self.supported


@dataclass
class RecordingConnector:
    supported: bool = True
    disconnect_error: Exception | None = None
    hosts: list[str] = field(default_factory=list)
    launchers: list[RecordingLauncher] = field(default_factory=list)

    def launch(self, host: str, progress: Any) -> RecordingLauncher:
        self.hosts.append(host)
        launcher = RecordingLauncher(
            host=host,
            supported=self.supported,
            disconnect_error=self.disconnect_error,
        )
        self.launchers.append(launcher)
        return launcher


@pytest.fixture
def descriptor():
    return InstanceDescriptor(
        image_id="ami-12345678",
        instance_type="t3.micro",
        key_pair_name="ci-key",
    )


@pytest.fixture
def credentials():
    return Credentials(access_key="AKIATEST", secret_key="s3cr3t", region="us-east-1")


@pytest.fixture
def node_config(credentials, descriptor):
    return NodeConfig(name="builder", credentials=credentials, descriptor=descriptor, connector="recording")


@pytest.fixture
def progress():
    return RecordingProgress()


@pytest.fixture
def connector():
    return RecordingConnector()


@pytest.fixture
def cancel():
    """Cancellation event whose waits return immediately without being set."""
    event = MagicMock(spec=threading.Event)
    event.wait.return_value = False
    return event
