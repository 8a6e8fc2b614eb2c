"""Instance lifecycle for an EC2 image node.

:class:`InstanceLauncher` provisions an instance from a machine image, polls
until it is running, then hands the instance's public address to a
:class:`~ec2node.connector.Connector` and forwards every launcher call to the
launcher that connector produced. On disconnect it terminates the instance.

Phases::

    NO_INSTANCE -> PROVISIONING -> READY -> TERMINATING -> NO_INSTANCE

A held instance that is pending when ``launch`` is entered is not relaunched:
the id is kept and the next attempt re-evaluates its state.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from loguru import logger
from tenacity import RetryError, retry, retry_if_result, stop_after_attempt, wait_fixed

from ec2node.connector import Connector, Launcher, LauncherDescriptor
from ec2node.constants import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_INTERVAL_SECONDS,
    RELAUNCH_STATES,
    InstanceState,
)
from ec2node.core.exceptions import (
    ConfigurationError,
    InterruptedError,
    LaunchError,
    ProviderError,
    RetryExhaustedError,
    UnexpectedStateError,
)
from ec2node.progress import ProgressSink
from ec2node.providers.aws.client import EC2Client
from ec2node.types import InstanceDescriptor

DESCRIPTOR = LauncherDescriptor(name="ec2-image", display_name="EC2 Image Launcher")


class LauncherPhase(StrEnum):
    NO_INSTANCE = "no-instance"
    PROVISIONING = "provisioning"
    READY = "ready"
    TERMINATING = "terminating"


@dataclass(slots=True)
class LauncherSession:
    """Transient state of one launcher. Never persisted."""

    instance_id: str | None = None
    pre_launch_ok: bool = False
    launcher: Launcher | None = None
    phase: LauncherPhase = LauncherPhase.NO_INSTANCE

    def clear(self) -> None:
        self.instance_id = None
        self.pre_launch_ok = False
        self.launcher = None
        self.phase = LauncherPhase.NO_INSTANCE


class InstanceLauncher:
    """Launcher that brings up an EC2 instance before delegating to a connector.

    Not safe for concurrent ``launch``/``after_disconnect`` calls; the caller
    runs them one at a time. ``cancel`` may be called from another thread.

    Args:
        connector: Turns the running instance's address into the real launcher.
        client: EC2 call surface.
        descriptor: Launch parameters, fixed for this launcher's lifetime.
        retry_interval_seconds: Wait between state polls while pending.
        max_retries: Maximum number of state polls per provisioning.
        cancel: Event that interrupts a waiting poll when set.
        node: Name of the owning node, added to log lines.

    Raises:
        ConfigurationError: ``max_retries`` is not positive or the interval is negative.
    """

    def __init__(
        self,
        connector: Connector,
        client: EC2Client,
        descriptor: InstanceDescriptor,
        *,
        retry_interval_seconds: int = DEFAULT_RETRY_INTERVAL_SECONDS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        cancel: threading.Event | None = None,
        node: str = "",
    ) -> None:
        if isinstance(max_retries, bool) or not isinstance(max_retries, int) or max_retries <= 0:
            raise ConfigurationError(f"max_retries must be a positive integer, got {max_retries!r}")
        if retry_interval_seconds < 0:
            raise ConfigurationError(
                f"retry_interval_seconds must not be negative, got {retry_interval_seconds!r}"
            )
        self.connector = connector
        self.client = client
        self.descriptor_config = descriptor
        self.retry_interval_seconds = retry_interval_seconds
        self.max_retries = max_retries
        self.session = LauncherSession()
        self.last_error: LaunchError | ProviderError | None = None
        self._cancel = cancel or threading.Event()
        context = {"node": node} if node else {}
        self._base_log = logger.bind(component="lifecycle", image_id=descriptor.image_id, **context)

    # =========================================================================
    # Session Accessors
    # =========================================================================

    @property
    def instance_id(self) -> str | None:
        return self.session.instance_id

    @property
    def pre_launch_ok(self) -> bool:
        return self.session.pre_launch_ok

    @property
    def phase(self) -> LauncherPhase:
        return self.session.phase

    @property
    def delegate(self) -> Launcher | None:
        return self.session.launcher

    @property
    def _log(self):
        if self.session.instance_id is None:
            return self._base_log
        return self._base_log.bind(instance_id=self.session.instance_id)

    @property
    def descriptor(self) -> LauncherDescriptor:
        if self.session.launcher is not None:
            return self.session.launcher.descriptor
        return DESCRIPTOR

    # =========================================================================
    # Launcher Protocol
    # =========================================================================

    def is_launch_supported(self) -> bool:
        # Always launchable until an instance came up; then the delegate decides.
        if not self.session.pre_launch_ok or self.session.launcher is None:
            return True
        supported = self.session.launcher.is_launch_supported()
        self._log.debug("Instance is up, delegate reports launch supported={s}", s=supported)
        return supported

    def launch(self, computer: Any, progress: ProgressSink) -> None:
        """Ensure an instance is running, then hand off to the connector.

        Failures are reported to ``progress`` and recorded on ``last_error``;
        they never propagate and never lead to a handoff.
        """
        self.last_error = None
        try:
            self._ensure_instance(progress)
            host = self.client.describe_public_address(self._require_instance_id())
        except (LaunchError, ProviderError) as e:
            self._fail(e, progress)
            return
        finally:
            # A cancel request applies to this launch only.
            self._cancel.clear()

        self._log.info(
            "EC2 instance {instance_id} is ready, passing control to connector at {host}",
            instance_id=self.session.instance_id,
            host=host,
        )
        self.session.phase = LauncherPhase.READY
        launcher = self.connector.launch(host, progress)
        self.session.launcher = launcher
        launcher.launch(computer, progress)

    def before_disconnect(self, computer: Any, progress: ProgressSink) -> None:
        if self.session.launcher is not None:
            self.session.launcher.before_disconnect(computer, progress)

    def after_disconnect(self, computer: Any, progress: ProgressSink) -> None:
        """Run the delegate's disconnect hook, then terminate the instance.

        Termination is best effort: a failure is logged and reported but the
        session is cleared regardless.
        """
        if self.session.launcher is not None:
            try:
                self.session.launcher.after_disconnect(computer, progress)
            except Exception as e:
                self._log.warning("Connector disconnect hook failed: {err}", err=e)
                progress.error(f"Connector disconnect hook failed: {e}")

        instance_id = self.session.instance_id
        if instance_id is not None:
            self.session.phase = LauncherPhase.TERMINATING
            self._log.info("Terminating EC2 instance {instance_id}", instance_id=instance_id)
            progress.print(f"Terminating EC2 instance [{instance_id}] ...")
            try:
                self.client.terminate(instance_id)
            except ProviderError as e:
                self._log.warning(
                    "Terminate request for {instance_id} failed: {err}",
                    instance_id=instance_id,
                    err=e,
                )
                progress.error(f"Terminate request for instance [{instance_id}] failed: {e}")

        self.session.clear()
        self._cancel.clear()

    # =========================================================================
    # Instance Management
    # =========================================================================

    def instance_is_running(self) -> bool:
        instance_id = self.session.instance_id
        if instance_id is None:
            return False
        try:
            return self.client.describe_state(instance_id) is InstanceState.RUNNING
        except ProviderError as e:
            self._log.warning("Could not read state of {instance_id}: {err}", instance_id=instance_id, err=e)
            return False

    def cancel(self) -> None:
        """Interrupt the launch in progress while it waits for its instance.

        A request left over when that launch returns, or when the session is
        torn down, is discarded.
        """
        self._cancel.set()

    def provision_and_await_ready(self, progress: ProgressSink) -> str:
        """Launch a fresh instance and block until it is running.

        Returns:
            The new instance id.

        Raises:
            ProviderError: The launch request was rejected.
            UnexpectedStateError: A state other than pending/running was observed.
            RetryExhaustedError: Still pending after ``max_retries`` polls.
            InterruptedError: ``cancel`` was called while waiting.
        """
        progress.print(f"Creating new EC2 instance from AMI [{self.descriptor_config.image_id}]...")
        self.session.phase = LauncherPhase.PROVISIONING
        instance_id = self.client.launch(self.descriptor_config)
        self.session.instance_id = instance_id

        def _sleep(seconds: float) -> None:
            if self._cancel.wait(seconds):
                raise InterruptedError(instance_id)

        @retry(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_fixed(self.retry_interval_seconds),
            retry=retry_if_result(lambda state: state is InstanceState.PENDING),
            sleep=_sleep,
        )
        def _poll() -> InstanceState:
            progress.print(f"checking state of instance [{instance_id}]...")
            try:
                state = self.client.describe_state(instance_id)
            except ProviderError as e:
                raise UnexpectedStateError(instance_id, "error", str(e)) from e

            progress.print(f"state of instance [{instance_id}] is [{state}]")
            match state:
                case InstanceState.RUNNING:
                    progress.print(
                        f"instance [{instance_id}] is running, proceeding to launch the agent on this instance"
                    )
                case InstanceState.PENDING:
                    progress.print(
                        f"instance [{instance_id}] is pending, waiting for "
                        f"[{self.retry_interval_seconds}] seconds before retrying"
                    )
                case _:
                    raise UnexpectedStateError(instance_id, state)
            return state

        try:
            _poll()
        except RetryError as e:
            raise RetryExhaustedError(self.max_retries) from e
        return instance_id

    def _ensure_instance(self, progress: ProgressSink) -> None:
        instance_id = self.session.instance_id
        state = InstanceState.ABSENT
        if instance_id is not None:
            state = self.client.describe_state(instance_id)

        if state is InstanceState.PENDING:
            raise UnexpectedStateError(
                instance_id or "",
                state,
                f"EC2 instance {instance_id} is in Pending state. Unclear how to proceed, try again?",
            )

        if state is InstanceState.ABSENT or state in RELAUNCH_STATES:
            self.provision_and_await_ready(progress)
            self.session.pre_launch_ok = True
        else:
            self._log.info(
                "Skipping EC2 part of launch, instance {instance_id} is already {state}",
                instance_id=instance_id,
                state=state,
            )

    def _require_instance_id(self) -> str:
        if self.session.instance_id is None:
            raise UnexpectedStateError("", InstanceState.ABSENT, "No EC2 instance is held by this launcher")
        return self.session.instance_id

    def _fail(self, error: LaunchError | ProviderError, progress: ProgressSink) -> None:
        self.last_error = error
        if self.session.instance_id is None:
            self.session.phase = LauncherPhase.NO_INSTANCE
        self._log.error(
            "Launch of {instance_id} aborted: {err}",
            instance_id=self.session.instance_id,
            err=error,
        )
        progress.error(str(error))
