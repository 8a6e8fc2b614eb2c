"""Progress sinks for human-readable launch and teardown status lines.

A sink is write-only: lines are meant for people tailing a node's log,
never parsed back.
"""

from __future__ import annotations

from typing import Protocol, TextIO, runtime_checkable

from loguru import logger
from rich.console import Console
from rich.text import Text


@runtime_checkable
class ProgressSink(Protocol):
    """Destination for status lines emitted during provisioning and teardown."""

    def print(self, message: str) -> None: ...
    def error(self, message: str) -> None: ...


class ConsoleProgress:
    """Writes status lines to a rich console; errors are shown in red."""

    def __init__(self, console: Console | None = None, prefix: str = "EC2") -> None:
        self._console = console or Console(stderr=True)
        self._prefix = prefix

    def print(self, message: str) -> None:
        line = Text(f"[{self._prefix}] ", style="cyan")
        line.append(message)
        self._console.print(line)

    def error(self, message: str) -> None:
        line = Text(f"[{self._prefix}] ERROR: ", style="bold red")
        line.append(message, style="red")
        self._console.print(line)


class StreamProgress:
    """Writes plain status lines to any text stream."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream

    def print(self, message: str) -> None:
        self._stream.write(message + "\n")
        self._stream.flush()

    def error(self, message: str) -> None:
        self.print(f"ERROR: {message}")


class LoggingProgress:
    """Forwards status lines to the ec2node logger."""

    def __init__(self, **context: object) -> None:
        self._log = logger.bind(component="progress", **context)

    def print(self, message: str) -> None:
        self._log.info(message)

    def error(self, message: str) -> None:
        self._log.error(message)
