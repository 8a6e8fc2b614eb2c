"""Log output for ec2node.

Library logs stay off until :func:`setup_logging` is called. Each line names
the component that wrote it and the node and instance it concerns, read from
the values bound with ``logger.bind``::

    12:04:31 INFO    lifecycle[builder/i-0abc] EC2 instance i-0abc is ready, ...

Before an instance exists the image id stands in for it, and ``-`` marks a
value that was never bound.

Example:
    from ec2node.logging import LogConfig, setup_logging, teardown_logging

    ids = setup_logging(LogConfig(level="DEBUG", console=True))
    try:
        node.get_launcher().launch(computer, progress)
    finally:
        teardown_logging(ids)
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

from loguru import logger

type LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"]

_LINE = "{time:HH:mm:ss} {level: <7} {extra[_origin]} {message}\n{exception}"
_COLOR_LINE = "<dim>{time:HH:mm:ss}</dim> <level>{level: <7}</level> <cyan>{extra[_origin]}</cyan> {message}\n{exception}"


def _origin(record: Any) -> str:
    extra = record["extra"]
    component = extra.get("component") or record["name"].rpartition(".")[2]
    target = extra.get("instance_id") or extra.get("image_id") or "-"
    return f"{component}[{extra.get('node', '-')}/{target}]"


def _plain(record: Any) -> str:
    record["extra"]["_origin"] = _origin(record)
    return _LINE


def _colored(record: Any) -> str:
    record["extra"]["_origin"] = _origin(record)
    return _COLOR_LINE


@dataclass(frozen=True, slots=True)
class LogConfig:
    """Where ec2node logs go.

    Attributes:
        level: Minimum level written to every handler.
        file: Log file path, parents created on demand. Empty disables it.
        console: Also write colored lines to stderr.
    """

    level: LogLevel = "INFO"
    file: str = ".ec2node/ec2node.log"
    console: bool = False


def setup_logging(config: LogConfig) -> list[int]:
    """Enable ec2node logs and return the handler ids to pass to :func:`teardown_logging`."""
    logger.remove()
    logger.enable("ec2node")

    handler_ids: list[int] = []
    if config.console:
        handler_ids.append(logger.add(sys.stderr, level=config.level, format=_colored, filter="ec2node"))
    if config.file:
        Path(config.file).parent.mkdir(parents=True, exist_ok=True)
        handler_ids.append(
            logger.add(config.file, level=config.level, format=_plain, filter="ec2node", diagnose=False)
        )
    return handler_ids


def teardown_logging(handler_ids: list[int]) -> None:
    for hid in handler_ids:
        logger.remove(hid)
    logger.disable("ec2node")
