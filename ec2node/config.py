"""TOML-based node and credentials configuration.

Loads ~/.ec2node/defaults.toml (global) and ec2node.toml (project),
merges them, and resolves named nodes into NodeConfig instances.
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any

from loguru import logger

from ec2node.constants import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_REGION,
    DEFAULT_RETRY_INTERVAL_SECONDS,
    ENV_ACCESS_KEY,
    ENV_REGION,
    ENV_SECRET_KEY,
    GLOBAL_CONFIG_DIR,
    GLOBAL_CONFIG_NAME,
    PROJECT_CONFIG_NAME,
)
from ec2node.core.exceptions import ConfigurationError
from ec2node.types import Credentials, InstanceDescriptor, NodeConfig

type RawConfig = dict[str, Any]

GLOBAL_CONFIG_PATH = Path.home() / GLOBAL_CONFIG_DIR / GLOBAL_CONFIG_NAME

log = logger.bind(component="config")

_REQUIRED_NODE_FIELDS = ("image_id", "instance_type", "key_pair_name")
_KNOWN_NODE_FIELDS = frozenset({
    *_REQUIRED_NODE_FIELDS,
    "credentials",
    "security_group",
    "availability_zone",
    "connector",
    "connector_options",
    "retry_interval_seconds",
    "max_retries",
})


def _deep_merge(base: RawConfig, override: RawConfig) -> RawConfig:
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _read_toml(path: Path) -> RawConfig:
    if not path.is_file():
        return {}
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in {path}: {e}") from e


def load_config(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> RawConfig:
    global_cfg = _read_toml(global_path or GLOBAL_CONFIG_PATH)
    project_path = (project_dir or Path.cwd()) / PROJECT_CONFIG_NAME
    project_cfg = _read_toml(project_path)

    merged = _deep_merge(global_cfg, project_cfg)
    merged.setdefault("credentials", {})
    merged.setdefault("nodes", {})
    return merged


def _build_credentials(
    name: str | None,
    raw: RawConfig,
    environ: Mapping[str, str],
) -> Credentials:
    section: RawConfig = {}
    if name is not None:
        if name not in raw["credentials"]:
            raise ConfigurationError(
                f"Unknown credentials '{name}'. Valid: {', '.join(raw['credentials']) or 'none'}"
            )
        section = raw["credentials"][name]

    access_key = section.get("access_key") or environ.get(ENV_ACCESS_KEY, "")
    secret_key = section.get("secret_key") or environ.get(ENV_SECRET_KEY, "")
    region = section.get("region") or environ.get(ENV_REGION) or DEFAULT_REGION

    if not access_key or not secret_key:
        raise ConfigurationError(
            f"Missing AWS credentials: set access_key/secret_key or {ENV_ACCESS_KEY}/{ENV_SECRET_KEY}"
        )
    return Credentials(access_key=access_key, secret_key=secret_key, region=region)


def _positive_int(node: str, key: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigurationError(f"Node '{node}': {key} must be a positive integer, got {value!r}")
    return value


def build_node(name: str, section: RawConfig, raw: RawConfig, environ: Mapping[str, str]) -> NodeConfig:
    unknown = set(section) - _KNOWN_NODE_FIELDS
    if unknown:
        raise ConfigurationError(f"Node '{name}' has unknown fields: {', '.join(sorted(unknown))}")

    missing = [k for k in _REQUIRED_NODE_FIELDS if not section.get(k)]
    if missing:
        raise ConfigurationError(f"Node '{name}' missing required fields: {', '.join(missing)}")

    descriptor = InstanceDescriptor(
        image_id=section["image_id"],
        instance_type=section["instance_type"],
        key_pair_name=section["key_pair_name"],
        security_group=section.get("security_group", ""),
        availability_zone=section.get("availability_zone", ""),
    )

    return NodeConfig(
        name=name,
        credentials=_build_credentials(section.get("credentials"), raw, environ),
        descriptor=descriptor,
        connector=section.get("connector", ""),
        connector_options=MappingProxyType(dict(section.get("connector_options", {}))),
        retry_interval_seconds=_positive_int(
            name,
            "retry_interval_seconds",
            section.get("retry_interval_seconds", DEFAULT_RETRY_INTERVAL_SECONDS),
        ),
        max_retries=_positive_int(name, "max_retries", section.get("max_retries", DEFAULT_MAX_RETRIES)),
    )


def resolve_node(
    name: str,
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> NodeConfig:
    raw = load_config(project_dir=project_dir, global_path=global_path)

    nodes = raw["nodes"]
    if name not in nodes:
        available = ", ".join(nodes) or "none"
        raise ConfigurationError(f"Node '{name}' not found. Available: {available}")

    node = build_node(name, nodes[name], raw, os.environ if environ is None else environ)
    log.debug("Resolved node {node} ({ami})", node=name, ami=node.descriptor.image_id)
    return node


def list_nodes(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> list[str]:
    return sorted(load_config(project_dir=project_dir, global_path=global_path)["nodes"])
