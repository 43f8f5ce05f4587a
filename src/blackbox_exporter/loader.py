# SPDX-FileCopyrightText: 2025 The blackbox-exporter Authors
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Load module definitions from YAML."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from .config import ExporterSettings
from .errors import ConfigError
from .models import Configuration, HTTPProbeConfig, ICMPProbeConfig, Module, TCPProbeConfig

logger = logging.getLogger(__name__)

_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(value: Any) -> float:
    """
    Parse a duration into seconds.

    Accepts plain numbers (seconds) and Go-style strings such as `5s`,
    `250ms` or `1m30s`.
    """
    if isinstance(value, bool):
        raise ConfigError(f"invalid duration {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip()
    if not text:
        raise ConfigError("empty duration")
    try:
        return float(text)
    except ValueError:
        pass

    total = 0.0
    position = 0
    for match in _DURATION_PART_RE.finditer(text):
        if match.start() != position:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()
    if position != len(text):
        raise ConfigError(f"invalid duration {value!r}")
    return total


def _section(data: Mapping[str, Any], key: str, module_name: str) -> Mapping[str, Any] | None:
    section = data.get(key)
    if section is not None and not isinstance(section, Mapping):
        raise ConfigError(f"module {module_name!r}: {key} must be a mapping")
    return section


def module_from_mapping(name: str, data: Mapping[str, Any], *, default_timeout: float) -> Module:
    if not isinstance(data, Mapping):
        raise ConfigError(f"module {name!r} must be a mapping")
    timeout = data.get("timeout")
    try:
        return Module(
            name=name,
            prober=str(data.get("prober") or ""),
            timeout=parse_duration(timeout) if timeout is not None else default_timeout,
            http=HTTPProbeConfig.from_mapping(_section(data, "http", name)),
            tcp=TCPProbeConfig.from_mapping(_section(data, "tcp", name)),
            icmp=ICMPProbeConfig.from_mapping(_section(data, "icmp", name)),
        )
    except (TypeError, ValueError, AttributeError) as exc:
        raise ConfigError(f"module {name!r}: {exc}") from exc


def configuration_from_mapping(data: Any, *, default_timeout: float = ExporterSettings.default_timeout) -> Configuration:
    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise ConfigError("configuration must be a mapping with a 'modules' key")
    modules = data.get("modules") or {}
    if not isinstance(modules, Mapping):
        raise ConfigError("'modules' must be a mapping of module name to module")
    return Configuration(
        {
            str(name): module_from_mapping(str(name), module or {}, default_timeout=default_timeout)
            for name, module in modules.items()
        }
    )


def load_configuration(path: str | Path, *, default_timeout: float = ExporterSettings.default_timeout) -> Configuration:
    """Read and parse a YAML configuration file; any failure raises ConfigError."""
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Error reading config file: {exc}") from exc
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Error parsing config file: {exc}") from exc
    configuration = configuration_from_mapping(data, default_timeout=default_timeout)
    logger.info("Configuration loaded from: %s (%d modules)", path, len(configuration))
    return configuration


__all__ = ["configuration_from_mapping", "load_configuration", "module_from_mapping", "parse_duration"]
