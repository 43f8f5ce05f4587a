# SPDX-FileCopyrightText: 2025 The blackbox-exporter Authors
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Blackbox exporter package entrypoint.

Probes a target over HTTP, TCP or ICMP according to a named module and
reports the outcome as an ordered list of numeric metrics. Probers sit behind
one `Prober` interface, configuration is modeled with frozen dataclasses, and
process-wide aggregates go to an injectable observer.
"""

from .config import ExporterSettings, load_settings
from .engine import ProbeEngine
from .errors import (
    ConfigError,
    MissingTargetError,
    ProbeRequestError,
    UnknownModuleError,
    UnknownProberError,
)
from .loader import configuration_from_mapping, load_configuration
from .log import setup_logging
from .models import (
    Configuration,
    HTTPProbeConfig,
    ICMPProbeConfig,
    Metric,
    MetricSink,
    Module,
    ProberType,
    ProbeResult,
    QueryResponseStep,
    TCPProbeConfig,
)
from .observability import NullObserver, ProbeObserver, PrometheusObserver
from .probers import HTTPProber, ICMPProber, Prober, TCPProber
from .version import __version__

__all__ = [
    "ConfigError",
    "Configuration",
    "ExporterSettings",
    "HTTPProbeConfig",
    "HTTPProber",
    "ICMPProbeConfig",
    "ICMPProber",
    "Metric",
    "MetricSink",
    "MissingTargetError",
    "Module",
    "NullObserver",
    "ProbeEngine",
    "ProbeObserver",
    "ProbeRequestError",
    "ProbeResult",
    "Prober",
    "ProberType",
    "PrometheusObserver",
    "QueryResponseStep",
    "TCPProbeConfig",
    "TCPProber",
    "UnknownModuleError",
    "UnknownProberError",
    "configuration_from_mapping",
    "load_configuration",
    "load_settings",
    "setup_logging",
    "__version__",
]
