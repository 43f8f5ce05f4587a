# SPDX-FileCopyrightText: 2025 The blackbox-exporter Authors
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Dataclass exports for the exporter."""

from .metric import PROBE_DURATION_SECONDS, PROBE_SUCCESS, Metric, MetricSink, ProbeResult
from .module import (
    Configuration,
    HTTPProbeConfig,
    ICMPProbeConfig,
    Module,
    ProberType,
    QueryResponseStep,
    TCPProbeConfig,
)

__all__ = [
    "Configuration",
    "HTTPProbeConfig",
    "ICMPProbeConfig",
    "Metric",
    "MetricSink",
    "Module",
    "PROBE_DURATION_SECONDS",
    "PROBE_SUCCESS",
    "ProbeResult",
    "ProberType",
    "QueryResponseStep",
    "TCPProbeConfig",
]
