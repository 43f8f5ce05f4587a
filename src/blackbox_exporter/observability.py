# SPDX-FileCopyrightText: 2025 The blackbox-exporter Authors
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Process-wide probe aggregates, keyed by module and outcome."""

from __future__ import annotations

from typing import Protocol

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram, Summary

# 1ms doubling up to 2^19ms.
LATENCY_BUCKETS_MILLIS = tuple(float(2**i) for i in range(20))


class ProbeObserver(Protocol):
    """Receives exactly one observation per executed probe."""

    def observe(self, module: str, success: bool, duration_seconds: float) -> None: ...


class NullObserver:
    def observe(self, module: str, success: bool, duration_seconds: float) -> None:  # noqa: ARG002
        return None


class PrometheusObserver:
    """Latency summary, latency histogram and probe counter in a prometheus_client registry."""

    def __init__(self, registry: CollectorRegistry | None = None):
        self.registry = registry if registry is not None else REGISTRY
        labels = ["module", "success"]
        self.latency_summary = Summary(
            "probe_latency_summary_millis",
            "Latency of probes by module",
            labels,
            registry=self.registry,
        )
        self.latency_histogram = Histogram(
            "probe_latency_histogram_millis",
            "Latency of probes by module",
            labels,
            buckets=LATENCY_BUCKETS_MILLIS,
            registry=self.registry,
        )
        self.probe_count = Counter(
            "probe_count",
            "Number of probes by module",
            labels,
            registry=self.registry,
        )

    def observe(self, module: str, success: bool, duration_seconds: float) -> None:
        latency_millis = duration_seconds * 1e3
        success_label = "true" if success else "false"
        self.latency_summary.labels(module, success_label).observe(latency_millis)
        self.latency_histogram.labels(module, success_label).observe(latency_millis)
        self.probe_count.labels(module, success_label).inc()


__all__ = ["LATENCY_BUCKETS_MILLIS", "NullObserver", "ProbeObserver", "PrometheusObserver"]
