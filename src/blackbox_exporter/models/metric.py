# SPDX-FileCopyrightText: 2025 The blackbox-exporter Authors
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Metric sink and probe result models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

PROBE_DURATION_SECONDS = "probe_duration_seconds"
PROBE_SUCCESS = "probe_success"


@dataclass(frozen=True)
class Metric:
    name: str
    value: float


class MetricSink:
    """Append-only, ordered collection of measurements for one probe."""

    def __init__(self) -> None:
        self._metrics: list[Metric] = []

    def emit(self, name: str, value: float) -> None:
        self._metrics.append(Metric(name, float(value)))

    @property
    def metrics(self) -> tuple[Metric, ...]:
        return tuple(self._metrics)

    def __len__(self) -> int:
        return len(self._metrics)


@dataclass
class ProbeResult:
    """Ordered metrics of one probe invocation plus its outcome."""

    module: str
    target: str
    success: bool
    duration_seconds: float
    metrics: tuple[Metric, ...] = field(default_factory=tuple)

    def value(self, name: str) -> float | None:
        """Return the last emitted value for `name`, if any."""
        for metric in reversed(self.metrics):
            if metric.name == name:
                return metric.value
        return None

    def names(self) -> list[str]:
        return [metric.name for metric in self.metrics]

    def render(self) -> str:
        return "".join(f"{metric.name} {metric.value:f}\n" for metric in self.metrics)

    def to_dict(self) -> dict[str, Any]:
        return {
            "module": self.module,
            "target": self.target,
            "success": self.success,
            "duration_seconds": self.duration_seconds,
            "metrics": [{"name": metric.name, "value": metric.value} for metric in self.metrics],
        }
