# SPDX-FileCopyrightText: 2025 The blackbox-exporter Authors
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Prober base class."""

from abc import ABC, abstractmethod
from typing import Any

from ..models import MetricSink, ProberType


class Prober(ABC):
    """
    One protocol-specific measurement attempt.

    Implementations return a boolean and emit whatever metrics they collected;
    they never raise for a failed probe and must bound every blocking call by
    `timeout` themselves.
    """

    prober_type: ProberType

    @abstractmethod
    def probe(self, target: str, config: Any, timeout: float, sink: MetricSink) -> bool: ...

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"{self.__class__.__name__}({self.prober_type.value})"
