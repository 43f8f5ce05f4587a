# SPDX-FileCopyrightText: 2025 The blackbox-exporter Authors
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Probe engine: resolves a module to a prober, times it and records the outcome."""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping

from .errors import MissingTargetError, UnknownModuleError, UnknownProberError
from .models import PROBE_DURATION_SECONDS, PROBE_SUCCESS, Configuration, MetricSink, ProberType, ProbeResult
from .observability import NullObserver, ProbeObserver
from .probers import Prober, default_probers

logger = logging.getLogger(__name__)


class ProbeEngine:
    """
    Executes one probe per call against a read-only configuration.

    The module timeout is handed to the prober, which bounds its own blocking
    operations; the engine never cancels a running prober.
    """

    def __init__(
        self,
        configuration: Configuration,
        *,
        observer: ProbeObserver | None = None,
        probers: Mapping[ProberType, Prober] | None = None,
    ):
        self.configuration = configuration
        self.observer = observer or NullObserver()
        self.probers = probers if probers is not None else default_probers()

    def execute(self, target: str, module_name: str) -> ProbeResult:
        """
        Run `module_name` against `target`.

        Raises a ProbeRequestError subclass, before any network I/O, when the
        target is empty or the module/prober cannot be resolved.
        """
        if not target:
            raise MissingTargetError()
        module = self.configuration.get(module_name)
        if module is None:
            raise UnknownModuleError(module_name)
        prober_type = module.prober_type
        prober = self.probers.get(prober_type) if prober_type is not None else None
        if prober_type is None or prober is None:
            raise UnknownProberError(module.prober)

        sink = MetricSink()
        start = time.monotonic()
        try:
            success = bool(prober.probe(target, module.protocol_config(prober_type), module.timeout, sink))
        except Exception:  # noqa: BLE001
            logger.exception("Prober %s raised for target %s", prober_type.value, target)
            success = False
        duration = time.monotonic() - start

        sink.emit(PROBE_DURATION_SECONDS, duration)
        sink.emit(PROBE_SUCCESS, 1.0 if success else 0.0)
        self.observer.observe(module_name, success, duration)

        return ProbeResult(
            module=module_name,
            target=target,
            success=success,
            duration_seconds=duration,
            metrics=sink.metrics,
        )


__all__ = ["ProbeEngine"]
