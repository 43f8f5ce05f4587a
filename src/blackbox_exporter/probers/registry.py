# SPDX-FileCopyrightText: 2025 The blackbox-exporter Authors
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Prober registry."""

from collections.abc import Mapping

from ..models import ProberType
from .base import Prober
from .http import HTTPProber
from .icmp import ICMPProber
from .tcp import TCPProber


def default_probers() -> dict[ProberType, Prober]:
    return {
        ProberType.HTTP: HTTPProber(),
        ProberType.TCP: TCPProber(),
        ProberType.ICMP: ICMPProber(),
    }


PROBERS: Mapping[ProberType, Prober] = default_probers()

__all__ = ["PROBERS", "default_probers"]
