# SPDX-FileCopyrightText: 2025 The blackbox-exporter Authors
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Protocol-specific probers."""

from .base import Prober
from .http import HTTPProber
from .icmp import ICMPProber, check_icmp_privileges
from .registry import PROBERS, default_probers
from .tcp import TCPProber

__all__ = [
    "HTTPProber",
    "ICMPProber",
    "PROBERS",
    "Prober",
    "TCPProber",
    "check_icmp_privileges",
    "default_probers",
]
