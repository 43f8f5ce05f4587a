# SPDX-FileCopyrightText: 2025 The blackbox-exporter Authors
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Logging setup for the exporter process."""

from __future__ import annotations

import logging
import os

LOG_LEVEL_ENV = "BLACKBOX_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def resolve_level(level: str | None = None) -> int:
    """
    Map a level name ("debug", "INFO", ...) to its numeric value.

    An explicit `level` wins over BLACKBOX_LOG_LEVEL; unknown names resolve to WARNING.
    """
    name = (level or os.getenv(LOG_LEVEL_ENV) or "WARNING").strip().upper()
    value = logging.getLevelName(name)
    return value if isinstance(value, int) else logging.WARNING


def setup_logging(level: str | None = None) -> int:
    """Configure root logging for the CLI and server; returns the level applied."""
    effective = resolve_level(level)
    logging.basicConfig(level=effective, format=LOG_FORMAT)
    logging.getLogger().setLevel(effective)
    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(max(effective, logging.WARNING))
    return effective


__all__ = ["resolve_level", "setup_logging"]
