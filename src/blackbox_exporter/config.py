# SPDX-FileCopyrightText: 2025 The blackbox-exporter Authors
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Process-level settings for the exporter."""

import os
from dataclasses import dataclass

DEFAULT_MODULE = "http2xx"


def _positive_float_env(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if 0 < value < float("inf") else default


def _str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


@dataclass
class ExporterSettings:
    """Defaults for the listener, configuration file and module fallback."""

    listen_address: str = ":9115"
    config_file: str = "blackbox.yml"
    default_module: str = DEFAULT_MODULE
    default_timeout: float = 10.0

    @classmethod
    def from_env(cls) -> "ExporterSettings":
        """Create settings from environment variables (evaluated at call time)."""
        return cls(
            listen_address=_str_env("BLACKBOX_LISTEN_ADDRESS", cls.listen_address),
            config_file=_str_env("BLACKBOX_CONFIG_FILE", cls.config_file),
            default_module=_str_env("BLACKBOX_DEFAULT_MODULE", cls.default_module),
            default_timeout=_positive_float_env("BLACKBOX_DEFAULT_TIMEOUT", cls.default_timeout),
        )


def load_settings() -> ExporterSettings:
    """Load exporter settings from environment with sensible defaults."""
    return ExporterSettings.from_env()
