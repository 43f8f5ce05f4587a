# SPDX-FileCopyrightText: 2025 The blackbox-exporter Authors
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Error taxonomy and exception helpers."""

import socket
import ssl
from enum import Enum

import httpx


class ProbeRequestError(Exception):
    """A probe request rejected before any network I/O (client error)."""


class MissingTargetError(ProbeRequestError):
    def __init__(self) -> None:
        super().__init__("Target parameter is missing")


class UnknownModuleError(ProbeRequestError):
    def __init__(self, module_name: str) -> None:
        super().__init__(f"Unknown module {module_name}")
        self.module_name = module_name


class UnknownProberError(ProbeRequestError):
    def __init__(self, prober: str) -> None:
        super().__init__(f"Unknown prober {prober}")
        self.prober = prober


class ConfigError(Exception):
    """The configuration file could not be read or understood."""


class ErrorCategory(str, Enum):
    TIMEOUT = "TIMEOUT"
    SSL_ERROR = "SSL_ERROR"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    DNS_ERROR = "DNS_ERROR"
    PERMISSION_ERROR = "PERMISSION_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


def categorize_exception(exc: BaseException) -> ErrorCategory:
    """
    Map socket/ssl/httpx exceptions raised during a probe to an ErrorCategory.
    """
    if isinstance(exc, (httpx.TimeoutException, socket.timeout, TimeoutError)):
        return ErrorCategory.TIMEOUT

    if isinstance(exc, (ssl.SSLError, ssl.CertificateError)):
        return ErrorCategory.SSL_ERROR

    if isinstance(exc, (socket.gaierror, socket.herror)):
        return ErrorCategory.DNS_ERROR

    if isinstance(exc, PermissionError):
        return ErrorCategory.PERMISSION_ERROR

    if isinstance(exc, (httpx.ConnectError, httpx.RemoteProtocolError, httpx.NetworkError, httpx.ProxyError)):
        # httpx wraps the underlying OS error; look through it for a more precise category.
        cause = exc.__cause__ or exc.__context__
        if cause is not None and not isinstance(cause, httpx.HTTPError):
            category = categorize_exception(cause)
            if category is not ErrorCategory.UNKNOWN_ERROR:
                return category
        return ErrorCategory.CONNECTION_ERROR

    if isinstance(exc, (ConnectionError, ConnectionRefusedError, ConnectionResetError)):
        return ErrorCategory.CONNECTION_ERROR

    return ErrorCategory.UNKNOWN_ERROR


__all__ = [
    "ConfigError",
    "ErrorCategory",
    "MissingTargetError",
    "ProbeRequestError",
    "UnknownModuleError",
    "UnknownProberError",
    "categorize_exception",
]
