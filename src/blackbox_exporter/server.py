# SPDX-FileCopyrightText: 2025 The blackbox-exporter Authors
# SPDX-License-Identifier: AGPL-3.0-or-later

"""HTTP endpoints: /probe, /metrics and a static landing page."""

from __future__ import annotations

import logging
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import parse_qs, urlsplit

from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, CollectorRegistry, generate_latest

from .config import DEFAULT_MODULE
from .engine import ProbeEngine
from .errors import ProbeRequestError

logger = logging.getLogger(__name__)

LANDING_PAGE = b"""<html>
<head><title>Blackbox Exporter</title></head>
<body>
<h1>Blackbox Exporter</h1>
<p><a href="/probe?target=prometheus.io&module=http2xx">Probe prometheus.io for http2xx</a></p>
<p><a href="/metrics">Metrics</a></p>
</body>
</html>
"""


def parse_listen_address(address: str) -> tuple[str, int]:
    """Split `host:port`; an empty host (`:9115`) listens on all interfaces."""
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"invalid listen address {address!r}")
    return host.strip("[]"), int(port)


class ExporterServer(ThreadingHTTPServer):
    """One thread per request; the engine and registry are shared read-only/thread-safe."""

    daemon_threads = True

    def __init__(
        self,
        server_address: tuple[str, int],
        engine: ProbeEngine,
        *,
        registry: CollectorRegistry | None = None,
        default_module: str = DEFAULT_MODULE,
    ):
        self.engine = engine
        self.registry = registry if registry is not None else REGISTRY
        self.default_module = default_module
        super().__init__(server_address, ExporterRequestHandler)


class ExporterRequestHandler(BaseHTTPRequestHandler):
    server: ExporterServer

    def do_GET(self) -> None:  # noqa: N802
        parts = urlsplit(self.path)
        if parts.path == "/probe":
            self._handle_probe(parse_qs(parts.query))
        elif parts.path == "/metrics":
            self._send(HTTPStatus.OK, generate_latest(self.server.registry), CONTENT_TYPE_LATEST)
        elif parts.path == "/":
            self._send(HTTPStatus.OK, LANDING_PAGE, "text/html; charset=utf-8")
        else:
            self._send(HTTPStatus.NOT_FOUND, b"404 page not found\n")

    def _handle_probe(self, params: dict[str, list[str]]) -> None:
        target = (params.get("target") or [""])[0]
        module_name = (params.get("module") or [""])[0] or self.server.default_module
        try:
            result = self.server.engine.execute(target, module_name)
        except ProbeRequestError as exc:
            self._send(HTTPStatus.BAD_REQUEST, f"{exc}\n".encode("utf-8"))
            return
        self._send(HTTPStatus.OK, result.render().encode("utf-8"))

    def _send(self, status: HTTPStatus, body: bytes, content_type: str = "text/plain; charset=utf-8") -> None:
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args) -> None:  # noqa: A002,ANN002
        logger.debug("%s - %s", self.address_string(), format % args)


def create_server(
    listen_address: str,
    engine: ProbeEngine,
    *,
    registry: CollectorRegistry | None = None,
    default_module: str = DEFAULT_MODULE,
) -> ExporterServer:
    """Bind the exporter; OSError from bind propagates to the caller."""
    return ExporterServer(parse_listen_address(listen_address), engine, registry=registry, default_module=default_module)


__all__ = ["ExporterRequestHandler", "ExporterServer", "LANDING_PAGE", "create_server", "parse_listen_address"]
