# SPDX-FileCopyrightText: 2025 The blackbox-exporter Authors
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Blackbox exporter CLI."""

from __future__ import annotations

import argparse
import json
import logging
import sys

from ..config import ExporterSettings, load_settings
from ..engine import ProbeEngine
from ..errors import ConfigError, ProbeRequestError
from ..loader import load_configuration
from ..log import setup_logging
from ..models import Configuration, ProberType, ProbeResult
from ..observability import PrometheusObserver
from ..probers import check_icmp_privileges
from ..server import create_server

logger = logging.getLogger(__name__)

EXIT_FATAL = 1
EXIT_USAGE = 2


def build_parser(settings: ExporterSettings | None = None) -> argparse.ArgumentParser:
    settings = settings or ExporterSettings()
    parser = argparse.ArgumentParser(description="Blackbox prober exporting HTTP, TCP and ICMP probe results")
    parser.add_argument(
        "--config.file",
        dest="config_file",
        default=settings.config_file,
        help="Blackbox exporter configuration file",
    )
    parser.add_argument(
        "--web.listen-address",
        dest="listen_address",
        default=settings.listen_address,
        help="The address to listen on for HTTP requests",
    )
    parser.add_argument("--log-level", dest="log_level", default=None, help="Logging level (default: BLACKBOX_LOG_LEVEL or WARNING)")
    parser.add_argument("--target", help="Run a single probe against this target and exit")
    parser.add_argument("--module", default=settings.default_module, help="Module used with --target")
    parser.add_argument(
        "--json",
        action="store_true",
        help="With --target, output JSON instead of metric lines",
    )
    return parser


def _print_result(result: ProbeResult, as_json: bool) -> None:
    if as_json:
        json.dump(result.to_dict(), sys.stdout, indent=2, sort_keys=True)
        sys.stdout.write("\n")
    else:
        sys.stdout.write(result.render())


def _check_privileges(configuration: Configuration) -> None:
    if configuration.uses(ProberType.ICMP):
        check_icmp_privileges()


def main(argv: list[str] | None = None) -> int:
    settings = load_settings()
    parser = build_parser(settings)
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    try:
        configuration = load_configuration(args.config_file, default_timeout=settings.default_timeout)
    except ConfigError as exc:
        logger.critical("%s", exc)
        return EXIT_FATAL

    try:
        _check_privileges(configuration)
    except OSError as exc:
        logger.critical("ICMP modules are configured but raw sockets are unavailable: %s", exc)
        return EXIT_FATAL

    if args.target:
        engine = ProbeEngine(configuration)
        try:
            result = engine.execute(args.target, args.module)
        except ProbeRequestError as exc:
            logger.error("%s", exc)
            return EXIT_USAGE
        _print_result(result, args.json)
        return 0 if result.success else 1

    observer = PrometheusObserver()
    engine = ProbeEngine(configuration, observer=observer)
    try:
        server = create_server(args.listen_address, engine, registry=observer.registry, default_module=settings.default_module)
    except (OSError, ValueError) as exc:
        logger.critical("Error starting HTTP server: %s", exc)
        return EXIT_FATAL

    logger.info("Listening for connections on %s", args.listen_address)
    with server:
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            logger.info("Shutting down")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
