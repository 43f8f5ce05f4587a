# SPDX-FileCopyrightText: 2025 The blackbox-exporter Authors
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Scripted TCP prober.

Runs a sequence of expect/send steps over one connection, e.g. an SSH banner
check or an IRC registration handshake. A single absolute deadline covers the
connect and the whole script; it is not refreshed between steps.
"""

from __future__ import annotations

import logging
import re
import socket
import time

from ..errors import categorize_exception
from ..models import MetricSink, ProberType, QueryResponseStep, TCPProbeConfig
from .base import Prober

logger = logging.getLogger(__name__)

# Longest line accepted while waiting for an expect match.
MAX_LINE_BYTES = 64 * 1024
_RECV_BYTES = 4096
_TEMPLATE_RE = re.compile(r"\$(?:(\$)|\{(\w+)\}|(\w+))")


class LineTooLongError(Exception):
    pass


def split_host_port(target: str) -> tuple[str, int]:
    """Split `host:port` or `[v6addr]:port`; the port may be a service name."""
    if target.startswith("["):
        host, sep, port = target[1:].partition("]:")
    else:
        host, sep, port = target.rpartition(":")
        if ":" in host:
            raise ValueError(f"too many colons in address {target!r}")
    if not sep or not port:
        raise ValueError(f"missing port in address {target!r}")
    if port.isdigit():
        return host, int(port)
    return host, socket.getservbyname(port, "tcp")


def expand_template(template: str, match: re.Match[str]) -> str:
    """
    Substitute `$1`, `${1}`, `$name`, `${name}` with groups of `match`.

    `$$` is a literal dollar sign; unknown or unmatched groups expand to nothing.
    """

    def replace(ref: re.Match[str]) -> str:
        if ref.group(1):
            return "$"
        name = ref.group(2) or ref.group(3)
        try:
            value = match.group(int(name)) if name.isdigit() else match.group(name)
        except IndexError:
            return ""
        return value or ""

    return _TEMPLATE_RE.sub(replace, template)


def _decode(raw: bytes) -> str:
    return raw.decode("utf-8", errors="surrogateescape")


def _remaining(deadline: float) -> float:
    remaining = deadline - time.monotonic()
    if remaining <= 0:
        raise socket.timeout("deadline exceeded")
    return remaining


class LineReader:
    """Newline-delimited reader bounded by an absolute deadline."""

    def __init__(self, conn: socket.socket, deadline: float):
        self._conn = conn
        self._deadline = deadline
        self._buffer = b""
        self._eof = False

    def readline(self) -> str | None:
        """Return the next line without its terminator, or None at end of stream."""
        while True:
            newline = self._buffer.find(b"\n")
            if newline >= 0:
                line = self._buffer[:newline]
                self._buffer = self._buffer[newline + 1 :]
                if line.endswith(b"\r"):
                    line = line[:-1]
                return _decode(line)
            if len(self._buffer) > MAX_LINE_BYTES:
                raise LineTooLongError(f"line longer than {MAX_LINE_BYTES} bytes")
            if self._eof:
                if not self._buffer:
                    return None
                line, self._buffer = self._buffer, b""
                return _decode(line)
            self._conn.settimeout(_remaining(self._deadline))
            chunk = self._conn.recv(_RECV_BYTES)
            if chunk:
                self._buffer += chunk
            else:
                self._eof = True


class TCPProber(Prober):
    prober_type = ProberType.TCP

    def probe(self, target: str, config: TCPProbeConfig, timeout: float, sink: MetricSink) -> bool:  # noqa: ARG002
        deadline = time.monotonic() + timeout
        try:
            host, port = split_host_port(target)
        except (ValueError, OSError) as exc:
            logger.warning("Invalid TCP target %r: %s", target, exc)
            return False

        try:
            conn = socket.create_connection((host, port), timeout=timeout)
        except OSError as exc:
            logger.warning("Error dialing %s (%s): %s", target, categorize_exception(exc).value, exc)
            return False

        with conn:
            try:
                return self._run_steps(conn, config.steps, deadline)
            except (OSError, LineTooLongError) as exc:
                logger.warning("TCP exchange with %s failed: %s", target, exc)
                return False

    def _run_steps(self, conn: socket.socket, steps: tuple[QueryResponseStep, ...], deadline: float) -> bool:
        reader = LineReader(conn, deadline)
        for step in steps:
            logger.debug("Processing query response entry %r", step)
            send = step.send
            if step.expect:
                try:
                    pattern = re.compile(step.expect)
                except re.error as exc:
                    logger.error("Could not compile %r into regular expression: %s", step.expect, exc)
                    return False
                match = None
                # Read lines until one of them matches the expected pattern.
                while match is None:
                    line = reader.readline()
                    if line is None:
                        break
                    logger.debug("read %r", line)
                    match = pattern.search(line)
                if match is None:
                    logger.debug("regexp %r never matched before end of stream", step.expect)
                    return False
                logger.debug("regexp %r matched %r", step.expect, match.string)
                send = expand_template(send, match)
            if send:
                logger.debug("Sending %r", send)
                conn.settimeout(_remaining(deadline))
                conn.sendall((send + "\n").encode("utf-8", errors="surrogateescape"))
        return True
