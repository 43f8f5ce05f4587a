# SPDX-FileCopyrightText: 2025 The blackbox-exporter Authors
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
ICMPv4 echo prober.

Sending raw ICMP requires elevated privileges (root or CAP_NET_RAW).
check_icmp_privileges() lets the entrypoint fail fast at startup instead of
reporting every ICMP probe as a failure.
"""

from __future__ import annotations

import logging
import os
import random
import select
import socket
import struct
import time
from collections.abc import Callable

from ..errors import categorize_exception
from ..models import ICMPProbeConfig, MetricSink, ProberType
from .base import Prober

logger = logging.getLogger(__name__)

ICMP_ECHO_REQUEST = 8
ICMP_ECHO_REPLY = 0
ICMP_PAYLOAD = b"Prometheus Blackbox Exporter"
_RECV_BYTES = 1500

SocketFactory = Callable[[], socket.socket]


def checksum(data: bytes) -> int:
    """RFC 1071 internet checksum."""
    if len(data) % 2:
        data += b"\x00"

    total = 0
    for i in range(0, len(data), 2):
        total += (data[i] << 8) + data[i + 1]
        total &= 0xFFFFFFFF

    total = (total >> 16) + (total & 0xFFFF)
    total += total >> 16
    return (~total) & 0xFFFF


def build_echo_request(identifier: int, sequence: int, payload: bytes = ICMP_PAYLOAD) -> bytes:
    header = struct.pack("!BBHHH", ICMP_ECHO_REQUEST, 0, 0, identifier, sequence)
    chksum = checksum(header + payload)
    header = struct.pack("!BBHHH", ICMP_ECHO_REQUEST, 0, chksum, identifier, sequence)
    return header + payload


def parse_echo_reply(packet: bytes) -> tuple[int, int] | None:
    """Return (identifier, sequence) if `packet` (IPv4 header included) is an echo reply."""
    if not packet:
        return None
    ip_header_len = (packet[0] & 0x0F) * 4
    icmp_header = packet[ip_header_len : ip_header_len + 8]
    if len(icmp_header) < 8:
        return None
    packet_type, _code, _chksum, identifier, sequence = struct.unpack("!BBHHH", icmp_header)
    if packet_type != ICMP_ECHO_REPLY:
        return None
    return identifier, sequence


def _raw_icmp_socket() -> socket.socket:
    return socket.socket(socket.AF_INET, socket.SOCK_RAW, socket.IPPROTO_ICMP)


def check_icmp_privileges(socket_factory: SocketFactory = _raw_icmp_socket) -> None:
    """Raise PermissionError (or OSError) when raw ICMP sockets cannot be opened."""
    sock = socket_factory()
    sock.close()


class ICMPProber(Prober):
    prober_type = ProberType.ICMP

    def __init__(self, socket_factory: SocketFactory | None = None):
        self._socket_factory = socket_factory or _raw_icmp_socket

    def probe(self, target: str, config: ICMPProbeConfig, timeout: float, sink: MetricSink) -> bool:  # noqa: ARG002
        deadline = time.monotonic() + timeout
        try:
            address = socket.getaddrinfo(target, None, socket.AF_INET)[0][4][0]
        except OSError as exc:
            logger.warning("Error resolving address %s (%s): %s", target, categorize_exception(exc).value, exc)
            return False

        identifier = os.getpid() & 0xFFFF
        sequence = random.randint(0, 0xFFFF)
        request = build_echo_request(identifier, sequence)
        logger.info("probeICMP to %s (%s)", target, address)

        try:
            sock = self._socket_factory()
        except OSError as exc:
            logger.error("Error opening ICMP socket (%s): %s", categorize_exception(exc).value, exc)
            return False

        with sock:
            try:
                sock.setblocking(False)
                sock.sendto(request, (address, 0))
                return self._await_reply(sock, address, identifier, sequence, deadline)
            except OSError as exc:
                logger.warning("ICMP echo to %s failed (%s): %s", address, categorize_exception(exc).value, exc)
                return False

    def _await_reply(self, sock: socket.socket, address: str, identifier: int, sequence: int, deadline: float) -> bool:
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.warning("Timeout waiting for ICMP echo reply from %s", address)
                return False
            ready, _, _ = select.select([sock], [], [], remaining)
            if not ready:
                continue
            packet, peer = sock.recvfrom(_RECV_BYTES)
            if peer[0] != address:
                continue
            if parse_echo_reply(packet) == (identifier, sequence):
                return True
