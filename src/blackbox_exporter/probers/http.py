# SPDX-FileCopyrightText: 2025 The blackbox-exporter Authors
# SPDX-License-Identifier: AGPL-3.0-or-later

"""HTTP/HTTPS prober backed by httpx."""

from __future__ import annotations

import logging
import re
import ssl
import time
from collections.abc import Iterable
from typing import Any

import httpx

from ..errors import categorize_exception
from ..models import HTTPProbeConfig, MetricSink, ProberType
from .base import Prober

logger = logging.getLogger(__name__)

MAX_REDIRECTS = 10


def normalize_target(target: str) -> str:
    if target.startswith(("http://", "https://")):
        return target
    return "http://" + target


def status_code_ok(status_code: int, valid_status_codes: Iterable[int]) -> bool:
    valid = tuple(valid_status_codes)
    if valid:
        return status_code in valid
    return 200 <= status_code < 300


def match_regular_expressions(body: bytes, config: HTTPProbeConfig) -> bool:
    """Return False if a fail_if_matches pattern matches or a fail_if_not_matches pattern does not."""
    for expression in config.fail_if_matches:
        try:
            pattern = re.compile(expression.encode("utf-8"))
        except re.error as exc:
            logger.error("Could not compile expression %r as regular expression: %s", expression, exc)
            return False
        if pattern.search(body):
            return False
    for expression in config.fail_if_not_matches:
        try:
            pattern = re.compile(expression.encode("utf-8"))
        except re.error as exc:
            logger.error("Could not compile expression %r as regular expression: %s", expression, exc)
            return False
        if not pattern.search(body):
            return False
    return True


def _verified_chain(ssl_object: Any) -> list[dict[str, Any]]:
    get_chain = getattr(ssl_object, "get_verified_chain", None)
    if get_chain is None:
        return []
    certificates = []
    for cert in get_chain() or ():
        # Raw DER entries carry no decoded fields.
        get_info = getattr(cert, "get_info", None)
        if get_info is not None:
            certificates.append(get_info())
    return certificates


def peer_certificates(response: httpx.Response) -> list[dict[str, Any]] | None:
    """
    Return the decoded peer certificates of the connection that produced `response`.

    None means the connection was not encrypted. The verified chain is used when
    the ssl module exposes it; otherwise only the leaf certificate is available,
    and only when it was verified.
    """
    stream = response.extensions.get("network_stream")
    if stream is None:
        return None
    ssl_object = stream.get_extra_info("ssl_object")
    if ssl_object is None:
        return None
    chain = _verified_chain(ssl_object)
    if chain:
        return chain
    cert = ssl_object.getpeercert()
    return [cert] if cert else []


def earliest_cert_expiry(certificates: Iterable[dict[str, Any]]) -> float:
    """Unix timestamp of the soonest notAfter, 0 when no certificate carries one."""
    earliest = 0.0
    for cert in certificates:
        not_after = cert.get("notAfter")
        if not not_after:
            continue
        try:
            expiry = float(ssl.cert_time_to_seconds(not_after))
        except ValueError:
            logger.debug("Ignoring unparsable notAfter %r", not_after)
            continue
        if earliest == 0.0 or expiry < earliest:
            earliest = expiry
    return earliest


def _declared_content_length(response: httpx.Response) -> int:
    raw = response.headers.get("content-length")
    if raw is None:
        return -1
    try:
        return int(raw)
    except ValueError:
        return -1


def _budget_hook(deadline: float):
    """Request hook giving every hop, redirects included, only the time left until `deadline`."""

    def apply_remaining(request: httpx.Request) -> None:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise httpx.TimeoutException("Probe timeout exceeded before sending request", request=request)
        request.extensions["timeout"] = httpx.Timeout(remaining).as_dict()

    return apply_remaining


def read_body(response: httpx.Response, deadline: float) -> bytes:
    """Read the whole body, raising httpx.ReadTimeout once `deadline` has passed."""
    chunks = []
    for chunk in response.iter_bytes():
        chunks.append(chunk)
        if time.monotonic() > deadline:
            raise httpx.ReadTimeout("Probe timeout exceeded while reading body", request=response.request)
    return b"".join(chunks)


class HTTPProber(Prober):
    """Performs one request/response cycle and judges status, body and TLS state."""

    prober_type = ProberType.HTTP

    def __init__(self, transport: httpx.BaseTransport | None = None):
        self._transport = transport

    def probe(self, target: str, config: HTTPProbeConfig, timeout: float, sink: MetricSink) -> bool:
        url = normalize_target(target) + (config.path or "/")
        method = config.method or "GET"
        logger.info("probeHTTP to %s", url)

        deadline = time.monotonic() + timeout
        try:
            with httpx.Client(
                timeout=timeout,
                follow_redirects=config.follow_redirects,
                max_redirects=MAX_REDIRECTS,
                transport=self._transport,
                event_hooks={"request": [_budget_hook(deadline)]},
            ) as client:
                with client.stream(method, url) as response:
                    return self._evaluate(response, config, sink, deadline)
        except httpx.TooManyRedirects as exc:
            logger.warning("Error for HTTP request to %s: %s", url, exc)
            return False
        except (httpx.HTTPError, httpx.InvalidURL, OSError) as exc:
            logger.warning("Error for HTTP request to %s (%s): %s", url, categorize_exception(exc).value, exc)
            return False

    def _evaluate(self, response: httpx.Response, config: HTTPProbeConfig, sink: MetricSink, deadline: float) -> bool:
        sink.emit("probe_http_status_code", response.status_code)
        sink.emit("probe_http_content_length", _declared_content_length(response))
        sink.emit("probe_http_redirects", len(response.history))

        # Read TLS state before the body so the connection is still attached.
        certificates = peer_certificates(response)

        status_ok = status_code_ok(response.status_code, config.valid_status_codes)
        body_ok = True
        tls_ok = True

        if status_ok:
            try:
                body = read_body(response, deadline)
            except httpx.HTTPError as exc:
                logger.error("Error reading HTTP body: %s", exc)
                body_ok = False
            else:
                sink.emit("probe_http_actual_content_length", len(body))
                if config.fail_if_matches or config.fail_if_not_matches:
                    body_ok = match_regular_expressions(body, config)

        if certificates is not None:
            sink.emit("probe_http_ssl", 1.0)
            sink.emit("probe_ssl_earliest_cert_expiry", earliest_cert_expiry(certificates))
            if config.fail_if_ssl:
                tls_ok = False
        else:
            sink.emit("probe_http_ssl", 0.0)
            if config.fail_if_not_ssl:
                tls_ok = False

        return status_ok and body_ok and tls_ok
