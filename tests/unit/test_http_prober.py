# SPDX-FileCopyrightText: 2025 The blackbox-exporter Authors
# SPDX-License-Identifier: AGPL-3.0-or-later

import ssl
import threading
import time
from contextlib import contextmanager
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import httpx
import pytest
import trustme

from blackbox_exporter.models import HTTPProbeConfig, MetricSink
from blackbox_exporter.probers import http as http_module
from blackbox_exporter.probers.http import (
    HTTPProber,
    earliest_cert_expiry,
    match_regular_expressions,
    normalize_target,
    peer_certificates,
    status_code_ok,
)


def run_probe(handler, config=None, target="http://example.test"):
    sink = MetricSink()
    prober = HTTPProber(transport=httpx.MockTransport(handler))
    ok = prober.probe(target, config or HTTPProbeConfig(), 5.0, sink)
    return ok, {metric.name: metric.value for metric in sink.metrics}, sink


@pytest.mark.parametrize(
    "status_code,valid_status_codes,should_succeed",
    [
        (200, (), True),
        (201, (), True),
        (299, (), True),
        (300, (), False),
        (404, (), False),
        (404, (200, 404), True),
        (200, (200, 404), True),
        (201, (200, 404), False),
        (404, (404,), True),
        (200, (404,), False),
    ],
)
def test_status_codes(status_code, valid_status_codes, should_succeed):
    ok, metrics, _ = run_probe(
        lambda request: httpx.Response(status_code),
        HTTPProbeConfig(valid_status_codes=valid_status_codes),
    )
    assert ok is should_succeed
    assert metrics["probe_http_status_code"] == status_code


def test_status_code_ok_uses_valid_set_exclusively():
    assert status_code_ok(204, ()) is True
    assert status_code_ok(204, (200,)) is False
    assert status_code_ok(500, [500]) is True


def test_configured_path_sent_in_request():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["query"] = request.url.query
        return httpx.Response(200)

    ok, _, _ = run_probe(handler, HTTPProbeConfig(path="/path/to/send?query=string"))
    assert ok is True
    assert seen["path"] == "/path/to/send"
    assert seen["query"] == b"query=string"


def test_target_without_scheme_gets_http_prefix():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        return httpx.Response(200)

    ok, _, _ = run_probe(handler, target="example.test")
    assert ok is True
    assert seen["url"] == "http://example.test/"
    assert normalize_target("https://secure.test") == "https://secure.test"


def test_redirect_followed():
    def handler(request):
        if request.url.path == "/":
            return httpx.Response(302, headers={"Location": "/noredirect"})
        return httpx.Response(200, content=b"landed")

    ok, metrics, _ = run_probe(handler)
    assert ok is True
    assert metrics["probe_http_redirects"] == 1
    assert metrics["probe_http_status_code"] == 200


def test_redirect_not_followed_evaluates_redirect_response():
    def handler(request):
        return httpx.Response(302, headers={"Location": "/noredirect"})

    ok, metrics, _ = run_probe(handler, HTTPProbeConfig(follow_redirects=False, valid_status_codes=(302,)))
    assert ok is True
    assert metrics["probe_http_status_code"] == 302
    assert metrics["probe_http_redirects"] == 0


def test_too_many_redirects_fails_without_metrics():
    calls = []

    def handler(request):
        calls.append(request.url.path)
        return httpx.Response(302, headers={"Location": f"/hop{len(calls)}"})

    ok, metrics, _ = run_probe(handler)
    assert ok is False
    assert metrics == {}
    assert len(calls) == http_module.MAX_REDIRECTS + 1


def test_post_method():
    def handler(request):
        if request.method != "POST":
            return httpx.Response(400)
        return httpx.Response(200)

    ok, _, _ = run_probe(handler, HTTPProbeConfig(method="POST"))
    assert ok is True


def test_connection_error_emits_nothing():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    ok, metrics, _ = run_probe(handler)
    assert ok is False
    assert metrics == {}


def test_content_lengths_and_metric_order():
    ok, metrics, sink = run_probe(lambda request: httpx.Response(200, content=b"hello"))
    assert ok is True
    assert metrics["probe_http_content_length"] == 5
    assert metrics["probe_http_actual_content_length"] == 5
    assert [metric.name for metric in sink.metrics] == [
        "probe_http_status_code",
        "probe_http_content_length",
        "probe_http_redirects",
        "probe_http_actual_content_length",
        "probe_http_ssl",
    ]


def test_body_not_read_when_status_fails():
    ok, metrics, _ = run_probe(lambda request: httpx.Response(500, content=b"boom"))
    assert ok is False
    assert "probe_http_actual_content_length" not in metrics
    assert metrics["probe_http_ssl"] == 0


def test_fail_if_matches():
    body = b"Hello World! This body contains a string in the body."
    ok, _, _ = run_probe(
        lambda request: httpx.Response(200, content=body),
        HTTPProbeConfig(fail_if_matches=("string in the body",)),
    )
    assert ok is False

    ok, _, _ = run_probe(
        lambda request: httpx.Response(200, content=b"nothing to see"),
        HTTPProbeConfig(fail_if_matches=("string in the body",)),
    )
    assert ok is True

    ok, _, _ = run_probe(
        lambda request: httpx.Response(200, content=b"could not connect to database"),
        HTTPProbeConfig(fail_if_matches=("string in the body", "could not connect to database")),
    )
    assert ok is False


def test_fail_if_not_matches():
    config = HTTPProbeConfig(fail_if_not_matches=("Download the latest version here", "Copyright 2015"))

    ok, _, _ = run_probe(
        lambda request: httpx.Response(200, content=b"Download the latest version here. Copyright 2015"),
        config,
    )
    assert ok is True

    ok, _, _ = run_probe(
        lambda request: httpx.Response(200, content=b"Download the latest version here."),
        config,
    )
    assert ok is False


def test_invalid_regex_fails_probe():
    ok, metrics, _ = run_probe(
        lambda request: httpx.Response(200, content=b"body"),
        HTTPProbeConfig(fail_if_not_matches=("(unclosed",)),
    )
    assert ok is False
    assert metrics["probe_http_actual_content_length"] == 4
    assert match_regular_expressions(b"body", HTTPProbeConfig(fail_if_matches=("[",))) is False


def test_fail_if_not_ssl_on_plaintext():
    ok, metrics, _ = run_probe(lambda request: httpx.Response(200), HTTPProbeConfig(fail_if_not_ssl=True))
    assert ok is False
    assert metrics["probe_http_ssl"] == 0
    assert "probe_ssl_earliest_cert_expiry" not in metrics


def test_earliest_cert_expiry_skips_missing_dates():
    certs = [
        {"notAfter": "Jun  1 00:00:00 2031 GMT"},
        {},
        {"notAfter": "Mar  1 00:00:00 2029 GMT"},
    ]
    assert earliest_cert_expiry(certs) == ssl.cert_time_to_seconds("Mar  1 00:00:00 2029 GMT")
    assert earliest_cert_expiry([]) == 0.0


def test_repeated_probe_yields_same_metric_names():
    def handler(request):
        return httpx.Response(200, content=b"stable")

    _, _, first = run_probe(handler)
    _, _, second = run_probe(handler)
    assert [m.name for m in first.metrics] == [m.name for m in second.metrics]


def test_every_redirect_hop_gets_a_shrinking_budget():
    budgets = []

    def handler(request):
        budgets.append(request.extensions["timeout"]["read"])
        if len(budgets) < 3:
            return httpx.Response(302, headers={"Location": f"/hop{len(budgets)}"})
        return httpx.Response(200)

    ok, metrics, _ = run_probe(handler)
    assert ok is True
    assert metrics["probe_http_redirects"] == 2
    assert all(0 < budget <= 5.0 for budget in budgets)
    assert budgets == sorted(budgets, reverse=True)


def test_exhausted_budget_stops_redirect_chain():
    calls = []

    def handler(request):
        calls.append(request.url.path)
        time.sleep(0.3)
        return httpx.Response(302, headers={"Location": "/next"})

    sink = MetricSink()
    ok = HTTPProber(transport=httpx.MockTransport(handler)).probe("http://example.test", HTTPProbeConfig(), 0.2, sink)
    assert ok is False
    assert calls == ["/"]
    assert len(sink) == 0


class TrickleHandler(BaseHTTPRequestHandler):
    body = b"0123456789"
    interval = 0.3

    def do_GET(self):
        self.send_response(200)
        self.send_header("Content-Length", str(len(self.body)))
        self.end_headers()
        try:
            for byte in self.body:
                self.wfile.write(bytes([byte]))
                self.wfile.flush()
                time.sleep(self.interval)
        except OSError:
            pass

    def log_message(self, format, *args):  # noqa: A002
        pass


class OKHandler(BaseHTTPRequestHandler):
    def do_GET(self):
        self.send_response(200)
        self.send_header("Content-Length", "2")
        self.end_headers()
        self.wfile.write(b"ok")

    def log_message(self, format, *args):  # noqa: A002
        pass


@contextmanager
def local_server(handler_class, ssl_context=None):
    server = ThreadingHTTPServer(("127.0.0.1", 0), handler_class)
    if ssl_context is not None:
        server.socket = ssl_context.wrap_socket(server.socket, server_side=True)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield server.server_address[1]
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=5)


def test_slow_body_is_cut_off_at_module_timeout():
    with local_server(TrickleHandler) as port:
        sink = MetricSink()
        started = time.monotonic()
        ok = HTTPProber().probe(f"http://127.0.0.1:{port}", HTTPProbeConfig(), 0.5, sink)
        elapsed = time.monotonic() - started

    metrics = {metric.name: metric.value for metric in sink.metrics}
    assert ok is False
    assert elapsed < 1.5
    assert metrics["probe_http_status_code"] == 200
    assert metrics["probe_http_ssl"] == 0
    assert "probe_http_actual_content_length" not in metrics


@pytest.fixture
def tls_server():
    ca = trustme.CA()
    server_context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
    ca.issue_cert("127.0.0.1", "localhost").configure_cert(server_context)
    client_context = ssl.create_default_context()
    ca.configure_trust(client_context)
    with local_server(OKHandler, server_context) as port:
        yield f"https://127.0.0.1:{port}", client_context


def test_tls_metrics_from_real_handshake(tls_server):
    target, client_context = tls_server
    sink = MetricSink()
    ok = HTTPProber(transport=httpx.HTTPTransport(verify=client_context)).probe(target, HTTPProbeConfig(), 5.0, sink)
    metrics = {metric.name: metric.value for metric in sink.metrics}
    assert ok is True
    assert metrics["probe_http_ssl"] == 1
    assert metrics["probe_ssl_earliest_cert_expiry"] > time.time()
    assert metrics["probe_http_actual_content_length"] == 2


def test_fail_if_ssl_against_tls_server(tls_server):
    target, client_context = tls_server
    sink = MetricSink()
    prober = HTTPProber(transport=httpx.HTTPTransport(verify=client_context))
    assert prober.probe(target, HTTPProbeConfig(fail_if_ssl=True), 5.0, sink) is False
    assert {metric.name: metric.value for metric in sink.metrics}["probe_http_ssl"] == 1


class FakeCertificate:
    def __init__(self, not_after):
        self.not_after = not_after

    def get_info(self):
        return {"notAfter": self.not_after}


class FakeSSLObject:
    def __init__(self, chain=None, leaf=None):
        self.chain = chain
        self.leaf = leaf or {}
        if chain is not None:
            self.get_verified_chain = lambda: self.chain

    def getpeercert(self):
        return self.leaf


class FakeNetworkStream:
    def __init__(self, ssl_object):
        self.ssl_object = ssl_object

    def get_extra_info(self, info):
        return self.ssl_object if info == "ssl_object" else None


def response_over(ssl_object):
    return httpx.Response(200, extensions={"network_stream": FakeNetworkStream(ssl_object)})


def test_peer_certificates_prefers_verified_chain():
    chain = [FakeCertificate("Jun  1 00:00:00 2031 GMT"), FakeCertificate("Mar  1 00:00:00 2029 GMT")]
    certs = peer_certificates(response_over(FakeSSLObject(chain=chain, leaf={"notAfter": "Jun  1 00:00:00 2031 GMT"})))
    assert earliest_cert_expiry(certs) == ssl.cert_time_to_seconds("Mar  1 00:00:00 2029 GMT")


def test_peer_certificates_falls_back_to_leaf():
    leaf = {"notAfter": "Jun  1 00:00:00 2031 GMT"}
    assert peer_certificates(response_over(FakeSSLObject(leaf=leaf))) == [leaf]
    assert peer_certificates(response_over(FakeSSLObject(chain=[b"\x30\x82"], leaf=leaf))) == [leaf]
    assert peer_certificates(response_over(FakeSSLObject())) == []
    assert peer_certificates(response_over(None)) is None
    assert peer_certificates(httpx.Response(200)) is None
