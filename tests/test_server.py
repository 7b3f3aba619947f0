import threading
from wsgiref.util import setup_testing_defaults

import pytest

from conftest import SNAPSHOT, FakeRunner, failed, ok
from restic_exporter.core.errors import ProbeCancelled
from restic_exporter.core.prober import ResticProber
from restic_exporter.server import ExporterApp


def call(app, path, query=""):
    environ = {}
    setup_testing_defaults(environ)
    environ["PATH_INFO"] = path
    environ["QUERY_STRING"] = query
    captured = {}

    def start_response(status, headers, exc_info=None):
        captured["status"] = status
        captured["headers"] = dict(headers)

    body = b"".join(app(environ, start_response))
    return captured["status"], captured["headers"], body.decode("utf-8")


def make_app(config, runner):
    return ExporterApp(config, prober=ResticProber(config, runner))


def test_probe_renders_metrics(config, fake_runner):
    status, headers, body = call(make_app(config, fake_runner), "/probe", "target=backup-host")

    assert status == "200 OK"
    assert headers["Content-Type"].startswith("text/plain")
    assert (
        'restic_stats_latest_total_size{hostname="backup-host",paths="/etc:/home",tags="daily,system"} 1.073741824e+09'
        in body
    )
    assert (
        'restic_snapshots_latest_time{hostname="backup-host",paths="/etc:/home",tags="daily,system"} 1.714528803e+09'
        in body
    )


def test_probe_passes_filters_to_restic(config, fake_runner):
    call(make_app(config, fake_runner), "/probe", "target=h&tags=a,b&path=/srv")

    stats_call = fake_runner.calls[1]
    assert stats_call[-8:] == ["--host", "h", "--path", "/srv", "--tag", "a", "--tag", "b"]


@pytest.mark.parametrize("query", ["", "target=&tags=&path=", "unrelated=1"])
def test_probe_without_filters_is_rejected_before_running_restic(config, fake_runner, query):
    status, _, body = call(make_app(config, fake_runner), "/probe", query)

    assert status == "400 Bad Request"
    assert "target" in body
    assert fake_runner.calls == []


@pytest.mark.parametrize("failing", ["list locks", "stats latest", "snapshots latest"])
def test_tool_failure_returns_server_error_without_metrics(config, healthy_outputs, failing):
    healthy_outputs[failing] = failed(b"Fatal: /secret/repo/path does not exist")

    status, _, body = call(make_app(config, FakeRunner(healthy_outputs)), "/probe", "target=h")

    assert status == "500 Internal Server Error"
    assert "restic_" not in body
    assert "/secret/repo/path" not in body


def test_decode_failure_returns_server_error(config, healthy_outputs):
    healthy_outputs["snapshots latest"] = ok(b"<html>")

    status, _, body = call(make_app(config, FakeRunner(healthy_outputs)), "/probe", "target=h")

    assert status == "500 Internal Server Error"
    assert "restic_" not in body


def test_timeout_returns_gateway_timeout(config):
    def handler(argv):
        raise ProbeCancelled("too slow")

    status, _, _ = call(make_app(config, FakeRunner(handler=handler)), "/probe", "target=h")
    assert status == "504 Gateway Timeout"


def test_unexpected_error_returns_server_error(config):
    def handler(argv):
        raise RuntimeError("boom")

    status, _, body = call(make_app(config, FakeRunner(handler=handler)), "/probe", "target=h")

    assert status == "500 Internal Server Error"
    assert "boom" not in body


def test_empty_result_is_success(config, healthy_outputs):
    healthy_outputs["snapshots latest"] = ok([])

    status, _, body = call(make_app(config, FakeRunner(healthy_outputs)), "/probe", "tags=none")

    assert status == "200 OK"
    assert "restic_stats_latest_total_size{" not in body


def test_metrics_endpoint_serves_process_metrics(config, fake_runner):
    app = make_app(config, fake_runner)
    call(app, "/probe", "target=h")

    status, _, body = call(app, "/metrics")

    assert status == "200 OK"
    assert "restic_exporter_probes_total" in body
    assert "restic_stats_latest_total_size" not in body


def test_health_and_unknown_paths(config, fake_runner):
    app = make_app(config, fake_runner)

    assert call(app, "/health")[0] == "200 OK"
    assert call(app, "/nope")[0] == "404 Not Found"


def test_concurrent_probes_do_not_share_state(config):
    barrier = threading.Barrier(2, timeout=5)

    def handler(argv):
        host = argv[argv.index("--host") + 1] if "--host" in argv else None
        if argv[1] == "list":
            return ok(b"")
        if argv[1] == "stats":
            size = 100 if host == "host-a" else 200
            return ok({"total_size": size, "total_file_count": size // 10})
        # both probes are inside the pipeline at the same time
        barrier.wait()
        return ok([dict(SNAPSHOT, hostname=host)])

    app = make_app(config, FakeRunner(handler=handler))
    results = {}

    def scrape(host):
        results[host] = call(app, "/probe", f"target={host}")

    threads = [threading.Thread(target=scrape, args=(host,)) for host in ("host-a", "host-b")]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)

    status_a, _, body_a = results["host-a"]
    status_b, _, body_b = results["host-b"]
    assert status_a == status_b == "200 OK"

    assert 'hostname="host-a"' in body_a and 'hostname="host-b"' not in body_a
    assert 'hostname="host-b"' in body_b and 'hostname="host-a"' not in body_b
    assert 'restic_stats_latest_total_size{hostname="host-a",paths="/etc:/home",tags="daily,system"} 100.0' in body_a
    assert 'restic_stats_latest_total_size{hostname="host-b",paths="/etc:/home",tags="daily,system"} 200.0' in body_b
