"""HTTP server exposing /probe, /metrics and /health."""

import logging
import time
from socketserver import ThreadingMixIn
from typing import List, Optional, Tuple
from urllib.parse import parse_qs
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer, make_server

from prometheus_client import Counter, Histogram, make_wsgi_app

from .config.config_manager import ExporterConfig
from .core.errors import DecodeError, ExternalToolError, MissingParameter, ProbeCancelled
from .core.models import ProbeParameters
from .core.prober import ResticProber
from .core.renderer import MetricRenderer

logger = logging.getLogger(__name__)

# Process-level metrics, served from the default registry on /metrics only
PROBES_TOTAL = Counter(
    'restic_exporter_probes_total', 'Probe requests handled, by result', ['result'],
)
PROBE_DURATION = Histogram(
    'restic_exporter_probe_duration_seconds', 'Time spent running probes',
)

TEXT_PLAIN = [('Content-Type', 'text/plain; charset=utf-8')]


class ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    """WSGI server handling each request in its own thread."""
    daemon_threads = True


class QuietRequestHandler(WSGIRequestHandler):
    """Request handler that logs through the logging module."""

    def log_message(self, format, *args):
        logger.debug(f"{self.address_string()} - {format % args}")


def _http_response(start_response, status: str, headers: List[Tuple[str, str]], body: bytes):
    start_response(status, headers + [('Content-Length', str(len(body)))])
    return [body]


class ExporterApp:
    """WSGI application routing scrape requests."""

    def __init__(self, config: ExporterConfig, prober: Optional[ResticProber] = None,
                 renderer: Optional[MetricRenderer] = None):
        self.config = config
        self.prober = prober or ResticProber(config)
        self.renderer = renderer or MetricRenderer()
        self.metrics_app = make_wsgi_app()

    def __call__(self, environ, start_response):
        path = environ.get('PATH_INFO', '/')

        if path == '/probe':
            return self.handle_probe(environ, start_response)
        if path == '/metrics':
            return self.metrics_app(environ, start_response)
        if path == '/health':
            return _http_response(start_response, '200 OK', TEXT_PLAIN, b'ok\n')

        return _http_response(start_response, '404 Not Found', TEXT_PLAIN, b'not found\n')

    def handle_probe(self, environ, start_response):
        """Run one probe and answer with its metrics or an error status."""
        query = parse_qs(environ.get('QUERY_STRING', ''))

        try:
            params = ProbeParameters.from_query(query)
        except MissingParameter as e:
            PROBES_TOTAL.labels(result='invalid').inc()
            return _http_response(start_response, '400 Bad Request', TEXT_PLAIN,
                                  f"{e}\n".encode('utf-8'))

        start = time.monotonic()
        try:
            result = self.prober.probe(params)
            body = self.renderer.render(result)
        except ProbeCancelled:
            PROBES_TOTAL.labels(result='timeout').inc()
            return _http_response(start_response, '504 Gateway Timeout', TEXT_PLAIN,
                                  b'probe timed out\n')
        except (ExternalToolError, DecodeError):
            # already logged with full detail by the prober
            PROBES_TOTAL.labels(result='error').inc()
            return _http_response(start_response, '500 Internal Server Error', TEXT_PLAIN,
                                  b'probe failed\n')
        except Exception:
            logger.exception(f"Unexpected error while probing {params}")
            PROBES_TOTAL.labels(result='error').inc()
            return _http_response(start_response, '500 Internal Server Error', TEXT_PLAIN,
                                  b'probe failed\n')
        finally:
            PROBE_DURATION.observe(time.monotonic() - start)

        PROBES_TOTAL.labels(result='success').inc()
        return _http_response(start_response, '200 OK',
                              [('Content-Type', self.renderer.content_type)], body)


def create_server(config: ExporterConfig, app: Optional[ExporterApp] = None):
    """Create a threaded WSGI server bound to the configured address."""
    app = app or ExporterApp(config)
    return make_server(config.address, config.port, app,
                       server_class=ThreadingWSGIServer,
                       handler_class=QuietRequestHandler)


def serve(config: ExporterConfig):
    """Serve until interrupted."""
    httpd = create_server(config)
    logger.info(f"Starting exporter on http://{config.address}:{config.port} ...")
    try:
        httpd.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down exporter")
    finally:
        httpd.server_close()
