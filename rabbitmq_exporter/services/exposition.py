"""Prometheus exposition of the metric store."""

import logging
import threading
from typing import Dict, Iterator, Optional, Tuple
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer, make_server

from prometheus_client import CollectorRegistry, make_wsgi_app
from prometheus_client.exposition import ThreadingWSGIServer
from prometheus_client.core import GaugeMetricFamily
from prometheus_client.registry import Collector

from ..utils.metrics import ALL_METRICS, NODE_LABEL
from .metric_store import MetricStore

LANDING_PAGE = b"""<html>
<head><title>RabbitMQ Exporter</title></head>
<body>
<h1>RabbitMQ Exporter</h1>
<p><a href='/metrics'>Metrics</a></p>
</body>
</html>
"""


class MetricStoreCollector(Collector):
    """Expose the store's latest values as one gauge family per metric."""

    def __init__(self, store: MetricStore):
        self.store = store

    def describe(self) -> Iterator[GaugeMetricFamily]:
        for definition in ALL_METRICS:
            yield GaugeMetricFamily(definition.name, definition.help, labels=[NODE_LABEL])

    def collect(self) -> Iterator[GaugeMetricFamily]:
        snapshot = self.store.snapshot()

        by_metric: Dict[str, Dict[str, float]] = {}
        for (metric, node), value in snapshot.items():
            by_metric.setdefault(metric, {})[node] = value

        for definition in ALL_METRICS:
            family = GaugeMetricFamily(definition.name, definition.help, labels=[NODE_LABEL])
            for node, value in sorted(by_metric.get(definition.name, {}).items()):
                family.add_metric([node], value)
            yield family


def build_registry(store: MetricStore) -> CollectorRegistry:
    """Create a dedicated registry holding only the store collector."""
    registry = CollectorRegistry(auto_describe=True)
    registry.register(MetricStoreCollector(store))
    return registry


def make_exporter_app(registry: CollectorRegistry):
    """WSGI app serving /metrics and a landing page on /."""
    metrics_app = make_wsgi_app(registry)

    def app(environ, start_response):
        path = environ.get("PATH_INFO", "/")
        if path == "/metrics":
            return metrics_app(environ, start_response)
        if path == "/":
            start_response("200 OK", [("Content-Type", "text/html; charset=utf-8")])
            return [LANDING_PAGE]
        start_response("404 Not Found", [("Content-Type", "text/plain; charset=utf-8")])
        return [b"Not Found\n"]

    return app


class _QuietHandler(WSGIRequestHandler):
    def log_message(self, format, *args):
        pass


class ExpositionServer:
    """HTTP server for the exporter app, running in a daemon thread."""

    def __init__(
        self,
        registry: CollectorRegistry,
        port: int,
        address: str = "",
        logger: Optional[logging.Logger] = None
    ):
        self.registry = registry
        self.port = port
        self.address = address
        self.logger = (logger or logging.getLogger(__name__)).getChild(self.__class__.__name__)
        self._server: Optional[WSGIServer] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def server_address(self) -> Tuple[str, int]:
        if self._server is None:
            raise RuntimeError("Server not started")
        return self._server.server_address[:2]

    def start(self) -> None:
        self._server = make_server(
            self.address,
            self.port,
            make_exporter_app(self.registry),
            server_class=ThreadingWSGIServer,
            handler_class=_QuietHandler
        )
        self._thread = threading.Thread(
            target=self._server.serve_forever,
            name="exposition-server",
            daemon=True
        )
        self._thread.start()
        host, port = self.server_address
        self.logger.info(f"Starting RabbitMQ exporter on {host or '0.0.0.0'}:{port}")

    def shutdown(self) -> None:
        if self._server is None:
            return
        self._server.shutdown()
        self._server.server_close()
        if self._thread is not None:
            self._thread.join(timeout=5)
        self._server = None
        self.logger.info("Exposition server stopped")
