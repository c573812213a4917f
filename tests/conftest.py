"""Shared pytest configuration and fixtures."""

from typing import Callable, Dict, Optional

import httpx
import pytest

from rabbitmq_exporter.config.models import NodeConfig
from rabbitmq_exporter.services.metric_store import MetricStore
from rabbitmq_exporter.utils.logger import setup_logger


@pytest.fixture
def logger():
    """Create logger for tests."""
    logger = setup_logger("test")
    # Let caplog see records
    logger.propagate = True
    return logger


@pytest.fixture
def store():
    return MetricStore()


@pytest.fixture
def node_config():
    return NodeConfig(
        name="rabbit-a",
        url="http://rabbit-a:15672",
        uname="guest",
        password="guest",
        req_interval="45s"
    )


@pytest.fixture
def overview_payload():
    """Trimmed /api/overview body."""
    return {
        "management_version": "3.12.4",
        "cluster_name": "rabbit@rabbit-a",
        "node": "rabbit@rabbit-a",
        "object_totals": {
            "channels": 12,
            "connections": 5,
            "consumers": 8,
            "exchanges": 14,
            "queues": 3
        }
    }


@pytest.fixture
def queues_payload():
    """Trimmed /api/queues body."""
    return [
        {"name": "orders", "vhost": "/", "node": "rabbit@rabbit-a", "messages": 10},
        {"name": "invoices", "vhost": "/", "node": "rabbit@rabbit-a", "messages": 0},
        {"name": "emails", "vhost": "/", "node": "rabbit@rabbit-b", "messages": 32},
    ]


@pytest.fixture
def broker_transport():
    """
    Build an httpx.MockTransport that answers the management API.

    Routes map a path to either a JSON-serialisable body, an httpx.Response,
    an exception instance to raise, or a list of those (see Outcomes) consumed
    one per request. Every request is recorded on transport.requests.
    """
    def factory(routes: Dict[str, object], on_request: Optional[Callable] = None):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if on_request is not None:
                on_request(request)

            route = routes.get(request.url.path)
            if route is None:
                return httpx.Response(404, json={"error": "Object Not Found"})
            if isinstance(route, Outcomes):
                route = route.next()

            if isinstance(route, BaseException):
                raise route
            if isinstance(route, httpx.Response):
                return route
            return httpx.Response(200, json=route)

        transport = httpx.MockTransport(handler)
        transport.requests = requests
        return transport

    return factory


class Outcomes:
    """Per-request outcomes for one route; the last one repeats."""

    def __init__(self, *outcomes):
        self._outcomes = list(outcomes)

    def next(self):
        if len(self._outcomes) > 1:
            return self._outcomes.pop(0)
        return self._outcomes[0]


@pytest.fixture
def outcomes():
    """Expose the Outcomes helper to tests without importing conftest."""
    return Outcomes


def raw_json_response(body: str, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, content=body.encode(),
                          headers={"Content-Type": "application/json"})


@pytest.fixture
def raw_response():
    return raw_json_response
