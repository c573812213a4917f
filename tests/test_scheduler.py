"""Tests for PollerScheduler, including an end-to-end run against fake brokers."""

import asyncio

import httpx
import pytest

from rabbitmq_exporter.collectors.node_poller import NodePoller
from rabbitmq_exporter.config.models import ExporterConfig, NodeConfig
from rabbitmq_exporter.scheduler import PollerScheduler
from rabbitmq_exporter.services.api_client import BrokerAPIClient
from rabbitmq_exporter.utils.status import PollerState


class FakePoller:
    """Stand-in poller that runs until stopped."""

    def __init__(self, node, interval):
        self.node = node
        self.interval = interval
        self.started = asyncio.Event()
        self._stop = asyncio.Event()
        self._stopped = asyncio.Event()

    async def run(self):
        self.started.set()
        try:
            await self._stop.wait()
        finally:
            self._stopped.set()

    def stop(self):
        self._stop.set()

    async def wait_stopped(self):
        await self._stopped.wait()


def make_config(*nodes, req_interval="1m"):
    return ExporterConfig(nodes=list(nodes), port=9419, req_interval=req_interval)


def node(name, interval=None, url=None):
    return NodeConfig(
        name=name,
        url=url or f"http://{name}:15672",
        uname="guest",
        password="guest",
        req_interval=interval
    )


async def wait_for(predicate, timeout=2.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


@pytest.mark.asyncio
async def test_start_launches_one_poller_per_node_and_returns(store, logger):
    scheduler = PollerScheduler(store, logger, poller_factory=FakePoller)
    config = make_config(node("a", "5s"), node("b"), node("c"))

    pollers = scheduler.start(config)

    assert len(pollers) == 3
    assert scheduler.running
    # Returned before any poller finished
    assert not any(p._stopped.is_set() for p in pollers)

    await asyncio.wait_for(
        asyncio.gather(*(p.started.wait() for p in pollers)), timeout=2
    )
    await scheduler.shutdown(grace=1)

    assert all(p._stopped.is_set() for p in pollers)
    assert not scheduler.running


@pytest.mark.asyncio
async def test_start_resolves_effective_interval(store, logger):
    scheduler = PollerScheduler(store, logger, poller_factory=FakePoller)
    config = make_config(node("a", "5s"), node("b"), req_interval="2m")

    pollers = scheduler.start(config)
    try:
        assert [p.interval for p in pollers] == ["5s", "2m"]
    finally:
        await scheduler.shutdown(grace=1)


@pytest.mark.asyncio
async def test_duplicate_node_names_get_distinct_jobs(store, logger):
    scheduler = PollerScheduler(store, logger, poller_factory=FakePoller)
    config = make_config(node("same"), node("same", url="http://other:15672"))

    pollers = scheduler.start(config)
    await asyncio.wait_for(
        asyncio.gather(*(p.started.wait() for p in pollers)), timeout=2
    )
    await scheduler.shutdown(grace=1)


@pytest.mark.asyncio
async def test_start_twice_is_rejected(store, logger):
    scheduler = PollerScheduler(store, logger, poller_factory=FakePoller)
    scheduler.start(make_config(node("a")))
    try:
        with pytest.raises(RuntimeError):
            scheduler.start(make_config(node("b")))
    finally:
        await scheduler.shutdown(grace=1)


@pytest.mark.asyncio
async def test_default_factory_builds_node_pollers(store, logger):
    scheduler = PollerScheduler(store, logger)
    poller = scheduler._default_poller(node("a"), "45s")
    try:
        assert isinstance(poller, NodePoller)
        assert poller.interval_seconds == 45.0
        assert poller.client.base_url == "http://a:15672"
    finally:
        await poller.client.aclose()


@pytest.mark.asyncio
async def test_two_nodes_end_to_end(store, logger, broker_transport):
    """Two nodes against fake brokers fill the store with 12 entries."""
    fixtures = {
        "http://rabbit-a:15672": (
            {"node": "rabbit@a", "object_totals": {
                "channels": 1, "connections": 2, "consumers": 3, "queues": 4, "exchanges": 5}},
            [{"node": "rabbit@a", "messages": 6}, {"node": "rabbit@a", "messages": 7}],
        ),
        "http://rabbit-b:15672": (
            {"node": "rabbit@b", "object_totals": {
                "channels": 10, "connections": 20, "consumers": 30, "queues": 40, "exchanges": 50}},
            [{"node": "rabbit@b", "messages": 100}],
        ),
    }

    def factory(node_config, interval):
        overview, queues = fixtures[node_config.url]
        transport = broker_transport({"/api/overview": overview, "/api/queues": queues})
        client = BrokerAPIClient(
            node_config.url, node_config.username, node_config.password, transport=transport
        )
        return NodePoller(node_config, client, store, logger, interval=interval)

    scheduler = PollerScheduler(store, logger, poller_factory=factory)
    config = make_config(
        node("a", url="http://rabbit-a:15672"),
        node("b", url="http://rabbit-b:15672"),
        req_interval="1h"
    )

    pollers = scheduler.start(config)
    await wait_for(lambda: all(p.state == PollerState.SLEEPING for p in pollers))
    await scheduler.shutdown(grace=2)

    assert dict(store.snapshot()) == {
        ("rabbitmq_channels_total", "rabbit@a"): 1.0,
        ("rabbitmq_connections_total", "rabbit@a"): 2.0,
        ("rabbitmq_consumers_total", "rabbit@a"): 3.0,
        ("rabbitmq_queues_total", "rabbit@a"): 4.0,
        ("rabbitmq_exchanges_total", "rabbit@a"): 5.0,
        ("rabbitmq_messages_total", "rabbit@a"): 13.0,
        ("rabbitmq_channels_total", "rabbit@b"): 10.0,
        ("rabbitmq_connections_total", "rabbit@b"): 20.0,
        ("rabbitmq_consumers_total", "rabbit@b"): 30.0,
        ("rabbitmq_queues_total", "rabbit@b"): 40.0,
        ("rabbitmq_exchanges_total", "rabbit@b"): 50.0,
        ("rabbitmq_messages_total", "rabbit@b"): 100.0,
    }
    assert all(p.state == PollerState.STOPPED for p in pollers)


@pytest.mark.asyncio
async def test_failing_node_does_not_affect_sibling(store, logger, broker_transport):
    def factory(node_config, interval):
        if node_config.name == "down":
            transport = broker_transport({"/api/overview": httpx.ConnectError("refused")})
        else:
            transport = broker_transport({
                "/api/overview": {"node": "rabbit@up", "object_totals": {
                    "channels": 1, "connections": 1, "consumers": 1, "queues": 1, "exchanges": 1}},
                "/api/queues": [{"node": "rabbit@up", "messages": 2}],
            })
        client = BrokerAPIClient(node_config.url, "u", "p", transport=transport)
        return NodePoller(node_config, client, store, logger, interval=interval)

    scheduler = PollerScheduler(store, logger, poller_factory=factory)
    pollers = scheduler.start(make_config(node("down"), node("up"), req_interval="1h"))

    down, up = pollers
    await wait_for(lambda: down.state == PollerState.BACKOFF and up.state == PollerState.SLEEPING)
    await scheduler.shutdown(grace=2)

    assert len(store) == 6
    assert {label for _, label in store.snapshot()} == {"rabbit@up"}
    assert down.failures >= 1
