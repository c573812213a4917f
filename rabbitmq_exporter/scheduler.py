"""Launch one independent poller per configured node."""

import asyncio
import logging
from typing import Callable, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from .collectors.node_poller import NodePoller
from .config.models import ExporterConfig, NodeConfig
from .services.api_client import BrokerAPIClient
from .services.metric_store import MetricStore

PollerFactory = Callable[[NodeConfig, Optional[str]], NodePoller]


class PollerScheduler:
    """
    Start node pollers as long-running APScheduler jobs.

    Each poller is submitted once with a date trigger and then loops on its
    own; the scheduler never joins or restarts it. Failure recovery lives
    inside the poller.
    """

    def __init__(
        self,
        store: MetricStore,
        logger: logging.Logger,
        poller_factory: Optional[PollerFactory] = None
    ):
        """
        Initialize scheduler.

        Args:
            store: Shared metric store handed to every poller
            logger: Logger instance
            poller_factory: Optional builder for pollers (used by tests)
        """
        self.store = store
        self.logger = logger.getChild(self.__class__.__name__)
        self.poller_factory = poller_factory or self._default_poller
        self.pollers: List[NodePoller] = []
        self._scheduler: Optional[AsyncIOScheduler] = None

    def _default_poller(self, node: NodeConfig, interval: Optional[str]) -> NodePoller:
        client = BrokerAPIClient(
            node.url,
            node.username,
            node.password,
            timeout_ms=node.timeout_ms,
            logger=self.logger
        )
        return NodePoller(node, client, self.store, self.logger, interval=interval)

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self, config: ExporterConfig) -> List[NodePoller]:
        """
        Launch one poller per node and return without waiting for them.

        Must be called from a running event loop.

        Args:
            config: Validated exporter configuration

        Returns:
            List[NodePoller]: The launched pollers
        """
        if self.running:
            raise RuntimeError("Scheduler already started")

        self._scheduler = AsyncIOScheduler(
            event_loop=asyncio.get_running_loop(),
            timezone="UTC"
        )

        for index, node in enumerate(config.nodes):
            interval = config.effective_interval(node)
            poller = self.poller_factory(node, interval)
            self.pollers.append(poller)

            # Node names may repeat, so the index keeps job ids unique
            self._scheduler.add_job(
                poller.run,
                trigger="date",
                id=f"poller-{index}-{node.name}",
                name=f"RabbitMQ poller {node.name}",
                max_instances=1,
                misfire_grace_time=None
            )
            self.logger.info(f"Scheduled poller for node {node.name} ({node.url})")

        self._scheduler.start()
        self.logger.info(f"Scheduler started with {len(self.pollers)} poller(s)")
        return list(self.pollers)

    async def shutdown(self, grace: float = 5.0) -> None:
        """
        Stop all pollers and the underlying scheduler.

        Args:
            grace: Seconds to wait for pollers to finish their current cycle
        """
        for poller in self.pollers:
            poller.stop()

        if self.pollers:
            waiters = [asyncio.ensure_future(p.wait_stopped()) for p in self.pollers]
            done, pending = await asyncio.wait(waiters, timeout=grace)
            for waiter in pending:
                waiter.cancel()
            if pending:
                self.logger.warning(
                    f"{len(pending)} poller(s) did not stop within {grace:g}s"
                )

        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        self.logger.info("Scheduler stopped")
