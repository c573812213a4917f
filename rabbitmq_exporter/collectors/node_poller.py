"""Per-node polling loop feeding the metric store."""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from ..config.models import NodeConfig
from ..services.api_client import BrokerAPIClient
from ..services.metric_store import MetricStore
from ..utils.duration import parse_duration
from ..utils.errors import BrokerError, ParseIntervalError
from ..utils.metrics import MetricSample
from ..utils.status import PollerState
from .payloads import OverviewPayload, QueueListPayload

OVERVIEW_PATH = "/api/overview"
QUEUES_PATH = "/api/queues"

DEFAULT_INTERVAL_SECONDS = 30.0
BACKOFF_SECONDS = 10.0

SleepFunc = Callable[[float], Awaitable[None]]


class NodePoller:
    """
    Poll one RabbitMQ node forever.

    Each cycle fetches /api/overview and /api/queues, turns them into six
    metric samples labeled with the node identity the broker reports, and
    writes them to the store in one batch. A successful cycle is followed by
    the node's interval; any failure is followed by a fixed backoff and the
    store is left untouched.
    """

    def __init__(
        self,
        node: NodeConfig,
        client: BrokerAPIClient,
        store: MetricStore,
        logger: logging.Logger,
        interval: Optional[str] = None,
        backoff_seconds: float = BACKOFF_SECONDS,
        sleep: Optional[SleepFunc] = None
    ):
        """
        Initialize node poller.

        Args:
            node: Node configuration
            client: API client bound to the node's base URL
            store: Shared metric store
            logger: Logger instance
            interval: Effective interval string (node override or global)
            backoff_seconds: Delay after a failed cycle
            sleep: Optional sleep coroutine (defaults to a stop-aware sleep)
        """
        self.node = node
        self.client = client
        self.store = store
        self.logger = logger.getChild(f"{self.__class__.__name__}.{node.name}")
        self.backoff_seconds = backoff_seconds
        self.interval_seconds = self._resolve_interval(interval)
        self.state = PollerState.IDLE
        self.cycles = 0
        self.failures = 0

        self._sleep = sleep or self._wait
        self._stop = asyncio.Event()
        self._stopped = asyncio.Event()

    def _resolve_interval(self, interval: Optional[str]) -> float:
        if not interval:
            self.logger.info(
                f"No interval configured, using default {DEFAULT_INTERVAL_SECONDS:.0f}s"
            )
            return DEFAULT_INTERVAL_SECONDS
        try:
            return parse_duration(interval)
        except ParseIntervalError as e:
            self.logger.warning(
                f"Invalid interval {interval!r} ({e}), "
                f"falling back to {DEFAULT_INTERVAL_SECONDS:.0f}s"
            )
            return DEFAULT_INTERVAL_SECONDS

    async def collect(self) -> List[MetricSample]:
        """
        Fetch both endpoints and build the samples for one cycle.

        Raises:
            BrokerError: On any transport, status or payload error
        """
        overview = OverviewPayload.from_json(await self.client.fetch_object(OVERVIEW_PATH))
        queues = QueueListPayload.from_json(await self.client.fetch_list(QUEUES_PATH))

        samples = overview.to_samples()
        if queues.node is None:
            self.logger.warning(
                f"{QUEUES_PATH} returned no queues, skipping messages total this cycle"
            )
        samples.extend(queues.to_samples())
        return samples

    async def poll_once(self) -> bool:
        """
        Run one fetch/update cycle.

        Returns:
            bool: True if the store was updated, False if the cycle failed
        """
        self.cycles += 1
        self.state = PollerState.FETCHING
        try:
            samples = await self.collect()
            self.state = PollerState.UPDATING
            written = self.store.update(samples)
        except BrokerError as e:
            self.failures += 1
            self.logger.error(f"Poll of {self.node.url} failed: {e}")
            return False
        except Exception as e:
            self.failures += 1
            self.logger.error(f"Unexpected error polling {self.node.url}: {e}", exc_info=True)
            return False

        self.logger.info(
            "Metrics updated successfully",
            extra={"node_name": self.node.name, "samples": written}
        )
        return True

    async def run(self) -> None:
        """Poll until stop() is called."""
        self.logger.info(
            f"Starting poller for {self.node.url} "
            f"(interval {self.interval_seconds:g}s, backoff {self.backoff_seconds:g}s)"
        )
        try:
            while not self._stop.is_set():
                if await self.poll_once():
                    self.state = PollerState.SLEEPING
                    delay = self.interval_seconds
                else:
                    self.state = PollerState.BACKOFF
                    delay = self.backoff_seconds
                    self.logger.info(f"Retrying in {delay:g}s")

                if self._stop.is_set():
                    break
                await self._sleep(delay)
        finally:
            self.state = PollerState.STOPPED
            await self.client.aclose()
            self._stopped.set()
            self.logger.info("Poller stopped")

    def stop(self) -> None:
        """Ask the loop to exit at its next check or sleep."""
        self._stop.set()

    async def wait_stopped(self) -> None:
        await self._stopped.wait()

    async def _wait(self, seconds: float) -> None:
        """Sleep for *seconds*, returning early when stop() is called."""
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass
