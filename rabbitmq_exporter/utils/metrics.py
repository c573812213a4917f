"""Metric definitions shared by pollers, the store and the exposition layer."""

from dataclasses import dataclass
from typing import Tuple

NAMESPACE = "rabbitmq"
NODE_LABEL = "node"


@dataclass(frozen=True)
class MetricDefinition:
    """Name and help text of one exported gauge."""

    name: str
    help: str


def _metric(name: str, help_text: str) -> MetricDefinition:
    return MetricDefinition(name=f"{NAMESPACE}_{name}", help=help_text)


CONNECTIONS_TOTAL = _metric("connections_total", "Total number of open connections.")
CHANNELS_TOTAL = _metric("channels_total", "Total number of open channels.")
QUEUES_TOTAL = _metric("queues_total", "Total number of queues in use.")
CONSUMERS_TOTAL = _metric("consumers_total", "Total number of message consumers.")
EXCHANGES_TOTAL = _metric("exchanges_total", "Total number of exchanges in use.")
MESSAGES_TOTAL = _metric("messages_total", "Total number of messages in all queues.")

# Exposition order
ALL_METRICS: Tuple[MetricDefinition, ...] = (
    CONNECTIONS_TOTAL,
    CHANNELS_TOTAL,
    QUEUES_TOTAL,
    CONSUMERS_TOTAL,
    EXCHANGES_TOTAL,
    MESSAGES_TOTAL,
)


@dataclass(frozen=True)
class MetricSample:
    """One value destined for the metric store."""

    metric: str  # Full metric name, e.g. rabbitmq_queues_total
    node: str    # Broker-reported node identity
    value: float
