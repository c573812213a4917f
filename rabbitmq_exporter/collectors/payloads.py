"""Typed views of the management API responses the poller consumes."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, StrictStr, TypeAdapter, ValidationError

from ..utils.errors import DecodeError
from ..utils.metrics import (
    CHANNELS_TOTAL,
    CONNECTIONS_TOTAL,
    CONSUMERS_TOTAL,
    EXCHANGES_TOTAL,
    MESSAGES_TOTAL,
    QUEUES_TOTAL,
    MetricSample,
)


class ObjectTotals(BaseModel):
    """Cluster-wide object counts from /api/overview."""
    channels: float
    connections: float
    consumers: float
    queues: float
    exchanges: float


class OverviewPayload(BaseModel):
    """Response of GET /api/overview (only the fields we export)."""
    node: StrictStr
    object_totals: ObjectTotals

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "OverviewPayload":
        """
        Validate a decoded /api/overview body.

        Raises:
            DecodeError: If a required field is missing or mistyped
        """
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise DecodeError(f"Invalid overview payload: {e}") from e

    def to_samples(self) -> List[MetricSample]:
        totals = self.object_totals
        return [
            MetricSample(CHANNELS_TOTAL.name, self.node, totals.channels),
            MetricSample(CONNECTIONS_TOTAL.name, self.node, totals.connections),
            MetricSample(CONSUMERS_TOTAL.name, self.node, totals.consumers),
            MetricSample(QUEUES_TOTAL.name, self.node, totals.queues),
            MetricSample(EXCHANGES_TOTAL.name, self.node, totals.exchanges),
        ]


class QueueRecord(BaseModel):
    """One element of GET /api/queues."""
    node: StrictStr
    messages: float


_QUEUE_LIST = TypeAdapter(List[QueueRecord])


class QueueListPayload(BaseModel):
    """Response of GET /api/queues."""
    records: List[QueueRecord]

    @classmethod
    def from_json(cls, data: List[Dict[str, Any]]) -> "QueueListPayload":
        """
        Validate a decoded /api/queues body.

        Raises:
            DecodeError: If any record is missing node or messages
        """
        try:
            return cls(records=_QUEUE_LIST.validate_python(data))
        except ValidationError as e:
            raise DecodeError(f"Invalid queue list payload: {e}") from e

    @property
    def node(self) -> Optional[str]:
        """Node label of the first queue, None when there are no queues."""
        return self.records[0].node if self.records else None

    @property
    def messages_total(self) -> float:
        return sum((record.messages for record in self.records), 0.0)

    def to_samples(self) -> List[MetricSample]:
        """Messages total sample, or nothing for an empty queue list."""
        if self.node is None:
            return []
        return [MetricSample(MESSAGES_TOTAL.name, self.node, self.messages_total)]
