"""In-memory store of the latest value per (metric, node) pair."""

import threading
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Tuple

from ..utils.metrics import MetricSample

MetricKey = Tuple[str, str]


class MetricStore:
    """
    Thread-safe mapping from (metric name, node label) to its last value.

    Pollers write from the asyncio loop while the exposition server reads
    from its own thread, so every access goes through one lock. Writes are
    tiny (at most six entries per node per cycle) so a single lock is enough.
    Entries are never removed: a node that stops reporting keeps its last
    value.
    """

    def __init__(self):
        self._values: Dict[MetricKey, float] = {}
        self._lock = threading.Lock()

    def set(self, metric_name: str, node_label: str, value: float) -> None:
        """Create or overwrite a single entry."""
        with self._lock:
            self._values[(metric_name, node_label)] = float(value)

    def update(self, samples: Iterable[MetricSample]) -> int:
        """
        Apply a batch of samples atomically.

        Readers see either none or all of the batch.

        Returns:
            int: Number of samples written
        """
        staged = [((s.metric, s.node), float(s.value)) for s in samples]
        with self._lock:
            self._values.update(staged)
        return len(staged)

    def get(self, metric_name: str, node_label: str) -> Optional[float]:
        with self._lock:
            return self._values.get((metric_name, node_label))

    def snapshot(self) -> Mapping[MetricKey, float]:
        """Return a read-only copy of all entries."""
        with self._lock:
            copy = dict(self._values)
        return MappingProxyType(copy)

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)
