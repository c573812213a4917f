"""Node poller lifecycle states."""

from enum import Enum


class PollerState(Enum):
    """Where a node poller currently is in its poll cycle."""

    IDLE = "idle"
    FETCHING = "fetching"
    UPDATING = "updating"
    SLEEPING = "sleeping"
    BACKOFF = "backoff"
    STOPPED = "stopped"
