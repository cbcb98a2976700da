"""Domain Events related to API calls and queued work.

Examples include events for when requests are retried, fail, or succeed, and
when the job queue starts, fails or drains work.
"""

from dataclasses import dataclass, field
import logging
import time
from typing import Callable, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


EventSink = Callable[[DomainEvent], None]


def log_event(event: DomainEvent) -> None:
    """Default event sink: record the event in the debug log."""
    logger.debug(f"EVENT: {event}")


# --- Request Events ---

@dataclass
class RequestSucceeded(DomainEvent):
    """Event triggered when a request returned a non-5xx response."""
    method: str
    url: str
    status_code: int
    attempts: int
    latency_ms: float
    timestamp: float = field(default_factory=time.time)

@dataclass
class RequestRetryScheduled(DomainEvent):
    """Event triggered when a transient failure leads to another attempt."""
    method: str
    url: str
    attempt_number: int
    delay_seconds: float
    reason: str  # e.g. 'status 502', 'ConnectTimeout'
    timestamp: float = field(default_factory=time.time)

@dataclass
class RequestFailed(DomainEvent):
    """Event triggered when a request fails definitively."""
    method: str
    url: str
    attempts: int
    error_type: str
    error_message: str
    timestamp: float = field(default_factory=time.time)


# --- Queue Events ---

@dataclass
class JobStarted(DomainEvent):
    key: str
    timestamp: float = field(default_factory=time.time)

@dataclass
class JobFailed(DomainEvent):
    key: str
    error_type: str
    error_message: str
    timestamp: float = field(default_factory=time.time)

@dataclass
class QueueDrained(DomainEvent):
    """Event triggered when a drain cycle ends with an empty queue."""
    executed_keys: Tuple[str, ...]
    failed_keys: Tuple[str, ...]
    request_id: Optional[str] = None
    timestamp: float = field(default_factory=time.time)
