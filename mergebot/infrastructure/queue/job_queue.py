"""Single-flight, key-coalescing job queue.

Runs named asynchronous jobs one at a time in first-queued-first-run order.
A job appended under a key that is still pending replaces the pending body
and keeps its place in line. Once a job has been taken off the queue, a new
append under the same key queues a separate, later turn.

All state lives on the event loop thread, so no lock is needed: mutation
happens only in ``append_job`` and in the drain task between awaits.
"""

import asyncio
import inspect
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Tuple

from mergebot.domain.errors import JobFailure
from mergebot.domain.events.api_events import EventSink, JobFailed, JobStarted, QueueDrained, log_event

logger = logging.getLogger(__name__)

Job = Callable[[], Awaitable[Any]]


@dataclass
class JobResult:
    key: str
    error: Optional[BaseException] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass
class DrainReport:
    """Outcome of one drain cycle (queue non-empty until empty again)."""
    results: List[JobResult] = field(default_factory=list)

    @property
    def executed_keys(self) -> Tuple[str, ...]:
        return tuple(result.key for result in self.results)

    @property
    def failures(self) -> List[JobResult]:
        return [result for result in self.results if not result.succeeded]

    @property
    def succeeded(self) -> bool:
        return not self.failures

    @property
    def first_error(self) -> Optional[BaseException]:
        failures = self.failures
        return failures[0].error if failures else None

    def raise_for_failures(self) -> None:
        """Raises JobFailure for the first failed job of the cycle, if any."""
        failures = self.failures
        if failures:
            first = failures[0]
            raise JobFailure(first.key, first.error) from first.error


DrainCallback = Callable[[DrainReport], Any]


class JobQueue:
    """Serializes jobs; at most one runs at any instant."""

    def __init__(
        self,
        on_drained: Optional[DrainCallback] = None,
        event_sink: EventSink = log_event,
    ) -> None:
        """Initializes the queue.

        Args:
            on_drained: Called with the cycle's DrainReport each time the
                queue empties. May be a plain function or a coroutine function.
            event_sink: Receives queue domain events.
        """
        self._pending: "OrderedDict[str, Job]" = OrderedDict()
        self._drain_task: Optional["asyncio.Task[DrainReport]"] = None
        self._last_report: Optional[DrainReport] = None
        self._on_drained = on_drained
        self._dispatch = event_sink

    def append_job(self, key: str, job: Job) -> None:
        """Queues ``job`` under ``key`` and returns immediately.

        Must be called from a running event loop. Starts a drain task when
        none is active.
        """
        if key in self._pending:
            logger.debug(f"Replacing pending job '{key}' with a newer submission")
        self._pending[key] = job

        if self._drain_task is None:
            loop = asyncio.get_running_loop()
            self._drain_task = loop.create_task(self._drain())

    async def _drain(self) -> DrainReport:
        report = DrainReport()
        try:
            while self._pending:
                key, job = self._pending.popitem(last=False)
                self._dispatch(JobStarted(key=key))
                logger.debug(f"Running job '{key}' ({len(self._pending)} still pending)")
                try:
                    await job()
                except Exception as e:
                    logger.error(f"Job '{key}' failed: {e}", exc_info=True)
                    self._dispatch(JobFailed(key=key, error_type=type(e).__name__, error_message=str(e)))
                    report.results.append(JobResult(key, e))
                else:
                    report.results.append(JobResult(key))
        finally:
            self._drain_task = None
            self._last_report = report

        failed_keys = tuple(result.key for result in report.failures)
        logger.info(f"Job queue drained: {len(report.results)} job(s) run, {len(failed_keys)} failed")
        self._dispatch(QueueDrained(executed_keys=report.executed_keys, failed_keys=failed_keys))

        if self._on_drained is not None:
            try:
                result = self._on_drained(report)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Drain callback failed: {e}", exc_info=True)
        return report

    async def join(self) -> DrainReport:
        """Waits for the current drain cycle and returns its report.

        When idle, returns the last cycle's report (empty if none ran yet).
        """
        task = self._drain_task
        if task is None:
            return self._last_report or DrainReport()
        return await asyncio.shield(task)

    @property
    def is_draining(self) -> bool:
        return self._drain_task is not None

    @property
    def pending_keys(self) -> List[str]:
        return list(self._pending)

    def __len__(self) -> int:
        return len(self._pending)


__all__ = ["JobQueue", "Job", "JobResult", "DrainReport"]
