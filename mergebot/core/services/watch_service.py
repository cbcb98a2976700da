"""Watch Service: keeps assigned merge requests under observation.

Each poll lists the merge requests assigned to the bot and enqueues one
reconciliation job per merge request on a JobQueue, so merge requests are
processed one at a time and a merge request seen twice before its turn is
only reconciled once. Reconciliation reads state and reports it; deciding to
merge or rebase is left to the operator.
"""

import asyncio
import functools
import logging
from typing import Any, Awaitable, Callable, Optional

from mergebot.domain.errors import GitlabApiError
from mergebot.domain.interfaces.gitlab_api import GitlabApi
from mergebot.domain.interfaces.user_interface import UserInterface
from mergebot.domain.models.common import JobKey, MergeRequestIid, MergeRequestStatus, ProjectId
from mergebot.domain.models.gitlab import MergeRequest
from mergebot.infrastructure.queue.job_queue import DrainReport, JobQueue

logger = logging.getLogger(__name__)


def merge_request_job_key(merge_request: MergeRequest) -> JobKey:
    return JobKey(f"{merge_request['project_id']}:{merge_request['iid']}")


class WatchService:
    """Polls assigned merge requests and serializes their reconciliation."""

    def __init__(
        self,
        gitlab_api: GitlabApi,
        ui: UserInterface,
        queue: Optional[JobQueue] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.gitlab_api = gitlab_api
        self.ui = ui
        self.queue = queue or JobQueue(on_drained=self._on_drained)
        self._sleep = sleep

    async def reconcile(self, project_id: ProjectId, iid: MergeRequestIid) -> MergeRequestStatus:
        """Reads the current state of one merge request and reports it."""
        info = await self.gitlab_api.get_merge_request_info(project_id, iid)
        approvals = await self.gitlab_api.get_merge_request_approvals(project_id, iid)
        pipeline = info.get("pipeline")

        status = MergeRequestStatus(
            project_id=project_id,
            iid=iid,
            title=info.get("title", ""),
            state=info.get("state", "unknown"),
            merge_status=info.get("merge_status", "unknown"),
            pipeline_status=pipeline.get("status") if pipeline else None,
            approvals_left=approvals.get("approvals_left"),
            has_conflicts=bool(info.get("has_conflicts")),
            web_url=info.get("web_url", ""),
        )
        logger.info(
            f"Reconciled {status.reference}: state={status.state}, merge_status={status.merge_status}, "
            f"pipeline={status.pipeline_status}, approvals_left={status.approvals_left}"
        )
        self.ui.display_merge_request_status(status)
        return status

    async def poll_once(self) -> int:
        """Enqueues a reconciliation job for every assigned open merge request.

        Returns:
            The number of merge requests found.
        """
        merge_requests = await self.gitlab_api.get_assigned_opened_merge_requests()
        logger.info(f"Found {len(merge_requests)} assigned open merge requests")
        for merge_request in merge_requests:
            job = functools.partial(
                self.reconcile,
                ProjectId(merge_request["project_id"]),
                MergeRequestIid(merge_request["iid"]),
            )
            self.queue.append_job(merge_request_job_key(merge_request), job)
        return len(merge_requests)

    def _on_drained(self, report: DrainReport) -> None:
        if report.failures:
            failed = ", ".join(result.key for result in report.failures)
            self.ui.display_warning(
                f"{len(report.failures)} of {len(report.results)} merge request(s) could not be reconciled: {failed}"
            )

    async def run(self, interval_seconds: float, once: bool = False) -> DrainReport:
        """Polls until cancelled (or a single time when ``once`` is set).

        Retryable API errors that outlived their retries are logged and the
        next poll is attempted; terminal errors (authentication, malformed
        payloads) end the loop.
        """
        while True:
            try:
                await self.poll_once()
            except GitlabApiError as e:
                if once or not e.retryable:
                    raise
                logger.error(f"Polling assigned merge requests failed, retrying next interval: {e}")

            report = await self.queue.join()
            if once:
                return report
            logger.debug(f"Next poll in {interval_seconds}s")
            await self._sleep(interval_seconds)
