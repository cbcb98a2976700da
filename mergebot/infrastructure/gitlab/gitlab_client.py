"""GitLab API v4 client.

Implements the GitlabApi port. Every call goes through the RequestExecutor
(transient failures retried there) and then through the response validator
(status first, payload shape second).
"""

import logging
from typing import Any, List, Mapping, Optional

from mergebot.domain.interfaces.gitlab_api import GitlabApi
from mergebot.domain.models.common import (
    ApiPath,
    ApiRequest,
    MergeRequestIid,
    PipelineId,
    ProjectId,
    RequestMethod,
)
from mergebot.domain.models.gitlab import (
    MergeRequest,
    MergeRequestApprovals,
    MergeRequestInfo,
    MergeRequestPipeline,
    MergeRequestUpdateData,
    Pipeline,
    User,
)
from mergebot.infrastructure.resilience.request_executor import RequestExecutor
from mergebot.infrastructure.resilience.response_validator import (
    expect_collection,
    expect_object,
    validate_response_status,
)

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v4"


def _merge_request_path(project_id: ProjectId, iid: MergeRequestIid, suffix: str = "") -> ApiPath:
    return ApiPath(f"{API_PREFIX}/projects/{project_id}/merge_requests/{iid}{suffix}")


def _pipeline_path(project_id: ProjectId, pipeline_id: PipelineId, suffix: str = "") -> ApiPath:
    return ApiPath(f"{API_PREFIX}/projects/{project_id}/pipelines/{pipeline_id}{suffix}")


class GitlabClient(GitlabApi):
    """Concrete GitlabApi backed by a RequestExecutor."""

    def __init__(self, executor: RequestExecutor):
        self.executor = executor

    async def _send_single(self, method: RequestMethod, path: ApiPath,
                           params: Optional[Mapping[str, Any]] = None) -> Any:
        response = await self.executor.send(ApiRequest(method, path, params))
        return expect_object(response)

    async def _send_multi(self, method: RequestMethod, path: ApiPath,
                          params: Optional[Mapping[str, Any]] = None) -> List[Any]:
        response = await self.executor.send(ApiRequest(method, path, params))
        return expect_collection(response)

    async def get_me(self) -> User:
        return await self._send_single(RequestMethod.GET, ApiPath(f"{API_PREFIX}/user"))

    async def get_assigned_opened_merge_requests(self) -> List[MergeRequest]:
        return await self._send_multi(
            RequestMethod.GET,
            ApiPath(f"{API_PREFIX}/merge_requests"),
            {"scope": "assigned_to_me", "state": "opened"},
        )

    async def get_merge_request_info(self, project_id: ProjectId, iid: MergeRequestIid) -> MergeRequestInfo:
        return await self._send_single(
            RequestMethod.GET,
            _merge_request_path(project_id, iid),
            {"include_diverged_commits_count": True, "include_rebase_in_progress": True},
        )

    async def get_merge_request_pipelines(self, project_id: ProjectId, iid: MergeRequestIid) -> List[MergeRequestPipeline]:
        return await self._send_multi(RequestMethod.GET, _merge_request_path(project_id, iid, "/pipelines"))

    async def get_merge_request_approvals(self, project_id: ProjectId, iid: MergeRequestIid) -> MergeRequestApprovals:
        return await self._send_single(RequestMethod.GET, _merge_request_path(project_id, iid, "/approvals"))

    async def update_merge_request(
        self, project_id: ProjectId, iid: MergeRequestIid, data: MergeRequestUpdateData
    ) -> MergeRequestInfo:
        logger.info(f"Updating merge request {project_id}!{iid}: {sorted(data)}")
        return await self._send_single(RequestMethod.PUT, _merge_request_path(project_id, iid), dict(data))

    async def get_pipeline(self, project_id: ProjectId, pipeline_id: PipelineId) -> Pipeline:
        return await self._send_single(RequestMethod.GET, _pipeline_path(project_id, pipeline_id))

    async def retry_pipeline(self, project_id: ProjectId, pipeline_id: PipelineId) -> None:
        await self._send_single(RequestMethod.POST, _pipeline_path(project_id, pipeline_id, "/retry"))

    async def cancel_pipeline(self, project_id: ProjectId, pipeline_id: PipelineId) -> None:
        await self._send_single(RequestMethod.POST, _pipeline_path(project_id, pipeline_id, "/cancel"))

    async def create_merge_request_note(self, project_id: ProjectId, iid: MergeRequestIid, body: str) -> None:
        await self._send_single(RequestMethod.POST, _merge_request_path(project_id, iid, "/notes"), {"body": body})

    async def rebase_merge_request(self, project_id: ProjectId, iid: MergeRequestIid) -> None:
        response = await self.executor.send(
            ApiRequest(RequestMethod.PUT, _merge_request_path(project_id, iid, "/rebase"))
        )
        validate_response_status(response)
