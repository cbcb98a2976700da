"""Interface for the GitLab REST API.

Defines the contract the application services use to read and update merge
requests and pipelines, independent of the HTTP machinery behind it.
"""

import abc
from typing import List

from ..models.common import MergeRequestIid, PipelineId, ProjectId
from ..models.gitlab import (
    MergeRequest,
    MergeRequestApprovals,
    MergeRequestInfo,
    MergeRequestPipeline,
    MergeRequestUpdateData,
    Pipeline,
    User,
)


class GitlabApi(abc.ABC):
    """Abstract Base Class for GitLab API interactions.

    Implementations raise subclasses of ``mergebot.domain.errors.GitlabApiError``.
    """

    @abc.abstractmethod
    async def get_me(self) -> User:
        """Returns the user owning the authentication token."""
        pass

    @abc.abstractmethod
    async def get_assigned_opened_merge_requests(self) -> List[MergeRequest]:
        """Returns open merge requests assigned to the token owner."""
        pass

    @abc.abstractmethod
    async def get_merge_request_info(self, project_id: ProjectId, iid: MergeRequestIid) -> MergeRequestInfo:
        """Returns a single merge request including diverged commit count and rebase state."""
        pass

    @abc.abstractmethod
    async def get_merge_request_pipelines(self, project_id: ProjectId, iid: MergeRequestIid) -> List[MergeRequestPipeline]:
        pass

    @abc.abstractmethod
    async def get_merge_request_approvals(self, project_id: ProjectId, iid: MergeRequestIid) -> MergeRequestApprovals:
        pass

    @abc.abstractmethod
    async def update_merge_request(
        self, project_id: ProjectId, iid: MergeRequestIid, data: MergeRequestUpdateData
    ) -> MergeRequestInfo:
        pass

    @abc.abstractmethod
    async def get_pipeline(self, project_id: ProjectId, pipeline_id: PipelineId) -> Pipeline:
        pass

    @abc.abstractmethod
    async def retry_pipeline(self, project_id: ProjectId, pipeline_id: PipelineId) -> None:
        pass

    @abc.abstractmethod
    async def cancel_pipeline(self, project_id: ProjectId, pipeline_id: PipelineId) -> None:
        pass

    @abc.abstractmethod
    async def create_merge_request_note(self, project_id: ProjectId, iid: MergeRequestIid, body: str) -> None:
        pass

    @abc.abstractmethod
    async def rebase_merge_request(self, project_id: ProjectId, iid: MergeRequestIid) -> None:
        """Requests a rebase; only the response status is checked."""
        pass
