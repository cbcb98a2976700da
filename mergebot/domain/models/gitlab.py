"""GitLab data-transfer shapes.

These mirror the JSON documents returned by the GitLab REST API (v4). They
carry no behavior; at runtime they are plain dictionaries.
"""

from enum import Enum
from typing import List, Optional, TypedDict


class MergeStatus(str, Enum):
    CAN_BE_MERGED = "can_be_merged"
    UNCHECKED = "unchecked"
    MERGED = "merged"


class MergeState(str, Enum):
    OPENED = "opened"
    CLOSED = "closed"
    LOCKED = "locked"
    MERGED = "merged"


class PipelineStatus(str, Enum):
    RUNNING = "running"
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELED = "canceled"
    SKIPPED = "skipped"
    CREATED = "created"


class User(TypedDict):
    id: int
    name: str
    email: str


class UserReference(TypedDict):
    id: int


class MergeRequest(TypedDict):
    id: int
    iid: int
    title: str
    author: UserReference
    assignee: Optional[UserReference]
    assignees: List[UserReference]
    project_id: int
    merge_status: str
    web_url: str
    source_branch: str
    target_branch: str
    source_project_id: int
    target_project_id: int
    work_in_progress: bool
    state: str
    force_remove_source_branch: bool
    labels: List[str]
    squash: bool
    blocking_discussions_resolved: bool
    has_conflicts: bool


class MergeRequestPipeline(TypedDict):
    id: int
    sha: str
    status: str


class DiffRefs(TypedDict):
    start_sha: str
    base_sha: str
    head_sha: str


class MergeRequestInfo(MergeRequest):
    """Detailed merge request, as returned by the single merge request endpoint."""
    sha: str
    diff_refs: DiffRefs
    pipeline: Optional[MergeRequestPipeline]
    diverged_commits_count: int
    rebase_in_progress: bool
    merge_error: Optional[str]


class MergeRequestApprovals(TypedDict):
    approvals_required: int
    approvals_left: int


class Pipeline(TypedDict):
    id: int
    status: str
    user: UserReference


class MergeRequestUpdateData(TypedDict, total=False):
    """Fields accepted when updating a merge request. All optional."""
    assignee_id: int
    remove_source_branch: bool
    squash: bool
    labels: str
