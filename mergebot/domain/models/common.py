"""Defines common Value Objects used across different domain contexts.

These objects represent simple values or concepts like request paths, job
keys and retry configuration, ensuring consistency and type safety.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, NewType, Optional

# === Core Value Objects ===

# Using NewType for semantic clarity, although they are plain values at runtime.
ApiPath = NewType("ApiPath", str)              # Path below the GitLab base URL, e.g. '/api/v4/user'
AuthToken = NewType("AuthToken", str)          # Private token sent with every request
JobKey = NewType("JobKey", str)                # Identifies a unit of work in the job queue

# === GitLab identifiers ===
ProjectId = NewType("ProjectId", int)
MergeRequestIid = NewType("MergeRequestIid", int)   # Project-scoped merge request number
PipelineId = NewType("PipelineId", int)


class RequestMethod(str, Enum):
    """HTTP methods used against the GitLab API."""
    GET = "GET"
    PUT = "PUT"
    POST = "POST"


@dataclass(frozen=True)
class ApiRequest:
    """A single logical request. GET params go to the query string, others to a JSON body."""
    method: RequestMethod
    path: ApiPath
    params: Optional[Mapping[str, Any]] = None

    def __post_init__(self) -> None:
        if self.params is not None:
            # Freeze the parameters so the request cannot change between retries
            object.__setattr__(self, "params", MappingProxyType(dict(self.params)))

    def describe(self) -> str:
        return f"{self.method.value} {self.path}"


@dataclass(frozen=True)
class RetryPolicy:
    """Value Object representing retry backoff configuration.

    Attributes:
        max_attempts: Total number of attempts for one logical request.
        backoff_seconds: Constant delay between attempts (no growth, no jitter).
        request_timeout_seconds: Timeout applied to each individual attempt.
    """
    max_attempts: int = 20
    backoff_seconds: float = 10.0
    request_timeout_seconds: float = 10.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.backoff_seconds < 0:
            raise ValueError(f"backoff_seconds must not be negative, got {self.backoff_seconds}")
        if self.request_timeout_seconds <= 0:
            raise ValueError(f"request_timeout_seconds must be positive, got {self.request_timeout_seconds}")


@dataclass
class MergeRequestStatus:
    """Summary of one merge request produced by a reconciliation job."""
    project_id: ProjectId
    iid: MergeRequestIid
    title: str
    state: str
    merge_status: str
    pipeline_status: Optional[str] = None
    approvals_left: Optional[int] = None
    has_conflicts: bool = False
    web_url: str = ""

    @property
    def reference(self) -> str:
        return f"{self.project_id}!{self.iid}"
