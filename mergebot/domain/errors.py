"""Error taxonomy for the GitLab integration layer.

Every client-side failure derives from GitlabApiError and states once,
through ``retryable``, whether it belongs to the transient family (recovered
locally by retrying) or the terminal family (surfaced immediately).
"""

from typing import Any, Optional


class ConfigurationError(Exception):
    """Raised when required configuration (URL, token) is missing or invalid."""


class GitlabApiError(Exception):
    """Base class for failures talking to the GitLab API."""

    retryable: bool = False


# --- Transient family (only surfaced after retries are exhausted) ---

class TransientNetworkError(GitlabApiError):
    """Timeouts and network-stack errors that outlived every attempt."""

    retryable = True

    def __init__(self, request_description: str, attempts: int, original_exception: Exception):
        self.request_description = request_description
        self.attempts = attempts
        self.original_exception = original_exception
        super().__init__(
            f"GitLab request {request_description} failed after {attempts} attempts: {original_exception}"
        )


class ServerError(GitlabApiError):
    """The server kept answering with a 5xx status."""

    retryable = True

    def __init__(self, request_description: str, status_code: int, attempts: int):
        self.request_description = request_description
        self.status_code = status_code
        self.attempts = attempts
        super().__init__(f"Unexpected status code {status_code} after {attempts} attempts ({request_description})")


# --- Terminal family ---

class TransportError(GitlabApiError):
    """Non-retryable transport failure (invalid URL, protocol error, ...)."""

    def __init__(self, request_description: str, original_exception: Exception):
        self.request_description = request_description
        self.original_exception = original_exception
        super().__init__(f"GitLab request {request_description} failed: {original_exception}")


class ResponseStatusError(GitlabApiError):
    """The response carried a non-2xx status code."""

    def __init__(self, status_code: int, message: Optional[str] = None):
        self.status_code = status_code
        super().__init__(message or f"Unexpected status code: {status_code}")


class AuthenticationFailure(ResponseStatusError):
    def __init__(self, status_code: int = 401):
        super().__init__(status_code, "Unauthorized")


class AuthorizationFailure(ResponseStatusError):
    def __init__(self, status_code: int = 403):
        super().__init__(status_code, "Forbidden")


class UnexpectedStatusError(ResponseStatusError):
    """Any other non-success status that reached the caller."""


class MalformedPayloadError(GitlabApiError):
    """The body decoded, but not into the expected shape (object vs. sequence)."""

    def __init__(self, expected: str, payload: Any = None):
        self.expected = expected
        self.payload = payload
        super().__init__(f"Invalid response: expected a JSON {expected}, got {type(payload).__name__}")


# --- Job queue ---

class JobFailure(Exception):
    """A queued job body raised; wraps the original exception."""

    def __init__(self, key: str, original_exception: BaseException):
        self.key = key
        self.original_exception = original_exception
        super().__init__(f"Job '{key}' failed: {original_exception}")
