"""Classification and validation of GitLab responses.

``classify_status`` is the single place that decides what a status code
means, including whether it is worth retrying. The request executor asks it
about 5xx; callers use the ``validate``/``expect`` helpers to turn the rest
into typed results or errors.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List

import httpx

from mergebot.domain.errors import (
    AuthenticationFailure,
    AuthorizationFailure,
    MalformedPayloadError,
    UnexpectedStatusError,
)

logger = logging.getLogger(__name__)


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    AUTHENTICATION_FAILURE = "authentication_failure"
    AUTHORIZATION_FAILURE = "authorization_failure"
    GENERIC_FAILURE = "generic_failure"


@dataclass(frozen=True)
class ResponseOutcome:
    """Tagged result of classifying a status code."""
    kind: OutcomeKind
    status_code: int

    @property
    def is_success(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS

    @property
    def retryable(self) -> bool:
        # Only server-side failures are transient; 4xx never changes on retry.
        return self.kind is OutcomeKind.GENERIC_FAILURE and self.status_code >= 500


def classify_status(status_code: int) -> ResponseOutcome:
    """Maps an HTTP status code to a ResponseOutcome. Pure function."""
    if status_code == 401:
        return ResponseOutcome(OutcomeKind.AUTHENTICATION_FAILURE, status_code)
    if status_code == 403:
        return ResponseOutcome(OutcomeKind.AUTHORIZATION_FAILURE, status_code)
    if 200 <= status_code < 300:
        return ResponseOutcome(OutcomeKind.SUCCESS, status_code)
    return ResponseOutcome(OutcomeKind.GENERIC_FAILURE, status_code)


def classify(response: httpx.Response) -> ResponseOutcome:
    return classify_status(response.status_code)


def validate_response_status(response: httpx.Response) -> ResponseOutcome:
    """Raises the terminal error matching a non-success status.

    Returns:
        The SUCCESS outcome when the status is in [200, 300).

    Raises:
        AuthenticationFailure: On 401.
        AuthorizationFailure: On 403.
        UnexpectedStatusError: On any other status outside [200, 300).
    """
    outcome = classify(response)
    if outcome.kind is OutcomeKind.AUTHENTICATION_FAILURE:
        raise AuthenticationFailure(outcome.status_code)
    if outcome.kind is OutcomeKind.AUTHORIZATION_FAILURE:
        raise AuthorizationFailure(outcome.status_code)
    if outcome.kind is OutcomeKind.GENERIC_FAILURE:
        raise UnexpectedStatusError(outcome.status_code)
    return outcome


def _decode(response: httpx.Response, expected: str) -> Any:
    try:
        return response.json()
    except ValueError as e:
        logger.error(f"Response body (status {response.status_code}) is not valid JSON: {e}")
        raise MalformedPayloadError(expected, response.text) from e


def expect_object(response: httpx.Response) -> Dict[str, Any]:
    """Validates the status, then returns the decoded body if it is a JSON object."""
    validate_response_status(response)
    data = _decode(response, "object")
    if not isinstance(data, dict):
        logger.error(f"Invalid response, expected an object: {data!r}")
        raise MalformedPayloadError("object", data)
    return data


def expect_collection(response: httpx.Response) -> List[Any]:
    """Validates the status, then returns the decoded body if it is a JSON array."""
    validate_response_status(response)
    data = _decode(response, "array")
    if not isinstance(data, list):
        logger.error(f"Invalid response, expected an array: {data!r}")
        raise MalformedPayloadError("array", data)
    return data
