"""Interface for presenting results to the user.

Defines the contract for displaying information, errors, warnings and
merge request data, allowing different UI implementations (e.g., console,
plain log output).
"""

import abc
from typing import Any, List

# Import relevant domain models
from mergebot.domain.models.common import MergeRequestStatus
from mergebot.domain.models.gitlab import MergeRequest, User


class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message to the user.

        Args:
            error_message: The error message string.
            **kwargs: Additional arguments for formatting.
        """
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message to the user."""
        pass

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message to the user."""
        pass

    @abc.abstractmethod
    def display_user(self, user: User) -> None:
        """Displays the authenticated user."""
        pass

    @abc.abstractmethod
    def display_merge_requests(self, merge_requests: List[MergeRequest]) -> None:
        """Displays a list of merge requests.

        Args:
            merge_requests: Merge requests as returned by the API.
        """
        pass

    @abc.abstractmethod
    def display_merge_request_status(self, status: MergeRequestStatus) -> None:
        """Displays the reconciled status of a single merge request."""
        pass
