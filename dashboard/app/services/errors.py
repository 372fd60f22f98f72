"""
Error taxonomy of the scheduling core.

- ValidationFailed : rejected locally, never reaches the network
- RemoteFetchFailed: a query could not be loaded (not the same as "empty")
- MutationFailed   : the remote rejected a write; cache untouched, draft kept
"""

from typing import Any, Optional


class DashboardError(Exception):
    """Base class for errors surfaced to the dashboard user."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(DashboardError):
    """Local validation failure, attached to the offending field/control."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class RemoteFetchFailed(DashboardError):
    """A query to the remote collaborator failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class MutationFailed(DashboardError):
    """
    A create/update/delete/status/settle request was rejected.

    `draft` holds the user's in-progress input so it can be retried.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        draft: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.draft = draft or {}
