"""
Error taxonomy for the clinic placement service.

Each error carries the HTTP status the API layer should answer with, so
route handlers never translate exceptions themselves. The API registers a
single handler for ClinicError in main.py.

Storage failures are not here: they belong to the infrastructure layer
(DocumentStoreError) and surface as a generic server error.
"""

from typing import Optional


class ClinicError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UnauthenticatedError(ClinicError):
    """Missing or invalid bearer identity."""

    status_code = 401


class ForbiddenError(ClinicError):
    """Valid identity that is not on the admin allow-list."""

    status_code = 403


class ValidationError(ClinicError):
    """
    Malformed input.

    The field is kept separately so callers (and tests) can tell which part
    of the payload was rejected without parsing the message.
    """

    status_code = 400

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"{field}: {reason}")
        self.field = field
        self.reason = reason


class NotFoundError(ClinicError):
    """Referenced activity or placement does not exist."""

    status_code = 404

    def __init__(self, resource: str, identifier: Optional[str] = None) -> None:
        message = f"{resource} not found"
        if identifier:
            message = f"{resource} not found: {identifier}"
        super().__init__(message)
        self.resource = resource
        self.identifier = identifier


class ConflictError(ClinicError):
    """A placement write was based on a stale version."""

    status_code = 409

    def __init__(self, expected_version: int, current_version: int) -> None:
        super().__init__(
            f"Placement was modified by someone else "
            f"(expected version {expected_version}, current version {current_version})"
        )
        self.expected_version = expected_version
        self.current_version = current_version
