"""Typed failures raised by the stores and the lifecycle manager."""
from __future__ import annotations


class ApptrackError(Exception):
    """Base class for all apptrack errors."""


class RemoteUnavailableError(ApptrackError):
    """The remote store could not be reached or rejected the request."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ApplicationNotFoundError(ApptrackError):
    def __init__(self, application_id: str) -> None:
        super().__init__(f"Application {application_id} not found")
        self.application_id = application_id


class ValidationFailedError(ApptrackError):
    def __init__(self, missing: list[str]) -> None:
        super().__init__(f"Missing required fields: {', '.join(missing)}")
        self.missing = missing


class MalformedLocalCacheError(ApptrackError):
    """Local cache value under a key is not a JSON array."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Local cache entry {key!r} is not valid JSON")
        self.key = key


class MutationInFlightError(ApptrackError):
    def __init__(self, application_id: str) -> None:
        super().__init__(f"A change to application {application_id} is already in progress")
        self.application_id = application_id


class SuggestionUnavailableError(ApptrackError):
    """The suggestion proxy endpoint failed or is not configured."""


class NotAuthenticatedError(ApptrackError):
    """No identity is attached to the session."""
