"""Exception hierarchy for contact group generation.

    ContactGroupsError      (base)
    +-- ValidationError      (malformed generation options)
    +-- AuthenticationError  (missing or invalid bearer token)
    +-- ExternalServiceError (venue lookup call failed)
    +-- PersistenceError     (writing generated groups failed)
    +-- ConfigurationError   (server-side settings missing or invalid)
"""

from __future__ import annotations


class ContactGroupsError(Exception):
    """Base exception for all contact group errors."""

    def __init__(self, message: str = "An unexpected error occurred") -> None:
        self.message = message
        super().__init__(message)


class ValidationError(ContactGroupsError):
    """Raised when generation options are rejected before any processing."""

    def __init__(self, message: str = "Invalid options", field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class AuthenticationError(ContactGroupsError):
    """Raised when a request carries no usable bearer credentials."""

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class ExternalServiceError(ContactGroupsError):
    """Raised when the venue lookup service fails.

    ``retryable`` is true for transport errors, rate limiting (429) and
    server-side (5xx) failures.
    """

    def __init__(
        self,
        message: str = "External service call failed",
        provider_name: str | None = None,
        status_code: int | None = None,
        retryable: bool = True,
    ) -> None:
        self.provider_name = provider_name
        self.status_code = status_code
        self.retryable = retryable
        super().__init__(message)

    def __str__(self) -> str:
        if self.provider_name:
            return f"[{self.provider_name}] {self.message}"
        return self.message


class PersistenceError(ContactGroupsError):
    """Raised when generated groups could not be written to storage."""

    def __init__(self, message: str = "Failed to persist groups") -> None:
        super().__init__(message)


class ConfigurationError(ContactGroupsError):
    """Raised when a required server-side setting is missing or invalid."""
