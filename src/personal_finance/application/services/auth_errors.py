"""Classified failures surfaced by the authentication service."""

from __future__ import annotations


class AuthServiceError(Exception):
    """Base class for every outcome the auth boundary reports to callers."""


class ValidationError(AuthServiceError):
    """Raised when request fields are missing or malformed."""


class ConflictError(AuthServiceError):
    """Raised when signup targets an email that is already registered."""


class AuthenticationError(AuthServiceError):
    """Raised for bad credentials and unusable access or refresh tokens."""


class ConfigurationError(AuthServiceError):
    """Raised when the access-token signing secret is not configured."""


class ServerError(AuthServiceError):
    """Raised when a storage or credential collaborator fails unexpectedly."""

    def __init__(self, message: str = "server error") -> None:
        super().__init__(message)
