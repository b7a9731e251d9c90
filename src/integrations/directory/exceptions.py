"""
Custom exceptions for directory lookups.

Provides structured error handling with retryable flags.
"""


class DirectoryError(Exception):
    """Base exception for directory operations."""

    retryable: bool = False

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class DirectoryUnavailableError(DirectoryError):
    """
    Directory could not be reached or is overloaded.

    Causes:
    - Connection failure or timeout
    - 429 rate limiting
    - 5xx server errors

    Retryable after backoff.
    """

    retryable = True


class DirectoryResponseError(DirectoryError):
    """
    Directory answered with something we cannot use.

    Causes:
    - Unexpected status code (401, 403, 400, ...)
    - Malformed JSON body
    """

    retryable = False
