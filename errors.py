"""Exceptions raised by the ABX client."""

from typing import Optional


class ABXClientError(Exception):
    """Base class for ABX client errors."""
    pass


class TransientConnectionError(ABXClientError):
    """Connecting to, writing to, or reading from the server failed."""
    pass


class RetryExhaustedError(ABXClientError):
    """Every attempt of a retried operation failed."""

    def __init__(self, attempts: int, last_error: Optional[BaseException] = None):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Gave up after {attempts} attempts: {last_error}")
