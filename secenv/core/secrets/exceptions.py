"""Custom exceptions for secret backends."""

from typing import Optional


class SecretNotFoundError(Exception):
    """Raised when a secret cannot be found in the backend."""

    pass


class SecretBackendError(Exception):
    """Raised when there's an issue with the secret backend itself.

    `stderr` carries the diagnostic output of the external tool, if any.
    """

    def __init__(self, message: str, backend: Optional[str] = None, stderr: str = ""):
        self.backend = backend
        self.stderr = stderr
        super().__init__(message)


class InvalidSecretReferenceError(ValueError):
    """Raised when a secret identifier is malformed."""

    pass
