"""Secret backends: local GnuPG keyring and Google Cloud Secret Manager."""

# Import backends to trigger registration
from secenv.core.secrets import gcp_backend, gpg_backend  # noqa: F401

# Public API
from secenv.core.secrets.backends import Backends
from secenv.core.secrets.base import CloudSecretBackend, KeyringBackend, SecretBackend
from secenv.core.secrets.cache import SecretCache
from secenv.core.secrets.command import run_command
from secenv.core.secrets.exceptions import (
    InvalidSecretReferenceError,
    SecretBackendError,
    SecretNotFoundError,
)
from secenv.core.secrets.gcp_backend import GcpSecretManagerBackend, GcpSecretRef
from secenv.core.secrets.gpg_backend import GpgKeyringBackend
from secenv.core.secrets.registry import get_backend, register_backend

__all__ = [
    "Backends",
    "SecretBackend",
    "KeyringBackend",
    "CloudSecretBackend",
    "SecretCache",
    "run_command",
    "SecretNotFoundError",
    "SecretBackendError",
    "InvalidSecretReferenceError",
    "GcpSecretManagerBackend",
    "GcpSecretRef",
    "GpgKeyringBackend",
    "register_backend",
    "get_backend",
]
