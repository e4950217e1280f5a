"""Abstract base classes for secret backends."""

from abc import ABC, abstractmethod
from typing import Optional


class SecretBackend(ABC):
    """
    Abstract base class that all secret backends must implement.

    Concrete backends add one of the capability interfaces below:
    - KeyringBackend: export / decrypt by key fingerprint (GnuPG)
    - CloudSecretBackend: fetch by resource identifier (GCP Secret Manager)
    """

    name: str = ""

    @abstractmethod
    def health_check(self) -> bool:
        """
        Check if backend is accessible.

        Returns:
            True if healthy, False otherwise
        """
        pass


class KeyringBackend(SecretBackend):
    """Local keyring holding private keys."""

    @abstractmethod
    def export_private_key(self, fingerprint: str) -> str:
        """
        Export a private key as ASCII armor.

        Raises:
            SecretNotFoundError: If no key matches the fingerprint
            SecretBackendError: If the keyring tool fails
        """
        pass

    @abstractmethod
    def decrypt(self, ciphertext: str) -> str:
        """
        Decrypt an ASCII-armored message with the keyring's own keys.

        Raises:
            SecretBackendError: If the keyring tool fails
        """
        pass


class CloudSecretBackend(SecretBackend):
    """Remote secret store addressed by resource identifier."""

    @abstractmethod
    def fetch(self, identifier: str, version: Optional[str] = None) -> str:
        """
        Fetch a secret's payload.

        Args:
            identifier: Backend-specific resource identifier
            version: Version or stage; the backend's "latest" marker if None

        Raises:
            InvalidSecretReferenceError: If the identifier is malformed
            SecretBackendError: If the backend fails
        """
        pass
