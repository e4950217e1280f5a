"""The set of backends one resolution run talks to."""

import logging
from dataclasses import dataclass
from typing import Dict

from secenv.core.secrets.base import CloudSecretBackend, KeyringBackend
from secenv.core.secrets.cache import SecretCache
from secenv.core.secrets.registry import get_backend

logger = logging.getLogger(__name__)


@dataclass
class Backends:
    """Keyring and cloud backends handed to value resolution."""

    keyring: KeyringBackend
    cloud: CloudSecretBackend

    @classmethod
    def create(
        cls,
        cache: bool = True,
        keyring: str = "gpg",
        cloud: str = "gcp",
        gpg_binary: str = "gpg",
        gcloud_binary: str = "gcloud",
    ) -> "Backends":
        """
        Build the default backends from the registry.

        Args:
            cache: Share a fresh SecretCache with the cloud backend
            keyring: Registered keyring backend name
            cloud: Registered cloud backend name
            gpg_binary: Executable for the keyring backend
            gcloud_binary: Executable for the cloud backend
        """
        keyring_backend = get_backend(keyring)(binary=gpg_binary)
        cloud_backend = get_backend(cloud)(
            binary=gcloud_binary, cache=SecretCache() if cache else None
        )
        logger.debug(f"Using backends keyring={keyring} cloud={cloud}")
        return cls(keyring=keyring_backend, cloud=cloud_backend)

    def health_check(self) -> Dict[str, bool]:
        """Health of each backend, keyed by backend name."""
        return {
            self.keyring.name: self.keyring.health_check(),
            self.cloud.name: self.cloud.health_check(),
        }
