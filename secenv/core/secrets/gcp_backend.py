"""Google Cloud Secret Manager backend, driven through the gcloud CLI."""

import logging
import shutil
from dataclasses import dataclass
from typing import Optional

from secenv.core.secrets.base import CloudSecretBackend
from secenv.core.secrets.cache import SecretCache
from secenv.core.secrets.command import run_command
from secenv.core.secrets.exceptions import InvalidSecretReferenceError
from secenv.core.secrets.registry import register_backend
from secenv.core.utils.decorators import log_call

logger = logging.getLogger(__name__)

LATEST_VERSION = "latest"


@dataclass(frozen=True)
class GcpSecretRef:
    """Parsed `projects/<project>/secrets/<name>[/versions/<version>]`."""

    project: str
    name: str
    version: Optional[str] = None

    @property
    def resource(self) -> str:
        """Resource name without the version suffix."""
        return f"projects/{self.project}/secrets/{self.name}"

    @classmethod
    def parse(cls, identifier: str) -> "GcpSecretRef":
        """
        Parse a full secret resource name.

        Raises:
            InvalidSecretReferenceError: If the identifier has any other shape
        """
        parts = identifier.split("/")
        valid = (
            len(parts) in (4, 6)
            and parts[0] == "projects"
            and parts[2] == "secrets"
            and (len(parts) == 4 or parts[4] == "versions")
            and all(parts)
        )
        if not valid:
            raise InvalidSecretReferenceError(
                f"Invalid GCP secret identifier '{identifier}'. "
                "Expected projects/<project>/secrets/<name>[/versions/<version>]"
            )

        version = parts[5] if len(parts) == 6 else None
        return cls(project=parts[1], name=parts[3], version=version)


@register_backend("gcp")
class GcpSecretManagerBackend(CloudSecretBackend):
    """
    Reads secret versions with `gcloud secrets versions access`.

    Authentication is whatever the gcloud CLI is logged in as. Results
    are cached per resource and version for the lifetime of the backend.

    Examples:
        backend = GcpSecretManagerBackend()
        backend.fetch("projects/acme/secrets/db-key")               # latest
        backend.fetch("projects/acme/secrets/db-key/versions/3")    # version 3
        backend.fetch("projects/acme/secrets/db-key", version="2")  # version 2
    """

    def __init__(self, binary: str = "gcloud", cache: Optional[SecretCache] = None):
        """
        Args:
            binary: gcloud executable name or path
            cache: Shared cache; lookups are not cached if None
        """
        self.binary = binary
        self.cache = cache

    def parse_resource(self, identifier: str) -> GcpSecretRef:
        return GcpSecretRef.parse(identifier)

    @log_call
    def fetch(self, identifier: str, version: Optional[str] = None) -> str:
        ref = self.parse_resource(identifier)
        version = version or ref.version or LATEST_VERSION
        cache_key = SecretCache.key(ref.resource, version, default=LATEST_VERSION)

        if self.cache is not None and cache_key in self.cache:
            logger.debug(f"Cache hit for {cache_key}")
            return self.cache.get(cache_key)

        args = [
            self.binary,
            "secrets",
            "versions",
            "access",
            version,
            "--quiet",
            "--secret",
            ref.name,
            "--project",
            ref.project,
        ]
        logger.debug(f"Fetching {cache_key} from Secret Manager")
        payload = run_command(args, backend=self.name).rstrip("\r\n")

        if self.cache is not None:
            self.cache.put(cache_key, payload)
        return payload

    def health_check(self) -> bool:
        """gcp backend is healthy when the gcloud executable is on PATH."""
        return shutil.which(self.binary) is not None
