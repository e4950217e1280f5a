"""Resolution driver - turns a profile into plaintext variables and files."""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from secenv import __version__
from secenv.core.manifest.exceptions import ManifestError
from secenv.core.manifest.manifest import Manifest, ManifestProfile
from secenv.core.manifest.models import Content
from secenv.core.pgp import PGPEngine, PGPError
from secenv.core.runtime.exceptions import ResolutionError
from secenv.core.secrets import Backends, SecretBackendError, SecretNotFoundError
from secenv.core.utils.decorators import log_time

logger = logging.getLogger(__name__)

RESOLUTION_ERRORS = (
    ManifestError,
    PGPError,
    SecretBackendError,
    SecretNotFoundError,
    ValueError,
)


@dataclass(frozen=True)
class ResolvedProfile:
    """Plaintext results of one profile, ready to hand to the executor."""

    env: Dict[str, str] = field(default_factory=dict)
    files: Dict[str, str] = field(default_factory=dict)
    keep: Optional[List[str]] = None


class ProfileResolver:
    """
    Resolves every Content node of a profile, strictly in order.

    One resolver is one run: its PGP engine and backends (and therefore
    their password and secret caches) are never shared with another.

    Usage:
        resolver = ProfileResolver()
        resolved = resolver.resolve(manifest.profile("default"))
        resolved.env  # {"DB_PASSWORD": "..."}
    """

    def __init__(
        self,
        pgp_engine: Optional[PGPEngine] = None,
        backends: Optional[Backends] = None,
    ):
        self.pgp_engine = pgp_engine if pgp_engine is not None else PGPEngine()
        self.backends = backends if backends is not None else Backends.create()

    def resolve_content(self, content: Content, kind: str, name: str) -> str:
        """
        Resolve one node, wrapping any failure with what was being resolved.

        Raises:
            ResolutionError: If the value cannot be obtained or decrypted
        """
        logger.debug(f"Resolving {kind} '{name}'")
        try:
            return content.resolve(self.pgp_engine, self.backends)
        except RESOLUTION_ERRORS as e:
            raise ResolutionError(
                f"Failed to resolve {kind} '{name}': {e}", kind=kind, name=name
            ) from e

    @log_time
    def resolve(self, profile: ManifestProfile) -> ResolvedProfile:
        """
        Resolve variables, then files, each in manifest order.

        Nothing is returned unless every node resolves; the first failure
        aborts the run.

        Raises:
            ResolutionError: On the first node that fails
        """
        env = {
            name: self.resolve_content(content, "variable", name)
            for name, content in profile.env.vars.items()
        }
        files = {
            path: self.resolve_content(content, "file", path)
            for path, content in profile.files.items()
        }
        logger.info(f"Resolved {len(env)} variable(s) and {len(files)} file(s)")
        return ResolvedProfile(env=env, files=files, keep=profile.env.keep)

    def resolve_manifest(
        self, manifest: Manifest, profile: str, cli_version: str = __version__
    ) -> ResolvedProfile:
        """
        Check the manifest version, then resolve one of its profiles.

        Raises:
            VersionMismatchError: Before anything is resolved
            ProfileNotFoundError: If the profile doesn't exist
            ResolutionError: On the first node that fails
        """
        manifest.validate_version(cli_version)
        return self.resolve(manifest.profile(profile))
